"""领域异常 -> HTTP 错误响应

统一响应结构：{"error": {"code": ..., "message": ...}}
"""

import structlog
from fastapi import Request
from starlette.responses import JSONResponse

from taskagent.core.exceptions import TaskAgentError

log = structlog.get_logger()

_STATUS_BY_CATEGORY: dict[str, int] = {
    "not_found": 404,
    "conflict": 409,
    "validation": 422,
    "storage": 500,
}


def error_response(error: TaskAgentError) -> JSONResponse:
    return JSONResponse(
        status_code=_STATUS_BY_CATEGORY.get(error.category, 400),
        content={"error": {"code": error.code, "message": error.message}},
    )


async def taskagent_error_handler(request: Request, exc: TaskAgentError) -> JSONResponse:
    """FastAPI 异常处理器（注册在 TaskAgentError 上）"""
    if exc.category == "storage":
        log.error("storage_error", code=exc.code, error=exc.message)
    else:
        log.warning("request_rejected", code=exc.code, path=request.url.path)
    return error_response(exc)
