"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含快照可读性、一致性、数据目录可写性、磁盘空间。
"""

import os
import shutil

import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from taskagent.core.exceptions import StorageError
from taskagent.core.query import TaskQuery

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
def ready(request: Request):
    """Readiness 检查 -- 验证数据目录可用性

    检查项：
    1. snapshot: 快照文件可读且结构合法
    2. consistency: 快照一致性问题数（仅告警，不影响就绪）
    3. data_dir: 数据目录可写
    4. disk_space_mb: 磁盘剩余空间
    """
    store_group = request.app.state.store_group
    checks: dict = {}
    all_ok = True

    # 1. 快照可读性
    try:
        problems = TaskQuery(store_group).check()
        checks["snapshot"] = "ok"
        checks["consistency"] = "ok" if not problems else f"{len(problems)} problem(s)"
        if problems:
            log.warning("snapshot_inconsistent", problems=problems)
    except StorageError as e:
        checks["snapshot"] = f"error: {e.message}"
        checks["consistency"] = "skipped"
        all_ok = False

    # 2. 数据目录
    data_dir = store_group.data_dir
    if data_dir.is_dir() and os.access(data_dir, os.W_OK):
        checks["data_dir"] = "ok"
    else:
        checks["data_dir"] = "error: directory not writable"
        all_ok = False

    # 3. 磁盘空间
    try:
        checks["disk_space_mb"] = shutil.disk_usage(data_dir).free // (1024 * 1024)
    except OSError:
        checks["disk_space_mb"] = 0
        all_ok = False

    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={"status": "ready" if all_ok else "not_ready", "checks": checks},
    )
