"""FastAPI 应用主文件

app 创建 + lifespan 管理：数据目录初始化 + 路由注册。
Gateway 只读：所有写操作经由 CLI / TaskEngine 完成。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskagent.core.exceptions import TaskAgentError
from taskagent.core.logging_config import setup_logfire, setup_logging
from taskagent.core.store import create_store_group

from .config import TaskAgentSettings, load_settings
from .errors import taskagent_error_handler
from .middleware.logging_mw import LoggingMiddleware
from .routes import agents, dashboard, health, history, project, tasks

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化日志与数据目录

    日志在启动时而非 import 时配置，不覆盖调用方（CLI）已选定的级别。
    """
    settings: TaskAgentSettings = app.state.settings
    setup_logging(level=settings.log_level)

    if getattr(app.state, "store_group", None) is None:
        app.state.store_group = create_store_group(settings.data_dir)
    log.info("gateway_started", data_dir=str(app.state.store_group.data_dir))

    yield

    log.info("gateway_stopped")


def create_app(settings: TaskAgentSettings | None = None) -> FastAPI:
    """创建 FastAPI 应用实例

    Args:
        settings: Gateway 配置，None 时从环境变量加载
    """
    settings = settings or load_settings()

    app = FastAPI(
        title="taskagent Gateway",
        version="0.1.0",
        description="taskagent 只读看板 API",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store_group = None

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_exception_handler(TaskAgentError, taskagent_error_handler)

    setup_logfire(app)

    # 注册路由
    app.include_router(dashboard.router, tags=["dashboard"])
    app.include_router(project.router, tags=["project"])
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(agents.router, tags=["agents"])
    app.include_router(history.router, tags=["history"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
