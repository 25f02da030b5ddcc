"""structlog 配置模块

dev 模式：pretty print 可读输出
json 模式：结构化 JSON 输出
CLI 与 Gateway 共用；CLI 默认只输出 WARNING 以上，避免干扰命令输出。
"""

import logging
import os
import sys

import structlog


def setup_logging(level: str | None = None, stream=None) -> None:
    """初始化 structlog 配置

    根据 TASKAGENT_LOG_FORMAT 环境变量选择渲染模式：
    - "json": 结构化 JSON 输出
    - "dev" (默认): pretty print 可读输出

    Args:
        level: 日志级别，None 时读取 TASKAGENT_LOG_LEVEL（默认 INFO）
        stream: 输出流，默认 stderr
    """
    log_format = os.environ.get("TASKAGENT_LOG_FORMAT", "dev")
    log_level = level or os.environ.get("TASKAGENT_LOG_LEVEL", "INFO")

    # 基础处理器链
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # 配置标准库 logging
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def setup_logfire(app) -> None:
    """Logfire 可选初始化

    LOGFIRE_SEND_TO_LOGFIRE 环境变量控制：
    - "true": 启用 Logfire APM（需要安装 observability extra 并配置 LOGFIRE_TOKEN）
    - "false" (默认): 纯本地日志

    Args:
        app: FastAPI 应用实例
    """
    send_to_logfire = os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower()
    if send_to_logfire == "true":
        try:
            import logfire

            logfire.configure()
            logfire.instrument_fastapi(app)
        except Exception:
            # Logfire 初始化失败不影响系统运行
            structlog.get_logger().warning(
                "logfire_init_failed",
                message="Logfire 初始化失败，降级为纯本地日志",
            )
