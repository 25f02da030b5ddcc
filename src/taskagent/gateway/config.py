"""TaskAgentSettings -- Gateway 配置加载

从环境变量加载配置，非法值记录告警后回落到默认值，不阻塞启动。
"""

import os
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

from taskagent.core.config import get_data_dir

log = structlog.get_logger()


class TaskAgentSettings(BaseModel):
    """Gateway 配置

    环境变量:
        TASKAGENT_DIR: 数据目录（默认 ./.taskagent）
        TASKAGENT_HOST: 监听地址（默认 127.0.0.1）
        TASKAGENT_PORT: 监听端口（默认 3000）
        TASKAGENT_CORS_ORIGINS: 逗号分隔的允许来源（默认 *）
    """

    data_dir: Path = Field(default_factory=get_data_dir, description="数据目录")
    host: str = Field(default="127.0.0.1", description="监听地址")
    port: int = Field(default=3000, ge=1, le=65535, description="监听端口")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"], description="CORS 来源")
    log_level: str | None = Field(
        default=None, description="日志级别，None 时读取 TASKAGENT_LOG_LEVEL"
    )


def load_settings() -> TaskAgentSettings:
    """从环境变量加载 Gateway 配置

    Returns:
        TaskAgentSettings 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("TASKAGENT_HOST"):
        kwargs["host"] = val

    if val := os.environ.get("TASKAGENT_PORT"):
        try:
            port = int(val)
            if not 1 <= port <= 65535:
                raise ValueError(val)
            kwargs["port"] = port
        except ValueError:
            log.warning(
                "invalid_port_config",
                env_var="TASKAGENT_PORT",
                value=val,
                fallback=3000,
            )

    if val := os.environ.get("TASKAGENT_CORS_ORIGINS"):
        kwargs["cors_origins"] = [o.strip() for o in val.split(",") if o.strip()]

    return TaskAgentSettings(**kwargs)
