"""配置常量模块 -- 可通过环境变量覆盖

包含数据目录、快照/审计文件名等可配置常量。
"""

import os
from pathlib import Path

# 快照文档与审计序列的文件名
SNAPSHOT_FILENAME = "tasks.json"
HISTORY_FILENAME = "history.jsonl"

# 默认数据目录（相对当前工作目录）
DEFAULT_DATA_DIRNAME = ".taskagent"

# 短任务 ID 长度
TASK_ID_LENGTH: int = 8

# 生成唯一任务 ID 的最大尝试次数
TASK_ID_MAX_ATTEMPTS: int = 16


def get_data_dir() -> Path:
    """获取数据目录（TASKAGENT_DIR 覆盖默认的 ./.taskagent）"""
    return Path(os.environ.get("TASKAGENT_DIR", DEFAULT_DATA_DIRNAME))


def get_snapshot_path(data_dir: str | Path | None = None) -> Path:
    """获取快照文档路径"""
    base = Path(data_dir) if data_dir is not None else get_data_dir()
    return base / SNAPSHOT_FILENAME


def get_history_path(data_dir: str | Path | None = None) -> Path:
    """获取审计序列路径"""
    base = Path(data_dir) if data_dir is not None else get_data_dir()
    return base / HISTORY_FILENAME
