"""taskagent Core Store -- JSON 快照 + JSONL 审计持久化

提供工厂函数创建共享同一数据目录的 Store 实例组。
"""

from pathlib import Path

from ..config import get_data_dir, get_history_path, get_snapshot_path
from .history_store import JsonlHistoryStore
from .protocols import HistoryStore, SnapshotStore
from .snapshot_store import JsonSnapshotStore
from .transaction import commit_mutation


class StoreGroup:
    """Store 实例组 -- 共享同一个数据目录"""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir
        self.snapshot_store = JsonSnapshotStore(get_snapshot_path(data_dir))
        self.history_store = JsonlHistoryStore(get_history_path(data_dir))

    def init(self) -> "StoreGroup":
        """初始化快照与审计文件（幂等）"""
        self.snapshot_store.init()
        self.history_store.init()
        return self


def create_store_group(data_dir: str | Path | None = None) -> StoreGroup:
    """创建并初始化 Store 实例组

    Args:
        data_dir: 数据目录，None 时使用 TASKAGENT_DIR / ./.taskagent

    Returns:
        StoreGroup 实例
    """
    base = Path(data_dir) if data_dir is not None else get_data_dir()
    return StoreGroup(base).init()


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SnapshotStore",
    "HistoryStore",
    "JsonSnapshotStore",
    "JsonlHistoryStore",
    "commit_mutation",
]
