"""Store Protocol 接口定义

定义 SnapshotStore、HistoryStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from pathlib import Path
from typing import Protocol

from ..models.history import HistoryEntry
from ..models.snapshot import StoreSnapshot


class SnapshotStore(Protocol):
    """快照存储接口 -- 整份读写，无字段级并发控制"""

    def init(self) -> None:
        """初始化为空快照（幂等）"""
        ...

    def load(self) -> StoreSnapshot:
        """读取完整快照"""
        ...

    def stage(self, snapshot: StoreSnapshot) -> Path:
        """写入未生效的临时副本"""
        ...

    def promote(self, staged: Path) -> None:
        """原子替换为正式快照"""
        ...

    def discard(self, staged: Path) -> None:
        """丢弃临时副本"""
        ...


class HistoryStore(Protocol):
    """审计存储接口

    append-only：只允许追加，不允许修改或删除历史记录。
    """

    def init(self) -> None:
        """初始化为空序列（幂等）"""
        ...

    def append(self, entry: HistoryEntry) -> int:
        """追加记录，返回追加前的偏移"""
        ...

    def truncate(self, offset: int) -> None:
        """回滚本次追加"""
        ...

    def read(self, task_id: str | None = None) -> list[HistoryEntry]:
        """按追加顺序读取"""
        ...
