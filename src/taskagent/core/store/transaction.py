"""快照 + 审计原子提交

一次变更要么快照与审计记录同时生效，要么都不生效：
1. 快照写入临时文件（未生效）
2. 追加审计记录
3. 临时文件原子替换正式快照；失败则截断刚追加的审计行
"""

import structlog

from ..exceptions import StorageError
from ..models.history import HistoryEntry
from ..models.snapshot import StoreSnapshot
from .protocols import HistoryStore, SnapshotStore

log = structlog.get_logger()


def commit_mutation(
    snapshot_store: SnapshotStore,
    history_store: HistoryStore,
    snapshot: StoreSnapshot,
    entry: HistoryEntry,
) -> None:
    """在一个逻辑单元内提交快照整份写入和一条审计记录

    Args:
        snapshot_store: SnapshotStore 实例
        history_store: HistoryStore 实例
        snapshot: 变更后的完整快照
        entry: 本次变更的审计记录

    Raises:
        StorageError: 任一步失败；已完成的步骤会被撤销
    """
    staged = snapshot_store.stage(snapshot)

    try:
        offset = history_store.append(entry)
    except StorageError:
        snapshot_store.discard(staged)
        raise

    try:
        snapshot_store.promote(staged)
    except StorageError:
        log.error(
            "snapshot_promote_failed",
            entry_id=entry.entry_id,
            action=entry.action.value,
        )
        history_store.truncate(offset)
        raise
