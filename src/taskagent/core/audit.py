"""Audit Log -- 结构化审计记录构建 + 字段级 diff

每次被接受的变更恰好产生一条记录；依赖操作的 no-op 不产生记录。
记录只追加，任务删除追加 task_deleted，不会抹掉 task_created。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel
from ulid import ULID

from .models.agent import Agent
from .models.enums import HistoryAction
from .models.history import FieldChange, HistoryEntry
from .models.snapshot import ProjectInfo
from .models.task import Task
from .store.protocols import HistoryStore


def compute_changes(
    before: BaseModel,
    after: BaseModel,
    fields: list[str],
) -> dict[str, FieldChange]:
    """比较两个模型在指定字段上的 JSON 值，返回实际变化的字段

    结构化比较：列表/字典按值比较，datetime 按 ISO 字符串比较。
    """
    old = before.model_dump(mode="json", include=set(fields))
    new = after.model_dump(mode="json", include=set(fields))
    changes: dict[str, FieldChange] = {}
    for name in fields:
        if old.get(name) != new.get(name):
            changes[name] = FieldChange(from_=old.get(name), to=new.get(name))
    return changes


class AuditLog:
    """审计记录器 -- 构建 HistoryEntry 并从 HistoryStore 读取"""

    def __init__(self, history_store: HistoryStore) -> None:
        self._history_store = history_store

    @staticmethod
    def _entry(action: HistoryAction, ts: datetime, **fields: Any) -> HistoryEntry:
        return HistoryEntry(entry_id=str(ULID()), timestamp=ts, action=action, **fields)

    def task_created(self, task: Task) -> HistoryEntry:
        return self._entry(
            HistoryAction.TASK_CREATED,
            task.created_at,
            task_id=task.id,
            snapshot=task.model_dump(mode="json"),
        )

    def task_updated(self, task: Task, changes: dict[str, FieldChange]) -> HistoryEntry:
        return self._entry(
            HistoryAction.TASK_UPDATED,
            task.updated_at,
            task_id=task.id,
            changes=changes,
            snapshot=task.model_dump(mode="json"),
        )

    def task_deleted(self, task: Task, ts: datetime) -> HistoryEntry:
        """snapshot 为删除前的完整任务"""
        return self._entry(
            HistoryAction.TASK_DELETED,
            ts,
            task_id=task.id,
            snapshot=task.model_dump(mode="json"),
        )

    def dependency_added(self, task: Task, depends_on_id: str) -> HistoryEntry:
        return self._entry(
            HistoryAction.DEPENDENCY_ADDED,
            task.updated_at,
            task_id=task.id,
            depends_on_id=depends_on_id,
        )

    def dependency_removed(self, task: Task, depends_on_id: str) -> HistoryEntry:
        return self._entry(
            HistoryAction.DEPENDENCY_REMOVED,
            task.updated_at,
            task_id=task.id,
            depends_on_id=depends_on_id,
        )

    def agent_registered(self, agent: Agent, meta: dict[str, Any]) -> HistoryEntry:
        return self._entry(
            HistoryAction.AGENT_REGISTERED,
            agent.registered_at,
            agent_name=agent.name,
            meta=meta,
            snapshot=agent.model_dump(mode="json"),
        )

    def project_updated(
        self,
        project: ProjectInfo,
        changes: dict[str, FieldChange],
        ts: datetime,
    ) -> HistoryEntry:
        return self._entry(
            HistoryAction.PROJECT_UPDATED,
            ts,
            changes=changes,
            snapshot=project.model_dump(mode="json"),
        )

    def read(self, task_id: str | None = None) -> list[HistoryEntry]:
        """按追加顺序读取全部或指定任务的记录"""
        return self._history_store.read(task_id)
