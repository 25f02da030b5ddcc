"""TaskQuery -- 只读查询门面

每次调用都重新读取存储，不做跨调用缓存；不修改任何状态。
"""

from collections.abc import Callable
from datetime import UTC, datetime

from .audit import AuditLog
from .exceptions import (
    AgentNotFoundError,
    InvalidPriorityError,
    InvalidStatusError,
    TaskNotFoundError,
)
from .graph import find_problems
from .models.agent import Agent
from .models.enums import TaskPriority, TaskStatus
from .models.history import HistoryEntry
from .models.snapshot import ProjectInfo, StoreSnapshot
from .models.task import Task
from .models.views import DashboardView, Summary
from .projection import compute_dashboard, compute_summary
from .store import StoreGroup


class TaskQuery:
    """只读查询服务"""

    def __init__(
        self,
        stores: StoreGroup,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._stores = stores
        self._audit = AuditLog(stores.history_store)
        self._clock = clock or (lambda: datetime.now(UTC))

    def snapshot(self) -> StoreSnapshot:
        """读取当前完整快照"""
        return self._stores.snapshot_store.load()

    def get_project(self) -> ProjectInfo | None:
        return self.snapshot().project

    def get_task(self, task_id: str) -> Task:
        task = self.snapshot().tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def list_tasks(
        self,
        status: str | None = None,
        assignee: str | None = None,
        tag: str | None = None,
        priority: str | None = None,
    ) -> list[Task]:
        """查询任务列表，条件之间为 AND 关系，保持存储顺序

        Raises:
            InvalidStatusError / InvalidPriorityError: 筛选值非法
        """
        if status is not None and status not in {s.value for s in TaskStatus}:
            raise InvalidStatusError(status, [s.value for s in TaskStatus])
        if priority is not None and priority not in {p.value for p in TaskPriority}:
            raise InvalidPriorityError(priority, [p.value for p in TaskPriority])

        tasks = list(self.snapshot().tasks.values())
        if status is not None:
            tasks = [t for t in tasks if t.status == status]
        if assignee is not None:
            tasks = [t for t in tasks if t.assignee == assignee]
        if tag is not None:
            tasks = [t for t in tasks if tag in t.tags]
        if priority is not None:
            tasks = [t for t in tasks if t.priority == priority]
        return tasks

    def get_blockers(self, task_id: str) -> list[Task]:
        """返回阻塞该任务的依赖（存在且未完成）"""
        snapshot = self.snapshot()
        task = snapshot.tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return [
            snapshot.tasks[dep_id]
            for dep_id in task.depends_on
            if dep_id in snapshot.tasks
            and snapshot.tasks[dep_id].status != TaskStatus.COMPLETED
        ]

    def get_blocking(self, task_id: str) -> list[Task]:
        """返回依赖该任务的所有任务"""
        snapshot = self.snapshot()
        if task_id not in snapshot.tasks:
            raise TaskNotFoundError(task_id)
        return [t for t in snapshot.tasks.values() if task_id in t.depends_on]

    def list_agents(self) -> list[Agent]:
        return list(self.snapshot().agents.values())

    def get_agent(self, name: str) -> Agent:
        agent = self.snapshot().agents.get(name)
        if agent is None:
            raise AgentNotFoundError(name)
        return agent

    def get_agent_tasks(self, name: str) -> list[Task]:
        """返回指派给该 Agent 的任务

        Raises:
            AgentNotFoundError: 既未注册、也没有任何任务使用该名称
        """
        snapshot = self.snapshot()
        tasks = [t for t in snapshot.tasks.values() if t.assignee == name]
        if name not in snapshot.agents and not tasks:
            raise AgentNotFoundError(name)
        return tasks

    def get_history(self, task_id: str | None = None) -> list[HistoryEntry]:
        """按追加顺序返回全部或指定任务的审计记录"""
        return self._audit.read(task_id)

    def summary(self) -> Summary:
        return compute_summary(self.snapshot(), self._clock())

    def dashboard(self) -> DashboardView:
        return compute_dashboard(self.snapshot(), self._clock())

    def check(self) -> list[str]:
        """快照一致性检查，返回问题列表"""
        return find_problems(self.snapshot())
