"""TaskEngine -- 实体与不变量引擎

每个变更操作的流程固定为：
1. 读取完整快照（不跨操作缓存）
2. 校验（失败时抛出领域异常，不产生任何写入）
3. 在内存副本上应用变更
4. 原子提交：整份快照 + 一条审计记录
5. 返回结果实体

并发模型：无锁、无版本号，多进程并发写入时整份快照后写覆盖先写。
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import structlog
from ulid import ULID

from .audit import AuditLog, compute_changes
from .config import TASK_ID_LENGTH, TASK_ID_MAX_ATTEMPTS
from .exceptions import (
    AgentAlreadyRegisteredError,
    CycleDetectedError,
    DependenciesUnmetError,
    InvalidAgentTypeError,
    InvalidFieldError,
    InvalidPriorityError,
    InvalidStatusError,
    InvalidTitleError,
    SelfDependencyError,
    StorageError,
    TaskNotFoundError,
    UnknownAgentError,
    UnknownDependencyError,
)
from .graph import would_create_cycle
from .models.agent import Agent
from .models.enums import AgentType, TaskPriority, TaskStatus, is_gated_transition
from .models.history import FieldChange, HistoryEntry
from .models.snapshot import ProjectInfo, StoreSnapshot
from .models.task import Task, TaskCreate, TaskUpdate, dedupe, parse_deadline
from .store import StoreGroup, commit_mutation

log = structlog.get_logger()


# ============================================================
# 字段校验器 -- (value, snapshot, task_id) -> 规范化后的值
# ============================================================


def _validate_title(value: Any, snapshot: StoreSnapshot, task_id: str | None) -> str:
    title = (value or "").strip()
    if not title:
        raise InvalidTitleError()
    return title


def _validate_description(value: Any, snapshot: StoreSnapshot, task_id: str | None) -> str:
    return value or ""


def _validate_status(value: Any, snapshot: StoreSnapshot, task_id: str | None) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        raise InvalidStatusError(value, [s.value for s in TaskStatus]) from None


def _validate_priority(value: Any, snapshot: StoreSnapshot, task_id: str | None) -> TaskPriority:
    if value is None:
        return TaskPriority.MEDIUM
    try:
        return TaskPriority(value)
    except ValueError:
        raise InvalidPriorityError(value, [p.value for p in TaskPriority]) from None


def _validate_tags(value: Any, snapshot: StoreSnapshot, task_id: str | None) -> list[str]:
    return dedupe(tag.strip() for tag in (value or []) if tag and tag.strip())


def _validate_deadline(value: Any, snapshot: StoreSnapshot, task_id: str | None) -> datetime | None:
    try:
        return parse_deadline(value)
    except ValueError as e:
        raise InvalidFieldError("deadline", str(e)) from None


def _validate_estimate(value: Any, snapshot: StoreSnapshot, task_id: str | None) -> int | None:
    if value is None:
        return None
    if value < 0:
        raise InvalidFieldError("estimated_minutes", "must be a non-negative integer")
    return value


def _validate_assignee(value: Any, snapshot: StoreSnapshot, task_id: str | None) -> str | None:
    if value is None:
        return None
    if value not in snapshot.agents:
        raise UnknownAgentError(value)
    return value


def _validate_depends_on(value: Any, snapshot: StoreSnapshot, task_id: str | None) -> list[str]:
    deps = dedupe(value or [])
    if task_id is not None and task_id in deps:
        raise SelfDependencyError(task_id)
    for dep_id in deps:
        if dep_id not in snapshot.tasks:
            raise UnknownDependencyError(dep_id)
    return deps


# 可变字段 -> 校验器；键集合与 MUTABLE_FIELDS 一致
FIELD_VALIDATORS: dict[str, Callable[[Any, StoreSnapshot, str | None], Any]] = {
    "title": _validate_title,
    "description": _validate_description,
    "status": _validate_status,
    "priority": _validate_priority,
    "tags": _validate_tags,
    "deadline": _validate_deadline,
    "estimated_minutes": _validate_estimate,
    "assignee": _validate_assignee,
    "depends_on": _validate_depends_on,
}


def unmet_dependencies(snapshot: StoreSnapshot, depends_on: list[str]) -> list[str]:
    """返回未完成的依赖 ID（按 depends_on 顺序）

    已不存在的依赖视为已满足。
    """
    return [
        dep_id
        for dep_id in depends_on
        if dep_id in snapshot.tasks and snapshot.tasks[dep_id].status != TaskStatus.COMPLETED
    ]


class TaskEngine:
    """实体与不变量引擎 -- 所有变更操作的唯一入口"""

    def __init__(
        self,
        stores: StoreGroup,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._stores = stores
        self._audit = AuditLog(stores.history_store)
        self._clock = clock or (lambda: datetime.now(UTC))

    # ========================================
    # 内部工具
    # ========================================

    def _now(self) -> datetime:
        return self._clock()

    def _touch(self, previous: datetime) -> datetime:
        """新的 updated_at，保证单调不减"""
        return max(self._now(), previous)

    def _load(self) -> StoreSnapshot:
        return self._stores.snapshot_store.load()

    def _commit(self, snapshot: StoreSnapshot, entry: HistoryEntry) -> None:
        commit_mutation(
            self._stores.snapshot_store,
            self._stores.history_store,
            snapshot,
            entry,
        )

    @staticmethod
    def _require_task(snapshot: StoreSnapshot, task_id: str) -> Task:
        task = snapshot.tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    @staticmethod
    def _new_task_id(snapshot: StoreSnapshot) -> str:
        """取 ULID 随机段末尾若干位作为短 ID，碰撞时重试"""
        for _ in range(TASK_ID_MAX_ATTEMPTS):
            candidate = str(ULID())[-TASK_ID_LENGTH:].lower()
            if candidate not in snapshot.tasks:
                return candidate
        raise StorageError("failed to allocate a unique task id")

    # ========================================
    # Task 操作
    # ========================================

    def create_task(self, request: TaskCreate) -> Task:
        """创建任务（初始状态 pending）

        Raises:
            InvalidTitleError / InvalidPriorityError / InvalidFieldError
            UnknownDependencyError: depends_on 中存在未知任务
            UnknownAgentError: assignee 未注册
        """
        snapshot = self._load()

        values = {
            name: FIELD_VALIDATORS[name](getattr(request, name), snapshot, None)
            for name in (
                "title",
                "description",
                "priority",
                "tags",
                "deadline",
                "estimated_minutes",
                "depends_on",
                "assignee",
            )
        }

        now = self._now()
        task = Task(
            id=self._new_task_id(snapshot),
            status=TaskStatus.PENDING,
            created_at=now,
            updated_at=now,
            **values,
        )
        snapshot.tasks[task.id] = task

        self._commit(snapshot, self._audit.task_created(task))
        log.info(
            "task_created",
            task_id=task.id,
            priority=task.priority.value,
            depends_on=task.depends_on,
        )
        return task

    def update_task(self, task_id: str, request: TaskUpdate) -> Task:
        """按请求中出现的字段更新任务

        即使没有字段实际变化，也会刷新 updated_at 并写入一条记录。

        Raises:
            TaskNotFoundError: 任务不存在
            InvalidStatusError / InvalidPriorityError / InvalidTitleError / InvalidFieldError
            UnknownAgentError: assignee 未注册
            SelfDependencyError / UnknownDependencyError: depends_on 非法
            DependenciesUnmetError: 进入 in_progress 但依赖未全部完成
        """
        snapshot = self._load()
        task = self._require_task(snapshot, task_id)

        fields = request.present_fields()
        values = {
            name: FIELD_VALIDATORS[name](getattr(request, name), snapshot, task_id)
            for name in fields
        }

        new_status = values.get("status")
        if new_status is not None and is_gated_transition(new_status):
            effective_deps = values.get("depends_on", task.depends_on)
            unmet = unmet_dependencies(snapshot, effective_deps)
            if unmet:
                raise DependenciesUnmetError(task_id, unmet)

        updated = task.model_copy(
            update={**values, "updated_at": self._touch(task.updated_at)}
        )
        snapshot.tasks[task_id] = updated

        changes = compute_changes(task, updated, fields)
        self._commit(snapshot, self._audit.task_updated(updated, changes))
        log.info("task_updated", task_id=task_id, changed=list(changes))
        return updated

    def delete_task(self, task_id: str) -> Task:
        """删除任务，并从其他任务的 depends_on 中移除该 ID

        Returns:
            删除前的任务
        """
        snapshot = self._load()
        task = self._require_task(snapshot, task_id)

        del snapshot.tasks[task_id]
        repaired: list[str] = []
        for other_id, other in snapshot.tasks.items():
            if task_id in other.depends_on:
                snapshot.tasks[other_id] = other.model_copy(
                    update={"depends_on": [d for d in other.depends_on if d != task_id]}
                )
                repaired.append(other_id)

        self._commit(snapshot, self._audit.task_deleted(task, self._now()))
        log.info("task_deleted", task_id=task_id, repaired=repaired)
        return task

    # ========================================
    # 依赖操作
    # ========================================

    def add_dependency(self, task_id: str, depends_on_id: str) -> Task:
        """新增依赖边 task_id -> depends_on_id

        边已存在时为 no-op：不写入、不记录，返回当前任务。

        Raises:
            SelfDependencyError: 两者相同
            TaskNotFoundError: 任一任务不存在
            CycleDetectedError: 新边会成环
        """
        if task_id == depends_on_id:
            raise SelfDependencyError(task_id)

        snapshot = self._load()
        task = self._require_task(snapshot, task_id)
        self._require_task(snapshot, depends_on_id)

        if would_create_cycle(snapshot.adjacency(), task_id, depends_on_id):
            raise CycleDetectedError(task_id, depends_on_id)

        if depends_on_id in task.depends_on:
            log.debug("dependency_exists", task_id=task_id, depends_on_id=depends_on_id)
            return task

        updated = task.model_copy(
            update={
                "depends_on": [*task.depends_on, depends_on_id],
                "updated_at": self._touch(task.updated_at),
            }
        )
        snapshot.tasks[task_id] = updated

        self._commit(snapshot, self._audit.dependency_added(updated, depends_on_id))
        log.info("dependency_added", task_id=task_id, depends_on_id=depends_on_id)
        return updated

    def remove_dependency(self, task_id: str, depends_on_id: str) -> Task:
        """移除依赖边；边不存在时为 no-op

        Raises:
            TaskNotFoundError: task_id 不存在
        """
        snapshot = self._load()
        task = self._require_task(snapshot, task_id)

        if depends_on_id not in task.depends_on:
            log.debug("dependency_absent", task_id=task_id, depends_on_id=depends_on_id)
            return task

        updated = task.model_copy(
            update={
                "depends_on": [d for d in task.depends_on if d != depends_on_id],
                "updated_at": self._touch(task.updated_at),
            }
        )
        snapshot.tasks[task_id] = updated

        self._commit(snapshot, self._audit.dependency_removed(updated, depends_on_id))
        log.info("dependency_removed", task_id=task_id, depends_on_id=depends_on_id)
        return updated

    # ========================================
    # Agent / Project 操作
    # ========================================

    def register_agent(self, name: str, meta: dict[str, Any] | None = None) -> Agent:
        """注册 Agent；meta["type"] 决定类型（默认 agent），其余字段存入 metadata

        Raises:
            InvalidFieldError: name 为空
            AgentAlreadyRegisteredError: 名称已存在
            InvalidAgentTypeError: type 非 human/agent
        """
        meta = dict(meta or {})
        name = (name or "").strip()
        if not name:
            raise InvalidFieldError("name", "agent name must not be empty")

        snapshot = self._load()
        if name in snapshot.agents:
            raise AgentAlreadyRegisteredError(name)

        raw_type = meta.get("type") or AgentType.AGENT.value
        try:
            agent_type = AgentType(raw_type)
        except ValueError:
            raise InvalidAgentTypeError(raw_type, [t.value for t in AgentType]) from None

        agent = Agent(
            name=name,
            type=agent_type,
            registered_at=self._now(),
            metadata={k: v for k, v in meta.items() if k != "type"},
        )
        snapshot.agents[name] = agent

        self._commit(snapshot, self._audit.agent_registered(agent, meta))
        log.info("agent_registered", agent_name=name, agent_type=agent_type.value)
        return agent

    def set_project(self, name: str, description: str = "") -> ProjectInfo:
        """设置项目元数据；替换时保留原 created_at

        Raises:
            InvalidFieldError: name 为空
        """
        name = (name or "").strip()
        if not name:
            raise InvalidFieldError("name", "project name must not be empty")

        snapshot = self._load()
        now = self._now()
        previous = snapshot.project
        project = ProjectInfo(
            name=name,
            description=description or "",
            created_at=previous.created_at if previous else now,
        )

        fields = ["name", "description"]
        if previous is None:
            changes = {f: FieldChange(from_=None, to=getattr(project, f)) for f in fields}
        else:
            changes = compute_changes(previous, project, fields)

        snapshot.project = project
        self._commit(snapshot, self._audit.project_updated(project, changes, now))
        log.info("project_updated", project=name)
        return project
