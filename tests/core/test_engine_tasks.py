"""TaskEngine 任务操作测试

测试内容：
1. create_task 默认值与校验
2. update_task 部分更新、字段级 diff、updated_at 刷新
3. in_progress 依赖门控
4. delete_task 依赖修复
5. 拒绝时不产生任何写入
"""

from datetime import UTC, datetime

import pytest
from taskagent.core.exceptions import (
    DependenciesUnmetError,
    InvalidFieldError,
    InvalidPriorityError,
    InvalidStatusError,
    InvalidTitleError,
    SelfDependencyError,
    TaskNotFoundError,
    UnknownAgentError,
    UnknownDependencyError,
)
from taskagent.core.models import (
    HistoryAction,
    TaskCreate,
    TaskPriority,
    TaskStatus,
    TaskUpdate,
)


def _files(stores) -> tuple[bytes, bytes]:
    return stores.snapshot_store.path.read_bytes(), stores.history_store.path.read_bytes()


class TestCreateTask:
    """create_task"""

    def test_defaults(self, engine, query, clock):
        task = engine.create_task(TaskCreate(title="  Write docs  "))
        assert task.title == "Write docs"
        assert task.status == TaskStatus.PENDING
        assert task.priority == TaskPriority.MEDIUM
        assert task.created_at == task.updated_at == clock.now
        assert query.get_task(task.id) == task

    def test_id_is_short_and_lowercase(self, engine):
        ids = {engine.create_task(TaskCreate(title=f"t{i}")).id for i in range(20)}
        assert len(ids) == 20
        for task_id in ids:
            assert len(task_id) == 8
            assert task_id == task_id.lower()

    def test_all_fields(self, engine):
        engine.register_agent("bot")
        dep = engine.create_task(TaskCreate(title="dep"))
        task = engine.create_task(
            TaskCreate(
                title="full",
                description="details",
                priority="critical",
                tags=["api", " api ", "", "web"],
                deadline="2025-03-10",
                estimated_minutes=90,
                assignee="bot",
                depends_on=[dep.id, dep.id],
            )
        )
        assert task.priority == TaskPriority.CRITICAL
        assert task.tags == ["api", "web"]
        assert task.deadline == datetime(2025, 3, 10, tzinfo=UTC)
        assert task.estimated_minutes == 90
        assert task.assignee == "bot"
        assert task.depends_on == [dep.id]

    def test_records_created_entry(self, engine, query):
        task = engine.create_task(TaskCreate(title="x"))
        history = query.get_history()
        assert len(history) == 1
        assert history[0].action == HistoryAction.TASK_CREATED
        assert history[0].task_id == task.id
        assert history[0].snapshot["title"] == "x"

    @pytest.mark.parametrize(
        "request_kwargs,error",
        [
            ({"title": "   "}, InvalidTitleError),
            ({"title": "x", "priority": "urgent"}, InvalidPriorityError),
            ({"title": "x", "depends_on": ["ghost"]}, UnknownDependencyError),
            ({"title": "x", "assignee": "nobody"}, UnknownAgentError),
            ({"title": "x", "deadline": "soon"}, InvalidFieldError),
            ({"title": "x", "estimated_minutes": -5}, InvalidFieldError),
        ],
    )
    def test_rejections_write_nothing(self, engine, stores, request_kwargs, error):
        before = _files(stores)
        with pytest.raises(error):
            engine.create_task(TaskCreate(**request_kwargs))
        assert _files(stores) == before

    def test_invalid_priority_message(self, engine):
        with pytest.raises(InvalidPriorityError) as exc_info:
            engine.create_task(TaskCreate(title="x", priority="urgent"))
        assert exc_info.value.message == (
            'Invalid priority "urgent". Must be one of: low, medium, high, critical'
        )


class TestUpdateTask:
    """update_task"""

    def test_unknown_task(self, engine):
        with pytest.raises(TaskNotFoundError):
            engine.update_task("nope", TaskUpdate(title="x"))

    def test_partial_update_and_diff(self, engine, query, clock):
        task = engine.create_task(TaskCreate(title="a", tags=["x"]))
        clock.advance(minutes=5)
        updated = engine.update_task(
            task.id, TaskUpdate(title="b", tags=["x"], priority="high")
        )
        assert updated.title == "b"
        assert updated.priority == TaskPriority.HIGH
        assert updated.description == ""
        assert updated.updated_at == clock.now
        assert updated.created_at == task.created_at

        entry = query.get_history(task.id)[-1]
        assert entry.action == HistoryAction.TASK_UPDATED
        # tags 值未变，不出现在 diff 中
        assert set(entry.changes) == {"title", "priority"}
        assert entry.changes["title"].from_ == "a"
        assert entry.changes["title"].to == "b"

    def test_noop_update_still_touches_and_records(self, engine, query, clock):
        task = engine.create_task(TaskCreate(title="a"))
        clock.advance(seconds=1)
        updated = engine.update_task(task.id, TaskUpdate(title="a"))
        assert updated.updated_at > task.updated_at
        history = query.get_history(task.id)
        assert len(history) == 2
        assert history[-1].changes == {}

    def test_updated_at_never_goes_backwards(self, engine, clock):
        task = engine.create_task(TaskCreate(title="a"))
        clock.advance(hours=-2)
        updated = engine.update_task(task.id, TaskUpdate(description="d"))
        assert updated.updated_at == task.updated_at

    def test_clear_assignee(self, engine, query):
        engine.register_agent("bot")
        task = engine.create_task(TaskCreate(title="a", assignee="bot"))
        updated = engine.update_task(task.id, TaskUpdate(assignee=None))
        assert updated.assignee is None
        change = query.get_history(task.id)[-1].changes["assignee"]
        assert (change.from_, change.to) == ("bot", None)

    def test_deadline_diff_is_iso_string(self, engine, query):
        task = engine.create_task(TaskCreate(title="a"))
        engine.update_task(task.id, TaskUpdate(deadline="2025-04-01"))
        change = query.get_history(task.id)[-1].changes["deadline"]
        assert change.from_ is None
        assert change.to.startswith("2025-04-01T00:00:00")

    def test_invalid_status(self, engine, stores):
        task = engine.create_task(TaskCreate(title="a"))
        before = _files(stores)
        with pytest.raises(InvalidStatusError):
            engine.update_task(task.id, TaskUpdate(status="done"))
        assert _files(stores) == before

    def test_depends_on_replacement_validated(self, engine):
        a = engine.create_task(TaskCreate(title="a"))
        with pytest.raises(SelfDependencyError):
            engine.update_task(a.id, TaskUpdate(depends_on=[a.id]))
        with pytest.raises(UnknownDependencyError):
            engine.update_task(a.id, TaskUpdate(depends_on=["ghost"]))

    def test_transitions_out_of_terminal_states_allowed(self, engine):
        task = engine.create_task(TaskCreate(title="a"))
        engine.update_task(task.id, TaskUpdate(status="completed"))
        reopened = engine.update_task(task.id, TaskUpdate(status="pending"))
        assert reopened.status == TaskStatus.PENDING


class TestInProgressGate:
    """进入 in_progress 需要全部依赖 completed"""

    def test_unmet_dependencies_listed_exactly(self, engine):
        a = engine.create_task(TaskCreate(title="a"))
        b = engine.create_task(TaskCreate(title="b"))
        c = engine.create_task(TaskCreate(title="c"))
        engine.update_task(b.id, TaskUpdate(status="completed"))
        task = engine.create_task(TaskCreate(title="t", depends_on=[a.id, b.id, c.id]))

        with pytest.raises(DependenciesUnmetError) as exc_info:
            engine.update_task(task.id, TaskUpdate(status="in_progress"))
        assert exc_info.value.unmet == [a.id, c.id]
        assert exc_info.value.message == (
            f"Cannot start task: dependencies not met: {a.id}, {c.id}"
        )

    def test_gate_passes_when_all_completed(self, engine):
        a = engine.create_task(TaskCreate(title="a"))
        task = engine.create_task(TaskCreate(title="t", depends_on=[a.id]))
        engine.update_task(a.id, TaskUpdate(status="completed"))
        started = engine.update_task(task.id, TaskUpdate(status="in_progress"))
        assert started.status == TaskStatus.IN_PROGRESS

    @pytest.mark.parametrize("status", ["blocked", "completed", "failed", "cancelled"])
    def test_other_transitions_not_gated(self, engine, status):
        a = engine.create_task(TaskCreate(title="a"))
        task = engine.create_task(TaskCreate(title="t", depends_on=[a.id]))
        assert engine.update_task(task.id, TaskUpdate(status=status)).status == status

    def test_gate_uses_replacement_depends_on(self, engine):
        """同一请求替换 depends_on 时，按新列表判定"""
        a = engine.create_task(TaskCreate(title="a"))
        task = engine.create_task(TaskCreate(title="t", depends_on=[a.id]))
        started = engine.update_task(
            task.id, TaskUpdate(status="in_progress", depends_on=[])
        )
        assert started.status == TaskStatus.IN_PROGRESS
        assert started.depends_on == []

    def test_unresolvable_dependency_counts_as_satisfied(self, engine, stores):
        a = engine.create_task(TaskCreate(title="a"))
        task = engine.create_task(TaskCreate(title="t", depends_on=[a.id]))
        # 模拟过期客户端写入的悬空引用
        snapshot = stores.snapshot_store.load()
        snapshot.tasks[task.id] = snapshot.tasks[task.id].model_copy(
            update={"depends_on": ["ghost"]}
        )
        stores.snapshot_store.save(snapshot)

        started = engine.update_task(task.id, TaskUpdate(status="in_progress"))
        assert started.status == TaskStatus.IN_PROGRESS


class TestDeleteTask:
    """delete_task"""

    def test_unknown_task(self, engine):
        with pytest.raises(TaskNotFoundError):
            engine.delete_task("nope")

    def test_repairs_dependents(self, engine, query):
        a = engine.create_task(TaskCreate(title="a"))
        b = engine.create_task(TaskCreate(title="b"))
        c = engine.create_task(TaskCreate(title="c", depends_on=[a.id, b.id]))
        d = engine.create_task(TaskCreate(title="d", depends_on=[a.id]))

        deleted = engine.delete_task(a.id)
        assert deleted.id == a.id
        assert query.get_task(c.id).depends_on == [b.id]
        assert query.get_task(d.id).depends_on == []
        with pytest.raises(TaskNotFoundError):
            query.get_task(a.id)

    def test_history_keeps_created_and_appends_deleted(self, engine, query):
        a = engine.create_task(TaskCreate(title="a"))
        engine.delete_task(a.id)
        actions = [e.action for e in query.get_history(a.id)]
        assert actions == [HistoryAction.TASK_CREATED, HistoryAction.TASK_DELETED]
        assert query.get_history(a.id)[-1].snapshot["title"] == "a"
