"""Domain Model 单元测试

测试内容：
1. 枚举值与状态机常量
2. 截止时间解析
3. Task 字段规范化（去重保序）
4. TaskUpdate 字段出现判定
5. HistoryEntry 序列化
"""

import json
from datetime import UTC, date, datetime, timedelta, timezone

import pytest
from taskagent.core.models import (
    CLOSED_STATES,
    STATUS_ORDER,
    FieldChange,
    GraphEdge,
    HistoryAction,
    HistoryEntry,
    StoreSnapshot,
    Task,
    TaskPriority,
    TaskStatus,
    TaskUpdate,
    is_gated_transition,
    parse_deadline,
    priority_rank,
)

NOW = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)


def make_task(task_id: str = "t1", **kwargs) -> Task:
    return Task(id=task_id, title=kwargs.pop("title", "task"), created_at=NOW, updated_at=NOW, **kwargs)


class TestEnums:
    """枚举与状态机常量"""

    def test_status_values(self):
        assert [s.value for s in TaskStatus] == [
            "pending",
            "in_progress",
            "blocked",
            "completed",
            "failed",
            "cancelled",
        ]

    def test_status_order_covers_all_states(self):
        assert set(STATUS_ORDER) == set(TaskStatus)

    def test_only_in_progress_is_gated(self):
        """只有进入 in_progress 受依赖门控"""
        gated = [s for s in TaskStatus if is_gated_transition(s)]
        assert gated == [TaskStatus.IN_PROGRESS]

    def test_closed_states(self):
        """逾期判定排除 completed / cancelled，failed 仍可能逾期"""
        assert CLOSED_STATES == {TaskStatus.COMPLETED, TaskStatus.CANCELLED}

    @pytest.mark.parametrize(
        "priority,rank",
        [
            (TaskPriority.CRITICAL, 0),
            (TaskPriority.HIGH, 1),
            (TaskPriority.MEDIUM, 2),
            (TaskPriority.LOW, 3),
            ("urgent", 4),
        ],
    )
    def test_priority_rank(self, priority, rank):
        assert priority_rank(priority) == rank


class TestParseDeadline:
    """截止时间解析"""

    def test_none_and_empty(self):
        assert parse_deadline(None) is None
        assert parse_deadline("") is None

    def test_bare_date_is_midnight_utc(self):
        assert parse_deadline("2025-03-10") == datetime(2025, 3, 10, tzinfo=UTC)
        assert parse_deadline(date(2025, 3, 10)) == datetime(2025, 3, 10, tzinfo=UTC)

    def test_naive_datetime_read_as_utc(self):
        assert parse_deadline("2025-03-10T12:30:00") == datetime(
            2025, 3, 10, 12, 30, tzinfo=UTC
        )

    def test_zulu_suffix(self):
        assert parse_deadline("2025-03-10T12:30:00Z") == datetime(
            2025, 3, 10, 12, 30, tzinfo=UTC
        )

    def test_offset_preserved(self):
        tz = timezone(timedelta(hours=8))
        parsed = parse_deadline("2025-03-10T08:00:00+08:00")
        assert parsed == datetime(2025, 3, 10, 8, 0, tzinfo=tz)

    @pytest.mark.parametrize("value", ["tomorrow", "2025-13-01", 42])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_deadline(value)


class TestTaskModel:
    """Task 模型"""

    def test_defaults(self):
        task = make_task()
        assert task.status == TaskStatus.PENDING
        assert task.priority == TaskPriority.MEDIUM
        assert task.description == ""
        assert task.tags == []
        assert task.depends_on == []
        assert task.deadline is None
        assert task.assignee is None

    def test_tags_and_depends_on_deduped_in_order(self):
        task = make_task(tags=["b", "a", "b"], depends_on=["x", "y", "x"])
        assert task.tags == ["b", "a"]
        assert task.depends_on == ["x", "y"]

    def test_deadline_parsed_on_load(self):
        task = Task.model_validate(
            {
                "id": "t1",
                "title": "t",
                "deadline": "2025-03-10",
                "created_at": NOW.isoformat(),
                "updated_at": NOW.isoformat(),
            }
        )
        assert task.deadline == datetime(2025, 3, 10, tzinfo=UTC)

    def test_negative_estimate_rejected(self):
        with pytest.raises(ValueError):
            make_task(estimated_minutes=-1)


class TestTaskUpdate:
    """TaskUpdate 只应用出现的字段"""

    def test_absent_fields_not_present(self):
        assert TaskUpdate().present_fields() == []

    def test_explicit_none_is_present(self):
        """显式传入 None 表示清空"""
        update = TaskUpdate(assignee=None, title="x")
        assert update.present_fields() == ["title", "assignee"]

    def test_field_order_follows_mutable_fields(self):
        update = TaskUpdate(depends_on=[], status="completed", title="x")
        assert update.present_fields() == ["title", "status", "depends_on"]


class TestHistoryEntry:
    """HistoryEntry 序列化"""

    def test_to_dict_drops_empty_top_level_fields(self):
        entry = HistoryEntry(
            entry_id="01J",
            timestamp=NOW,
            action=HistoryAction.DEPENDENCY_ADDED,
            task_id="a",
            depends_on_id="b",
        )
        data = entry.to_dict()
        assert data["action"] == "dependency_added"
        assert data["depends_on_id"] == "b"
        assert "changes" not in data
        assert "agent_name" not in data

    def test_changes_keep_null_values_and_from_alias(self):
        entry = HistoryEntry(
            entry_id="01J",
            timestamp=NOW,
            action=HistoryAction.TASK_UPDATED,
            task_id="a",
            changes={"assignee": FieldChange(from_=None, to="bot")},
        )
        data = json.loads(entry.to_line())
        assert data["changes"] == {"assignee": {"from": None, "to": "bot"}}

    def test_line_round_trip(self):
        entry = HistoryEntry(
            entry_id="01J",
            timestamp=NOW,
            action=HistoryAction.TASK_UPDATED,
            task_id="a",
            changes={"status": FieldChange(from_="pending", to="completed")},
        )
        restored = HistoryEntry.model_validate(json.loads(entry.to_line()))
        assert restored.changes["status"].from_ == "pending"
        assert restored.timestamp == NOW


class TestSnapshot:
    def test_empty_snapshot(self):
        snapshot = StoreSnapshot()
        assert snapshot.model_dump(mode="json") == {"project": None, "tasks": {}, "agents": {}}

    def test_adjacency(self):
        snapshot = StoreSnapshot(
            tasks={"a": make_task("a"), "b": make_task("b", depends_on=["a"])}
        )
        assert snapshot.adjacency() == {"a": [], "b": ["a"]}

    def test_graph_edge_alias(self):
        edge = GraphEdge(from_="a", to="b")
        assert edge.model_dump(by_alias=True) == {"from": "a", "to": "b"}
