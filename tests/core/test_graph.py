"""依赖图算法单元测试

测试内容：
1. 可达性搜索（含 visited 记忆化）
2. 新增边成环判定
3. 环节点识别
4. 快照一致性检查
"""

from datetime import UTC, datetime

from taskagent.core.graph import find_cycle_nodes, find_problems, reaches, would_create_cycle
from taskagent.core.models import Agent, StoreSnapshot, Task

NOW = datetime(2025, 3, 1, tzinfo=UTC)


def _task(task_id: str, depends_on: list[str] | None = None, **kwargs) -> Task:
    return Task(
        id=task_id,
        title=task_id,
        depends_on=depends_on or [],
        created_at=kwargs.pop("created_at", NOW),
        updated_at=kwargs.pop("updated_at", NOW),
        **kwargs,
    )


class TestReaches:
    def test_direct_and_transitive(self):
        adjacency = {"c": ["b"], "b": ["a"], "a": []}
        assert reaches(adjacency, "c", "a") is True
        assert reaches(adjacency, "a", "c") is False

    def test_start_equals_target(self):
        assert reaches({}, "x", "x") is True

    def test_unknown_nodes_have_no_edges(self):
        assert reaches({"a": ["ghost"]}, "a", "b") is False

    def test_visited_is_filled(self):
        """visited 参数被就地填充，重复节点只访问一次"""
        adjacency = {"d": ["b", "c"], "b": ["a"], "c": ["a"], "a": []}
        visited: set[str] = set()
        assert reaches(adjacency, "d", "zzz", visited) is False
        assert visited == {"a", "b", "c", "d"}

    def test_dense_graph_stays_linear(self):
        """稠密 DAG 上不重复展开子图"""
        n = 300
        adjacency = {str(i): [str(j) for j in range(i)] for i in range(n)}
        assert reaches(adjacency, str(n - 1), "missing") is False


class TestWouldCreateCycle:
    def test_reverse_edge_is_cycle(self):
        adjacency = {"a": ["b"], "b": []}
        assert would_create_cycle(adjacency, "b", "a") is True

    def test_transitive_cycle(self):
        adjacency = {"a": ["b"], "b": ["c"], "c": []}
        assert would_create_cycle(adjacency, "c", "a") is True

    def test_parallel_edge_is_fine(self):
        adjacency = {"a": ["b"], "b": ["c"], "c": []}
        assert would_create_cycle(adjacency, "a", "c") is False

    def test_self_edge(self):
        assert would_create_cycle({"a": []}, "a", "a") is True


class TestFindCycleNodes:
    def test_acyclic(self):
        assert find_cycle_nodes({"a": [], "b": ["a"], "c": ["a", "b"]}) == set()

    def test_cycle_and_dependents(self):
        """环上节点以及依赖环的节点都无法拓扑排序"""
        adjacency = {"a": ["b"], "b": ["a"], "c": ["a"], "d": []}
        assert find_cycle_nodes(adjacency) == {"a", "b", "c"}

    def test_missing_targets_ignored(self):
        assert find_cycle_nodes({"a": ["ghost"]}) == set()


class TestFindProblems:
    def test_consistent_snapshot(self):
        snapshot = StoreSnapshot(
            tasks={"a": _task("a"), "b": _task("b", ["a"], assignee="bot")},
            agents={"bot": Agent(name="bot", registered_at=NOW)},
        )
        assert find_problems(snapshot) == []

    def test_reports_every_violation(self):
        snapshot = StoreSnapshot(
            tasks={
                "a": _task("a", ["a"]),
                "b": _task("b", ["ghost"], assignee="nobody"),
                "c": _task("x"),
                "d": _task("d", updated_at=datetime(2024, 1, 1, tzinfo=UTC)),
            }
        )
        problems = find_problems(snapshot)
        assert 'task "a" depends on itself' in problems
        assert 'task "b" depends on missing task "ghost"' in problems
        assert 'task "b" assigned to unregistered agent "nobody"' in problems
        assert 'task key "c" does not match id "x"' in problems
        assert 'task "d" updated_at precedes created_at' in problems
        assert "dependency cycle among: a" in problems

    def test_cycle_reported(self):
        snapshot = StoreSnapshot(tasks={"a": _task("a", ["b"]), "b": _task("b", ["a"])})
        assert find_problems(snapshot) == ["dependency cycle among: a, b"]
