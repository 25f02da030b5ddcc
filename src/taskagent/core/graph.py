"""依赖图算法 -- 环检测 + 快照一致性检查

所有函数只接收显式的邻接视图（task_id -> depends_on），不依赖共享可变状态。
"""

from collections.abc import Mapping, Sequence

from .models.snapshot import StoreSnapshot


def reaches(
    adjacency: Mapping[str, Sequence[str]],
    start: str,
    target: str,
    visited: set[str] | None = None,
) -> bool:
    """沿 depends_on 边从 start 出发，判断能否到达 target

    迭代式深度优先搜索，visited 记忆化保证 O(V+E)。
    邻接中不存在的节点视为没有出边。

    Args:
        adjacency: task_id -> depends_on 列表
        start: 起点
        target: 目标
        visited: 已访问集合（会被就地填充），None 时新建

    Returns:
        True 如果可达（start == target 也视为可达）
    """
    seen = visited if visited is not None else set()
    stack = [start]
    while stack:
        node = stack.pop()
        if node == target:
            return True
        if node in seen:
            continue
        seen.add(node)
        for nxt in adjacency.get(node, ()):
            if nxt not in seen:
                stack.append(nxt)
    return False


def would_create_cycle(
    adjacency: Mapping[str, Sequence[str]],
    task_id: str,
    depends_on_id: str,
) -> bool:
    """新增边 task_id -> depends_on_id 是否会成环

    等价于：depends_on_id 沿已有依赖边能否回到 task_id。
    """
    return reaches(adjacency, depends_on_id, task_id, set())


def find_cycle_nodes(adjacency: Mapping[str, Sequence[str]]) -> set[str]:
    """返回位于环上或依赖环的节点集合（只考虑可解析的边）

    反复剥离"依赖已全部剥离"的节点，剩余即无法拓扑排序的节点。
    """
    remaining = {
        node: {dep for dep in deps if dep in adjacency}
        for node, deps in adjacency.items()
    }
    dependents: dict[str, list[str]] = {node: [] for node in adjacency}
    for node, deps in remaining.items():
        for dep in deps:
            dependents[dep].append(node)

    ready = [node for node, deps in remaining.items() if not deps]
    resolved: set[str] = set()
    while ready:
        node = ready.pop()
        resolved.add(node)
        for dependent in dependents[node]:
            deps = remaining[dependent]
            deps.discard(node)
            if not deps and dependent not in resolved:
                ready.append(dependent)
    return set(adjacency) - resolved


def find_problems(snapshot: StoreSnapshot) -> list[str]:
    """检查快照是否满足全部不变量

    Returns:
        问题描述列表，空列表表示一致
    """
    problems: list[str] = []
    for task_id, task in snapshot.tasks.items():
        if task.id != task_id:
            problems.append(f'task key "{task_id}" does not match id "{task.id}"')
        if task_id in task.depends_on:
            problems.append(f'task "{task_id}" depends on itself')
        for dep in task.depends_on:
            if dep != task_id and dep not in snapshot.tasks:
                problems.append(f'task "{task_id}" depends on missing task "{dep}"')
        if task.assignee is not None and task.assignee not in snapshot.agents:
            problems.append(f'task "{task_id}" assigned to unregistered agent "{task.assignee}"')
        if task.updated_at < task.created_at:
            problems.append(f'task "{task_id}" updated_at precedes created_at')

    cyclic = find_cycle_nodes(snapshot.adjacency())
    if cyclic:
        problems.append(f"dependency cycle among: {', '.join(sorted(cyclic))}")
    return problems
