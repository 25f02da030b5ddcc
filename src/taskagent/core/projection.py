"""派生视图模块 -- 看板所需的全部只读计算

所有函数都是纯函数：输入快照（或其中的映射），输出视图模型，
不读写存储。时间相关的计算通过 now 参数注入。
"""

import math
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta

from .models.agent import Agent
from .models.enums import CLOSED_STATES, STATUS_ORDER, AgentType, TaskStatus, priority_rank
from .models.snapshot import StoreSnapshot
from .models.task import Task
from .models.views import (
    AgentWorkload,
    DashboardView,
    DependencyGraph,
    GraphEdge,
    GraphNode,
    OverdueWarning,
    ProgressStats,
    Summary,
)

_ONE_DAY = timedelta(days=1)


def sort_by_priority(tasks: list[Task]) -> list[Task]:
    """按优先级排序（critical 在前），同级保持原顺序"""
    return sorted(tasks, key=lambda t: priority_rank(t.priority))


def group_tasks_by_status(tasks: Mapping[str, Task]) -> dict[TaskStatus, list[Task]]:
    """按状态分列，每列按优先级稳定排序"""
    columns: dict[TaskStatus, list[Task]] = {status: [] for status in STATUS_ORDER}
    for task in tasks.values():
        columns[task.status].append(task)
    return {status: sort_by_priority(items) for status, items in columns.items()}


def build_dependency_graph(tasks: Mapping[str, Task]) -> DependencyGraph:
    """Kahn 算法分层

    边方向取反（dependency -> dependent），只保留可解析的边。
    第 0 层为没有可解析依赖的任务；第 k+1 层的任务其依赖全部位于 ≤k 层。
    环上的任务（一致的快照中不应出现）不分配层，也不出现在 layers 中。
    """
    adjacency: dict[str, list[str]] = {task_id: [] for task_id in tasks}
    in_degree: dict[str, int] = {task_id: 0 for task_id in tasks}
    edges: list[GraphEdge] = []

    for task in tasks.values():
        for dep_id in dict.fromkeys(task.depends_on):
            if dep_id in adjacency:
                adjacency[dep_id].append(task.id)
                edges.append(GraphEdge(from_=dep_id, to=task.id))
                in_degree[task.id] += 1

    layers: list[list[str]] = []
    task_to_layer: dict[str, int] = {}
    current = [task_id for task_id in tasks if in_degree[task_id] == 0]

    while current:
        layer_index = len(layers)
        layers.append(current)
        for task_id in current:
            task_to_layer[task_id] = layer_index

        next_layer: list[str] = []
        for task_id in current:
            for dependent in adjacency[task_id]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    next_layer.append(dependent)
        current = next_layer

    nodes = [
        GraphNode(
            id=task.id,
            title=task.title,
            status=task.status,
            layer=task_to_layer.get(task.id),
        )
        for task in tasks.values()
    ]
    return DependencyGraph(nodes=nodes, edges=edges, layers=layers)


def get_agent_workload(
    tasks: Mapping[str, Task],
    agents: Mapping[str, Agent],
) -> list[AgentWorkload]:
    """统计每个 Agent 的任务负载

    包含全部已注册 Agent，以及出现在任务上但未注册的 assignee；
    按 total 降序，同值保持出现顺序。
    """
    workload: dict[str, AgentWorkload] = {
        name: AgentWorkload(name=name, type=agent.type)
        for name, agent in agents.items()
    }

    for task in tasks.values():
        assignee = task.assignee
        if not assignee:
            continue
        entry = workload.get(assignee)
        if entry is None:
            entry = AgentWorkload(name=assignee, type=AgentType.AGENT, registered=False)
            workload[assignee] = entry

        entry.total += 1
        if task.status == TaskStatus.IN_PROGRESS:
            entry.in_progress += 1
        elif task.status == TaskStatus.COMPLETED:
            entry.completed += 1
        elif task.status == TaskStatus.PENDING:
            entry.pending += 1

    return sorted(workload.values(), key=lambda w: -w.total)


def days_between(earlier: datetime, later: datetime) -> int:
    """两个时间点之间的整天数（向下取整）"""
    return math.floor((later - earlier) / _ONE_DAY)


def get_overdue_warnings(
    tasks: Mapping[str, Task],
    now: datetime | None = None,
) -> list[OverdueWarning]:
    """找出截止时间严格早于 now、且未 completed / cancelled 的任务

    按逾期天数降序。
    """
    now = now or datetime.now(UTC)
    warnings: list[OverdueWarning] = []

    for task in tasks.values():
        if task.deadline is None or task.status in CLOSED_STATES:
            continue
        if task.deadline < now:
            warnings.append(
                OverdueWarning(
                    id=task.id,
                    title=task.title,
                    deadline=task.deadline,
                    assignee=task.assignee,
                    days_overdue=days_between(task.deadline, now),
                )
            )

    return sorted(warnings, key=lambda w: -w.days_overdue)


def percent(part: int, total: int) -> int:
    """百分比，四舍五入（0.5 进位），total 为 0 时返回 0"""
    if total == 0:
        return 0
    return math.floor(part * 100 / total + 0.5)


def get_progress_stats(tasks: Mapping[str, Task]) -> ProgressStats:
    """整体进度统计"""
    counts = status_counts(tasks)
    total = len(tasks)
    return ProgressStats(
        total=total,
        **{status.value: counts[status] for status in STATUS_ORDER},
        percent_complete=percent(counts[TaskStatus.COMPLETED], total),
    )


def status_counts(tasks: Mapping[str, Task]) -> dict[TaskStatus, int]:
    """各状态任务数（全部六种状态都有键）"""
    counts = {status: 0 for status in STATUS_ORDER}
    for task in tasks.values():
        counts[task.status] += 1
    return counts


def compute_dashboard(snapshot: StoreSnapshot, now: datetime | None = None) -> DashboardView:
    """计算完整看板视图模型"""
    return DashboardView(
        project=snapshot.project,
        columns=group_tasks_by_status(snapshot.tasks),
        agents=get_agent_workload(snapshot.tasks, snapshot.agents),
        graph=build_dependency_graph(snapshot.tasks),
        overdue=get_overdue_warnings(snapshot.tasks, now),
        stats=get_progress_stats(snapshot.tasks),
    )


def compute_summary(snapshot: StoreSnapshot, now: datetime | None = None) -> Summary:
    """简要汇总：总数、各状态计数、逾期列表、Agent 数"""
    return Summary(
        total=len(snapshot.tasks),
        counts=status_counts(snapshot.tasks),
        overdue=get_overdue_warnings(snapshot.tasks, now),
        agents=len(snapshot.agents),
    )
