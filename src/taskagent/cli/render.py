"""终端渲染 -- rich 表格 / 面板

所有用户内容经 escape 处理后再交给 rich markup。
"""

import json
from datetime import UTC, datetime
from typing import Any

from rich.columns import Columns
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from taskagent.core.models import (
    CLOSED_STATES,
    Agent,
    DashboardView,
    HistoryEntry,
    Summary,
    Task,
    TaskPriority,
    TaskStatus,
)

console = Console(highlight=False)

STATUS_ICONS: dict[TaskStatus, str] = {
    TaskStatus.PENDING: "○",
    TaskStatus.IN_PROGRESS: "◉",
    TaskStatus.BLOCKED: "⊘",
    TaskStatus.COMPLETED: "●",
    TaskStatus.FAILED: "✗",
    TaskStatus.CANCELLED: "—",
}

STATUS_STYLES: dict[TaskStatus, str] = {
    TaskStatus.PENDING: "yellow",
    TaskStatus.IN_PROGRESS: "blue",
    TaskStatus.BLOCKED: "red",
    TaskStatus.COMPLETED: "green",
    TaskStatus.FAILED: "red",
    TaskStatus.CANCELLED: "dim",
}

PRIORITY_STYLES: dict[TaskPriority, str] = {
    TaskPriority.LOW: "dim",
    TaskPriority.MEDIUM: "default",
    TaskPriority.HIGH: "yellow",
    TaskPriority.CRITICAL: "bold red",
}

# 看板最多显示的每栏任务数
KANBAN_MAX_TASKS = 8


def print_json(data: Any) -> None:
    """结构化输出，供脚本 / Agent 消费"""
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _fmt_time(value: datetime | None) -> str:
    return value.isoformat() if value else ""


def _is_overdue(task: Task, now: datetime) -> bool:
    return (
        task.deadline is not None
        and task.deadline < now
        and task.status not in CLOSED_STATES
    )


def task_line(task: Task, verbose: bool = False, now: datetime | None = None) -> str:
    """单行任务摘要（rich markup）"""
    now = now or datetime.now(UTC)
    icon = STATUS_ICONS.get(task.status, "?")
    style = PRIORITY_STYLES.get(task.priority, "default")
    line = (
        f"  {icon} [dim]{escape(task.id)}[/]  [{style}]{escape(task.title)}[/]"
        f"  [dim]{escape(f'[{task.status.value}]')}[/]"
    )
    if task.assignee:
        line += f"  [cyan]@{escape(task.assignee)}[/]"
    if task.priority == TaskPriority.CRITICAL:
        line += "  [red]!!CRITICAL[/]"
    elif task.priority == TaskPriority.HIGH:
        line += "  [yellow]!high[/]"
    if task.deadline:
        color = "red" if _is_overdue(task, now) else "dim"
        line += f"  [{color}]due:{task.deadline.date().isoformat()}[/]"
    if task.tags:
        line += "  [magenta]" + escape(" ".join(f"#{t}" for t in task.tags)) + "[/]"

    if verbose:
        if task.description:
            line += f"\n      [dim]{escape(task.description)}[/]"
        if task.depends_on:
            line += f"\n      [dim]depends on: {escape(', '.join(task.depends_on))}[/]"
        if task.estimated_minutes:
            line += f"\n      [dim]estimate: {task.estimated_minutes}min[/]"
        line += (
            f"\n      [dim]created: {_fmt_time(task.created_at)}"
            f"  updated: {_fmt_time(task.updated_at)}[/]"
        )
    return line


def print_task(task: Task, verbose: bool = True) -> None:
    console.print(task_line(task, verbose=verbose))


def print_task_list(tasks: list[Task], verbose: bool = False) -> None:
    if not tasks:
        console.print("  No tasks found.")
        return
    now = datetime.now(UTC)
    for task in tasks:
        console.print(task_line(task, verbose=verbose, now=now))


def print_agents(agents: list[Agent]) -> None:
    if not agents:
        console.print("  No agents registered.")
        return
    table = Table(border_style="cyan")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Registered", style="dim")
    for agent in agents:
        table.add_row(
            f"@{escape(agent.name)}", agent.type.value, _fmt_time(agent.registered_at)
        )
    console.print(table)


def _describe_changes(entry: HistoryEntry) -> str:
    if not entry.changes:
        return ""
    return ", ".join(
        f"{name}: {json.dumps(change.from_, ensure_ascii=False, default=str)}"
        f" → {json.dumps(change.to, ensure_ascii=False, default=str)}"
        for name, change in entry.changes.items()
    )


def print_history(entries: list[HistoryEntry]) -> None:
    if not entries:
        console.print("  No history found.")
        return
    for entry in entries:
        line = f"  [dim]{_fmt_time(entry.timestamp)}[/]  [bold]{entry.action.value}[/]"
        if entry.task_id:
            line += f"  [dim]task:{escape(entry.task_id)}[/]"
        if entry.depends_on_id:
            line += f"  [dim]dep:{escape(entry.depends_on_id)}[/]"
        if entry.agent_name:
            line += f"  [cyan]@{escape(entry.agent_name)}[/]"
        changes = _describe_changes(entry)
        if changes:
            line += f"  {escape(changes)}"
        console.print(line)


def print_summary(summary: Summary) -> None:
    counts = summary.counts
    body = (
        f"Total: {summary.total}  Agents: {summary.agents}\n"
        f"[green]●[/] completed: {counts.get(TaskStatus.COMPLETED, 0)}"
        f"  [blue]◉[/] in_progress: {counts.get(TaskStatus.IN_PROGRESS, 0)}"
        f"  blocked: {counts.get(TaskStatus.BLOCKED, 0)}"
        f"  pending: {counts.get(TaskStatus.PENDING, 0)}"
        f"  failed: {counts.get(TaskStatus.FAILED, 0)}"
        f"  cancelled: {counts.get(TaskStatus.CANCELLED, 0)}"
    )
    if summary.overdue:
        body += "\n\n[bold red]Overdue:[/]"
        for warning in summary.overdue:
            body += (
                f"\n  [red]{escape(warning.id)}[/] {escape(warning.title)}"
                f" (due {warning.deadline.date().isoformat()},"
                f" {warning.days_overdue}d overdue)"
            )
    console.print(Panel(body, title="Dashboard", border_style="cyan"))


def _kanban_column(title: str, style: str, tasks: list[Task]) -> Panel:
    lines = []
    for task in tasks[:KANBAN_MAX_TASKS]:
        line = f"{STATUS_ICONS[task.status]} {escape(task.title)}"
        if task.assignee:
            line += f" [dim]@{escape(task.assignee)}[/]"
        lines.append(line)
    extra = len(tasks) - KANBAN_MAX_TASKS
    if extra > 0:
        lines.append(f"[dim]+{extra} more[/]")
    return Panel(
        "\n".join(lines) or "[dim]empty[/]",
        title=f"{title} ({len(tasks)})",
        border_style=style,
    )


def print_dashboard(view: DashboardView) -> None:
    """完整终端看板：看板分栏 + 依赖层级 + 工作量 + 逾期"""
    stats = view.stats
    header = (
        f"Total: {stats.total} | Done: {stats.percent_complete}%"
        f" | Overdue: {len(view.overdue)}"
    )
    title = "TASKAGENT DASHBOARD"
    if view.project:
        title += f" · {escape(view.project.name)}"
    console.print(
        Panel(header, title=title, border_style="red" if view.overdue else "green")
    )

    console.print("[bold]KANBAN BOARD[/]")
    console.print(
        Columns(
            [
                _kanban_column("PENDING", "yellow", view.columns.get(TaskStatus.PENDING, [])),
                _kanban_column(
                    "IN PROGRESS", "blue", view.columns.get(TaskStatus.IN_PROGRESS, [])
                ),
                _kanban_column("DONE", "green", view.columns.get(TaskStatus.COMPLETED, [])),
            ],
            equal=True,
            expand=True,
        )
    )
    side = [
        f"{STATUS_ICONS[s]} {s.value}: {len(view.columns.get(s, []))}"
        for s in (TaskStatus.BLOCKED, TaskStatus.FAILED, TaskStatus.CANCELLED)
    ]
    console.print("  [dim]" + "   ".join(side) + "[/]")

    if view.graph.nodes:
        nodes = {node.id: node for node in view.graph.nodes}
        tree = Tree("[bold]DEPENDENCY GRAPH[/]")
        for depth, layer in enumerate(view.graph.layers):
            branch = tree.add(f"[dim]layer {depth}[/]")
            for node_id in layer:
                node = nodes[node_id]
                style = STATUS_STYLES.get(node.status, "default")
                branch.add(
                    f"[{style}]{STATUS_ICONS[node.status]}[/] [dim]{escape(node.id)}[/]"
                    f" {escape(node.title)}"
                )
        cyclic = [node for node in view.graph.nodes if node.layer is None]
        if cyclic:
            branch = tree.add("[red]unlayered (cycle)[/]")
            for node in cyclic:
                branch.add(f"[dim]{escape(node.id)}[/] {escape(node.title)}")
        console.print(tree)

    if view.agents:
        table = Table(title="AGENT WORKLOAD", border_style="magenta")
        table.add_column("Agent", style="cyan")
        table.add_column("Type")
        table.add_column("Total", justify="right")
        table.add_column("In progress", justify="right")
        table.add_column("Completed", justify="right")
        table.add_column("Pending", justify="right")
        for load in view.agents:
            name = f"@{escape(load.name)}"
            if not load.registered:
                name += " [dim](unregistered)[/]"
            table.add_row(
                name,
                load.type.value,
                str(load.total),
                str(load.in_progress),
                str(load.completed),
                str(load.pending),
            )
        console.print(table)

    if view.overdue:
        table = Table(title="OVERDUE", border_style="red")
        table.add_column("ID", style="dim")
        table.add_column("Title")
        table.add_column("Due")
        table.add_column("Days", justify="right", style="red")
        table.add_column("Assignee", style="cyan")
        for warning in view.overdue:
            table.add_row(
                escape(warning.id),
                escape(warning.title),
                warning.deadline.date().isoformat(),
                str(warning.days_overdue),
                f"@{escape(warning.assignee)}" if warning.assignee else "",
            )
        console.print(table)


def print_problems(problems: list[str]) -> None:
    if not problems:
        console.print("  [green]No problems found.[/]")
        return
    for problem in problems:
        console.print(f"  [red]✗[/] {escape(problem)}")
