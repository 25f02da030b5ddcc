"""CLI 入口模块 -- taskagent <command>

每个命令 1:1 映射到 TaskEngine（写）或 TaskQuery（读）的一个操作。
领域异常统一输出 "Error: <message>" 到 stderr，退出码 1。
"""

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import structlog

from taskagent.core.engine import TaskEngine
from taskagent.core.exceptions import InvalidFieldError, TaskAgentError
from taskagent.core.logging_config import setup_logging
from taskagent.core.models import TaskCreate, TaskUpdate
from taskagent.core.query import TaskQuery
from taskagent.core.store import StoreGroup, create_store_group

from . import render

log = structlog.get_logger()

EPILOG = """
Examples:
  taskagent init --name "Website relaunch"
  taskagent agent register alice --type human
  taskagent add "Write API" --priority high --assignee alice --tags api,backend
  taskagent dep add <id> <depends-on-id>
  taskagent status <id> in_progress
  taskagent ui
"""


def _split_list(value: str) -> list[str]:
    """逗号分隔列表 -> list"""
    return [item.strip() for item in value.split(",") if item.strip()]


def _common_flags(default: Any) -> argparse.ArgumentParser:
    """全局选项；子命令上用 SUPPRESS 默认值，允许写在子命令之后"""
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument(
        "--json", action="store_true", default=default, help="Output as JSON"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", default=default,
        help="Show full details and info logs",
    )
    parser.add_argument(
        "--dir", default=default, help="Data directory (default: $TASKAGENT_DIR or .taskagent)"
    )
    return parser


# update 的清空开关：--no-<flag> -> (任务字段, 帮助文本)
_CLEAR_FLAGS = {
    "assignee": ("assignee", "Unassign the task"),
    "deadline": ("deadline", "Remove the deadline"),
    "estimate": ("estimated_minutes", "Remove the estimate"),
}


def _add_task_fields(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--desc", help="Description")
    parser.add_argument("--priority", help="low|medium|high|critical")
    parser.add_argument("--tags", type=_split_list, help="Comma-separated tags")
    parser.add_argument("--deadline", help="ISO date or YYYY-MM-DD")
    parser.add_argument("--estimate", type=int, help="Estimated minutes")
    parser.add_argument("--assignee", help="Assign to agent")
    parser.add_argument(
        "--depends-on", dest="depends_on", type=_split_list,
        help="Dependencies (comma-separated task ids)",
    )


def build_parser() -> argparse.ArgumentParser:
    common = _common_flags(argparse.SUPPRESS)
    parser = argparse.ArgumentParser(
        prog="taskagent",
        description="taskagent - task manager for agents & humans",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
        parents=[_common_flags(None)],
    )
    parser.set_defaults(json=False, verbose=False)
    subparsers = parser.add_subparsers(dest="command", metavar="<command>")

    def add(name: str, help_text: str, **kwargs: Any) -> argparse.ArgumentParser:
        return subparsers.add_parser(name, help=help_text, parents=[common], **kwargs)

    p = add("init", "Initialize the data directory")
    p.add_argument("--name", help="Project name")
    p.add_argument("--desc", help="Project description")

    p = add("add", "Create a task")
    p.add_argument("title", help="Task title")
    _add_task_fields(p)

    p = add("list", "List tasks")
    p.add_argument("--status", help="Filter by status")
    p.add_argument("--assignee", help="Filter by assignee")
    p.add_argument("--tag", help="Filter by tag")
    p.add_argument("--priority", help="Filter by priority")

    p = add("show", "Show task details")
    p.add_argument("id", help="Task id")

    p = add("update", "Update a task")
    p.add_argument("id", help="Task id")
    p.add_argument("--title", help="Task title")
    p.add_argument("--status", help="New status")
    _add_task_fields(p)
    for flag, (_, help_text) in _CLEAR_FLAGS.items():
        p.add_argument(f"--no-{flag}", action="store_true", help=help_text)

    p = add("status", "Set task status")
    p.add_argument("id", help="Task id")
    p.add_argument("status", help="pending|in_progress|blocked|completed|failed|cancelled")

    p = add("assign", "Assign task to agent")
    p.add_argument("id", help="Task id")
    p.add_argument("agent", help="Agent name")

    p = add("delete", "Delete a task")
    p.add_argument("id", help="Task id")

    dep = add("dep", "Manage dependencies")
    dep_sub = dep.add_subparsers(dest="dep_command", metavar="<add|rm|blockers|blocking>")
    dep_sub.required = True
    for name, help_text in (("add", "Add dependency"), ("rm", "Remove dependency")):
        p = dep_sub.add_parser(name, help=help_text, parents=[common])
        p.add_argument("id", help="Task id")
        p.add_argument("depends_on_id", help="Task id it depends on")
    for name, help_text in (
        ("blockers", "Show unmet dependencies"),
        ("blocking", "Show tasks this blocks"),
    ):
        p = dep_sub.add_parser(name, help=help_text, parents=[common])
        p.add_argument("id", help="Task id")

    agent = add("agent", "Manage agents")
    agent_sub = agent.add_subparsers(dest="agent_command", metavar="<register|list|tasks>")
    agent_sub.required = True
    p = agent_sub.add_parser("register", help="Register an agent/person", parents=[common])
    p.add_argument("name", help="Agent name")
    p.add_argument("--type", default="agent", help="human|agent")
    agent_sub.add_parser("list", help="List registered agents", parents=[common])
    p = agent_sub.add_parser("tasks", help="Show agent's tasks", parents=[common])
    p.add_argument("name", help="Agent name")

    p = add("history", "Show change history")
    p.add_argument("id", nargs="?", help="Task id (default: all)")

    add("dashboard", "Show summary dashboard")
    add("ui", "Rich terminal dashboard with kanban, deps, workload")
    add("check", "Check snapshot consistency")

    p = add("serve", "Run the read-only HTTP API")
    p.add_argument("--host", help="Bind host (default: $TASKAGENT_HOST or 127.0.0.1)")
    p.add_argument("--port", type=int, help="Bind port (default: $TASKAGENT_PORT or 3000)")

    return parser


# ============================================================
# 命令实现
# ============================================================


def cmd_init(args: argparse.Namespace, stores: StoreGroup) -> int:
    if args.name:
        project = TaskEngine(stores).set_project(args.name, args.desc or "")
        if args.json:
            render.print_json(project.model_dump(mode="json"))
            return 0
        print(f"  Project: {project.name}")
    if not args.json:
        print(f"  Initialized {stores.data_dir}/")
    else:
        render.print_json({"data_dir": str(stores.data_dir)})
    return 0


def cmd_add(args: argparse.Namespace, stores: StoreGroup) -> int:
    task = TaskEngine(stores).create_task(
        TaskCreate(
            title=args.title,
            description=args.desc or "",
            priority=args.priority,
            tags=args.tags,
            deadline=args.deadline,
            estimated_minutes=args.estimate,
            assignee=args.assignee,
            depends_on=args.depends_on,
        )
    )
    if args.json:
        render.print_json(task.model_dump(mode="json"))
    else:
        print(f"  Created task {task.id}")
        render.print_task(task)
    return 0


def cmd_list(args: argparse.Namespace, stores: StoreGroup) -> int:
    tasks = TaskQuery(stores).list_tasks(
        status=args.status, assignee=args.assignee, tag=args.tag, priority=args.priority
    )
    if args.json:
        render.print_json([t.model_dump(mode="json") for t in tasks])
    else:
        render.print_task_list(tasks, verbose=args.verbose)
    return 0


def cmd_show(args: argparse.Namespace, stores: StoreGroup) -> int:
    task = TaskQuery(stores).get_task(args.id)
    if args.json:
        render.print_json(task.model_dump(mode="json"))
    else:
        render.print_task(task)
    return 0


def _update(args: argparse.Namespace, stores: StoreGroup, fields: dict[str, Any]) -> Any:
    return TaskEngine(stores).update_task(args.id, TaskUpdate(**fields))


def cmd_update(args: argparse.Namespace, stores: StoreGroup) -> int:
    # 只提交命令行上出现的字段
    candidates = {
        "title": args.title,
        "description": args.desc,
        "status": args.status,
        "priority": args.priority,
        "tags": args.tags,
        "deadline": args.deadline,
        "estimated_minutes": args.estimate,
        "assignee": args.assignee,
        "depends_on": args.depends_on,
    }
    fields = {k: v for k, v in candidates.items() if v is not None}
    # --no-<flag> 显式传 None，清空该字段
    for flag, (field, _) in _CLEAR_FLAGS.items():
        if getattr(args, f"no_{flag}"):
            if getattr(args, flag) is not None:
                raise InvalidFieldError(field, f"--{flag} and --no-{flag} are exclusive")
            fields[field] = None
    task = _update(args, stores, fields)
    if args.json:
        render.print_json(task.model_dump(mode="json"))
    else:
        print(f"  Updated task {task.id}")
        render.print_task(task)
    return 0


def cmd_status(args: argparse.Namespace, stores: StoreGroup) -> int:
    task = _update(args, stores, {"status": args.status})
    if args.json:
        render.print_json(task.model_dump(mode="json"))
    else:
        print(f"  {task.id} → {task.status.value}")
    return 0


def cmd_assign(args: argparse.Namespace, stores: StoreGroup) -> int:
    task = _update(args, stores, {"assignee": args.agent})
    if args.json:
        render.print_json(task.model_dump(mode="json"))
    else:
        print(f"  {task.id} assigned to @{task.assignee}")
    return 0


def cmd_delete(args: argparse.Namespace, stores: StoreGroup) -> int:
    task = TaskEngine(stores).delete_task(args.id)
    if args.json:
        render.print_json(task.model_dump(mode="json"))
    else:
        print(f"  Deleted task {task.id}")
    return 0


def cmd_dep(args: argparse.Namespace, stores: StoreGroup) -> int:
    if args.dep_command in ("add", "rm"):
        engine = TaskEngine(stores)
        if args.dep_command == "add":
            task = engine.add_dependency(args.id, args.depends_on_id)
            message = f"  {args.id} now depends on {args.depends_on_id}"
        else:
            task = engine.remove_dependency(args.id, args.depends_on_id)
            message = f"  Removed dependency {args.id} → {args.depends_on_id}"
        if args.json:
            render.print_json(task.model_dump(mode="json"))
        else:
            print(message)
        return 0

    query = TaskQuery(stores)
    if args.dep_command == "blockers":
        tasks = query.get_blockers(args.id)
    else:
        tasks = query.get_blocking(args.id)
    if args.json:
        render.print_json([t.model_dump(mode="json") for t in tasks])
    else:
        render.print_task_list(tasks, verbose=args.verbose)
    return 0


def cmd_agent(args: argparse.Namespace, stores: StoreGroup) -> int:
    if args.agent_command == "register":
        agent = TaskEngine(stores).register_agent(args.name, {"type": args.type})
        if args.json:
            render.print_json(agent.model_dump(mode="json"))
        else:
            print(f"  Registered @{agent.name} ({agent.type.value})")
        return 0

    query = TaskQuery(stores)
    if args.agent_command == "list":
        agents = query.list_agents()
        if args.json:
            render.print_json([a.model_dump(mode="json") for a in agents])
        else:
            render.print_agents(agents)
        return 0

    tasks = query.get_agent_tasks(args.name)
    if args.json:
        render.print_json([t.model_dump(mode="json") for t in tasks])
    else:
        render.print_task_list(tasks, verbose=args.verbose)
    return 0


def cmd_history(args: argparse.Namespace, stores: StoreGroup) -> int:
    entries = TaskQuery(stores).get_history(args.id)
    if args.json:
        render.print_json([e.to_dict() for e in entries])
    else:
        render.print_history(entries)
    return 0


def cmd_dashboard(args: argparse.Namespace, stores: StoreGroup) -> int:
    summary = TaskQuery(stores).summary()
    if args.json:
        render.print_json(summary.model_dump(mode="json"))
    else:
        render.print_summary(summary)
    return 0


def cmd_ui(args: argparse.Namespace, stores: StoreGroup) -> int:
    view = TaskQuery(stores).dashboard()
    if args.json:
        render.print_json(view.model_dump(mode="json", by_alias=True))
    else:
        render.print_dashboard(view)
    return 0


def cmd_check(args: argparse.Namespace, stores: StoreGroup) -> int:
    problems = TaskQuery(stores).check()
    if args.json:
        render.print_json({"ok": not problems, "problems": problems})
    else:
        render.print_problems(problems)
    return 1 if problems else 0


def cmd_serve(args: argparse.Namespace, stores: StoreGroup) -> int:
    import uvicorn

    from taskagent.gateway.config import load_settings
    from taskagent.gateway.main import create_app

    overrides: dict[str, Any] = {
        "data_dir": stores.data_dir,
        "log_level": _log_level(args),
    }
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["port"] = args.port
    settings = load_settings().model_copy(update=overrides)

    app = create_app(settings)
    app.state.store_group = stores
    log.info("serve_starting", host=settings.host, port=settings.port)
    print(f"  Serving on http://{settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    return 0


COMMANDS = {
    "init": cmd_init,
    "add": cmd_add,
    "list": cmd_list,
    "show": cmd_show,
    "update": cmd_update,
    "status": cmd_status,
    "assign": cmd_assign,
    "delete": cmd_delete,
    "dep": cmd_dep,
    "agent": cmd_agent,
    "history": cmd_history,
    "dashboard": cmd_dashboard,
    "ui": cmd_ui,
    "check": cmd_check,
    "serve": cmd_serve,
}


def _log_level(args: argparse.Namespace) -> str:
    # 日志走 stderr，默认只输出 WARNING 以上，避免干扰命令输出
    return "INFO" if args.verbose else "WARNING"


def main(argv: Sequence[str] | None = None) -> int:
    """CLI 主入口"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(level=_log_level(args))

    try:
        stores = create_store_group(Path(args.dir) if args.dir else None)
        return COMMANDS[args.command](args, stores)
    except TaskAgentError as e:
        log.info("command_rejected", command=args.command, code=e.code)
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
