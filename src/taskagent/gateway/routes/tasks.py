"""任务查询路由

GET /api/tasks: 任务列表，支持 status / assignee / tag / priority 筛选（AND）。
GET /api/tasks/{task_id}: 任务详情，含该任务的审计记录。
"""

from fastapi import APIRouter, Depends, Query

from taskagent.core.query import TaskQuery

from ..deps import get_query

router = APIRouter()


@router.get("/api/tasks")
def list_tasks(
    status: str | None = Query(default=None, description="按状态筛选"),
    assignee: str | None = Query(default=None, description="按负责人筛选"),
    tag: str | None = Query(default=None, description="按标签筛选"),
    priority: str | None = Query(default=None, description="按优先级筛选"),
    query: TaskQuery = Depends(get_query),
):
    """查询任务列表，保持存储顺序"""
    tasks = query.list_tasks(
        status=status, assignee=assignee, tag=tag, priority=priority
    )
    return {"tasks": [t.model_dump(mode="json") for t in tasks]}


@router.get("/api/tasks/{task_id}")
def get_task_detail(task_id: str, query: TaskQuery = Depends(get_query)):
    """查询任务详情：任务本体 + 阻塞关系 + 审计记录"""
    task = query.get_task(task_id)
    return {
        "task": task.model_dump(mode="json"),
        "blockers": [t.id for t in query.get_blockers(task_id)],
        "blocking": [t.id for t in query.get_blocking(task_id)],
        "history": [e.to_dict() for e in query.get_history(task_id)],
    }
