"""审计记录路由

GET /api/history: 按追加顺序返回审计记录，可按 task_id 筛选。
"""

from fastapi import APIRouter, Depends, Query

from taskagent.core.query import TaskQuery

from ..deps import get_query

router = APIRouter()


@router.get("/api/history")
def list_history(
    task_id: str | None = Query(default=None, description="按任务 ID 筛选"),
    query: TaskQuery = Depends(get_query),
):
    return {"history": [e.to_dict() for e in query.get_history(task_id)]}
