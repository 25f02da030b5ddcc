"""看板路由

GET /api/dashboard: 完整看板视图（分栏、依赖图、工作量、逾期、统计）。
"""

from fastapi import APIRouter, Depends

from taskagent.core.query import TaskQuery

from ..deps import get_query

router = APIRouter()


@router.get("/api/dashboard")
def get_dashboard(query: TaskQuery = Depends(get_query)):
    """每次请求都重新读取快照计算"""
    return query.dashboard().model_dump(mode="json", by_alias=True)


@router.get("/api/summary")
def get_summary(query: TaskQuery = Depends(get_query)):
    return query.summary().model_dump(mode="json")
