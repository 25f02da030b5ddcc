"""项目信息路由"""

from fastapi import APIRouter, Depends

from taskagent.core.query import TaskQuery

from ..deps import get_query

router = APIRouter()


@router.get("/api/project")
def get_project(query: TaskQuery = Depends(get_query)):
    """返回项目信息；未设置项目时 project 为 null"""
    project = query.get_project()
    return {"project": project.model_dump(mode="json") if project else None}
