"""Agent 查询路由"""

from fastapi import APIRouter, Depends

from taskagent.core.query import TaskQuery

from ..deps import get_query

router = APIRouter()


@router.get("/api/agents")
def list_agents(query: TaskQuery = Depends(get_query)):
    return {"agents": [a.model_dump(mode="json") for a in query.list_agents()]}


@router.get("/api/agents/{name}/tasks")
def get_agent_tasks(name: str, query: TaskQuery = Depends(get_query)):
    """指派给该 Agent 的任务；未注册且无任务时 404"""
    tasks = query.get_agent_tasks(name)
    return {"agent": name, "tasks": [t.model_dump(mode="json") for t in tasks]}
