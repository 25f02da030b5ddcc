"""Store Snapshot -- 聚合根

{project, tasks: id -> Task, agents: name -> Agent}
映射的迭代顺序即插入顺序，也是各视图稳定排序的"原始顺序"。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .agent import Agent
from .task import Task


class ProjectInfo(BaseModel):
    """项目元数据"""

    name: str
    description: str = ""
    created_at: datetime


class StoreSnapshot(BaseModel):
    """完整快照"""

    project: ProjectInfo | None = None
    tasks: dict[str, Task] = Field(default_factory=dict)
    agents: dict[str, Agent] = Field(default_factory=dict)

    def adjacency(self) -> dict[str, list[str]]:
        """task_id -> depends_on 邻接视图"""
        return {task_id: list(task.depends_on) for task_id, task in self.tasks.items()}
