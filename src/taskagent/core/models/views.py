"""派生视图模型 -- 看板 / 依赖图 / 负载 / 逾期 / 进度

全部由 projection 模块的纯函数计算得到，不落盘。
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import AgentType, TaskStatus
from .snapshot import ProjectInfo
from .task import Task


class GraphNode(BaseModel):
    """依赖图节点；处于环中的节点 layer 为 None"""

    id: str
    title: str
    status: TaskStatus
    layer: int | None = None


class GraphEdge(BaseModel):
    """依赖边：dependency -> dependent"""

    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    to: str


class DependencyGraph(BaseModel):
    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
    layers: list[list[str]] = Field(default_factory=list)

    def layer_of(self, task_id: str) -> int | None:
        for node in self.nodes:
            if node.id == task_id:
                return node.layer
        return None


class AgentWorkload(BaseModel):
    """单个 Agent 的任务负载"""

    name: str
    type: AgentType = AgentType.AGENT
    registered: bool = True
    total: int = 0
    in_progress: int = 0
    completed: int = 0
    pending: int = 0


class OverdueWarning(BaseModel):
    """逾期任务"""

    id: str
    title: str
    deadline: datetime
    assignee: str | None = None
    days_overdue: int


class ProgressStats(BaseModel):
    """整体进度统计"""

    total: int = 0
    pending: int = 0
    in_progress: int = 0
    blocked: int = 0
    completed: int = 0
    failed: int = 0
    cancelled: int = 0
    percent_complete: int = 0


class DashboardView(BaseModel):
    """完整看板视图模型"""

    project: ProjectInfo | None = None
    columns: dict[TaskStatus, list[Task]]
    agents: list[AgentWorkload]
    graph: DependencyGraph
    overdue: list[OverdueWarning]
    stats: ProgressStats


class Summary(BaseModel):
    """简要汇总（dashboard 命令）"""

    total: int
    counts: dict[TaskStatus, int]
    overdue: list[OverdueWarning]
    agents: int
