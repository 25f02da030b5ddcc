"""taskagent Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .agent import Agent
from .enums import (
    CLOSED_STATES,
    PRIORITY_RANK,
    STATUS_ORDER,
    TERMINAL_STATES,
    AgentType,
    HistoryAction,
    TaskPriority,
    TaskStatus,
    is_gated_transition,
    priority_rank,
)
from .history import FieldChange, HistoryEntry
from .snapshot import ProjectInfo, StoreSnapshot
from .task import MUTABLE_FIELDS, Task, TaskCreate, TaskUpdate, dedupe, parse_deadline
from .views import (
    AgentWorkload,
    DashboardView,
    DependencyGraph,
    GraphEdge,
    GraphNode,
    OverdueWarning,
    ProgressStats,
    Summary,
)

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskPriority",
    "AgentType",
    "HistoryAction",
    # 状态机
    "TERMINAL_STATES",
    "CLOSED_STATES",
    "STATUS_ORDER",
    "PRIORITY_RANK",
    "is_gated_transition",
    "priority_rank",
    # Task
    "Task",
    "TaskCreate",
    "TaskUpdate",
    "MUTABLE_FIELDS",
    "dedupe",
    "parse_deadline",
    # Agent
    "Agent",
    # History
    "HistoryEntry",
    "FieldChange",
    # Snapshot
    "StoreSnapshot",
    "ProjectInfo",
    # Views
    "DashboardView",
    "Summary",
    "DependencyGraph",
    "GraphNode",
    "GraphEdge",
    "AgentWorkload",
    "OverdueWarning",
    "ProgressStats",
]
