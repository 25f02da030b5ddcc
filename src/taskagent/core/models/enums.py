"""枚举定义 -- TaskStatus / TaskPriority / AgentType / HistoryAction

包含状态机常量 TERMINAL_STATES、唯一受控流转 GATED_STATUS，
以及看板排序使用的 PRIORITY_RANK。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 状态机

    pending 为初始状态；blocked / cancelled 可从任意非终态进入。
    终态只是命名上的终态，引擎并不禁止从终态流出。
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TaskPriority(StrEnum):
    """任务优先级"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AgentType(StrEnum):
    """操作者类型"""

    HUMAN = "human"
    AGENT = "agent"


class HistoryAction(StrEnum):
    """审计记录动作标签"""

    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_DELETED = "task_deleted"
    DEPENDENCY_ADDED = "dependency_added"
    DEPENDENCY_REMOVED = "dependency_removed"
    AGENT_REGISTERED = "agent_registered"
    PROJECT_UPDATED = "project_updated"


TERMINAL_STATES: set[TaskStatus] = {
    TaskStatus.COMPLETED,
    TaskStatus.FAILED,
    TaskStatus.CANCELLED,
}

# 逾期判定时视为"已收尾"的状态
CLOSED_STATES: set[TaskStatus] = {
    TaskStatus.COMPLETED,
    TaskStatus.CANCELLED,
}

# 唯一受依赖门控的目标状态
GATED_STATUS = TaskStatus.IN_PROGRESS

# 看板列顺序
STATUS_ORDER: tuple[TaskStatus, ...] = (
    TaskStatus.PENDING,
    TaskStatus.IN_PROGRESS,
    TaskStatus.BLOCKED,
    TaskStatus.COMPLETED,
    TaskStatus.FAILED,
    TaskStatus.CANCELLED,
)

# 数值越小越靠前；未知优先级排在最后
PRIORITY_RANK: dict[str, int] = {
    TaskPriority.CRITICAL: 0,
    TaskPriority.HIGH: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 3,
}
UNKNOWN_PRIORITY_RANK = len(PRIORITY_RANK)


def is_gated_transition(to_status: TaskStatus) -> bool:
    """判断进入目标状态是否需要依赖全部完成

    Args:
        to_status: 目标状态

    Returns:
        True 如果需要依赖门控
    """
    return to_status == GATED_STATUS


def priority_rank(priority: str) -> int:
    """优先级排序权重"""
    return PRIORITY_RANK.get(priority, UNKNOWN_PRIORITY_RANK)
