"""taskagent 异常体系

领域异常均为本地校验失败：在任何写入之前同步抛出，
相同快照 + 相同输入必然得到相同异常，不做重试。
StorageError 是独立的持久化故障类型，不可恢复。
"""


class TaskAgentError(Exception):
    """taskagent 基础异常"""

    code: str = "TASKAGENT_ERROR"
    # not_found / conflict / validation / storage，供适配层映射状态码
    category: str = "validation"

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class TaskNotFoundError(TaskAgentError):
    code = "TASK_NOT_FOUND"
    category = "not_found"

    def __init__(self, task_id: str) -> None:
        super().__init__(f'Task "{task_id}" not found')
        self.task_id = task_id


class AgentNotFoundError(TaskAgentError):
    code = "AGENT_NOT_FOUND"
    category = "not_found"

    def __init__(self, name: str, message: str | None = None) -> None:
        super().__init__(message or f'Agent "{name}" not found')
        self.name = name


class UnknownAgentError(AgentNotFoundError):
    """任务字段引用了未注册的 Agent"""

    code = "UNKNOWN_AGENT"
    category = "validation"

    def __init__(self, name: str) -> None:
        super().__init__(
            name,
            f'Agent "{name}" not registered. Use "taskagent agent register" first.',
        )


class AgentAlreadyRegisteredError(TaskAgentError):
    code = "AGENT_ALREADY_REGISTERED"
    category = "conflict"

    def __init__(self, name: str) -> None:
        super().__init__(f'Agent "{name}" already registered')
        self.name = name


class _InvalidChoiceError(TaskAgentError):
    """枚举取值非法"""

    label: str = "value"

    def __init__(self, value: object, allowed: list[str]) -> None:
        super().__init__(
            f'Invalid {self.label} "{value}". Must be one of: {", ".join(allowed)}'
        )
        self.value = value
        self.allowed = allowed


class InvalidStatusError(_InvalidChoiceError):
    code = "INVALID_STATUS"
    label = "status"


class InvalidPriorityError(_InvalidChoiceError):
    code = "INVALID_PRIORITY"
    label = "priority"


class InvalidAgentTypeError(_InvalidChoiceError):
    code = "INVALID_AGENT_TYPE"
    label = "agent type"


class InvalidTitleError(TaskAgentError):
    code = "INVALID_TITLE"

    def __init__(self) -> None:
        super().__init__("Task title must not be empty")


class InvalidFieldError(TaskAgentError):
    code = "INVALID_FIELD"

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"Invalid {field}: {reason}")
        self.field = field
        self.reason = reason


class SelfDependencyError(TaskAgentError):
    code = "SELF_DEPENDENCY"

    def __init__(self, task_id: str) -> None:
        super().__init__(f'A task cannot depend on itself ("{task_id}")')
        self.task_id = task_id


class UnknownDependencyError(TaskAgentError):
    code = "UNKNOWN_DEPENDENCY"

    def __init__(self, depends_on_id: str) -> None:
        super().__init__(f'Dependency task "{depends_on_id}" not found')
        self.depends_on_id = depends_on_id


class CycleDetectedError(TaskAgentError):
    code = "CYCLE_DETECTED"
    category = "conflict"

    def __init__(self, task_id: str, depends_on_id: str) -> None:
        super().__init__(
            f'Adding dependency "{task_id}" -> "{depends_on_id}" would create a cycle'
        )
        self.task_id = task_id
        self.depends_on_id = depends_on_id


class DependenciesUnmetError(TaskAgentError):
    code = "DEPENDENCIES_UNMET"
    category = "conflict"

    def __init__(self, task_id: str, unmet: list[str]) -> None:
        super().__init__(f"Cannot start task: dependencies not met: {', '.join(unmet)}")
        self.task_id = task_id
        self.unmet = list(unmet)


class StorageError(TaskAgentError):
    """持久化 I/O 故障 -- 中止当前操作，不留下部分写入"""

    code = "STORAGE_ERROR"
    category = "storage"

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message, recoverable=False)
        self.original_error = original_error


class SnapshotCorruptedError(StorageError):
    """快照文档无法解析或不符合模型"""

    code = "SNAPSHOT_CORRUPTED"
