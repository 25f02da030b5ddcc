"""Task Domain Model + 变更请求结构

Task 只能通过 TaskEngine 创建、更新、删除。
TaskCreate / TaskUpdate 是显式的请求结构：TaskUpdate 中"出现"的字段
（pydantic model_fields_set）才会被应用，未出现的字段保持不变。
"""

from collections.abc import Iterable
from datetime import UTC, date, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .enums import TaskPriority, TaskStatus

# 可通过 update_task 修改的字段（顺序即 diff 输出顺序）
MUTABLE_FIELDS: tuple[str, ...] = (
    "title",
    "description",
    "status",
    "priority",
    "tags",
    "deadline",
    "estimated_minutes",
    "assignee",
    "depends_on",
)


def dedupe(items: Iterable[str]) -> list[str]:
    """去重并保留首次出现顺序"""
    return list(dict.fromkeys(items))


def parse_deadline(value: Any) -> datetime | None:
    """解析截止时间

    - None / 空字符串 -> None
    - "YYYY-MM-DD" / date -> 当天 00:00 UTC
    - ISO datetime 字符串 / datetime -> 无时区按 UTC 处理

    Raises:
        ValueError: 无法解析
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            d = date.fromisoformat(text)
            parsed = datetime(d.year, d.month, d.day)
        else:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    else:
        raise ValueError(f"unsupported deadline value: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class Task(BaseModel):
    """Task 数据模型

    不变量：
    - depends_on 不包含自身 id
    - depends_on 只引用当前存在的任务
    - depends_on 构成的有向图无环
    """

    id: str = Field(description="短标识，创建后不可变")
    title: str = Field(description="任务标题（非空）")
    description: str = Field(default="", description="任务描述")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="当前状态")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="优先级")
    tags: list[str] = Field(default_factory=list, description="标签，保留插入顺序")
    deadline: datetime | None = Field(default=None, description="截止时间（UTC）")
    estimated_minutes: int | None = Field(default=None, ge=0, description="预估分钟数")
    assignee: str | None = Field(default=None, description="指派的 Agent 名称")
    depends_on: list[str] = Field(default_factory=list, description="依赖的任务 ID")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间，单调不减")

    @field_validator("deadline", mode="before")
    @classmethod
    def _parse_deadline(cls, value: Any) -> datetime | None:
        return parse_deadline(value)

    @field_validator("tags", "depends_on")
    @classmethod
    def _dedupe(cls, value: list[str]) -> list[str]:
        return dedupe(value)


class TaskCreate(BaseModel):
    """create_task 请求

    priority 等枚举字段保持原始字符串，由引擎校验并抛出领域异常。
    """

    title: str
    description: str = ""
    priority: str | None = None
    tags: list[str] | None = None
    deadline: datetime | date | str | None = None
    estimated_minutes: int | None = None
    assignee: str | None = None
    depends_on: list[str] | None = None


class TaskUpdate(BaseModel):
    """update_task 请求 -- 仅 model_fields_set 中的字段生效

    显式传入 None 表示清空（assignee / deadline / estimated_minutes）。
    """

    title: str | None = None
    description: str | None = None
    status: str | None = None
    priority: str | None = None
    tags: list[str] | None = None
    deadline: datetime | date | str | None = None
    estimated_minutes: int | None = None
    assignee: str | None = None
    depends_on: list[str] | None = None

    def present_fields(self) -> list[str]:
        """按 MUTABLE_FIELDS 顺序返回本次请求出现的字段"""
        return [name for name in MUTABLE_FIELDS if name in self.model_fields_set]
