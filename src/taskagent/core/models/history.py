"""HistoryEntry Domain Model

审计序列 append-only，写入后不可修改或删除。
entry_id 使用 ULID 格式，时间有序。
"""

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import HistoryAction


class FieldChange(BaseModel):
    """单字段变更：from -> to（JSON 形式的值）"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: Any = Field(default=None, alias="from")
    to: Any = None


class HistoryEntry(BaseModel):
    """审计记录"""

    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(description="唯一标识，ULID 格式，时间有序")
    timestamp: datetime = Field(description="写入时间")
    action: HistoryAction = Field(description="动作标签")
    task_id: str | None = Field(default=None, description="关联的 Task ID")
    agent_name: str | None = Field(default=None, description="关联的 Agent 名称")
    depends_on_id: str | None = Field(default=None, description="依赖操作的目标任务")
    changes: dict[str, FieldChange] | None = Field(
        default=None,
        description="字段级 diff，仅包含实际变化的字段",
    )
    snapshot: dict[str, Any] | None = Field(default=None, description="写入时的实体快照")
    meta: dict[str, Any] | None = Field(default=None, description="注册元数据")

    def to_dict(self) -> dict[str, Any]:
        """JSON 形式，省略顶层空字段（changes 内的 None 值保留）"""
        data = self.model_dump(mode="json", by_alias=True)
        return {key: value for key, value in data.items() if value is not None}

    def to_line(self) -> str:
        """序列化为一行 JSON（不含换行符）"""
        return json.dumps(self.to_dict(), ensure_ascii=False)
