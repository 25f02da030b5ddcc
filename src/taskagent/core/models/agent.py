"""Agent Domain Model

name 是唯一键，注册后不可修改、不可删除。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import AgentType


class Agent(BaseModel):
    """Agent 数据模型"""

    name: str = Field(description="唯一名称")
    type: AgentType = Field(default=AgentType.AGENT, description="human / agent")
    registered_at: datetime = Field(description="注册时间")
    metadata: dict[str, Any] = Field(default_factory=dict, description="自由格式元数据")
