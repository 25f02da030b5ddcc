"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store / Query 实例

StoreGroup 通过 app.state 管理，在 lifespan 中初始化。
TaskQuery 每个请求新建，每次查询都重新读取快照。
"""

from fastapi import Request

from taskagent.core.query import TaskQuery
from taskagent.core.store import StoreGroup


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_query(request: Request) -> TaskQuery:
    """构建只读查询服务"""
    return TaskQuery(get_store_group(request))
