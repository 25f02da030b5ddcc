"""Gateway 测试配置 -- FastAPI app + httpx AsyncClient"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from taskagent.core.store import StoreGroup


@pytest.fixture
def app(stores: StoreGroup, monkeypatch):
    """创建测试用 FastAPI app 实例（手动注入 StoreGroup，绕过 lifespan）"""
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")
    monkeypatch.setenv("TASKAGENT_DIR", str(stores.data_dir))

    from taskagent.gateway.main import create_app

    application = create_app()
    application.state.store_group = stores
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
