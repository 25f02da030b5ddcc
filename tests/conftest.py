"""共享测试配置 -- 数据目录 / 引擎 / 查询 fixture"""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from taskagent.core.engine import TaskEngine
from taskagent.core.query import TaskQuery
from taskagent.core.store import StoreGroup, create_store_group


class FakeClock:
    """可控时钟：每次调用返回当前值，advance 手动推进"""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """隔离的数据目录（尚未初始化）"""
    return tmp_path / ".taskagent"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 3, 1, 9, 0, tzinfo=UTC))


@pytest.fixture
def stores(data_dir: Path) -> StoreGroup:
    """已初始化的 StoreGroup"""
    return create_store_group(data_dir)


@pytest.fixture
def engine(stores: StoreGroup, clock: FakeClock) -> TaskEngine:
    return TaskEngine(stores, clock=clock)


@pytest.fixture
def query(stores: StoreGroup, clock: FakeClock) -> TaskQuery:
    return TaskQuery(stores, clock=clock)
