"""lifespan 测试 -- 启动时按配置初始化数据目录"""

import logging
from pathlib import Path

import pytest
from taskagent.gateway.config import TaskAgentSettings
from taskagent.gateway.main import create_app, lifespan


class TestLifespan:
    async def test_creates_store_group(self, tmp_path: Path):
        data_dir = tmp_path / "served"
        app = create_app(TaskAgentSettings(data_dir=data_dir))

        async with lifespan(app):
            assert app.state.store_group.data_dir == data_dir
            assert (data_dir / "tasks.json").exists()
            assert (data_dir / "history.jsonl").exists()

    async def test_keeps_injected_store_group(self, tmp_path: Path, stores):
        app = create_app(TaskAgentSettings(data_dir=tmp_path / "unused"))
        app.state.store_group = stores

        async with lifespan(app):
            assert app.state.store_group is stores
        assert not (tmp_path / "unused").exists()


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestLoggingSetup:
    """日志在启动时配置，创建 app 不改动调用方的日志级别"""

    def test_create_app_leaves_logging_alone(self, tmp_path: Path, restore_root_logger):
        restore_root_logger.setLevel(logging.WARNING)
        create_app(TaskAgentSettings(data_dir=tmp_path))
        assert restore_root_logger.level == logging.WARNING

    async def test_lifespan_applies_log_level(self, tmp_path: Path, stores, restore_root_logger):
        app = create_app(TaskAgentSettings(data_dir=tmp_path, log_level="ERROR"))
        app.state.store_group = stores

        async with lifespan(app):
            assert restore_root_logger.level == logging.ERROR
