"""配置与日志初始化测试"""

import io
import json
import logging
from pathlib import Path

import structlog
from taskagent.core.config import (
    get_data_dir,
    get_history_path,
    get_snapshot_path,
)
from taskagent.core.logging_config import setup_logging


class TestDataDir:
    def test_default(self, monkeypatch):
        monkeypatch.delenv("TASKAGENT_DIR", raising=False)
        assert get_data_dir() == Path(".taskagent")

    def test_env_override(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("TASKAGENT_DIR", str(tmp_path))
        assert get_snapshot_path() == tmp_path / "tasks.json"
        assert get_history_path() == tmp_path / "history.jsonl"

    def test_explicit_dir_wins(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("TASKAGENT_DIR", "/elsewhere")
        assert get_snapshot_path(tmp_path) == tmp_path / "tasks.json"


class TestSetupLogging:
    def test_json_format(self, monkeypatch):
        monkeypatch.setenv("TASKAGENT_LOG_FORMAT", "json")
        stream = io.StringIO()
        setup_logging(level="INFO", stream=stream)

        structlog.get_logger("test").info("task_created", task_id="abc")
        record = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert record["event"] == "task_created"
        assert record["task_id"] == "abc"
        assert record["level"] == "info"
        assert "timestamp" in record

    def test_level_filters(self, monkeypatch):
        monkeypatch.setenv("TASKAGENT_LOG_FORMAT", "json")
        stream = io.StringIO()
        setup_logging(level="WARNING", stream=stream)

        structlog.get_logger("test").info("hidden")
        structlog.get_logger("test").warning("shown")
        output = stream.getvalue()
        assert "hidden" not in output
        assert "shown" in output
        assert logging.getLogger().level == logging.WARNING

    def test_level_from_env(self, monkeypatch):
        monkeypatch.setenv("TASKAGENT_LOG_LEVEL", "debug")
        setup_logging(stream=io.StringIO())
        assert logging.getLogger().level == logging.DEBUG
