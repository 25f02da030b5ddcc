"""HistoryStore JSONL 实现

审计序列 append-only：每行一条独立可解析的 JSON 记录。
truncate 只用于事务回滚本次刚追加的一行，不会改动更早的记录。
"""

import json
import os
from pathlib import Path

import structlog
from pydantic import ValidationError

from ..exceptions import StorageError
from ..models.history import HistoryEntry

log = structlog.get_logger()


class JsonlHistoryStore:
    """HistoryStore 的 JSONL 文件实现"""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def init(self) -> None:
        """创建空审计文件（幂等）"""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.touch(exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot initialize history {self._path}", e) from e

    def append(self, entry: HistoryEntry) -> int:
        """追加一条记录并 fsync

        文件末尾若是无换行的残行，先补一个换行，避免新记录与残行粘连。

        Returns:
            追加前的文件长度（供回滚使用）
        """
        line = (entry.to_line() + "\n").encode("utf-8")
        try:
            with open(self._path, "a+b") as f:
                offset = f.seek(0, os.SEEK_END)
                if offset > 0:
                    f.seek(offset - 1)
                    if f.read(1) != b"\n":
                        line = b"\n" + line
                f.write(line)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise StorageError(f"Cannot append to history {self._path}", e) from e
        return offset

    def truncate(self, offset: int) -> None:
        """回滚到指定长度（仅撤销本次事务追加的内容）"""
        try:
            with open(self._path, "r+b") as f:
                f.truncate(offset)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise StorageError(f"Cannot roll back history {self._path}", e) from e

    def read(self, task_id: str | None = None) -> list[HistoryEntry]:
        """按追加顺序读取记录，可按 task_id 过滤

        无法解析的行（例如崩溃导致的残行）记录告警后跳过。
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageError(f"Cannot read history {self._path}", e) from e

        entries: list[HistoryEntry] = []
        for lineno, line in enumerate(raw.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                entry = HistoryEntry.model_validate(json.loads(line))
            except (json.JSONDecodeError, ValidationError):
                log.warning("history_line_unreadable", path=str(self._path), lineno=lineno)
                continue
            if task_id is None or entry.task_id == task_id:
                entries.append(entry)
        return entries
