"""SnapshotStore JSON 文件实现

整份快照文档写入：先写同目录临时文件并 fsync，再 os.replace 原子替换。
读取方永远只会看到完整的旧文档或完整的新文档。
"""

import json
import os
import tempfile
from pathlib import Path

import structlog
from pydantic import ValidationError

from ..exceptions import SnapshotCorruptedError, StorageError
from ..models.snapshot import StoreSnapshot

log = structlog.get_logger()


class JsonSnapshotStore:
    """SnapshotStore 的 JSON 文件实现"""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def init(self) -> None:
        """创建目录和空快照（幂等，已存在时不覆盖）"""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create data directory {self._path.parent}", e) from e
        if not self._path.exists():
            self.save(StoreSnapshot())
            log.info("snapshot_initialized", path=str(self._path))

    def load(self) -> StoreSnapshot:
        """读取完整快照

        Raises:
            StorageError: 文件不存在或无法读取
            SnapshotCorruptedError: JSON 非法或不符合模型
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise StorageError(
                f"Snapshot {self._path} does not exist; run `taskagent init` first", e
            ) from e
        except OSError as e:
            raise StorageError(f"Cannot read snapshot {self._path}", e) from e

        try:
            return StoreSnapshot.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            raise SnapshotCorruptedError(f"Snapshot {self._path} is corrupted: {e}", e) from e

    def stage(self, snapshot: StoreSnapshot) -> Path:
        """写入同目录临时文件并 fsync，返回临时文件路径（尚未生效）"""
        data = json.dumps(
            snapshot.model_dump(mode="json", by_alias=True),
            ensure_ascii=False,
            indent=2,
        )
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            )
        except OSError as e:
            raise StorageError(f"Cannot write snapshot {self._path}", e) from e
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            self.discard(tmp_path)
            raise StorageError(f"Cannot write snapshot {self._path}", e) from e
        return tmp_path

    def promote(self, staged: Path) -> None:
        """原子替换：staged -> 正式快照"""
        try:
            os.replace(staged, self._path)
        except OSError as e:
            self.discard(staged)
            raise StorageError(f"Cannot replace snapshot {self._path}", e) from e

    def discard(self, staged: Path) -> None:
        """丢弃未生效的临时文件"""
        try:
            staged.unlink(missing_ok=True)
        except OSError:
            log.warning("staged_snapshot_cleanup_failed", path=str(staged))

    def save(self, snapshot: StoreSnapshot) -> None:
        """整份写入（stage + promote）"""
        self.promote(self.stage(snapshot))
