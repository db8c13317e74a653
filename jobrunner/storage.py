"""Persistent dead-letter and config storage using JSON files."""

import json
import os
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from .models import Config, DeadLetter

# Handle platform-specific locking
if sys.platform == "win32":
    import msvcrt
else:
    import fcntl


class Storage:
    """File-based storage for dead letters and runner config."""

    def __init__(self, data_dir: str = ".jobrunner"):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.dlq_file = self.data_dir / "dlq.json"
        self.config_file = self.data_dir / "config.json"
        self.lock_file = self.data_dir / "dlq.lock"

        # Initialize files if they don't exist
        if not self.dlq_file.exists():
            self._write_json(self.dlq_file, [])
        if not self.config_file.exists():
            self._write_json(self.config_file, Config().model_dump())

    def _write_json(self, file_path: Path, data: Any) -> None:
        """Write data to JSON file with atomic write."""
        temp_file = file_path.with_suffix(".tmp")
        with open(temp_file, "w") as f:
            json.dump(data, f, indent=2, default=str)
        temp_file.replace(file_path)

    def _read_json(self, file_path: Path) -> Any:
        """Read JSON file safely."""
        if not file_path.exists():
            return [] if file_path == self.dlq_file else {}
        with open(file_path, "r") as f:
            return json.load(f)

    @contextmanager
    def _locked(self) -> Iterator[None]:
        """Hold an exclusive lock on the dead-letter file across processes."""
        fd = os.open(str(self.lock_file), os.O_CREAT | os.O_WRONLY, 0o644)
        try:
            if sys.platform == "win32":
                msvcrt.locking(fd, msvcrt.LK_LOCK, 1)
            else:
                fcntl.flock(fd, fcntl.LOCK_EX)
            try:
                yield
            finally:
                if sys.platform == "win32":
                    os.lseek(fd, 0, os.SEEK_SET)
                    msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
                else:
                    fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)

    def add_dead_letter(self, record: DeadLetter) -> None:
        """Append a dead letter."""
        with self._locked():
            dlq = self._read_json(self.dlq_file)
            dlq.append(record.model_dump(mode="json"))
            self._write_json(self.dlq_file, dlq)

    def get_dead_letters(self, job_name: Optional[str] = None) -> List[DeadLetter]:
        """Get dead letters, oldest first, optionally for one job."""
        dlq = self._read_json(self.dlq_file)
        records = [DeadLetter(**data) for data in dlq]
        if job_name is not None:
            records = [r for r in records if r.job_name == job_name]
        return records

    def get_dead_letter(self, dead_letter_id: str) -> Optional[DeadLetter]:
        """Get a dead letter by ID."""
        for data in self._read_json(self.dlq_file):
            if data["id"] == dead_letter_id:
                return DeadLetter(**data)
        return None

    def remove_dead_letter(self, dead_letter_id: str) -> bool:
        """Remove a dead letter. Returns False if it was not stored."""
        with self._locked():
            dlq = self._read_json(self.dlq_file)
            remaining = [d for d in dlq if d["id"] != dead_letter_id]
            if len(remaining) == len(dlq):
                return False
            self._write_json(self.dlq_file, remaining)
            return True

    def purge_dead_letters(self, job_name: Optional[str] = None) -> int:
        """Remove all dead letters, or those of one job. Returns the count removed."""
        with self._locked():
            dlq = self._read_json(self.dlq_file)
            if job_name is None:
                remaining = []
            else:
                remaining = [d for d in dlq if d["job_name"] != job_name]
            self._write_json(self.dlq_file, remaining)
            return len(dlq) - len(remaining)

    def get_config(self) -> Config:
        """Get current configuration."""
        return Config(**self._read_json(self.config_file))

    def set_config(self, config: Config) -> None:
        """Update configuration."""
        self._write_json(self.config_file, config.model_dump())

    def get_stats(self) -> Dict[str, Any]:
        """Get dead-letter statistics."""
        dlq = self._read_json(self.dlq_file)
        by_job: Dict[str, int] = {}
        for data in dlq:
            by_job[data["job_name"]] = by_job.get(data["job_name"], 0) + 1
        return {"total": len(dlq), "by_job": by_job}
