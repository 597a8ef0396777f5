"""File-based TaskStore.

Layout under ``root``::

    patterns/<pattern_tree_id>.json   # atomic replace
    tasks/<task_id>.json              # atomic replace
    records/<task_id>.jsonl           # append-only record log
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, List, Optional, Sequence

from pattern_probe.schemas.pattern_tree import PatternTree
from pattern_probe.schemas.task import ExtractionRecord, ExtractionTask

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]*$")


class FileTaskStore:
    """JSON files on local disk."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.patterns_dir = self.root / "patterns"
        self.tasks_dir = self.root / "tasks"
        self.records_dir = self.root / "records"
        for directory in (self.patterns_dir, self.tasks_dir, self.records_dir):
            directory.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _check_id(value: str) -> str:
        if not _SAFE_ID.match(value):
            raise ValueError(f"Id is not usable as a file name: {value!r}")
        return value

    def _write_json(self, path: Path, data: Any) -> None:
        """Write JSON atomically via a temp file in the same directory."""
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)
            tmp_path.replace(path)
        except IOError as e:
            if tmp_path.exists():
                tmp_path.unlink()
            raise IOError(f"Failed to write {path}: {e}")

    def _read_json(self, path: Path) -> Optional[dict]:
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    # Pattern trees

    def save_pattern(self, pattern_tree_id: str, tree: PatternTree) -> None:
        path = self.patterns_dir / f"{self._check_id(pattern_tree_id)}.json"
        self._write_json(path, tree.model_dump(mode="json"))

    def get_pattern(self, pattern_tree_id: str) -> Optional[PatternTree]:
        data = self._read_json(self.patterns_dir / f"{self._check_id(pattern_tree_id)}.json")
        return PatternTree.model_validate(data) if data is not None else None

    def list_pattern_ids(self) -> List[str]:
        return sorted(p.stem for p in self.patterns_dir.glob("*.json"))

    # Tasks

    def save_task(self, task: ExtractionTask) -> None:
        path = self.tasks_dir / f"{self._check_id(task.id)}.json"
        self._write_json(path, task.model_dump(mode="json"))

    def get_task(self, task_id: str) -> Optional[ExtractionTask]:
        data = self._read_json(self.tasks_dir / f"{self._check_id(task_id)}.json")
        return ExtractionTask.model_validate(data) if data is not None else None

    def list_tasks(self) -> List[ExtractionTask]:
        tasks = []
        for path in self.tasks_dir.glob("*.json"):
            try:
                tasks.append(ExtractionTask.model_validate(self._read_json(path)))
            except (json.JSONDecodeError, ValueError) as e:
                logger.warning(f"Skipping unreadable task file {path}: {e}")
        return sorted(tasks, key=lambda t: (t.created_at, t.id))

    # Records

    def _records_path(self, task_id: str) -> Path:
        return self.records_dir / f"{self._check_id(task_id)}.jsonl"

    def append_records(self, task_id: str, records: Sequence[ExtractionRecord]) -> None:
        if not records:
            return
        path = self._records_path(task_id)
        with open(path, "a", encoding="utf-8") as f:
            for record in records:
                f.write(json.dumps(record.model_dump(mode="json"), ensure_ascii=False) + "\n")

    def read_records(self, task_id: str, limit: Optional[int] = None) -> List[ExtractionRecord]:
        path = self._records_path(task_id)
        if not path.exists():
            return []
        records: List[ExtractionRecord] = []
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                if limit is not None and len(records) >= limit:
                    break
                line = line.strip()
                if line:
                    records.append(ExtractionRecord.model_validate_json(line))
        return records

    def count_records(self, task_id: str) -> int:
        path = self._records_path(task_id)
        if not path.exists():
            return 0
        with open(path, "r", encoding="utf-8") as f:
            return sum(1 for line in f if line.strip())
