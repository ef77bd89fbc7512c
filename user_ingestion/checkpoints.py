from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Set

from .errors import CheckpointError


class CheckpointStore:
    """Per-batch JSON snapshots keyed by offset.

    Files from earlier runs are overwritten; they are for inspection only.
    """

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._written: List[int] = []
        self._written_set: Set[int] = set()

    @property
    def directory(self) -> Path:
        return self._dir

    def path_for(self, offset: int) -> Path:
        return self._dir / f"{offset}.json"

    def write(self, offset: int, records: List[Any]) -> Path:
        if offset in self._written_set:
            raise CheckpointError(f"Checkpoint for offset {offset} already written.")
        p = self.path_for(offset)
        p.write_text(json.dumps(records, indent=2), encoding="utf-8")
        self._written.append(offset)
        self._written_set.add(offset)
        return p

    def written_offsets(self) -> List[int]:
        return list(self._written)
