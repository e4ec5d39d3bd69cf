# src/eksgitops/observers/jsonfile.py
from __future__ import annotations

import json
from pathlib import Path

from .events import BaseEvent


class JsonFileObserver:
    """Appends every event as one JSON line (one file per run)."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def for_run(cls, base_dir: Path, run_id: str) -> "JsonFileObserver":
        return cls(base_dir / f"events-{run_id}.jsonl")

    def notify(self, event: BaseEvent) -> None:
        record = {"type": event.__class__.__name__, **event.dict()}
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, default=str) + "\n")
