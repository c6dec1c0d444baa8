from __future__ import annotations

import json
import threading
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class StageTimings:
    validate_ms: float = 0.0
    convert_ms: float = 0.0

    @property
    def total_ms(self) -> float:
        return self.validate_ms + self.convert_ms


@dataclass(slots=True)
class RunLogEntry:
    run_id: str
    source: str
    status: str
    output_dir: str
    options: dict[str, Any]
    pages_converted: list[int]
    error_code: str | None
    error_message: str | None
    timings: StageTimings
    size_bytes: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["timings"] = {**asdict(self.timings), "total_ms": self.timings.total_ms}
        payload["timestamp"] = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(self.timestamp))
        return payload


class RunLogger:
    _lock = threading.Lock()

    def __init__(self, log_file: Path) -> None:
        self._log_file = log_file

    @property
    def log_file(self) -> Path:
        return self._log_file

    def append(self, entry: RunLogEntry) -> None:
        self._log_file.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(entry.to_dict(), ensure_ascii=False)
        with self._lock:
            with self._log_file.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")

    def read(self) -> list[dict[str, Any]]:
        if not self._log_file.exists():
            return []
        with self._log_file.open("r", encoding="utf-8") as handle:
            return [json.loads(line) for line in handle if line.strip()]


__all__ = ["RunLogEntry", "RunLogger", "StageTimings"]
