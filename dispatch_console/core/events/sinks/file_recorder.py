"""
JSON-lines recorder for domain events.

One line per event: ``{"type": <class name>, <event fields>...}``. The file
is opened for append so several console runs can share one log.
"""
from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from typing import Any


def _to_record(event: Any) -> dict[str, Any]:
    if dataclasses.is_dataclass(event) and not isinstance(event, type):
        return {"type": type(event).__name__, **dataclasses.asdict(event)}
    return {"event": str(event)}


class FileRecorderSink:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = self.path.open("a", encoding="utf-8")
        self.records_written = 0

    def on_event(self, event: Any) -> None:
        self._fh.write(json.dumps(_to_record(event), default=str) + "\n")
        self._fh.flush()
        self.records_written += 1

    def close(self) -> None:
        if not self._fh.closed:
            self._fh.close()
