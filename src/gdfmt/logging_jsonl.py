# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""JSON Lines event logger."""

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Union


class JsonlLogger:
    """Append-only logger writing one JSON object per line.

    Records are plain dictionaries, conventionally carrying an ``ev`` key
    naming the event. Writes are serialized so workers running in threads
    can share one logger.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def start_fresh(self) -> None:
        """Create (or truncate) the log file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("", encoding="utf-8")

    def write(self, record: Dict[str, Any]) -> None:
        """Append `record` as one JSON line."""
        line = json.dumps(record, ensure_ascii=False, default=str)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")

    def event(self, ev: str, **fields: Any) -> None:
        """Write an event record stamped with the current UTC time."""
        self.write({"ev": ev, "ts": datetime.now(timezone.utc).isoformat(), **fields})
