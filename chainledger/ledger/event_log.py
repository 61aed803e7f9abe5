"""Append-only JSONL log of raw chain events used as replay input."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterable

import orjson


def ordering_key(raw: dict[str, Any]) -> tuple[int, int]:
    """(block number, log index) of a raw event envelope."""
    block = raw.get("block") or {}
    return (int(block.get("number", 0)), int(raw.get("logIndex", 0)))


class ChainEventLog:
    """Raw event envelopes, one JSON object per line, in sequencer order."""

    def __init__(self, events_file: str | Path) -> None:
        self.events_file = Path(events_file)
        self.events_file.parent.mkdir(parents=True, exist_ok=True)

    def append(self, raw: dict[str, Any]) -> None:
        """Append a single raw event."""
        with open(self.events_file, "ab") as handle:
            handle.write(orjson.dumps(raw) + b"\n")

    def iter_events(self, after: tuple[int, int] | None = None) -> Iterable[dict[str, Any]]:
        """Iterate raw events, optionally only those strictly after `after`."""
        if not self.events_file.exists():
            return iter(())

        def _iter() -> Iterable[dict[str, Any]]:
            with open(self.events_file, "rb") as handle:
                for line in handle:
                    if not line.strip():
                        continue
                    raw = orjson.loads(line)
                    if after is not None and ordering_key(raw) <= after:
                        continue
                    yield raw

        return _iter()

    def last_ordering_key(self) -> tuple[int, int] | None:
        """Ordering key of the final event, read from the file tail."""
        try:
            with open(self.events_file, "rb") as handle:
                handle.seek(0, os.SEEK_END)
                size = handle.tell()
                if size == 0:
                    return None
                offset = min(size, 4096)
                handle.seek(-offset, os.SEEK_END)
                chunk = handle.read(offset)
        except OSError:
            return None
        lines = [line for line in chunk.splitlines() if line.strip()]
        if not lines:
            return None
        return ordering_key(orjson.loads(lines[-1]))
