"""Structured JSONL detection event utilities."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path

FILE_UNREADABLE = "FILE_UNREADABLE"
STATE_LOAD_FAILED = "STATE_LOAD_FAILED"
STATE_SAVE_FAILED = "STATE_SAVE_FAILED"
PROOF_FORMAT_UNSUPPORTED = "PROOF_FORMAT_UNSUPPORTED"


@dataclass(slots=True, frozen=True)
class DetectionEvent:
    """Structured warning or error raised during one detection run."""

    timestamp: str
    detector_id: str
    level: str
    code: str
    message: str
    metadata: dict[str, object]


EventSink = Callable[[DetectionEvent], None]


def utc_timestamp() -> str:
    """Return an ISO-8601 UTC timestamp."""
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def make_event(
    detector_id: str,
    code: str,
    message: str,
    *,
    level: str = "warning",
    metadata: dict[str, object] | None = None,
) -> DetectionEvent:
    """Build an event stamped with the current UTC time."""
    return DetectionEvent(
        timestamp=utc_timestamp(),
        detector_id=detector_id,
        level=level,
        code=code,
        message=message,
        metadata=dict(sorted((metadata or {}).items())),
    )


class JsonlEventLogger:
    """Append-only JSONL event logger and bounded reader."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        """Return on-disk JSONL path."""
        return self._path

    def append(self, event: DetectionEvent) -> None:
        """Append an event as one JSON object per line."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(asdict(event), sort_keys=True))
            handle.write("\n")

    def read(self, since: str | None = None, limit: int = 50) -> list[dict[str, object]]:
        """Read recent events, optionally filtered by timestamp lower bound."""
        if limit < 1:
            return []
        entries: list[dict[str, object]] = []
        if not self._path.exists():
            return entries
        with self._path.open("r", encoding="utf-8") as handle:
            for line in handle:
                stripped = line.strip()
                if not stripped:
                    continue
                try:
                    record = json.loads(stripped)
                except json.JSONDecodeError:
                    continue
                if since is not None:
                    ts = record.get("timestamp")
                    if not isinstance(ts, str) or ts < since:
                        continue
                entries.append(record)
        if len(entries) <= limit:
            return entries
        return entries[-limit:]


class EventRecorder:
    """Collect events for one run and forward them to an optional logger."""

    def __init__(self, logger: JsonlEventLogger | None = None) -> None:
        self._logger = logger
        self._events: list[DetectionEvent] = []
        self._log_error: str | None = None

    def __call__(self, event: DetectionEvent) -> None:
        self._events.append(event)
        if self._logger is None:
            return
        try:
            self._logger.append(event)
        except OSError as exc:
            # The in-memory event still reaches the caller.
            self._log_error = f"Could not append to event log: {exc.strerror or exc}"

    @property
    def events(self) -> tuple[DetectionEvent, ...]:
        return tuple(self._events)

    @property
    def log_error(self) -> str | None:
        """Last event-log write failure, if any."""
        return self._log_error

    def warning_count(self) -> int:
        return sum(1 for event in self._events if event.level == "warning")
