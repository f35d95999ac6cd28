"""Persistent snapshot storage."""

from __future__ import annotations

import json
import os
from pathlib import Path
from types import MappingProxyType
from typing import Protocol

from filestate.config import TrackerConfig
from filestate.hashing import SUPPORTED_HASH_ALGORITHMS
from filestate.logging import STATE_LOAD_FAILED, EventSink, make_event
from filestate.state.models import FileRecord, StateSnapshot
from filestate.state.snapshot import empty_snapshot

STATE_FORMAT_VERSION = 1


class BlobStorage(Protocol):
    """Byte-level storage for a single state blob."""

    def read_bytes(self) -> bytes | None:
        """Return stored bytes, or None when nothing has been stored yet."""
        ...

    def write_bytes(self, data: bytes) -> None:
        """Replace stored bytes; readers never observe a partial write."""
        ...


class StateFormatError(Exception):
    """Raised when a stored snapshot payload cannot be decoded."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class StateCommitError(Exception):
    """Raised when a snapshot could not be durably written."""

    def __init__(self, reason: str, hint: str) -> None:
        super().__init__(reason)
        self.reason = reason
        self.hint = hint


class FileBlobStorage:
    """Blob storage backed by one file, written via temp file + rename."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def read_bytes(self) -> bytes | None:
        if not self._path.exists():
            return None
        return self._path.read_bytes()

    def write_bytes(self, data: bytes) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            with tmp.open("wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
        except OSError:
            if tmp.is_file():
                tmp.unlink()
            raise
        tmp.replace(self._path)


class SnapshotStore:
    """Load and persist the latest snapshot of one detector.

    One writer per state blob is assumed. Two runs saving to the same blob are
    not coordinated and the last ``save`` wins.
    """

    def __init__(
        self,
        storage: BlobStorage,
        config: TrackerConfig,
        emit: EventSink | None = None,
    ) -> None:
        self._storage = storage
        self._config = config
        self._emit = emit

    def load(self) -> StateSnapshot:
        """Return the stored snapshot, or an empty one when absent or unusable.

        A stored snapshot hashed with another algorithm or line-ending policy
        is unusable: its hashes cannot be compared with the current ones.
        """
        try:
            raw = self._storage.read_bytes()
        except OSError as exc:
            return self._degrade(f"Could not read state: {exc.strerror or exc}")
        if raw is None:
            return empty_snapshot(self._config)
        try:
            payload = json.loads(raw.decode("utf-8"))
            stored = snapshot_from_dict(payload)
        except UnicodeDecodeError:
            return self._degrade("Stored state is not valid UTF-8.")
        except json.JSONDecodeError as exc:
            return self._degrade(f"Stored state is not valid JSON: {exc.msg}")
        except StateFormatError as exc:
            return self._degrade(exc.reason)
        if (
            stored.hash_algorithm != self._config.hash_algorithm
            or stored.normalize_line_endings != self._config.normalize_line_endings
        ):
            return self._degrade(
                "Stored state was hashed with different settings "
                f"(hash_algorithm={stored.hash_algorithm!r}, "
                f"normalize_line_endings={stored.normalize_line_endings}); "
                "comparing from an empty baseline."
            )
        return stored

    def save(self, snapshot: StateSnapshot) -> None:
        """Write ``snapshot`` atomically; raise StateCommitError on failure."""
        data = json.dumps(snapshot_to_dict(snapshot), indent=2, sort_keys=True) + "\n"
        try:
            self._storage.write_bytes(data.encode("utf-8"))
        except OSError as exc:
            raise StateCommitError(
                reason=f"Could not save state: {exc.strerror or exc}",
                hint="The next run will compare against the previously committed state.",
            ) from exc

    def _degrade(self, message: str) -> StateSnapshot:
        if self._emit is not None:
            self._emit(
                make_event(
                    self._config.detector_id,
                    STATE_LOAD_FAILED,
                    message,
                    metadata={"fallback": "empty_snapshot"},
                )
            )
        return empty_snapshot(self._config)


def snapshot_to_dict(snapshot: StateSnapshot) -> dict[str, object]:
    """Serialize a snapshot without absolute paths."""
    return {
        "formatVersion": STATE_FORMAT_VERSION,
        "takenAt": snapshot.taken_at,
        "detectorId": snapshot.detector_id,
        "hashAlgorithm": snapshot.hash_algorithm,
        "normalizeLineEndings": snapshot.normalize_line_endings,
        "watchPatterns": list(snapshot.watch_patterns),
        "ignorePatterns": list(snapshot.ignore_patterns),
        "files": {path: record.to_dict() for path, record in sorted(snapshot.files.items())},
    }


def snapshot_from_dict(payload: object) -> StateSnapshot:
    """Decode a stored snapshot; raise StateFormatError on any structural problem."""
    if not isinstance(payload, dict):
        raise StateFormatError("Stored state must be a JSON object.")
    version = payload.get("formatVersion")
    if version != STATE_FORMAT_VERSION:
        raise StateFormatError(
            f"Unsupported state formatVersion {version!r}; expected {STATE_FORMAT_VERSION}."
        )
    taken_at = payload.get("takenAt")
    detector_id = payload.get("detectorId")
    hash_algorithm = payload.get("hashAlgorithm")
    normalize_line_endings = payload.get("normalizeLineEndings")
    if taken_at is not None and not isinstance(taken_at, str):
        raise StateFormatError("Field 'takenAt' must be a string.")
    if not isinstance(detector_id, str):
        raise StateFormatError("Field 'detectorId' must be a string.")
    if hash_algorithm not in SUPPORTED_HASH_ALGORITHMS:
        raise StateFormatError(f"Unsupported hashAlgorithm {hash_algorithm!r}.")
    if not isinstance(normalize_line_endings, bool):
        raise StateFormatError("Field 'normalizeLineEndings' must be a boolean.")
    return StateSnapshot(
        taken_at=taken_at,
        detector_id=detector_id,
        files=MappingProxyType(records_from_dict(payload.get("files"))),
        watch_patterns=_string_tuple(payload.get("watchPatterns"), "watchPatterns"),
        ignore_patterns=_string_tuple(payload.get("ignorePatterns"), "ignorePatterns"),
        hash_algorithm=hash_algorithm,
        normalize_line_endings=normalize_line_endings,
    )


def records_from_dict(payload: object) -> dict[str, FileRecord]:
    """Decode a ``files`` mapping shared by stored state and proofs."""
    if not isinstance(payload, dict):
        raise StateFormatError("Field 'files' must be an object.")
    output: dict[str, FileRecord] = {}
    for key in sorted(payload):
        obj = payload[key]
        if not isinstance(obj, dict):
            raise StateFormatError(f"File entry '{key}' must be an object.")
        relative_path = obj.get("relativePath")
        size = obj.get("size")
        modified_at = obj.get("modifiedAt")
        content_hash = obj.get("contentHash")
        if relative_path != key:
            raise StateFormatError(f"File entry '{key}' has mismatched relativePath.")
        if isinstance(size, bool) or not isinstance(size, int):
            raise StateFormatError(f"File entry '{key}' has invalid size.")
        if not isinstance(modified_at, str):
            raise StateFormatError(f"File entry '{key}' has invalid modifiedAt.")
        if content_hash is not None and not isinstance(content_hash, str):
            raise StateFormatError(f"File entry '{key}' has invalid contentHash.")
        output[key] = FileRecord(
            relative_path=key,
            size=size,
            modified_at=modified_at,
            content_hash=content_hash,
        )
    return output


def _string_tuple(value: object, field: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise StateFormatError(f"Field '{field}' must be a list of strings.")
    return tuple(value)
