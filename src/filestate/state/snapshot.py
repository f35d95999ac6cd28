"""Snapshot construction from a resolved file list."""

from __future__ import annotations

import concurrent.futures
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from types import MappingProxyType

from filestate.config import TrackerConfig
from filestate.hashing import Hasher
from filestate.logging import FILE_UNREADABLE, EventSink, make_event, utc_timestamp
from filestate.state.models import FileRecord, StateSnapshot


@dataclass(slots=True, frozen=True)
class _ReadFailure:
    """A path that could not be turned into a record."""

    relative_path: str
    reason: str


def empty_snapshot(config: TrackerConfig) -> StateSnapshot:
    """Well-defined snapshot with no files, used for first runs and unreadable state."""
    return StateSnapshot(
        taken_at=None,
        detector_id=config.detector_id,
        files=MappingProxyType({}),
        watch_patterns=config.watch_patterns,
        ignore_patterns=config.ignore_patterns,
        hash_algorithm=config.hash_algorithm,
        normalize_line_endings=config.normalize_line_endings,
    )


def relative_posix_path(root: Path, full_path: Path) -> str:
    """Return the forward-slash path of ``full_path`` under ``root``.

    Raises ValueError when the path is not located under the root.
    """
    return full_path.relative_to(root).as_posix()


def build_file_record(root: Path, full_path: Path, hasher: Hasher) -> FileRecord:
    """Build file metadata + content hash record; OSError propagates."""
    relative_path = relative_posix_path(root, full_path)
    stat = full_path.stat()
    content_hash = hasher.hash_file(full_path)
    modified_at = (
        datetime.fromtimestamp(stat.st_mtime, tz=UTC)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )
    return FileRecord(
        relative_path=relative_path,
        size=stat.st_size,
        modified_at=modified_at,
        content_hash=content_hash,
        absolute_path=str(full_path),
    )


def build_snapshot(
    paths: Iterable[Path | str],
    root: Path,
    config: TrackerConfig,
    *,
    emit: EventSink | None = None,
    taken_at: str | None = None,
) -> StateSnapshot:
    """Hash every path into an immutable snapshot keyed by relative path.

    Unreadable files are left out and reported through ``emit`` as
    FILE_UNREADABLE warnings. Hashing runs on at most ``config.max_workers``
    threads; the resulting map does not depend on completion order.
    """
    resolved_root = root.resolve()
    hasher = Hasher(
        algorithm=config.hash_algorithm,
        normalize_line_endings=config.normalize_line_endings,
    )
    candidates = sorted({Path(path).absolute() for path in paths})

    outcomes: dict[Path, FileRecord | _ReadFailure] = {}
    if config.max_workers == 1 or len(candidates) < 2:
        for candidate in candidates:
            outcomes[candidate] = _read_record(resolved_root, candidate, hasher)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=config.max_workers) as executor:
            futures = {
                executor.submit(_read_record, resolved_root, candidate, hasher): candidate
                for candidate in candidates
            }
            for future in concurrent.futures.as_completed(futures):
                outcomes[futures[future]] = future.result()

    files: dict[str, FileRecord] = {}
    for candidate in candidates:
        outcome = outcomes[candidate]
        if isinstance(outcome, _ReadFailure):
            if emit is not None:
                emit(
                    make_event(
                        config.detector_id,
                        FILE_UNREADABLE,
                        f"Skipped unreadable file: {outcome.relative_path}",
                        metadata={"path": outcome.relative_path, "reason": outcome.reason},
                    )
                )
            continue
        files[outcome.relative_path] = outcome

    return StateSnapshot(
        taken_at=taken_at or utc_timestamp(),
        detector_id=config.detector_id,
        files=MappingProxyType(dict(sorted(files.items()))),
        watch_patterns=config.watch_patterns,
        ignore_patterns=config.ignore_patterns,
        hash_algorithm=config.hash_algorithm,
        normalize_line_endings=config.normalize_line_endings,
    )


def _read_record(root: Path, full_path: Path, hasher: Hasher) -> FileRecord | _ReadFailure:
    try:
        return build_file_record(root, _resolve_under_root(root, full_path), hasher)
    except ValueError:
        return _ReadFailure(relative_path=full_path.name, reason="outside_root")
    except FileNotFoundError:
        return _ReadFailure(relative_path=_display_path(root, full_path), reason="not_found")
    except PermissionError:
        return _ReadFailure(
            relative_path=_display_path(root, full_path), reason="permission_denied"
        )
    except IsADirectoryError:
        return _ReadFailure(relative_path=_display_path(root, full_path), reason="not_a_file")
    except OSError as exc:
        return _ReadFailure(
            relative_path=_display_path(root, full_path), reason=type(exc).__name__
        )


def _resolve_under_root(root: Path, full_path: Path) -> Path:
    """Keep the caller's path when it already sits under root, else try resolving links."""
    if full_path.is_relative_to(root):
        return full_path
    return full_path.resolve()


def _display_path(root: Path, full_path: Path) -> str:
    if full_path.is_relative_to(root):
        return relative_posix_path(root, full_path)
    return full_path.name
