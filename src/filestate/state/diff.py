"""Deterministic snapshot comparison."""

from __future__ import annotations

from collections.abc import Iterable

from filestate.logging import utc_timestamp
from filestate.state.models import (
    ADDED,
    DELETED,
    MODIFIED,
    ChangeRecord,
    ChangeSummary,
    StateSnapshot,
)


def diff_snapshots(
    previous: StateSnapshot,
    current: StateSnapshot,
    *,
    detected_at: str | None = None,
) -> list[ChangeRecord]:
    """Classify every differing path as added, modified or deleted.

    Content hash equality is the only criterion. A missing hash compares equal
    only to another missing hash, so files that became readable or unreadable
    always surface as modified.
    """
    stamp = detected_at or utc_timestamp()
    previous_paths = set(previous.files.keys())
    current_paths = set(current.files.keys())

    changes: list[ChangeRecord] = []
    for path in sorted(current_paths - previous_paths):
        changes.append(
            ChangeRecord(
                change_type=ADDED,
                relative_path=path,
                current=current.files[path],
                previous=None,
                detected_at=stamp,
            )
        )
    for path in sorted(previous_paths & current_paths):
        before = previous.files[path]
        after = current.files[path]
        if before.content_hash == after.content_hash:
            continue
        changes.append(
            ChangeRecord(
                change_type=MODIFIED,
                relative_path=path,
                current=after,
                previous=before,
                detected_at=stamp,
            )
        )
    for path in sorted(previous_paths - current_paths):
        changes.append(
            ChangeRecord(
                change_type=DELETED,
                relative_path=path,
                current=None,
                previous=previous.files[path],
                detected_at=stamp,
            )
        )
    return changes


def summarize_changes(changes: Iterable[ChangeRecord]) -> ChangeSummary:
    """Partition changes by type."""
    ordered = list(changes)
    return ChangeSummary(
        added=tuple(change for change in ordered if change.change_type == ADDED),
        modified=tuple(change for change in ordered if change.change_type == MODIFIED),
        deleted=tuple(change for change in ordered if change.change_type == DELETED),
    )
