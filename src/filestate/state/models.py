"""Typed models for tracked file state."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Final, Literal


@dataclass(slots=True, frozen=True)
class FileRecord:
    """Represents one tracked file.

    ``absolute_path`` is only known while a snapshot is being built; it is left
    out of equality, persisted state and proofs.
    """

    relative_path: str
    size: int
    modified_at: str
    content_hash: str | None
    absolute_path: str | None = field(default=None, compare=False, repr=False)

    def to_dict(self) -> dict[str, object]:
        return {
            "relativePath": self.relative_path,
            "size": self.size,
            "modifiedAt": self.modified_at,
            "contentHash": self.content_hash,
        }


@dataclass(slots=True, frozen=True)
class StateSnapshot:
    """Immutable point-in-time view of a file set."""

    taken_at: str | None
    detector_id: str
    files: Mapping[str, FileRecord]
    watch_patterns: tuple[str, ...]
    ignore_patterns: tuple[str, ...]
    hash_algorithm: str
    normalize_line_endings: bool

    @property
    def file_count(self) -> int:
        return len(self.files)

    def content_hashes(self) -> list[str | None]:
        """Per-file hashes in path order."""
        return [self.files[path].content_hash for path in sorted(self.files)]


ChangeType = Literal["added", "modified", "deleted"]

ADDED: Final = "added"
MODIFIED: Final = "modified"
DELETED: Final = "deleted"


@dataclass(slots=True, frozen=True)
class ChangeRecord:
    """One difference between two snapshots."""

    change_type: ChangeType
    relative_path: str
    current: FileRecord | None
    previous: FileRecord | None
    detected_at: str

    def to_dict(self) -> dict[str, object]:
        return {
            "type": self.change_type,
            "relativePath": self.relative_path,
            "current": self.current.to_dict() if self.current is not None else None,
            "previous": self.previous.to_dict() if self.previous is not None else None,
            "detectedAt": self.detected_at,
        }


@dataclass(slots=True, frozen=True)
class ChangeSummary:
    """Changes partitioned by type."""

    added: tuple[ChangeRecord, ...]
    modified: tuple[ChangeRecord, ...]
    deleted: tuple[ChangeRecord, ...]

    def counts(self) -> dict[str, int]:
        return {
            "added": len(self.added),
            "modified": len(self.modified),
            "deleted": len(self.deleted),
            "total": len(self.added) + len(self.modified) + len(self.deleted),
        }
