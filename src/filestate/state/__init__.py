"""Snapshot construction, persistence and comparison."""

from .diff import diff_snapshots, summarize_changes
from .models import (
    ADDED,
    DELETED,
    MODIFIED,
    ChangeRecord,
    ChangeSummary,
    ChangeType,
    FileRecord,
    StateSnapshot,
)
from .snapshot import build_file_record, build_snapshot, empty_snapshot, relative_posix_path
from .store import (
    STATE_FORMAT_VERSION,
    BlobStorage,
    FileBlobStorage,
    SnapshotStore,
    StateCommitError,
    StateFormatError,
    records_from_dict,
    snapshot_from_dict,
    snapshot_to_dict,
)

__all__ = [
    "ADDED",
    "BlobStorage",
    "ChangeRecord",
    "ChangeSummary",
    "ChangeType",
    "DELETED",
    "FileBlobStorage",
    "FileRecord",
    "MODIFIED",
    "STATE_FORMAT_VERSION",
    "SnapshotStore",
    "StateCommitError",
    "StateFormatError",
    "StateSnapshot",
    "build_file_record",
    "build_snapshot",
    "diff_snapshots",
    "empty_snapshot",
    "records_from_dict",
    "relative_posix_path",
    "snapshot_from_dict",
    "snapshot_to_dict",
    "summarize_changes",
]
