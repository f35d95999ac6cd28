"""Change detection orchestration for one tracker instance."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from filestate.config import TrackerConfig
from filestate.discovery import enumerate_files
from filestate.logging import (
    STATE_SAVE_FAILED,
    DetectionEvent,
    EventRecorder,
    JsonlEventLogger,
    make_event,
)
from filestate.proof import (
    ProofDocument,
    VerificationResult,
    generate_proof,
    verify_proof,
    verify_proof_payload,
)
from filestate.state import (
    BlobStorage,
    ChangeRecord,
    ChangeSummary,
    FileBlobStorage,
    SnapshotStore,
    StateCommitError,
    StateSnapshot,
    build_snapshot,
    diff_snapshots,
    summarize_changes,
)


@dataclass(slots=True, frozen=True)
class DetectionResult:
    """Outcome of one detection run.

    ``committed`` is False when the new snapshot was not saved, either because
    saving was not requested or because the write failed (``commit_error``).
    ``event_log_error`` is set when events could not be appended to the JSONL
    log; they are still listed in ``warnings``.
    """

    has_changes: bool
    changes: tuple[ChangeRecord, ...]
    summary: ChangeSummary
    previous_timestamp: str | None
    current_timestamp: str | None
    current: StateSnapshot
    warnings: tuple[DetectionEvent, ...]
    committed: bool
    commit_error: str | None = None
    event_log_error: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "has_changes": self.has_changes,
            "changes": [change.to_dict() for change in self.changes],
            "counts": self.summary.counts(),
            "previous_timestamp": self.previous_timestamp,
            "current_timestamp": self.current_timestamp,
            "warnings": [event.message for event in self.warnings],
            "committed": self.committed,
            "commit_error": self.commit_error,
            "event_log_error": self.event_log_error,
        }


class ChangeDetector:
    """Runs load -> build -> diff -> save for one configured tracker.

    The detector holds configuration only; every run builds fresh snapshot
    values and passes them explicitly between components.
    """

    def __init__(
        self,
        config: TrackerConfig,
        storage: BlobStorage | None = None,
        event_logger: JsonlEventLogger | None = None,
    ) -> None:
        self._config = config
        self._storage = storage if storage is not None else FileBlobStorage(config.state_path)
        event_log_path = config.event_log_path
        if event_logger is None and event_log_path is not None:
            event_logger = JsonlEventLogger(event_log_path)
        self._event_logger = event_logger

    @property
    def config(self) -> TrackerConfig:
        return self._config

    def scan_files(self) -> list[Path]:
        """Enumerate tracked files, leaving out the tracker's own files."""
        own_files = [self._config.state_path]
        if self._config.event_log_path is not None:
            own_files.append(self._config.event_log_path)
        return enumerate_files(
            self._config.project_root,
            self._config.watch_patterns,
            self._config.ignore_patterns,
            exclude_paths=own_files,
        )

    def build_current_state(
        self,
        paths: Iterable[Path | str] | None = None,
        recorder: EventRecorder | None = None,
    ) -> StateSnapshot:
        """Build a snapshot from ``paths`` or from the configured patterns."""
        files = self.scan_files() if paths is None else list(paths)
        return build_snapshot(
            files,
            self._config.project_root,
            self._config,
            emit=recorder or self._new_recorder(),
        )

    def load_previous_state(self, recorder: EventRecorder | None = None) -> StateSnapshot:
        store = SnapshotStore(self._storage, self._config, emit=recorder or self._new_recorder())
        return store.load()

    def detect_changes(
        self,
        paths: Iterable[Path | str] | None = None,
        save_state: bool = True,
    ) -> DetectionResult:
        """Compare the current file set with the last committed snapshot."""
        recorder = self._new_recorder()
        store = SnapshotStore(self._storage, self._config, emit=recorder)
        previous = store.load()
        current = self.build_current_state(paths, recorder=recorder)
        changes = diff_snapshots(previous, current)

        committed = False
        commit_error: str | None = None
        if save_state:
            try:
                store.save(current)
                committed = True
            except StateCommitError as exc:
                commit_error = exc.reason
                recorder(
                    make_event(
                        self._config.detector_id,
                        STATE_SAVE_FAILED,
                        exc.reason,
                        level="error",
                        metadata={"hint": exc.hint},
                    )
                )

        return DetectionResult(
            has_changes=bool(changes),
            changes=tuple(changes),
            summary=summarize_changes(changes),
            previous_timestamp=previous.taken_at,
            current_timestamp=current.taken_at,
            current=current,
            warnings=recorder.events,
            committed=committed,
            commit_error=commit_error,
            event_log_error=recorder.log_error,
        )

    def generate_proof(self, snapshot: StateSnapshot | None = None) -> ProofDocument:
        """Proof of ``snapshot``, or of a freshly built snapshot when omitted."""
        current = snapshot if snapshot is not None else self.build_current_state()
        return generate_proof(current, project_root_label=self._config.project_root_label)

    def verify_proof(
        self,
        proof: ProofDocument | dict[str, object],
        paths: Iterable[Path | str] | None = None,
    ) -> VerificationResult:
        """Verify ``proof`` against a freshly built snapshot."""
        recorder = self._new_recorder()
        current = self.build_current_state(paths, recorder=recorder)
        if isinstance(proof, ProofDocument):
            return verify_proof(proof, current, emit=recorder)
        return verify_proof_payload(proof, current, emit=recorder)

    def _new_recorder(self) -> EventRecorder:
        return EventRecorder(self._event_logger)
