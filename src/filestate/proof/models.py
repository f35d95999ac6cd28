"""Proof document and verification result models."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Final, Literal

from filestate.state.models import FileRecord
from filestate.state.store import StateFormatError, records_from_dict

PROOF_FORMAT_VERSION: Final = "1.0.0"
PROOF_TYPE: Final = "file-state-proof"
SUPPORTED_PROOF_VERSIONS: Final = (PROOF_FORMAT_VERSION,)

DiscrepancyKind = Literal["missing", "modified", "added"]
VerificationStatus = Literal["verified", "mismatch", "unverifiable"]


class ProofFormatError(Exception):
    """Raised when a proof payload cannot be interpreted."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass(slots=True, frozen=True)
class ProofConfig:
    """Settings in effect when the proof was generated."""

    watch_patterns: tuple[str, ...]
    ignore_patterns: tuple[str, ...]
    hash_algorithm: str
    normalize_line_endings: bool


@dataclass(slots=True, frozen=True)
class ProofDocument:
    """Portable claim about the content of one snapshot."""

    format_version: str
    detector_id: str
    generated_at: str
    project_root_label: str
    config_snapshot: ProofConfig
    snapshot_taken_at: str | None
    file_count: int
    files: Mapping[str, FileRecord]
    aggregate_hash: str | None

    def to_dict(self) -> dict[str, object]:
        return {
            "formatVersion": self.format_version,
            "type": PROOF_TYPE,
            "detectorId": self.detector_id,
            "generatedAt": self.generated_at,
            "projectRootLabel": self.project_root_label,
            "configSnapshot": {
                "watchPatterns": list(self.config_snapshot.watch_patterns),
                "ignorePatterns": list(self.config_snapshot.ignore_patterns),
                "hashAlgorithm": self.config_snapshot.hash_algorithm,
                "normalizeLineEndings": self.config_snapshot.normalize_line_endings,
            },
            "snapshotTakenAt": self.snapshot_taken_at,
            "fileCount": self.file_count,
            "files": {path: record.to_dict() for path, record in sorted(self.files.items())},
            "aggregateHash": self.aggregate_hash,
        }


@dataclass(slots=True, frozen=True)
class Discrepancy:
    """One per-file difference between a proof and a current snapshot."""

    relative_path: str
    kind: DiscrepancyKind
    expected_hash: str | None
    actual_hash: str | None

    def to_dict(self) -> dict[str, object]:
        return {
            "path": self.relative_path,
            "type": self.kind,
            "expected": self.expected_hash,
            "actual": self.actual_hash,
        }


@dataclass(slots=True, frozen=True)
class VerificationResult:
    """Outcome of checking a proof against a current snapshot.

    ``unverifiable`` means the proof could not be evaluated at all and is not
    evidence of tampering.
    """

    status: VerificationStatus
    proof_timestamp: str | None
    verified_at: str
    discrepancies: tuple[Discrepancy, ...] = ()
    reason: str | None = None

    @property
    def verified(self) -> bool:
        return self.status == "verified"

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status,
            "verified": self.verified,
            "proofTimestamp": self.proof_timestamp,
            "verifiedAt": self.verified_at,
            "discrepancies": [item.to_dict() for item in self.discrepancies],
            "reason": self.reason,
        }


def proof_from_dict(payload: object) -> ProofDocument:
    """Decode a serialized proof; raise ProofFormatError on anything unexpected."""
    if not isinstance(payload, dict):
        raise ProofFormatError("Proof must be a JSON object.")
    if payload.get("type") != PROOF_TYPE:
        raise ProofFormatError(f"Proof type must be '{PROOF_TYPE}'.")
    version = payload.get("formatVersion")
    if version not in SUPPORTED_PROOF_VERSIONS:
        raise ProofFormatError(f"Unsupported proof formatVersion {version!r}.")

    config = payload.get("configSnapshot")
    if not isinstance(config, dict):
        raise ProofFormatError("Field 'configSnapshot' must be an object.")
    hash_algorithm = config.get("hashAlgorithm")
    normalize = config.get("normalizeLineEndings")
    if not isinstance(hash_algorithm, str):
        raise ProofFormatError("Field 'configSnapshot.hashAlgorithm' must be a string.")
    if not isinstance(normalize, bool):
        raise ProofFormatError("Field 'configSnapshot.normalizeLineEndings' must be a boolean.")

    detector_id = payload.get("detectorId")
    generated_at = payload.get("generatedAt")
    label = payload.get("projectRootLabel")
    taken_at = payload.get("snapshotTakenAt")
    aggregate = payload.get("aggregateHash")
    for name, value in (
        ("detectorId", detector_id),
        ("generatedAt", generated_at),
        ("projectRootLabel", label),
    ):
        if not isinstance(value, str):
            raise ProofFormatError(f"Field '{name}' must be a string.")
    if taken_at is not None and not isinstance(taken_at, str):
        raise ProofFormatError("Field 'snapshotTakenAt' must be a string.")
    if aggregate is not None and not isinstance(aggregate, str):
        raise ProofFormatError("Field 'aggregateHash' must be a string.")

    try:
        files = records_from_dict(payload.get("files"))
    except StateFormatError as exc:
        raise ProofFormatError(exc.reason) from exc
    file_count = payload.get("fileCount")
    if file_count != len(files):
        raise ProofFormatError("Field 'fileCount' does not match the listed files.")

    return ProofDocument(
        format_version=version,
        detector_id=detector_id,
        generated_at=generated_at,
        project_root_label=label,
        config_snapshot=ProofConfig(
            watch_patterns=_string_tuple(config.get("watchPatterns"), "watchPatterns"),
            ignore_patterns=_string_tuple(config.get("ignorePatterns"), "ignorePatterns"),
            hash_algorithm=hash_algorithm,
            normalize_line_endings=normalize,
        ),
        snapshot_taken_at=taken_at,
        file_count=len(files),
        files=MappingProxyType(files),
        aggregate_hash=aggregate,
    )


def _string_tuple(value: object, field: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ProofFormatError(f"Field 'configSnapshot.{field}' must be a list of strings.")
    return tuple(value)
