"""Aggregate-hash proof generation and verification."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from filestate.hashing import SUPPORTED_HASH_ALGORITHMS, Hasher
from filestate.logging import PROOF_FORMAT_UNSUPPORTED, EventSink, make_event, utc_timestamp
from filestate.proof.models import (
    PROOF_FORMAT_VERSION,
    SUPPORTED_PROOF_VERSIONS,
    Discrepancy,
    ProofConfig,
    ProofDocument,
    ProofFormatError,
    VerificationResult,
    proof_from_dict,
)
from filestate.state.models import FileRecord, StateSnapshot


def aggregate_hash(snapshot: StateSnapshot) -> str | None:
    """Order-independent digest of every per-file hash in ``snapshot``."""
    hasher = Hasher(
        algorithm=snapshot.hash_algorithm,
        normalize_line_endings=snapshot.normalize_line_endings,
    )
    return hasher.aggregate(record.content_hash for record in snapshot.files.values())


def generate_proof(
    snapshot: StateSnapshot,
    *,
    project_root_label: str,
    generated_at: str | None = None,
) -> ProofDocument:
    """Package ``snapshot`` and its aggregate hash into a portable proof."""
    files = {path: _portable(record) for path, record in sorted(snapshot.files.items())}
    return ProofDocument(
        format_version=PROOF_FORMAT_VERSION,
        detector_id=snapshot.detector_id,
        generated_at=generated_at or utc_timestamp(),
        project_root_label=project_root_label,
        config_snapshot=ProofConfig(
            watch_patterns=snapshot.watch_patterns,
            ignore_patterns=snapshot.ignore_patterns,
            hash_algorithm=snapshot.hash_algorithm,
            normalize_line_endings=snapshot.normalize_line_endings,
        ),
        snapshot_taken_at=snapshot.taken_at,
        file_count=len(files),
        files=MappingProxyType(files),
        aggregate_hash=aggregate_hash(snapshot),
    )


def verify_proof(
    proof: ProofDocument,
    current: StateSnapshot,
    *,
    emit: EventSink | None = None,
) -> VerificationResult:
    """Check ``proof`` against a freshly built snapshot.

    A matching aggregate hash short-circuits to ``verified``. Otherwise every
    file is compared and classified as missing, modified or added.
    """
    verified_at = utc_timestamp()
    problem = _compatibility_problem(proof, current)
    if problem is not None:
        if emit is not None:
            emit(
                make_event(
                    proof.detector_id,
                    PROOF_FORMAT_UNSUPPORTED,
                    problem,
                    metadata={
                        "format_version": proof.format_version,
                        "hash_algorithm": proof.config_snapshot.hash_algorithm,
                    },
                )
            )
        return VerificationResult(
            status="unverifiable",
            proof_timestamp=proof.generated_at,
            verified_at=verified_at,
            reason=problem,
        )

    if aggregate_hash(current) == proof.aggregate_hash:
        return VerificationResult(
            status="verified",
            proof_timestamp=proof.generated_at,
            verified_at=verified_at,
        )

    return VerificationResult(
        status="mismatch",
        proof_timestamp=proof.generated_at,
        verified_at=verified_at,
        discrepancies=find_discrepancies(proof.files, current.files),
    )


def verify_proof_payload(
    payload: object,
    current: StateSnapshot,
    *,
    emit: EventSink | None = None,
) -> VerificationResult:
    """Verify a serialized proof, reporting undecodable payloads as unverifiable."""
    try:
        proof = proof_from_dict(payload)
    except ProofFormatError as exc:
        if emit is not None:
            emit(
                make_event(
                    current.detector_id,
                    PROOF_FORMAT_UNSUPPORTED,
                    exc.reason,
                )
            )
        generated_at = payload.get("generatedAt") if isinstance(payload, dict) else None
        return VerificationResult(
            status="unverifiable",
            proof_timestamp=generated_at if isinstance(generated_at, str) else None,
            verified_at=utc_timestamp(),
            reason=exc.reason,
        )
    return verify_proof(proof, current, emit=emit)


def find_discrepancies(
    expected: Mapping[str, FileRecord],
    actual: Mapping[str, FileRecord],
) -> tuple[Discrepancy, ...]:
    """Three-way per-file comparison shared with snapshot diffing semantics."""
    output: list[Discrepancy] = []
    for path in sorted(expected):
        proof_record = expected[path]
        current_record = actual.get(path)
        if current_record is None:
            output.append(
                Discrepancy(
                    relative_path=path,
                    kind="missing",
                    expected_hash=proof_record.content_hash,
                    actual_hash=None,
                )
            )
            continue
        if current_record.content_hash != proof_record.content_hash:
            output.append(
                Discrepancy(
                    relative_path=path,
                    kind="modified",
                    expected_hash=proof_record.content_hash,
                    actual_hash=current_record.content_hash,
                )
            )
    for path in sorted(set(actual) - set(expected)):
        output.append(
            Discrepancy(
                relative_path=path,
                kind="added",
                expected_hash=None,
                actual_hash=actual[path].content_hash,
            )
        )
    return tuple(output)


def _compatibility_problem(proof: ProofDocument, current: StateSnapshot) -> str | None:
    if proof.format_version not in SUPPORTED_PROOF_VERSIONS:
        return f"Unsupported proof formatVersion {proof.format_version!r}."
    algorithm = proof.config_snapshot.hash_algorithm
    if algorithm not in SUPPORTED_HASH_ALGORITHMS:
        return f"Unsupported hash algorithm {algorithm!r}."
    if algorithm != current.hash_algorithm:
        return (
            f"Proof uses hash algorithm {algorithm!r} but the current snapshot "
            f"uses {current.hash_algorithm!r}."
        )
    if proof.config_snapshot.normalize_line_endings != current.normalize_line_endings:
        return "Proof and current snapshot use different line-ending normalization."
    return None


def _portable(record: FileRecord) -> FileRecord:
    return FileRecord(
        relative_path=record.relative_path,
        size=record.size,
        modified_at=record.modified_at,
        content_hash=record.content_hash,
    )
