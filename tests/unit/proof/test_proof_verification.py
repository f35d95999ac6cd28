from __future__ import annotations

from types import MappingProxyType

import pytest

from filestate.logging import PROOF_FORMAT_UNSUPPORTED, EventRecorder
from filestate.proof import (
    ProofFormatError,
    generate_proof,
    proof_from_dict,
    verify_proof,
    verify_proof_payload,
)
from filestate.state import FileRecord, StateSnapshot


def _snapshot(
    hashes: dict[str, str | None],
    hash_algorithm: str = "sha256",
    normalize_line_endings: bool = True,
) -> StateSnapshot:
    return StateSnapshot(
        taken_at="2026-03-01T00:00:00.000Z",
        detector_id="rules",
        files=MappingProxyType(
            {
                path: FileRecord(
                    relative_path=path,
                    size=1,
                    modified_at="2026-03-01T00:00:00.000Z",
                    content_hash=content_hash,
                )
                for path, content_hash in hashes.items()
            }
        ),
        watch_patterns=("**/*",),
        ignore_patterns=(),
        hash_algorithm=hash_algorithm,
        normalize_line_endings=normalize_line_endings,
    )


def test_proof_round_trip_verifies() -> None:
    snapshot = _snapshot({"a.md": "h1", "b.md": "h2", "c.md": None})

    result = verify_proof(generate_proof(snapshot, project_root_label="p"), snapshot)

    assert result.verified is True
    assert result.status == "verified"
    assert result.discrepancies == ()


def test_empty_snapshot_round_trip_verifies() -> None:
    snapshot = _snapshot({})
    assert verify_proof(generate_proof(snapshot, project_root_label="p"), snapshot).verified


def test_single_tampered_file_yields_one_modified_discrepancy() -> None:
    original = _snapshot({"a.md": "h1", "b.md": "h2", "c.md": "h3"})
    tampered = _snapshot({"a.md": "h1", "b.md": "evil", "c.md": "h3"})

    result = verify_proof(generate_proof(original, project_root_label="p"), tampered)

    assert result.verified is False
    assert result.status == "mismatch"
    assert len(result.discrepancies) == 1
    discrepancy = result.discrepancies[0]
    assert discrepancy.relative_path == "b.md"
    assert discrepancy.kind == "modified"
    assert discrepancy.expected_hash == "h2"
    assert discrepancy.actual_hash == "evil"


def test_missing_and_added_files_are_classified() -> None:
    original = _snapshot({"keep.md": "k", "gone.md": "g"})
    current = _snapshot({"keep.md": "k", "new.md": "n"})

    result = verify_proof(generate_proof(original, project_root_label="p"), current)

    kinds = {(item.kind, item.relative_path) for item in result.discrepancies}
    assert kinds == {("missing", "gone.md"), ("added", "new.md")}


def test_file_that_lost_its_hash_is_reported_as_modified() -> None:
    original = _snapshot({"a.md": "h1", "b.md": "h2"})
    current = _snapshot({"a.md": "h1", "b.md": None})

    result = verify_proof(generate_proof(original, project_root_label="p"), current)

    assert [(item.kind, item.actual_hash) for item in result.discrepancies] == [("modified", None)]


def test_unknown_format_version_is_unverifiable_not_failed() -> None:
    snapshot = _snapshot({"a.md": "h1"})
    payload = generate_proof(snapshot, project_root_label="p").to_dict()
    payload["formatVersion"] = "9.9.9"
    recorder = EventRecorder()

    result = verify_proof_payload(payload, snapshot, emit=recorder)

    assert result.status == "unverifiable"
    assert result.verified is False
    assert result.discrepancies == ()
    assert result.reason is not None and "9.9.9" in result.reason
    assert [event.code for event in recorder.events] == [PROOF_FORMAT_UNSUPPORTED]


def test_unsupported_hash_algorithm_is_unverifiable() -> None:
    snapshot = _snapshot({"a.md": "h1"})
    payload = generate_proof(snapshot, project_root_label="p").to_dict()
    payload["configSnapshot"]["hashAlgorithm"] = "crc32"

    result = verify_proof_payload(payload, snapshot)

    assert result.status == "unverifiable"
    assert result.reason is not None and "crc32" in result.reason


def test_algorithm_mismatch_with_current_snapshot_is_unverifiable() -> None:
    proof = generate_proof(_snapshot({"a.md": "h1"}), project_root_label="p")

    result = verify_proof(proof, _snapshot({"a.md": "h1"}, hash_algorithm="sha512"))

    assert result.status == "unverifiable"


def test_normalization_mismatch_is_unverifiable() -> None:
    proof = generate_proof(_snapshot({"a.md": "h1"}), project_root_label="p")

    result = verify_proof(proof, _snapshot({"a.md": "h1"}, normalize_line_endings=False))

    assert result.status == "unverifiable"


def test_payload_that_is_not_a_proof_is_unverifiable() -> None:
    result = verify_proof_payload({"hello": "world"}, _snapshot({}))
    assert result.status == "unverifiable"
    assert result.proof_timestamp is None


def test_proof_from_dict_rejects_inconsistent_file_count() -> None:
    payload = generate_proof(_snapshot({"a.md": "h1"}), project_root_label="p").to_dict()
    payload["fileCount"] = 5

    with pytest.raises(ProofFormatError, match="fileCount"):
        proof_from_dict(payload)


def test_verification_result_serializes() -> None:
    original = _snapshot({"a.md": "h1"})
    result = verify_proof(generate_proof(original, project_root_label="p"), _snapshot({}))

    payload = result.to_dict()

    assert payload["status"] == "mismatch"
    assert payload["verified"] is False
    assert payload["discrepancies"] == [
        {"path": "a.md", "type": "missing", "expected": "h1", "actual": None}
    ]
