from __future__ import annotations

import hashlib
import json
from types import MappingProxyType

from filestate.proof import PROOF_FORMAT_VERSION, PROOF_TYPE, generate_proof, proof_from_dict
from filestate.state import FileRecord, StateSnapshot


def _snapshot(hashes: dict[str, str | None], detector_id: str = "rules") -> StateSnapshot:
    return StateSnapshot(
        taken_at="2026-03-01T00:00:00.000Z",
        detector_id=detector_id,
        files=MappingProxyType(
            {
                path: FileRecord(
                    relative_path=path,
                    size=4,
                    modified_at="2026-03-01T00:00:00.000Z",
                    content_hash=content_hash,
                    absolute_path=f"/home/someone/project/{path}",
                )
                for path, content_hash in hashes.items()
            }
        ),
        watch_patterns=("docs/**",),
        ignore_patterns=("**/.git/**",),
        hash_algorithm="sha256",
        normalize_line_endings=True,
    )


def test_aggregate_hash_is_digest_of_sorted_concatenated_hashes() -> None:
    proof = generate_proof(
        _snapshot({"b.md": "bbbb", "a.md": "dddd", "c.md": "aaaa"}),
        project_root_label="handbook",
    )
    assert proof.aggregate_hash == hashlib.sha256(b"aaaabbbbdddd").hexdigest()


def test_aggregate_hash_ignores_paths_and_timestamps() -> None:
    first = generate_proof(_snapshot({"a.md": "h1", "b.md": "h2"}), project_root_label="x")
    renamed = generate_proof(_snapshot({"z.md": "h2", "y.md": "h1"}), project_root_label="y")
    assert first.aggregate_hash == renamed.aggregate_hash


def test_missing_hashes_are_listed_but_not_aggregated() -> None:
    with_gap = generate_proof(_snapshot({"a.md": "h1", "empty.md": None}), project_root_label="p")
    without = generate_proof(_snapshot({"a.md": "h1"}), project_root_label="p")

    assert with_gap.aggregate_hash == without.aggregate_hash
    assert with_gap.file_count == 2
    assert with_gap.files["empty.md"].content_hash is None


def test_empty_snapshot_has_no_aggregate_hash() -> None:
    proof = generate_proof(_snapshot({}), project_root_label="p")
    assert proof.aggregate_hash is None
    assert proof.file_count == 0


def test_proof_document_is_portable() -> None:
    proof = generate_proof(
        _snapshot({"a.md": "h1"}),
        project_root_label="handbook",
        generated_at="2026-03-02T00:00:00.000Z",
    )
    payload = proof.to_dict()
    text = json.dumps(payload, sort_keys=True)

    assert "/home/someone" not in text
    assert payload["formatVersion"] == PROOF_FORMAT_VERSION
    assert payload["type"] == PROOF_TYPE
    assert payload["detectorId"] == "rules"
    assert payload["generatedAt"] == "2026-03-02T00:00:00.000Z"
    assert payload["projectRootLabel"] == "handbook"
    assert payload["configSnapshot"] == {
        "watchPatterns": ["docs/**"],
        "ignorePatterns": ["**/.git/**"],
        "hashAlgorithm": "sha256",
        "normalizeLineEndings": True,
    }
    assert payload["fileCount"] == 1
    assert proof.files["a.md"].absolute_path is None


def test_serialized_proof_decodes_to_equal_document() -> None:
    proof = generate_proof(_snapshot({"a.md": "h1", "b.md": None}), project_root_label="p")
    decoded = proof_from_dict(json.loads(json.dumps(proof.to_dict())))
    assert decoded == proof
