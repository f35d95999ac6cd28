from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from filestate.hashing import Hasher


def test_hash_is_stable_across_calls_and_instances() -> None:
    content = b"alpha\nbeta\n"
    first = Hasher().hash_content(content)
    second = Hasher().hash_content(content)

    assert first == second
    assert first == hashlib.sha256(content).hexdigest()


def test_text_and_bytes_hash_identically() -> None:
    hasher = Hasher()
    assert hasher.hash_content("café\n") == hasher.hash_content("café\n".encode("utf-8"))


def test_absent_and_empty_content_have_no_digest() -> None:
    hasher = Hasher()
    assert hasher.hash_content(None) is None
    assert hasher.hash_content(b"") is None
    assert hasher.hash_content("") is None


def test_algorithm_is_recorded_and_changes_digest() -> None:
    sha256 = Hasher(algorithm="sha256")
    sha512 = Hasher(algorithm="sha512")

    assert sha256.algorithm == "sha256"
    assert sha512.algorithm == "sha512"
    assert sha256.hash_content(b"x") != sha512.hash_content(b"x")
    assert len(sha512.hash_content(b"x") or "") == 128


def test_unsupported_algorithm_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unsupported hash algorithm 'md5'"):
        Hasher(algorithm="md5")


def test_binary_file_hash_skips_normalization(tmp_path: Path) -> None:
    path = tmp_path / "blob.bin"
    path.write_bytes(b"a\r\nb\x00")
    hasher = Hasher(normalize_line_endings=True)

    assert hasher.hash_binary_file(path) == hashlib.sha256(b"a\r\nb\x00").hexdigest()
    assert hasher.hash_file(path) == hashlib.sha256(b"a\nb\x00").hexdigest()


def test_binary_file_hash_of_empty_file_is_absent(tmp_path: Path) -> None:
    path = tmp_path / "empty.bin"
    path.write_bytes(b"")
    assert Hasher().hash_binary_file(path) is None


def test_aggregate_ignores_order_and_missing_hashes() -> None:
    hasher = Hasher()
    forward = hasher.aggregate(["aa", "bb", None, "cc"])
    backward = hasher.aggregate(["cc", None, "bb", "aa"])

    assert forward == backward
    assert forward == hashlib.sha256(b"aabbcc").hexdigest()
    assert hasher.aggregate([None, None]) is None
    assert hasher.aggregate([]) is None
