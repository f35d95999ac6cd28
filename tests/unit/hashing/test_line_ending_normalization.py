from __future__ import annotations

from filestate.hashing import Hasher


def test_crlf_and_lf_hash_identically_when_normalizing() -> None:
    hasher = Hasher(normalize_line_endings=True)
    assert hasher.hash_content(b"one\r\ntwo\r\n") == hasher.hash_content(b"one\ntwo\n")


def test_crlf_and_lf_differ_without_normalization() -> None:
    hasher = Hasher(normalize_line_endings=False)
    assert hasher.hash_content(b"one\r\ntwo\r\n") != hasher.hash_content(b"one\ntwo\n")


def test_lone_carriage_returns_are_preserved() -> None:
    hasher = Hasher(normalize_line_endings=True)
    assert hasher.hash_content(b"one\rtwo") != hasher.hash_content(b"one\ntwo")


def test_normalization_is_idempotent() -> None:
    hasher = Hasher(normalize_line_endings=True)
    once = b"a\r\nb\r\n".replace(b"\r\n", b"\n")
    assert hasher.hash_content(once) == hasher.hash_content(b"a\r\nb\r\n")
