"""Content hashing with optional line-ending normalization."""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from pathlib import Path

SUPPORTED_HASH_ALGORITHMS = ("sha256", "sha384", "sha512", "blake2b", "sha3_256")

_READ_CHUNK_BYTES = 1024 * 128


class Hasher:
    """Deterministic content hasher bound to one algorithm and normalization policy.

    Empty or absent content has no digest: ``hash_content`` returns None rather
    than hashing a placeholder, so "nothing to hash" stays representable.
    """

    def __init__(self, algorithm: str = "sha256", normalize_line_endings: bool = True) -> None:
        if algorithm not in SUPPORTED_HASH_ALGORITHMS:
            raise ValueError(
                f"Unsupported hash algorithm '{algorithm}'; "
                f"expected one of: {', '.join(SUPPORTED_HASH_ALGORITHMS)}."
            )
        self._algorithm = algorithm
        self._normalize_line_endings = normalize_line_endings

    @property
    def algorithm(self) -> str:
        return self._algorithm

    @property
    def normalize_line_endings(self) -> bool:
        return self._normalize_line_endings

    def hash_content(self, content: bytes | str | None) -> str | None:
        """Hash content after normalization, or return None when there is none."""
        if not content:
            return None
        data = content.encode("utf-8") if isinstance(content, str) else content
        if self._normalize_line_endings:
            data = data.replace(b"\r\n", b"\n")
        return hashlib.new(self._algorithm, data).hexdigest()

    def hash_file(self, path: Path) -> str | None:
        """Read and hash one file; OSError propagates to the caller."""
        return self.hash_content(path.read_bytes())

    def hash_binary_file(self, path: Path) -> str | None:
        """Hash raw bytes in chunked reads, skipping normalization."""
        digest = hashlib.new(self._algorithm)
        seen_bytes = False
        with path.open("rb") as handle:
            while True:
                chunk = handle.read(_READ_CHUNK_BYTES)
                if not chunk:
                    break
                seen_bytes = True
                digest.update(chunk)
        if not seen_bytes:
            return None
        return digest.hexdigest()

    def aggregate(self, hashes: Iterable[str | None]) -> str | None:
        """Digest of the sorted, concatenated hashes; None entries are skipped."""
        present = sorted(value for value in hashes if value is not None)
        return self.hash_content("".join(present))
