from __future__ import annotations

from pathlib import Path


def test_required_package_paths_exist() -> None:
    root = Path(__file__).resolve().parents[1]
    required = [
        "src/filestate/hashing.py",
        "src/filestate/config.py",
        "src/filestate/discovery.py",
        "src/filestate/detector.py",
        "src/filestate/state/__init__.py",
        "src/filestate/proof/__init__.py",
        "src/filestate/logging/__init__.py",
    ]
    for rel in required:
        assert (root / rel).exists(), rel
