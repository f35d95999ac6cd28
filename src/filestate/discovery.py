"""Deterministic file enumeration from watch/ignore glob patterns."""

from __future__ import annotations

import fnmatch
import os
from collections.abc import Iterable
from pathlib import Path


def enumerate_files(
    root: Path,
    watch_patterns: tuple[str, ...],
    ignore_patterns: tuple[str, ...],
    exclude_paths: Iterable[Path] = (),
) -> list[Path]:
    """Return sorted absolute paths under ``root`` matching the patterns.

    A file is kept when it matches at least one watch pattern and no ignore
    pattern. Symlinks are not followed. ``exclude_paths`` drops exact files,
    such as the tracker's own state file.
    """
    resolved_root = root.resolve()
    excluded = {Path(path).resolve() for path in exclude_paths}
    pruned_dir_names = _excluded_dir_names(ignore_patterns)
    output: list[Path] = []
    stack: list[Path] = [resolved_root]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                ordered_entries = sorted(entries, key=lambda item: item.name)
        except OSError:
            continue
        for entry in reversed(ordered_entries):
            full_path = Path(entry.path)
            relative = full_path.relative_to(resolved_root).as_posix()
            if entry.is_dir(follow_symlinks=False):
                if entry.name in pruned_dir_names and matches_any(f"{relative}/", ignore_patterns):
                    continue
                stack.append(full_path)
                continue
            if not entry.is_file(follow_symlinks=False):
                continue
            if full_path in excluded:
                continue
            if not matches_any(relative, watch_patterns):
                continue
            if matches_any(relative, ignore_patterns):
                continue
            output.append(full_path)
    output.sort()
    return output


def matches_any(relative_path: str, patterns: tuple[str, ...]) -> bool:
    """Return True when a relative POSIX path matches any glob pattern.

    Patterns use ``fnmatch`` rules, so ``*`` also matches ``/``: ``docs/*.md``
    matches ``docs/a/b.md`` as well as ``docs/b.md``. A leading ``/`` anchors
    a pattern to the root.
    """
    anchored = f"/{relative_path}"
    return any(
        fnmatch.fnmatchcase(relative_path, pattern) or fnmatch.fnmatchcase(anchored, pattern)
        for pattern in patterns
    )


def _excluded_dir_names(ignore_patterns: tuple[str, ...]) -> set[str]:
    """Extract directory-name prunes from **/name/** glob patterns."""
    output: set[str] = set()
    for pattern in ignore_patterns:
        if not pattern.startswith("**/") or not pattern.endswith("/**"):
            continue
        name = pattern[3:-3].strip("/")
        if not name:
            continue
        if any(char in name for char in "*?[]{}"):
            continue
        output.add(name)
    return output
