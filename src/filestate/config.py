"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from filestate.hashing import SUPPORTED_HASH_ALGORITHMS

MAX_WORKERS_CAP = 64

DEFAULT_DETECTOR_ID = "default"
DEFAULT_STATE_FILE = ".filestate/change-state.json"
DEFAULT_EVENT_LOG_FILE = ".filestate/events.jsonl"
DEFAULT_WATCH_PATTERNS = ("**/*",)
DEFAULT_IGNORE_PATTERNS = (
    "**/node_modules/**",
    "**/.git/**",
    "**/dist/**",
    "**/build/**",
    "**/.filestate/**",
)
DEFAULT_HASH_ALGORITHM = "sha256"
DEFAULT_MAX_WORKERS = 8

CONFIG_FILE_NAME = "filestate.toml"


@dataclass(slots=True, frozen=True)
class TrackerConfig:
    """Fully merged settings for one tracker instance."""

    project_root: Path
    detector_id: str
    state_file: str
    event_log_file: str | None
    watch_patterns: tuple[str, ...]
    ignore_patterns: tuple[str, ...]
    normalize_line_endings: bool
    hash_algorithm: str
    max_workers: int
    project_root_label: str

    @property
    def state_path(self) -> Path:
        """Absolute location of the persisted snapshot."""
        return (self.project_root / self.state_file).resolve()

    @property
    def event_log_path(self) -> Path | None:
        """Absolute location of the JSONL event log, if enabled."""
        if self.event_log_file is None:
            return None
        return (self.project_root / self.event_log_file).resolve()

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot."""
        return {
            "project_root_label": self.project_root_label,
            "detector_id": self.detector_id,
            "state_file": self.state_file,
            "event_log_file": self.event_log_file,
            "watch_patterns": list(self.watch_patterns),
            "ignore_patterns": list(self.ignore_patterns),
            "normalize_line_endings": self.normalize_line_endings,
            "hash_algorithm": self.hash_algorithm,
            "max_workers": self.max_workers,
        }


@dataclass(slots=True, frozen=True)
class ConfigOverrides:
    """Optional caller overrides applied at highest precedence."""

    state_file: str | None = None
    watch_patterns: tuple[str, ...] | None = None
    ignore_patterns: tuple[str, ...] | None = None
    normalize_line_endings: bool | None = None
    hash_algorithm: str | None = None
    max_workers: int | None = None
    project_root_label: str | None = None


def default_config(project_root: Path, detector_id: str = DEFAULT_DETECTOR_ID) -> TrackerConfig:
    """Build default config for a given project root."""
    resolved_root = project_root.resolve()
    return TrackerConfig(
        project_root=resolved_root,
        detector_id=detector_id,
        state_file=DEFAULT_STATE_FILE,
        event_log_file=DEFAULT_EVENT_LOG_FILE,
        watch_patterns=DEFAULT_WATCH_PATTERNS,
        ignore_patterns=DEFAULT_IGNORE_PATTERNS,
        normalize_line_endings=True,
        hash_algorithm=DEFAULT_HASH_ALGORITHM,
        max_workers=DEFAULT_MAX_WORKERS,
        project_root_label=resolved_root.name or "project",
    )


def load_config_file(project_root: Path) -> dict[str, object]:
    """Load optional filestate.toml from project root."""
    config_path = project_root / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{CONFIG_FILE_NAME} must contain a top-level table.")
    return payload


def _get_table(payload: dict[str, object], key: str, name: str | None = None) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{name or key}' must be a table.")
    return value


def _tuple_of_strings(value: object, section: str, field: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Config field '{section}.{field}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"Config field '{section}.{field}' must contain only strings.")
        output.append(item)
    return tuple(output)


def _apply_table(base: TrackerConfig, table: dict[str, object], section: str) -> TrackerConfig:
    """Apply one TOML table on top of an existing config."""
    state_file = base.state_file
    if "state_file" in table:
        state_file = _non_empty_string(table["state_file"], f"{section}.state_file")

    event_log_file = base.event_log_file
    if "event_log_file" in table:
        raw = table["event_log_file"]
        if raw is False or raw == "":
            event_log_file = None
        else:
            event_log_file = _non_empty_string(raw, f"{section}.event_log_file")

    watch_patterns = base.watch_patterns
    if "watch_patterns" in table:
        watch_patterns = _tuple_of_strings(table["watch_patterns"], section, "watch_patterns")
    ignore_patterns = base.ignore_patterns
    if "ignore_patterns" in table:
        ignore_patterns = _tuple_of_strings(table["ignore_patterns"], section, "ignore_patterns")

    normalize_line_endings = base.normalize_line_endings
    if "normalize_line_endings" in table:
        raw_normalize = table["normalize_line_endings"]
        if not isinstance(raw_normalize, bool):
            raise ValueError(f"Config field '{section}.normalize_line_endings' must be a boolean.")
        normalize_line_endings = raw_normalize

    hash_algorithm = base.hash_algorithm
    if "hash_algorithm" in table:
        hash_algorithm = _hash_algorithm(table["hash_algorithm"], f"{section}.hash_algorithm")

    max_workers = _optional_positive_int_with_cap(
        table.get("max_workers"),
        f"{section}.max_workers",
        base.max_workers,
        MAX_WORKERS_CAP,
    )

    project_root_label = base.project_root_label
    if "project_root_label" in table:
        project_root_label = _non_empty_string(
            table["project_root_label"], f"{section}.project_root_label"
        )

    return TrackerConfig(
        project_root=base.project_root,
        detector_id=base.detector_id,
        state_file=state_file,
        event_log_file=event_log_file,
        watch_patterns=watch_patterns,
        ignore_patterns=ignore_patterns,
        normalize_line_endings=normalize_line_endings,
        hash_algorithm=hash_algorithm,
        max_workers=max_workers,
        project_root_label=project_root_label,
    )


def merge_config(
    base: TrackerConfig, file_payload: dict[str, object], overrides: ConfigOverrides
) -> TrackerConfig:
    """Merge defaults, [tracker], [detectors.<id>], then caller overrides."""
    tracker_payload = _get_table(file_payload, "tracker")
    detectors_payload = _get_table(file_payload, "detectors")
    detector_payload = _get_table(
        detectors_payload, base.detector_id, name=f"detectors.{base.detector_id}"
    )

    merged = _apply_table(base, tracker_payload, "tracker")
    merged = _apply_table(merged, detector_payload, f"detectors.{base.detector_id}")
    return apply_overrides(merged, overrides)


def apply_overrides(config: TrackerConfig, overrides: ConfigOverrides) -> TrackerConfig:
    """Apply caller overrides at highest precedence."""
    max_workers = _optional_positive_int_with_cap(
        overrides.max_workers,
        "overrides.max_workers",
        config.max_workers,
        MAX_WORKERS_CAP,
    )
    hash_algorithm = config.hash_algorithm
    if overrides.hash_algorithm is not None:
        hash_algorithm = _hash_algorithm(overrides.hash_algorithm, "overrides.hash_algorithm")
    return TrackerConfig(
        project_root=config.project_root,
        detector_id=config.detector_id,
        state_file=overrides.state_file or config.state_file,
        event_log_file=config.event_log_file,
        watch_patterns=(
            overrides.watch_patterns
            if overrides.watch_patterns is not None
            else config.watch_patterns
        ),
        ignore_patterns=(
            overrides.ignore_patterns
            if overrides.ignore_patterns is not None
            else config.ignore_patterns
        ),
        normalize_line_endings=(
            overrides.normalize_line_endings
            if overrides.normalize_line_endings is not None
            else config.normalize_line_endings
        ),
        hash_algorithm=hash_algorithm,
        max_workers=max_workers,
        project_root_label=overrides.project_root_label or config.project_root_label,
    )


def load_effective_config(
    project_root: Path,
    detector_id: str = DEFAULT_DETECTOR_ID,
    overrides: ConfigOverrides | None = None,
) -> TrackerConfig:
    """Load effective config using merge order defaults -> config file -> overrides."""
    resolved_root = project_root.resolve()
    base = default_config(resolved_root, detector_id=detector_id)
    payload = load_config_file(resolved_root)
    return merge_config(base, payload, overrides or ConfigOverrides())


def _non_empty_string(value: object, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Config field '{name}' must be a non-empty string.")
    return value


def _hash_algorithm(value: object, name: str) -> str:
    if not isinstance(value, str) or value not in SUPPORTED_HASH_ALGORITHMS:
        supported = ", ".join(SUPPORTED_HASH_ALGORITHMS)
        raise ValueError(f"Config field '{name}' must be one of: {supported}.")
    return value


def _optional_positive_int_with_cap(
    value: object,
    name: str,
    default: int,
    cap: int | None,
) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Config field '{name}' must be a positive integer.")
    if cap is not None and value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value
