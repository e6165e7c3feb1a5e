"""Runner settings, read from PYBIST_* environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

DEFAULT_MARKER = "#!"
DEFAULT_TRACKER_URL = "https://bugs.python.org/issue{bug_id}"
DEFAULT_FAIL_THRESHOLD = 2

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default

    raw = raw.strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False

    return default


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default

    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_list(name: str) -> Tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class BistConfig:
    marker: str = DEFAULT_MARKER
    tracker_url: str = DEFAULT_TRACKER_URL
    # a file is listed in failed_files when its hard failures exceed this
    fail_threshold: int = DEFAULT_FAIL_THRESHOLD
    shuffle_seed: Optional[int] = None
    features: Tuple[str, ...] = field(default_factory=tuple)
    log_level: str = "WARNING"
    import_module: bool = True

    @classmethod
    def from_env(cls) -> "BistConfig":
        marker = os.getenv("PYBIST_MARKER") or DEFAULT_MARKER
        if len(marker) != 2:
            marker = DEFAULT_MARKER

        threshold = _env_int("PYBIST_FAIL_THRESHOLD", DEFAULT_FAIL_THRESHOLD)

        return cls(
            marker=marker,
            tracker_url=os.getenv("PYBIST_TRACKER_URL") or DEFAULT_TRACKER_URL,
            fail_threshold=DEFAULT_FAIL_THRESHOLD if threshold is None else threshold,
            shuffle_seed=_env_int("PYBIST_SHUFFLE_SEED", None),
            features=_env_list("PYBIST_FEATURES"),
            log_level=(os.getenv("PYBIST_LOG_LEVEL") or "WARNING").upper(),
            import_module=_env_flag("PYBIST_IMPORT_MODULE", True),
        )

    def with_overrides(self, **changes: object) -> "BistConfig":
        return replace(self, **changes)

    def bug_url(self, bug_id: str) -> str:
        """Render a purely numeric bug id as a tracker link; others verbatim."""
        if bug_id and bug_id.isdigit():
            return self.tracker_url.format(bug_id=bug_id)

        return bug_id
