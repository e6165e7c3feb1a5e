"""Before/after comparison of open files and namespace names for one test file."""

from __future__ import annotations

import builtins
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional

import psutil
from loguru import logger

from .types import BistLeakWarning

# exec() and warnings.warn() add these to the globals they touch
SENTINELS = frozenset({"__builtins__", "__warningregistry__"})


def _open_files() -> FrozenSet[str]:
    try:
        return frozenset(f.path for f in psutil.Process().open_files())
    except psutil.Error as exc:
        logger.debug(f"cannot list open files: {exc}")
        return frozenset()


@dataclass(frozen=True)
class LeakSnapshot:
    files: FrozenSet[str] = frozenset()
    names: FrozenSet[str] = frozenset()
    globals: FrozenSet[str] = frozenset()


@dataclass
class LeakReport:
    files: List[str] = field(default_factory=list)
    names: List[str] = field(default_factory=list)
    globals: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.files or self.names or self.globals)


class LeakDetector:
    def __init__(self, namespace: Dict[str, Any]):
        self.namespace = namespace
        self.before: Optional[LeakSnapshot] = None

    def capture(self) -> LeakSnapshot:
        return LeakSnapshot(
            files=_open_files(),
            names=frozenset(self.namespace) | SENTINELS,
            globals=frozenset(vars(builtins)),
        )

    def snapshot(self) -> LeakSnapshot:
        self.before = self.capture()
        return self.before

    def compare(self) -> LeakReport:
        if self.before is None:
            raise RuntimeError("LeakDetector.compare() called before snapshot()")

        after = self.capture()

        return LeakReport(
            files=sorted(after.files - self.before.files),
            names=sorted(after.names - self.before.names),
            globals=sorted(after.globals - self.before.globals),
        )

    def check(self, file: str) -> LeakReport:
        """Warn about anything the file left behind. Never raises for a leak."""
        report = self.compare()

        messages = []
        if report.files:
            messages.append(f"file {file} leaked file descriptors: {' '.join(report.files)}")
        if report.names:
            messages.append(f"file {file} leaked variables to base namespace: {' '.join(report.names)}")
        if report.globals:
            messages.append(f"file {file} leaked global variables: {' '.join(report.globals)}")

        for message in messages:
            logger.warning(message)
            warnings.warn(message, BistLeakWarning, stacklevel=2)

        return report
