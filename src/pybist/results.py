from __future__ import annotations

from dataclasses import dataclass, field, fields
from functools import reduce
from typing import Iterable, List

from .config import DEFAULT_FAIL_THRESHOLD
from .output import SIGNAL_EMPTY
from .types import Outcome

COUNTERS = ("tests", "successes", "xfail", "xbug", "xskip", "xrtskip", "xregression", "errors")
FILE_LISTS = ("files_processed", "files_with_tests", "files_with_no_tests", "failed_files")


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'s' if n > 1 else ''}"


@dataclass
class RunResult:
    """Counters for one file, or for many files summed together."""

    tests: int = 0
    successes: int = 0
    xfail: int = 0
    xbug: int = 0
    xskip: int = 0
    xrtskip: int = 0
    xregression: int = 0
    # setup failures (shared initializer, function definition, demo); not in `tests`
    errors: int = 0
    files_processed: List[str] = field(default_factory=list)
    files_with_tests: List[str] = field(default_factory=list)
    files_with_no_tests: List[str] = field(default_factory=list)
    failed_files: List[str] = field(default_factory=list)

    def __add__(self, other: "RunResult") -> "RunResult":
        if not isinstance(other, RunResult):
            return NotImplemented

        values = {}
        for f in fields(self):
            values[f.name] = getattr(self, f.name) + getattr(other, f.name)

        return RunResult(**values)

    @classmethod
    def combine(cls, results: Iterable["RunResult"]) -> "RunResult":
        return reduce(lambda a, b: a + b, results, cls())

    @property
    def n_really_fail(self) -> int:
        return self.tests - self.successes

    @property
    def hard_failures(self) -> int:
        return self.n_really_fail + self.errors

    @property
    def success(self) -> bool:
        return self.hard_failures == 0

    @property
    def has_tests(self) -> bool:
        return bool(
            self.tests or self.xfail or self.xbug or self.xskip or self.xrtskip or self.xregression or self.errors
        )

    def counters(self) -> dict:
        return {name: getattr(self, name) for name in COUNTERS}

    def tally(self, outcome: Outcome) -> None:
        match outcome:
            case Outcome.PASS:
                self.tests += 1
                self.successes += 1
            case Outcome.FAIL:
                self.tests += 1
            case Outcome.XFAIL:
                self.xfail += 1
            case Outcome.XBUG:
                self.xbug += 1
            case Outcome.REGRESSION:
                self.xregression += 1
            case Outcome.SKIP:
                self.xskip += 1
            case Outcome.RTSKIP:
                self.xrtskip += 1
            case Outcome.ERROR:
                self.errors += 1
            case Outcome.NONE:
                pass

    def classify(self, file: str, threshold: int = DEFAULT_FAIL_THRESHOLD) -> "RunResult":
        """File bookkeeping once a single file's counters are final."""
        if file not in self.files_processed:
            self.files_processed.append(file)

        if not self.has_tests:
            self.files_with_no_tests.append(file)
            return self

        self.files_with_tests.append(file)
        if self.hard_failures > threshold:
            self.failed_files.append(file)

        return self

    def summary(self, file: str = "") -> str:
        if not self.has_tests:
            return f"{SIGNAL_EMPTY}{file} has no tests available\n"

        head = f"PASSES {self.successes} out of {_plural(self.tests, 'test')}"

        extra = []
        if self.xfail:
            extra.append(_plural(self.xfail, "known failure"))
        if self.xbug:
            extra.append(_plural(self.xbug, "known bug"))
        if self.xregression:
            extra.append(_plural(self.xregression, "regression"))
        if self.errors:
            extra.append(_plural(self.errors, "setup failure"))

        lines = [head + (f" ({'; '.join(extra)})" if extra else "")]

        if self.xskip:
            lines.append(f"Skipped {_plural(self.xskip, 'test')} due to missing features")
        if self.xrtskip:
            lines.append(f"Skipped {_plural(self.xrtskip, 'test')} due to run-time conditions")

        return "\n".join(lines) + "\n"
