"""Run the embedded tests of many files and sum the results."""

from __future__ import annotations

import os
import random
import re
from pathlib import Path
from typing import Callable, Iterable, List, Optional, TextIO, Union, cast

from loguru import logger

from .config import BistConfig
from .results import RunResult
from .runner import test as run_file

TEST_FILE_EXTENSIONS = (".py",)

_HAS_TESTS_RE = r"^{marker}(assert|error|fail|test|xtest|warning)"

FileRunner = Callable[[str], RunResult]


class MultiBistRunner:
    def __init__(self, config: Optional[BistConfig] = None, out: Optional[TextIO] = None):
        self.config = config or BistConfig.from_env()
        self.files: List[str] = []
        self.out = out
        self._has_tests = re.compile(_HAS_TESTS_RE.format(marker=re.escape(self.config.marker)), re.MULTILINE)

    def add_file(self, file: Union[str, "os.PathLike[str]"]) -> None:
        path = os.fspath(file)
        if os.path.isdir(path):
            raise IsADirectoryError(f"MultiBistRunner.add_file: file is a directory: {path}")
        self.files.append(path)

    def add_files(self, files: Iterable[Union[str, "os.PathLike[str]"]]) -> None:
        for file in files:
            self.add_file(file)

    def file_has_tests(self, file: str) -> bool:
        try:
            text = Path(file).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(f"cannot read {file}: {exc}")
            return False

        return self._has_tests.search(text) is not None

    def looks_like_testable_file(self, file: str) -> bool:
        return file.lower().endswith(TEST_FILE_EXTENSIONS)

    def ordered_files(self) -> List[str]:
        files = list(self.files)
        if self.config.shuffle_seed is not None:
            random.Random(self.config.shuffle_seed).shuffle(files)
        return files

    def _emit(self, text: str) -> None:
        if self.out is not None:
            self.out.write(text)
            self.out.flush()

    def run_file(self, file: str) -> RunResult:
        return cast(RunResult, run_file(file, "quiet", batch=True, config=self.config))

    def run_tests(self, runner: Optional[FileRunner] = None) -> RunResult:
        runner = runner or self.run_file
        results = []

        for file in self.ordered_files():
            if self.file_has_tests(file):
                self._emit(f"  {file} {'.' * max(0, 60 - len(file))}")
                result = runner(file)
                self._emit(self._pass_fail(result))
                results.append(result)
            elif self.looks_like_testable_file(file):
                results.append(RunResult(files_processed=[file]))

        total = RunResult.combine(results)

        if total.files_with_no_tests:
            self._emit("\nThe following files have no tests:\n\n")
            self._emit("".join(f"  {f}\n" for f in total.files_with_no_tests))

        return total

    @staticmethod
    def _pass_fail(r: RunResult) -> str:
        if not r.tests and not r.errors:
            return "\n"

        lines = [f" PASS   {r.successes:4d}/{r.tests:<4d}"]
        for label, count in (
            ("FAIL ", r.n_really_fail),
            ("(setup) ERROR", r.errors),
            ("REGRESSION", r.xregression),
            ("(reported bug) XFAIL", r.xbug),
            ("(expected failure) XFAIL", r.xfail),
            ("(missing feature) SKIP", r.xskip),
            ("(run-time condition) SKIP", r.xrtskip),
        ):
            if count > 0:
                lines.append(f"{label:>71} {count:3d}")

        return "\n".join(lines) + "\n"
