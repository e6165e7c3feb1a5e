"""
sanity_check_basic.py: regression driver for the BIST runner.

The suite exercises three layers:
1. Classification: each sample block parses to the expected kind.
2. Engine runs: sample files run in batch mode with known counters.
3. Grab-demo: demo payloads and offsets come back intact.

The script prints a textual report and exits non-zero on failure.
"""

from __future__ import annotations

import io
import os
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from textwrap import dedent
from typing import Dict, List, Optional, Sequence, Tuple

BASE_DIR = Path(__file__).resolve().parent
if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))
SRC_DIR = (BASE_DIR / "src").resolve()
if str(SRC_DIR) not in sys.path:
    sys.path.append(str(SRC_DIR))

from pybist import runner
from pybist.blocks import parse_block
from pybist.config import BistConfig
from pybist.results import RunResult
from pybist.types import BlockKind

SAMPLE_FILE = BASE_DIR / "samples" / "bist_sample.py"

# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class KindCase:
    """One raw block and the kind it must classify as."""
    name: str
    raw: str
    kind: BlockKind

@dataclass(frozen=True)
class FileScenario:
    """A BIST source run in batch mode with expected counters."""
    name: str
    source: Optional[str]  # None -> the bundled sample file
    counters: Dict[str, int]

KIND_CASES = [
    KindCase("shared", "shared a, b\n a = 1", BlockKind.SHARED),
    KindCase("function", "function y = f(x)\n  y = x", BlockKind.FUNCTION),
    KindCase("endfunction", "endfunction", BlockKind.ENDFUNCTION),
    KindCase("assert", "assert 1 == 1", BlockKind.ASSERT),
    KindCase("fail", 'fail("1/0")', BlockKind.FAIL),
    KindCase("error", "error <division> 1/0", BlockKind.ERROR),
    KindCase("warning", "warning id=UserWarning f()", BlockKind.WARNING),
    KindCase("test", "test\n x = 1", BlockKind.TEST),
    KindCase("xtest", "xtest <42>\n assert False", BlockKind.XTEST),
    KindCase("testif", "testif HAVE_FOO; x > 1 <7>\n pass", BlockKind.TESTIF),
    KindCase("demo", "demo\n print(1)", BlockKind.DEMO),
    KindCase("comment", "# just words", BlockKind.COMMENT),
    KindCase("unknown", "frobnicate 1", BlockKind.UNKNOWN),
]

FILE_SCENARIOS = [
    FileScenario(
        "bundled-sample",
        None,
        {"tests": 11, "successes": 11, "xbug": 1, "xskip": 1, "xrtskip": 1},
    ),
    FileScenario(
        "shared-then-assert",
        """\
        #!shared a
        #!test a = 3
        #!assert a == 3
        """,
        {"tests": 2, "successes": 2},
    ),
    FileScenario(
        "known-bug",
        """\
        #!xtest <42>
        #! assert False
        """,
        {"tests": 0, "xbug": 1},
    ),
    FileScenario(
        "regression",
        """\
        #!xtest <*42>
        #! assert False
        """,
        {"tests": 0, "xregression": 1},
    ),
    FileScenario(
        "batch-keeps-going",
        """\
        #!assert 1 == 2
        #!assert 2 == 2
        #!frobnicate
        """,
        {"tests": 3, "successes": 1},
    ),
    FileScenario("no-tests", "x = 1\n", {"tests": 0}),
]

# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

class SanitySuite:
    """Runs classification, engine and grab-demo checks then emits a text report."""
    def __init__(self, config: BistConfig, workdir: Path):
        self.config = config
        self.workdir = workdir

    def _source_path(self, scenario: FileScenario) -> Path:
        if scenario.source is None:
            return SAMPLE_FILE
        path = self.workdir / f"{scenario.name.replace('-', '_')}.py"
        path.write_text(dedent(scenario.source), encoding="utf-8")
        return path

    def _run_kind_cases(self) -> Tuple[List[str], int, int]:
        lines: List[str] = []
        failed = 0
        for case in KIND_CASES:
            got = parse_block(case.raw).kind
            if got is case.kind:
                lines.append(f"[PASS] kind {case.name}")
            else:
                lines.append(f"[FAIL] kind {case.name}: expected {case.kind.value}, got {got.value}")
                failed += 1
        return lines, len(KIND_CASES), failed

    def _run_file_scenarios(self) -> Tuple[List[str], int, int]:
        lines: List[str] = []
        failed = 0
        for scenario in FILE_SCENARIOS:
            log = io.StringIO()
            try:
                result = runner.test(str(self._source_path(scenario)), "normal", log, config=self.config)
            except Exception as exc:
                lines.append(f"[FAIL] file {scenario.name}: {type(exc).__name__}: {exc}")
                failed += 1
                continue
            assert isinstance(result, RunResult)
            counters = result.counters()
            wrong = {k: counters[k] for k, v in scenario.counters.items() if counters[k] != v}
            if wrong:
                lines.append(f"[FAIL] file {scenario.name}: expected {scenario.counters}, got {counters}")
                lines.extend(f"    {line}" for line in log.getvalue().splitlines())
                failed += 1
            else:
                lines.append(f"[PASS] file {scenario.name}: {result.summary(scenario.name).strip()}")
        return lines, len(FILE_SCENARIOS), failed

    def _run_grabdemo(self) -> Tuple[List[str], int, int]:
        code, offsets = runner.test(str(SAMPLE_FILE), "grabdemo", config=self.config)
        if len(offsets) == 1 and offsets[0] == len(code) and "print(clamp" in code:
            return ["[PASS] grabdemo: 1 demo"], 1, 0
        return [f"[FAIL] grabdemo: got offsets {offsets} for {code!r}"], 1, 1

    def execute(self) -> Tuple[str, int]:
        lines: List[str] = []
        total = 0
        failed = 0
        for part in (self._run_kind_cases, self._run_file_scenarios, self._run_grabdemo):
            part_lines, part_total, part_failed = part()
            lines.extend(part_lines)
            lines.append("")
            total += part_total
            failed += part_failed
        lines.append(f"Total cases: {total}")
        lines.append(f"Failures: {failed}")
        return "\n".join(lines), failed

# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

def run(argv: Sequence[str] = ()) -> Tuple[str, int]:
    del argv
    config = BistConfig.from_env()
    with tempfile.TemporaryDirectory(prefix="pybist-sanity-") as tmp:
        return SanitySuite(config, Path(tmp)).execute()

if __name__ == "__main__":
    report, failures = run(sys.argv[1:])
    out_path = Path(os.getenv("SANITY_REPORT", "sanity_report.txt"))
    out_path.write_text(report, encoding="utf-8")
    print(report)
    if failures:
        raise SystemExit(1)
