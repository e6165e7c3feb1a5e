"""
Block-by-block execution of one file's tests.

The engine walks the classified blocks in order.  Shared variables thread
through every block, functions defined by `function` blocks live in the base
namespace until the file is done, and each block's outcome lands in exactly
one counter of the file's RunResult.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple

from loguru import logger
from prompt_toolkit import prompt

from .blocks import normalize_code
from .config import BistConfig
from .evaluator import Evaluation, Evaluator, diagnostic_capture
from .features import FeatureQuery, feature_query
from .leaks import LeakDetector
from .output import SIGNAL_BLOCK, SIGNAL_FAIL, SIGNAL_SKIP, OutputSink
from .results import RunResult
from .shared import SharedDeclarationError, SharedEnvironment
from .stdlib import identifier_matches, pattern_matches
from .types import (
    Block,
    BlockKind,
    BlockReport,
    CheckBlock,
    CommentBlock,
    DemoBlock,
    EndFunctionBlock,
    ExpectBlock,
    FunctionBlock,
    GuardedBlock,
    Outcome,
    SharedBlock,
    UnknownBlock,
)

Pause = Callable[[str], Any]

PAUSE_PROMPT = "Press <enter> to continue: "

# Hard failures: stop the file unless running in batch mode.
HALTING = frozenset({Outcome.FAIL, Outcome.ERROR})

# Block kinds whose failure report leaves out the shared variable dump.
_NO_CONTEXT = frozenset({BlockKind.ERROR, BlockKind.TESTIF, BlockKind.XTEST})


@dataclass(frozen=True)
class EngineOptions:
    verbose: int = 0
    batch: bool = False
    rundemo: bool = False
    logfile: bool = False


def error_text(ev: Evaluation) -> str:
    if ev.error is None:
        return ""

    return f"{type(ev.error).__name__}: {ev.message}"


def classify_failure(is_xtest: bool, bug_id: str, fixed: bool, config: BistConfig) -> Tuple[Outcome, str]:
    """Outcome and headline for a test block whose code raised."""
    if not is_xtest:
        return Outcome.FAIL, "test failed"

    if not bug_id:
        if fixed:
            return Outcome.REGRESSION, "regression"
        return Outcome.XFAIL, "known failure"

    where = config.bug_url(bug_id)
    if fixed:
        return Outcome.REGRESSION, f"regression: {where}"

    return Outcome.XBUG, f"known bug: {where}"


class BistEngine:
    def __init__(
        self,
        evaluator: Evaluator,
        sink: OutputSink,
        options: EngineOptions = EngineOptions(),
        config: Optional[BistConfig] = None,
        features: Optional[FeatureQuery] = None,
        pause: Optional[Pause] = None,
    ):
        self.evaluator = evaluator
        self.sink = sink
        self.options = options
        self.config = config or BistConfig()
        self.features = features or feature_query(self.config.features)
        self.pause = pause or prompt
        self.shared = SharedEnvironment()
        self.functions: List[str] = []
        self.reports: List[BlockReport] = []
        self.halted = False

    # ---------- driver ----------

    def run(self, blocks: Sequence[Block], file: str = "") -> RunResult:
        result = RunResult()
        leaks = LeakDetector(self.evaluator.namespace)
        leaks.snapshot()
        self.evaluator.install_helpers()

        try:
            for block in blocks:
                report = self.step(block)
                result.tally(report.outcome)

                if report.halted:
                    self.halted = True
                    logger.info(f"{file}: stopping after hard failure")
                    break
        finally:
            self.teardown()
            leaks.check(file)

        return result

    def step(self, block: Block) -> BlockReport:
        """Run one block: echo, execute, report."""
        if self.options.verbose > 0:
            self.sink.emit(f"{SIGNAL_BLOCK}{block.raw_text}\n")

        logger.debug(f"running {block.kind.value} block")

        with diagnostic_capture():
            report = self.execute(block)

        if report.outcome in HALTING and not self.options.batch:
            report.halted = True

        self.reports.append(report)
        self.emit_report(report)

        return report

    def emit_report(self, report: BlockReport) -> None:
        if not report.message:
            return

        if self.options.verbose < 0 and not self.options.logfile:
            return

        # Make sure the user knows what caused the message.
        if self.options.verbose < 1:
            self.sink.emit(f"{SIGNAL_BLOCK}{report.block.raw_text}\n")

        self.sink.emit(f"{report.message}\n")

        if report.block.kind not in _NO_CONTEXT and self.shared:
            self.sink.emit("shared variables\n" + "\n".join(self.shared.describe()) + "\n")

    def teardown(self) -> None:
        for name in self.functions:
            self.evaluator.undefine(name)

        self.functions = []
        self.evaluator.remove_helpers()
        self.shared.clear()

    # ---------- dispatch ----------

    def execute(self, block: Block) -> BlockReport:
        match block:
            case DemoBlock():
                return self._run_demo(block)
            case SharedBlock():
                return self._run_shared(block)
            case FunctionBlock():
                return self._run_function(block)
            case EndFunctionBlock() | CommentBlock():
                return BlockReport(block, Outcome.NONE)
            case ExpectBlock():
                return self._run_expect(block)
            case CheckBlock():
                return self._run_check(block, block.code, block.is_xtest, block.bug_id, block.fixed)
            case GuardedBlock():
                return self._run_guarded(block)
            case UnknownBlock():
                return BlockReport(block, Outcome.FAIL, f"{SIGNAL_FAIL}unknown test type!")
            case _:
                raise TypeError(f"not a block: {block!r}")

    def _run_demo(self, block: DemoBlock) -> BlockReport:
        if not self.options.rundemo or self.options.batch:
            return BlockReport(block, Outcome.NONE)

        # Demos run without any shared variables.
        ev = self.evaluator.execute(normalize_code(block.code), {})
        if ev.raised:
            return BlockReport(block, Outcome.ERROR, f"{SIGNAL_FAIL}demo failed\n{error_text(ev)}")

        self.pause(PAUSE_PROMPT)

        return BlockReport(block, Outcome.NONE)

    def _run_shared(self, block: SharedBlock) -> BlockReport:
        try:
            ev = self.shared.declare(block.names, block.code, self.evaluator)
        except SharedDeclarationError as exc:
            return BlockReport(block, Outcome.ERROR, f"{SIGNAL_FAIL}shared variable initialization failed\n{exc}")

        if ev is not None and ev.raised:
            return BlockReport(block, Outcome.ERROR, f"{SIGNAL_FAIL}shared variable initialization failed\n{error_text(ev)}")

        return BlockReport(block, Outcome.NONE)

    def _run_function(self, block: FunctionBlock) -> BlockReport:
        if block.name is None:
            return BlockReport(block, Outcome.ERROR, f"{SIGNAL_FAIL}test failed: {block.error_message}")

        ev = self.evaluator.define(block.name, block.code)
        if ev.raised:
            return BlockReport(block, Outcome.ERROR, f"{SIGNAL_FAIL}test failed: syntax error\n{error_text(ev)}")

        self.functions.append(block.name)

        return BlockReport(block, Outcome.NONE)

    def _run_expect(self, block: ExpectBlock) -> BlockReport:
        ev = self.evaluator.execute(block.code, self.shared.snapshot(), record_warnings=block.is_warning)
        label = block.pattern_label

        if ev.syntax_error:
            return BlockReport(block, Outcome.FAIL, f"{SIGNAL_FAIL}test failed: syntax error\n{error_text(ev)}")

        if not block.is_warning:
            if not ev.raised:
                return self._expect_failed(block, f"Expected {label}, but got no error")

            if block.id:
                matched = identifier_matches(type(ev.error), block.id)
                got = type(ev.error).__name__
            else:
                matched = pattern_matches(block.pattern, ev.message)
                got = ev.message

            if not matched:
                return self._expect_failed(block, f"Expected {label}, but got <{got}>")

            return BlockReport(block, Outcome.PASS)

        if ev.raised:
            return self._expect_failed(block, f"Expected warning {label}, but got error <{ev.message}>")

        if not ev.warnings:
            return self._expect_failed(block, f"Expected {label}, but got no warning")

        caught = ev.warnings[-1]
        if block.id:
            matched = identifier_matches(caught.category, block.id)
            got = caught.category.__name__
        else:
            matched = pattern_matches(block.pattern, ev.warning_message)
            got = ev.warning_message

        if not matched:
            return self._expect_failed(block, f"Expected {label}, but got <{got}>")

        return BlockReport(block, Outcome.PASS)

    def _expect_failed(self, block: ExpectBlock, detail: str) -> BlockReport:
        return BlockReport(block, Outcome.FAIL, f"{SIGNAL_FAIL}{block.kind.value} failed.\n{detail}")

    def _run_check(self, block: Block, code: str, is_xtest: bool, bug_id: str, fixed: bool) -> BlockReport:
        ev = self.evaluator.execute(code, self.shared.snapshot())

        if not ev.raised:
            self.shared.update(ev.bindings)
            return BlockReport(block, Outcome.PASS)

        outcome, headline = classify_failure(is_xtest, bug_id, fixed, self.config)
        if ev.syntax_error:
            headline += ": syntax error"

        return BlockReport(block, outcome, f"{SIGNAL_FAIL}{headline}\n{error_text(ev)}")

    def _run_guarded(self, block: GuardedBlock) -> BlockReport:
        if block.error_message:
            return BlockReport(block, Outcome.FAIL, f"{SIGNAL_FAIL}test failed: {block.error_message}")

        if not all(self.features(f) for f in block.features):
            return BlockReport(block, Outcome.SKIP, f"{SIGNAL_SKIP}skipped test (missing feature)")

        if block.runtime_condition:
            try:
                ok = self.evaluator.evaluate(block.runtime_condition, self.shared.snapshot())
            except KeyboardInterrupt:
                raise
            except BaseException as exc:
                return BlockReport(
                    block,
                    Outcome.FAIL,
                    f"{SIGNAL_FAIL}test failed: runtime condition raised\n{type(exc).__name__}: {exc}",
                )

            if not ok:
                return BlockReport(block, Outcome.RTSKIP, f"{SIGNAL_SKIP}skipped test (runtime test)")

        return self._run_check(block, block.code, block.is_xtest, block.bug_id, block.fixed)

    def grab_demos(self, blocks: Sequence[Block]) -> Tuple[str, List[int]]:
        return grab_demos(blocks)


def grab_demos(blocks: Sequence[Block]) -> Tuple[str, List[int]]:
    """
    Concatenate the demo payloads without running anything.
    offsets[i] is the end of demo i, so code[offsets[i-1]:offsets[i]] is
    demo i (with 0 before the first).
    """

    code = ""
    offsets: List[int] = []

    for block in blocks:
        if isinstance(block, DemoBlock):
            code += block.code
            offsets.append(len(code))

    return code, offsets
