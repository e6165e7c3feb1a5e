"""Built-in self tests embedded in Python source files."""

from loguru import logger

from .blocks import parse_block, parse_blocks, split_blocks
from .config import BistConfig
from .engine import BistEngine, EngineOptions, grab_demos
from .evaluator import Evaluation, Evaluator, PythonEvaluator
from .extract import extract_test_code, read_test_code
from .leaks import LeakDetector
from .multi import MultiBistRunner
from .output import MemorySink, OutputSink, explain
from .results import RunResult
from .runner import test
from .shared import SharedEnvironment
from .stdlib import fail
from .types import (
    BistError,
    BistFileError,
    BistLeakWarning,
    BistUsageError,
    BlockKind,
    Outcome,
)

logger.disable("pybist")

__all__ = [
    "BistConfig",
    "BistEngine",
    "BistError",
    "BistFileError",
    "BistLeakWarning",
    "BistUsageError",
    "BlockKind",
    "EngineOptions",
    "Evaluation",
    "Evaluator",
    "LeakDetector",
    "MemorySink",
    "MultiBistRunner",
    "Outcome",
    "OutputSink",
    "PythonEvaluator",
    "RunResult",
    "SharedEnvironment",
    "explain",
    "extract_test_code",
    "fail",
    "grab_demos",
    "parse_block",
    "parse_blocks",
    "read_test_code",
    "split_blocks",
    "test",
]
