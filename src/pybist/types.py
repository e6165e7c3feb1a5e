from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union
from typing_extensions import TypeAlias


class BlockKind(Enum):
    """Block types - one per directive keyword"""

    SHARED = "shared"
    FUNCTION = "function"
    ENDFUNCTION = "endfunction"
    ASSERT = "assert"
    FAIL = "fail"
    ERROR = "error"
    WARNING = "warning"
    TEST = "test"
    XTEST = "xtest"
    TESTIF = "testif"
    DEMO = "demo"
    COMMENT = "comment"
    UNKNOWN = "unknown"


class Outcome(Enum):
    """What a single block contributed to the run."""

    NONE = "none"  # executed fine, not a test
    PASS = "pass"
    FAIL = "fail"
    XFAIL = "xfail"
    XBUG = "xbug"
    REGRESSION = "regression"
    SKIP = "skip"
    RTSKIP = "rtskip"
    ERROR = "error"  # setup failure of a non-test block


# ---------- Block variants ----------

@dataclass(frozen=True)
class SharedBlock:
    raw_text: str
    names: Tuple[str, ...]
    code: str
    kind: BlockKind = BlockKind.SHARED

@dataclass(frozen=True)
class FunctionBlock:
    raw_text: str
    name: Optional[str]
    code: str
    outputs: Tuple[str, ...] = ()
    error_message: Optional[str] = None
    kind: BlockKind = BlockKind.FUNCTION

@dataclass(frozen=True)
class EndFunctionBlock:
    raw_text: str
    code: str = ""
    kind: BlockKind = BlockKind.ENDFUNCTION

@dataclass(frozen=True)
class CheckBlock:
    """assert / fail / test / xtest"""

    raw_text: str
    kind: BlockKind
    code: str
    bug_id: str = ""
    fixed: bool = False

    @property
    def is_xtest(self) -> bool:
        if self.kind is BlockKind.XTEST:
            return True

        return bool(self.bug_id)

@dataclass(frozen=True)
class ExpectBlock:
    """error / warning"""

    raw_text: str
    kind: BlockKind
    code: str
    pattern: str = "."
    id: Optional[str] = None

    @property
    def is_warning(self) -> bool:
        return self.kind is BlockKind.WARNING

    @property
    def pattern_label(self) -> str:
        if self.id:
            return f"id={self.id}"

        if self.pattern != ".":
            return f"<{self.pattern}>"

        return "a warning" if self.is_warning else "an error"

@dataclass(frozen=True)
class GuardedBlock:
    raw_text: str
    code: str
    features: Tuple[str, ...] = ()
    runtime_condition: str = ""
    bug_id: str = ""
    fixed: bool = False
    error_message: Optional[str] = None
    kind: BlockKind = BlockKind.TESTIF

    @property
    def is_xtest(self) -> bool:
        return bool(self.bug_id)

@dataclass(frozen=True)
class DemoBlock:
    raw_text: str
    code: str
    kind: BlockKind = BlockKind.DEMO

@dataclass(frozen=True)
class CommentBlock:
    raw_text: str
    code: str = ""
    kind: BlockKind = BlockKind.COMMENT

@dataclass(frozen=True)
class UnknownBlock:
    raw_text: str
    type_tag: str
    code: str = ""
    kind: BlockKind = BlockKind.UNKNOWN

Block: TypeAlias = Union[
    SharedBlock,
    FunctionBlock,
    EndFunctionBlock,
    CheckBlock,
    ExpectBlock,
    GuardedBlock,
    DemoBlock,
    CommentBlock,
    UnknownBlock,
]

TEST_KINDS = frozenset({
    BlockKind.ASSERT,
    BlockKind.FAIL,
    BlockKind.TEST,
    BlockKind.XTEST,
    BlockKind.ERROR,
    BlockKind.WARNING,
    BlockKind.TESTIF,
    BlockKind.UNKNOWN,
})

def is_test_block(block: Block) -> bool:
    """True when the block counts toward `tests` if it executes."""
    return block.kind in TEST_KINDS

def is_xtest_block(block: Block) -> bool:
    if isinstance(block, (CheckBlock, GuardedBlock)):
        return block.is_xtest

    return False

@dataclass
class BlockReport:
    """Per-block result handed from the engine to the aggregator."""

    block: Block
    outcome: Outcome
    message: str = ""
    halted: bool = False

# ---------- Exceptions ----------

class BistError(Exception):
    pass

class BistUsageError(BistError):
    pass

class BistFileError(BistError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"could not open {path} for reading: {reason}")
        self.path = path
        self.reason = reason

class BistLeakWarning(UserWarning):
    """A test file left open files or stray names behind."""
