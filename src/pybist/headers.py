"""
Grammar for `testif` header lines.

    testif FEATURE[,FEATURE...][; runtime_expression][<bug-id>]

Features may be separated by commas or whitespace.  The runtime expression
runs up to an optional trailing `<bug-id>`, so it may itself contain `<`/`>`
comparisons.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import List, Tuple

from lark import Lark, Token, Transformer, UnexpectedInput
from lark.visitors import v_args

TESTIF_GRAMMAR = r"""
start: features condition? bug?

features: (FEATURE (","? FEATURE)*)?
condition: ";" EXPR
bug: BUG

FEATURE: /[A-Za-z_][A-Za-z0-9_]*/
EXPR: /[^;\s][^;]*?(?=\s*(<\*?[^<>\s]*>)?\s*$)/
BUG: /<\*?[^<>\s]*>/

%import common.WS_INLINE
%ignore WS_INLINE
"""


class HeaderError(ValueError):
    pass


@dataclass(frozen=True)
class TestifHeader:
    __test__ = False

    features: Tuple[str, ...] = ()
    runtime_condition: str = ""
    bug_id: str = ""
    fixed: bool = False


@dataclass(frozen=True)
class _Condition:
    expr: str


@dataclass(frozen=True)
class _Bug:
    bug_id: str
    fixed: bool


def strip_feature_prefix(name: str) -> str:
    return name[5:] if name.startswith("HAVE_") else name


class HeaderBuilder(Transformer):
    def features(self, tokens: List[Token]) -> Tuple[str, ...]:
        return tuple(strip_feature_prefix(str(tok)) for tok in tokens)

    @v_args(inline=True)
    def condition(self, expr: Token) -> _Condition:
        return _Condition(str(expr).strip())

    @v_args(inline=True)
    def bug(self, tok: Token) -> _Bug:
        bug_id = str(tok)[1:-1]
        fixed = bug_id.startswith("*")

        if fixed:
            bug_id = bug_id[1:]

        return _Bug(bug_id, fixed)

    def start(self, children: list) -> TestifHeader:
        features: Tuple[str, ...] = ()
        condition = ""
        bug = _Bug("", False)

        for child in children:
            match child:
                case tuple():
                    features = child
                case _Condition(expr=expr):
                    condition = expr
                case _Bug():
                    bug = child

        return TestifHeader(features, condition, bug.bug_id, bug.fixed)


@lru_cache(maxsize=1)
def _parser() -> Lark:
    return Lark(TESTIF_GRAMMAR, parser="lalr", transformer=HeaderBuilder())


def parse_testif_header(line: str) -> TestifHeader:
    """Parse the header (first line, comment already removed) of a testif block."""
    try:
        return _parser().parse(line.strip())
    except UnexpectedInput as exc:
        raise HeaderError(f"malformed testif header: {line.strip()!r}") from exc
