"""
Block splitting and classification.

A test buffer (see extract.py) is cut into blocks at every line that starts
in column 0; indented or blank lines continue the current block.  Each block
starts with a keyword naming its type:

    shared a, b          # shared variables (+ optional initializer lines)
    function y = f(x)    # helper definition, closed by `endfunction`
    assert <bug> expr    # python assert statement
    fail(code, pattern)  # code string that must raise
    error <regex> code   # code that must raise a matching exception
    warning id=Name code # code that must emit a matching warning
    test <bug> code
    xtest <bug> code     # known failure
    testif FEATURE; cond <bug>
    demo code            # interactive demo, never run in batch mode
    # ...                # comment block
"""

from __future__ import annotations

import re
import textwrap
from typing import List, Optional, Tuple

from .headers import HeaderError, parse_testif_header
from .types import (
    Block,
    BlockKind,
    CheckBlock,
    CommentBlock,
    DemoBlock,
    EndFunctionBlock,
    ExpectBlock,
    FunctionBlock,
    GuardedBlock,
    SharedBlock,
    UnknownBlock,
)

_TYPE_TAG_RE = re.compile(r"[A-Za-z]*")
_NAME_SPLIT_RE = re.compile(r"[\s,]+")
# clauses that continue a compound statement opened on the header line
_CLAUSE_RE = re.compile(r"(elif\b|else\s*:|except\b|finally\s*:)")

_CHECK_KINDS = {
    "assert": BlockKind.ASSERT,
    "fail": BlockKind.FAIL,
    "test": BlockKind.TEST,
    "xtest": BlockKind.XTEST,
}


def split_blocks(body: str) -> List[str]:
    """Cut a test buffer into raw block strings, in order."""
    if not body:
        return []

    # Add a dummy comment block to the end for ease of indexing.
    if body.endswith("\n"):
        body = "\n" + body + "#"
    else:
        body = "\n" + body + "\n#"

    starts = [
        idx + 1
        for idx, ch in enumerate(body)
        if ch == "\n" and idx + 1 < len(body) and not body[idx + 1].isspace()
    ]

    return [body[starts[i]:starts[i + 1] - 1] for i in range(len(starts) - 1)]


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


def normalize_code(text: str) -> str:
    """
    Turn block payload into runnable Python.
    The first line is stripped and continuation lines are dedented; a first
    line ending in ':' keeps the continuation nested under it, except for
    `elif`/`else`/`except`/`finally` clauses indented less than the body,
    which line up with it.
    """

    first, sep, rest = text.partition("\n")
    first = first.strip()
    rest = textwrap.dedent(rest).strip("\n") if sep else ""

    if first.startswith("#"):
        first = ""

    if not rest.strip():
        return first

    if not first:
        return rest.rstrip()

    if first.endswith(":"):
        lines = rest.rstrip().split("\n")
        body_indent = _indent(lines[0])
        out = []
        for line in lines:
            stripped = line.lstrip()
            # a clause shallower than the body continues the header's statement
            if stripped and _indent(line) < body_indent and _CLAUSE_RE.match(stripped):
                out.append(stripped)
            else:
                out.append(textwrap.indent(line, "    "))
        return first + "\n" + "\n".join(out)

    return first + "\n" + rest.rstrip()


def get_bug_id(text: str) -> Tuple[str, str, bool]:
    """Strip `<bug-id>` from '<bug-id> code'. Returns (bug_id, rest, fixed)."""
    stripped = text.lstrip()

    if stripped.startswith("<"):
        close = stripped.find(">")
        if close > 0:
            bug_id = stripped[1:close]
            fixed = bug_id.startswith("*")
            if fixed:
                bug_id = bug_id[1:]
            return bug_id, stripped[close + 1:], fixed

    return "", text, False


def get_pattern(text: str) -> Tuple[str, Optional[str], str]:
    """Strip `<pattern>` or `id=ID` from the front of an error/warning block."""
    stripped = text.lstrip()

    if stripped.startswith("<"):
        close = stripped.find(">")
        if close > 0:
            return stripped[1:close], None, stripped[close + 1:]

    elif stripped.startswith("id="):
        rest = stripped[3:]
        parts = rest.split(None, 1)
        if parts:
            return ".", parts[0], (parts[1] if len(parts) > 1 else "")

    return ".", None, text


def function_name(header: str) -> Optional[Tuple[int, int]]:
    """Find [start, end) of fn in 'function [a, b] = fn(x)'."""
    right = header.find("(")
    if right < 0:
        return None

    right = len(header[:right].rstrip())
    left = max(header.rfind(" ", 0, right), header.rfind("=", 0, right))
    if left < 0:
        return None

    left += 1
    if left >= right or not header[left:right].isidentifier():
        return None

    return left, right


def _function_outputs(header: str, name_start: int) -> Tuple[str, ...]:
    head = header[len("function"):name_start]
    if "=" not in head:
        return ()

    outs = head.split("=", 1)[0].strip().strip("[]")

    return tuple(n for n in _NAME_SPLIT_RE.split(outs) if n)


def _parse_function(raw: str) -> FunctionBlock:
    header, _, body = raw.partition("\n")
    span = function_name(header)

    if span is None:
        return FunctionBlock(raw, None, "", error_message="missing function name")

    left, right = span
    name = header[left:right]
    params = header[right:].strip().rstrip(":").rstrip()
    outputs = _function_outputs(header, left)

    lines = textwrap.dedent(body).strip("\n")
    body_lines = [lines] if lines.strip() else []

    if outputs:
        body_lines.append("return " + ", ".join(outputs))

    if not body_lines:
        body_lines.append("pass")

    code = f"def {name}{params}:\n" + textwrap.indent("\n".join(body_lines), "    ")

    return FunctionBlock(raw, name, code, outputs=outputs)


def _parse_shared(raw: str, contents: str) -> SharedBlock:
    # vars are the first line; initialization code is the remaining lines
    names_line, _, init = contents.partition("\n")
    names_line = names_line.split("#", 1)[0]
    names = tuple(n for n in _NAME_SPLIT_RE.split(names_line.strip()) if n)

    return SharedBlock(raw, names, normalize_code("\n" + init) if init else "")


def _parse_testif(raw: str, contents: str) -> GuardedBlock:
    header, _, body = contents.partition("\n")
    # Strip any comment from the testif line before looking for features
    header = header.split("#", 1)[0]
    code = normalize_code("\n" + body) if body else ""

    try:
        parsed = parse_testif_header(header)
    except HeaderError as exc:
        return GuardedBlock(raw, code, error_message=str(exc))

    return GuardedBlock(
        raw,
        code,
        features=parsed.features,
        runtime_condition=parsed.runtime_condition,
        bug_id=parsed.bug_id,
        fixed=parsed.fixed,
    )


def parse_block(raw: str) -> Block:
    """Classify one raw block string."""
    type_tag = _TYPE_TAG_RE.match(raw).group(0)
    contents = raw[len(type_tag):]

    match type_tag:
        case "demo":
            return DemoBlock(raw, contents)
        case "shared":
            return _parse_shared(raw, contents)
        case "function":
            return _parse_function(raw)
        case "endfunction":
            return EndFunctionBlock(raw)
        case "assert" | "fail":
            bug_id, rest, fixed = get_bug_id(contents)
            # Put the keyword back on the code.
            code = normalize_code(type_tag + rest)
            return CheckBlock(raw, _CHECK_KINDS[type_tag], code, bug_id, fixed)
        case "test" | "xtest":
            bug_id, rest, fixed = get_bug_id(contents)
            return CheckBlock(raw, _CHECK_KINDS[type_tag], normalize_code(rest), bug_id, fixed)
        case "error" | "warning":
            pattern, ident, rest = get_pattern(contents)
            kind = BlockKind.WARNING if type_tag == "warning" else BlockKind.ERROR
            return ExpectBlock(raw, kind, normalize_code(rest), pattern, ident)
        case "testif":
            return _parse_testif(raw, contents)
        case _:
            pass

    if raw.startswith("#"):
        return CommentBlock(raw)

    return UnknownBlock(raw, type_tag)


def parse_blocks(body: str) -> List[Block]:
    return [parse_block(raw) for raw in split_blocks(body)]
