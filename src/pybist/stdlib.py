"""Helper functions made available to test code (fail, ...)."""

from __future__ import annotations

import re
import sys
import warnings
from typing import Any, Callable, Dict, Optional, Union

MATCH_ANYTHING = "."

HELPERS: Dict[str, Callable[..., Any]] = {}


def register_helper(name: str):
    def dec(fn: Callable[..., Any]):
        HELPERS[name] = fn
        return fn

    return dec


def pattern_matches(pattern: Optional[str], text: str) -> bool:
    """The default pattern matches anything, even an empty message."""
    if pattern is None or pattern == MATCH_ANYTHING:
        return True

    return re.search(pattern, text, re.DOTALL) is not None


def identifier_matches(cls: type, ident: str) -> bool:
    qualified = f"{cls.__module__}.{cls.__qualname__}"
    return ident in (cls.__name__, cls.__qualname__, qualified)


def _run_snippet(code: Union[str, Callable[[], Any]], frame: Any) -> None:
    if callable(code):
        code()
        return

    namespace = dict(frame.f_locals)
    try:
        compiled = compile(code, "<fail>", "eval", optimize=0)
    except SyntaxError:
        compiled = compile(code, "<fail>", "exec", optimize=0)

    eval(compiled, frame.f_globals, namespace)


@register_helper("fail")
def fail(code: Union[str, Callable[[], Any]], pattern: Optional[str] = None, *, warning: bool = False) -> None:
    """Assert that `code` raises an error (or emits a warning) matching `pattern`.

    `code` is either a callable or a string evaluated in the caller's scope.
    Raises AssertionError when the expectation is not met.
    """
    caller = sys._getframe(1)
    label = f" <{pattern}>" if pattern not in (None, MATCH_ANYTHING) else ""

    if not warning:
        try:
            _run_snippet(code, caller)
        except KeyboardInterrupt:
            raise
        except BaseException as exc:
            if pattern_matches(pattern, str(exc)):
                return
            raise AssertionError(f"expected error{label}\nbut got <{exc}>") from None
        raise AssertionError(f"expected error{label} but got none")

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            _run_snippet(code, caller)
        except KeyboardInterrupt:
            raise
        except BaseException as exc:
            raise AssertionError(f"expected warning{label}\nbut got error <{exc}>") from None

    if not caught:
        raise AssertionError(f"expected warning{label} but got none")

    message = str(caught[-1].message)
    if not pattern_matches(pattern, message):
        raise AssertionError(f"expected warning{label}\nbut got <{message}>")
