"""
Host evaluator for block code.

Every code block is compiled into a throwaway function whose parameters are
the current shared variable names and whose globals are the base namespace
(the namespace of the module under test).  Shared values go in as arguments
and whatever the block left in them comes back out in `Evaluation.bindings`.
Anything the block raises, `SystemExit` included, becomes `Evaluation.error`;
only KeyboardInterrupt reaches the caller.
"""

from __future__ import annotations

import builtins
import importlib.util
import os
import textwrap
import warnings
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union

from typing_extensions import Protocol

from .stdlib import HELPERS

_BLOCK_FN = "__bist_block__"
_STATE = "__bist_state__"

# Copies every local that is still a shared name back into the state dict,
# whether the body returned early or not.
_WRITEBACK = f"""\
    finally:
        __bist_locals__ = locals()
        for __bist_name__ in {_STATE}:
            if __bist_name__ in __bist_locals__:
                {_STATE}[__bist_name__] = __bist_locals__[__bist_name__]
"""

Namespace = Dict[str, Any]


@dataclass
class Evaluation:
    """What happened when one snippet ran."""

    error: Optional[BaseException] = None
    bindings: Dict[str, Any] = field(default_factory=dict)
    warnings: List[warnings.WarningMessage] = field(default_factory=list)
    syntax_error: bool = False

    @property
    def raised(self) -> bool:
        return self.error is not None

    @property
    def message(self) -> str:
        if self.error is None:
            return ""

        text = str(self.error)
        if isinstance(self.error, AssertionError) and not text:
            return "assertion failed"

        return text

    @property
    def warning_message(self) -> str:
        if not self.warnings:
            return ""

        return str(self.warnings[-1].message)


class Evaluator(Protocol):
    namespace: Namespace

    def execute(self, code: str, bindings: Dict[str, Any], record_warnings: bool = False) -> Evaluation: ...

    def evaluate(self, expr: str, bindings: Dict[str, Any]) -> Any: ...

    def define(self, name: str, source: str) -> Evaluation: ...

    def undefine(self, name: str) -> None: ...

    def install_helpers(self) -> None: ...

    def remove_helpers(self) -> None: ...


@contextmanager
def diagnostic_capture(record: bool = False) -> Iterator[List[warnings.WarningMessage]]:
    """
    Scope the process-wide warning filters to one block.
    With `record` every warning raised inside is collected instead of shown.
    """

    if not record:
        with warnings.catch_warnings():
            yield []
        return

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        yield caught


def block_source(code: str, names: List[str]) -> str:
    params = ", ".join([_STATE, *names])
    body = code if code.strip() else "pass"

    return (
        f"def {_BLOCK_FN}({params}):\n"
        "    try:\n"
        f"{textwrap.indent(body, ' ' * 8)}\n"
        f"{_WRITEBACK}"
    )


class PythonEvaluator:
    """Runs block code with `exec` against a base namespace."""

    def __init__(self, namespace: Optional[Namespace] = None, filename: str = "<bist>"):
        self.namespace: Namespace = {} if namespace is None else namespace
        self.filename = filename
        self._helpers: List[str] = []

    def _compile(self, source: str, mode: str = "exec") -> Any:
        # optimize=0 keeps `assert` statements under `python -O`.
        return compile(source, self.filename, mode, optimize=0)

    def execute(self, code: str, bindings: Dict[str, Any], record_warnings: bool = False) -> Evaluation:
        names = list(bindings)

        try:
            compiled = self._compile(block_source(code, names))
        except SyntaxError as exc:
            return Evaluation(error=exc, syntax_error=True)

        scratch: Namespace = {}
        exec(compiled, self.namespace, scratch)
        fn = scratch[_BLOCK_FN]
        state = dict(bindings)

        with diagnostic_capture(record_warnings) as caught:
            try:
                fn(state, *(bindings[name] for name in names))
            except KeyboardInterrupt:
                raise
            except BaseException as exc:
                return Evaluation(error=exc, bindings=state, warnings=list(caught))

        return Evaluation(bindings=state, warnings=list(caught))

    def evaluate(self, expr: str, bindings: Dict[str, Any]) -> Any:
        """Evaluate a condition expression. Errors propagate to the caller."""
        return eval(self._compile(expr.strip(), "eval"), self.namespace, dict(bindings))

    def define(self, name: str, source: str) -> Evaluation:
        try:
            compiled = self._compile(source)
        except SyntaxError as exc:
            return Evaluation(error=exc, syntax_error=True)

        try:
            exec(compiled, self.namespace)
        except KeyboardInterrupt:
            raise
        except BaseException as exc:
            return Evaluation(error=exc)

        if name not in self.namespace:
            return Evaluation(error=NameError(f"function {name!r} was not defined"))

        return Evaluation()

    def undefine(self, name: str) -> None:
        self.namespace.pop(name, None)

    def install_helpers(self) -> None:
        for name, fn in HELPERS.items():
            if name in self.namespace:
                continue
            self.namespace[name] = fn
            self._helpers.append(name)

    def remove_helpers(self) -> None:
        for name in self._helpers:
            self.namespace.pop(name, None)
        self._helpers = []


def _module_name(path: str) -> str:
    stem = os.path.splitext(os.path.basename(path))[0]
    return f"__bist_{stem}__"


def module_namespace(path: Union[str, "os.PathLike[str]"]) -> Namespace:
    """
    Run a Python file as a throwaway module and return its namespace.
    The module is not registered in sys.modules and its `__name__` is never
    "__main__", so script entry points stay quiet.
    """

    path = os.fspath(path)
    spec = importlib.util.spec_from_file_location(_module_name(path), path)
    if spec is None or spec.loader is None:
        raise ImportError(f"cannot import {path}")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    return module.__dict__


def builtin_names() -> List[str]:
    return list(vars(builtins))
