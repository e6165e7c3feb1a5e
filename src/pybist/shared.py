from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple

from .types import BistError

if TYPE_CHECKING:
    from .evaluator import Evaluation, Evaluator

EMPTY = None


class SharedDeclarationError(BistError):
    pass


class SharedEnvironment:
    """
    Ordered set of shared variables that survives from block to block.

    A `shared` block replaces the whole set: every declared name starts out
    empty (None), names left out of the new set are gone.
    """

    def __init__(self) -> None:
        self._names: Tuple[str, ...] = ()
        self._values: Dict[str, Any] = {}

    @property
    def names(self) -> Tuple[str, ...]:
        return self._names

    def __bool__(self) -> bool:
        return bool(self._names)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def declare(
        self,
        names: Iterable[str],
        initializer: str = "",
        evaluator: Optional["Evaluator"] = None,
    ) -> Optional["Evaluation"]:
        """
        Replace the shared set with `names`, all reset to empty, then run
        `initializer` once against them.  A failed initializer leaves the
        names declared but empty; its evaluation is returned to the caller.
        """

        names = tuple(names)
        bad = [n for n in names if not n.isidentifier()]

        if bad:
            raise SharedDeclarationError(f"invalid shared variable name(s): {', '.join(bad)}")

        self._names = tuple(dict.fromkeys(names))
        self._values = {name: EMPTY for name in self._names}

        if not initializer.strip() or evaluator is None:
            return None

        result = evaluator.execute(initializer, self.snapshot())
        if not result.raised:
            self.update(result.bindings)

        return result

    def snapshot(self) -> Dict[str, Any]:
        return {name: self._values[name] for name in self._names}

    def update(self, values: Dict[str, Any]) -> None:
        for name in self._names:
            if name in values:
                self._values[name] = values[name]

    def get(self, name: str, default: Optional[Any] = None) -> Any:
        return self._values.get(name, default)

    def clear(self) -> None:
        self._names = ()
        self._values = {}

    def describe(self) -> List[str]:
        return [f"  {name} = {self._values[name]!r}" for name in self._names]
