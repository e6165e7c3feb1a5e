from __future__ import annotations

import importlib.util
from typing import Callable, Iterable, Optional, Sequence

from loguru import logger

from .headers import strip_feature_prefix

FeatureQuery = Callable[[str], bool]


def module_available(name: str) -> bool:
    try:
        return importlib.util.find_spec(name) is not None
    except (ImportError, ValueError):
        return False


def have_feature(name: str, forced: Iterable[str] = ()) -> bool:
    """
    A feature is available when it is forced on (PYBIST_FEATURES) or when a
    module of the same name, lower-cased, can be imported.
    """

    name = strip_feature_prefix(name)
    forced_names = {strip_feature_prefix(f).lower() for f in forced}

    if name.lower() in forced_names:
        return True

    return module_available(name.lower())


def feature_query(forced: Sequence[str] = ()) -> FeatureQuery:
    def query(name: str) -> bool:
        available = have_feature(name, forced)
        logger.debug(f"feature {name}: {'available' if available else 'missing'}")
        return available

    return query


def all_available(features: Iterable[str], query: Optional[FeatureQuery] = None) -> bool:
    query = query or feature_query()
    return all(query(f) for f in features)
