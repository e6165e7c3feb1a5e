from __future__ import annotations

import importlib.util
import os
from pathlib import Path
from typing import Optional, Union

from loguru import logger


def _find_module_file(name: str) -> Optional[str]:
    try:
        spec = importlib.util.find_spec(name)
    except (ImportError, ValueError):
        return None

    if spec is None or not spec.origin or not spec.has_location:
        return None

    return spec.origin


def locate(name: Union[str, "os.PathLike[str]"]) -> Optional[str]:
    """
    Resolve `name` to one source file.
    - An existing file path is used as is.
    - Otherwise a dotted module name is looked up on sys.path; a package
      resolves to its __init__.py.
    Returns None when nothing matches.
    """

    candidate = Path(name)
    if candidate.is_file():
        return str(candidate)

    text = os.fspath(name)
    if not text or os.sep in text or text.endswith(".py"):
        logger.debug(f"no such file: {text}")
        return None

    found = _find_module_file(text)
    if found is None or not os.path.isfile(found):
        logger.debug(f"module {text} has no source file")
        return None

    return found
