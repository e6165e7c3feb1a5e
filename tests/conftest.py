from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, Iterator, List

import pytest

BASE_DIR = Path(__file__).resolve().parent.parent
SRC_DIR = (BASE_DIR / "src").resolve()

if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))
if str(SRC_DIR) not in sys.path:
    sys.path.append(str(SRC_DIR))

from pybist.config import BistConfig


@pytest.fixture
def config() -> BistConfig:
    """Defaults only; never picks up PYBIST_* from the developer's shell."""
    return BistConfig()


@pytest.fixture(autouse=True)
def _clean_pybist_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for key in (
        "PYBIST_MARKER",
        "PYBIST_TRACKER_URL",
        "PYBIST_FAIL_THRESHOLD",
        "PYBIST_SHUFFLE_SEED",
        "PYBIST_FEATURES",
        "PYBIST_LOG_LEVEL",
        "PYBIST_IMPORT_MODULE",
    ):
        monkeypatch.delenv(key, raising=False)
    yield


def pytest_collection_modifyitems(
    session: pytest.Session,
    config: pytest.Config,
    items: List[pytest.Item],
) -> None:
    """Fail fast if two scenario tables ever produce the same node ID."""
    del session
    del config

    seen: Dict[str, int] = {}
    duplicates: List[str] = []
    for item in items:
        if item.nodeid in seen:
            duplicates.append(item.nodeid)
            continue
        seen[item.nodeid] = 1

    if duplicates:
        lines = "\n".join(f"- {nodeid}" for nodeid in sorted(set(duplicates)))
        raise pytest.UsageError(f"Duplicate pytest nodeids detected during collection:\n{lines}")
