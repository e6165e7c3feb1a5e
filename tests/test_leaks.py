from __future__ import annotations

import builtins
import warnings
from pathlib import Path

import pytest

from pybist.leaks import LeakDetector
from tests.support.harness import BistLeakWarning


def test_no_leaks_no_warning() -> None:
    detector = LeakDetector({"x": 1})
    detector.snapshot()

    with warnings.catch_warnings():
        warnings.simplefilter("error")
        report = detector.check("clean.py")

    assert not report


def test_sentinels_are_not_leaks() -> None:
    ns: dict = {}
    detector = LeakDetector(ns)
    detector.snapshot()

    ns["__builtins__"] = builtins
    ns["__warningregistry__"] = {}

    assert not detector.compare()


def test_new_namespace_name() -> None:
    ns: dict = {}
    detector = LeakDetector(ns)
    detector.snapshot()
    ns["stray"] = 1

    with pytest.warns(BistLeakWarning, match="leaked variables to base namespace: stray"):
        report = detector.check("dirty.py")

    assert report.names == ["stray"]


def test_new_builtins_name(monkeypatch: pytest.MonkeyPatch) -> None:
    detector = LeakDetector({})
    detector.snapshot()
    monkeypatch.setattr(builtins, "pybist_stray_global", 1, raising=False)

    with pytest.warns(BistLeakWarning, match="leaked global variables: pybist_stray_global"):
        report = detector.check("dirty.py")

    assert report.globals == ["pybist_stray_global"]


def test_open_file_handle(tmp_path: Path) -> None:
    detector = LeakDetector({})
    detector.snapshot()

    handle = open(tmp_path / "held.txt", "w")
    try:
        with pytest.warns(BistLeakWarning, match="leaked file descriptors"):
            report = detector.check("dirty.py")
    finally:
        handle.close()

    assert any(path.endswith("held.txt") for path in report.files)


def test_compare_needs_snapshot() -> None:
    with pytest.raises(RuntimeError):
        LeakDetector({}).compare()
