from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest

from pybist import runner
from pybist.config import BistConfig
from pybist.output import explain
from tests.support.harness import (
    SAMPLE_FILE,
    BistFileError,
    BistUsageError,
    RunResult,
    run_file,
    write_bist,
)

TWO_DEMOS = """\
x = 1
#!demo
#! print("first")
#!assert x == 1
#!demo
#!  y = 2
#!  print(y)
"""


@pytest.mark.parametrize(
    "mode, batch, logfile, verbose, rundemo",
    [
        pytest.param("normal", False, False, 0, False, id="normal"),
        pytest.param("normal", True, False, -1, False, id="normal-batch"),
        pytest.param("normal", True, True, 1, False, id="normal-logfile"),
        pytest.param("quiet", False, False, -1, False, id="quiet"),
        pytest.param("verbose", False, False, 1, True, id="verbose"),
        pytest.param("verbose", True, True, 1, False, id="verbose-logfile"),
        pytest.param("grabdemo", False, False, -1, False, id="grabdemo"),
    ],
)
def test_mode_table(mode: str, batch: bool, logfile: bool, verbose: int, rundemo: bool) -> None:
    options = runner.make_options(mode, batch, logfile)
    assert (options.verbose, options.rundemo) == (verbose, rundemo)


def test_unknown_mode() -> None:
    with pytest.raises(BistUsageError):
        runner.test("anything", "loud")


def test_name_required() -> None:
    with pytest.raises(BistUsageError):
        runner.test("", "normal")


def test_explain_writes_legend() -> None:
    log = io.StringIO()
    assert runner.test(None, "explain", log) is None

    text = log.getvalue()
    assert text == explain()
    for marker in (">>>>> ", "????? ", "!!!!! ", "----- ", "***** "):
        assert f"# {marker}" in text


def test_bundled_sample(config: BistConfig) -> None:
    result, log = run_file(SAMPLE_FILE, config=config)

    assert isinstance(result, RunResult)
    assert result.counters() == {
        "tests": 11,
        "successes": 11,
        "xfail": 0,
        "xbug": 1,
        "xskip": 1,
        "xrtskip": 1,
        "xregression": 0,
        "errors": 0,
    }
    assert result.files_with_tests == [str(SAMPLE_FILE)]
    assert "known bug: https://bugs.python.org/issue12345" in log
    assert log.startswith(f">>>>> processing {SAMPLE_FILE}\n")


def test_file_without_tests(tmp_path: Path, config: BistConfig) -> None:
    path = write_bist(tmp_path, "x = 1\n")
    result, log = run_file(path, config=config)

    assert result.tests == 0
    assert result.files_with_no_tests == [str(path)]
    assert f"????? {path} has no tests available" in log


def test_unlocatable_name_is_zero_tests(config: BistConfig) -> None:
    result, log = run_file(Path("no_such_module_pybist_xyz"), config=config)

    assert result == RunResult()
    assert "does not exist in path" in log


def test_grabdemo_offsets(tmp_path: Path, config: BistConfig) -> None:
    path = write_bist(tmp_path, TWO_DEMOS)
    code, offsets = runner.test(str(path), "grabdemo", config=config)

    assert len(offsets) == 2
    assert offsets[-1] == len(code)
    assert code[: offsets[0]] == '\n print("first")'
    assert code[offsets[0] : offsets[1]] == "\n  y = 2\n  print(y)"


def test_grabdemo_unlocatable(config: BistConfig) -> None:
    assert runner.test("no_such_module_pybist_xyz", "grabdemo", config=config) == ("", [])


def test_interactive_prints_summary(tmp_path: Path, capsys: pytest.CaptureFixture, config: BistConfig) -> None:
    path = write_bist(tmp_path, "#!assert True\n#!xtest\n#! assert False\n")
    result = runner.test(str(path), "normal", config=config)

    out = capsys.readouterr().out
    assert result.success
    assert "PASSES 1 out of 1 test (1 known failure)" in out


def test_interactive_halts_on_hard_failure(tmp_path: Path, capsys: pytest.CaptureFixture, config: BistConfig) -> None:
    path = write_bist(tmp_path, "#!assert 1 == 2\n#!assert True\n")
    result = runner.test(str(path), "normal", config=config)

    assert (result.tests, result.successes) == (1, 0)
    assert "!!!!! test failed" in capsys.readouterr().out


def test_verbose_runs_demo_with_pause(tmp_path: Path, config: BistConfig) -> None:
    path = write_bist(tmp_path, TWO_DEMOS)
    pauses: list = []

    runner.test(str(path), "verbose", config=config, pause=pauses.append)

    assert len(pauses) == 2


def test_log_path_is_written_and_closed(tmp_path: Path, config: BistConfig) -> None:
    path = write_bist(tmp_path, "#!assert False\n#!assert True\n")
    log_path = tmp_path / "run.log"

    result = runner.test(str(path), "normal", str(log_path), config=config)

    assert (result.tests, result.successes) == (2, 1)
    text = log_path.read_text(encoding="utf-8")
    assert "!!!!! test failed" in text
    assert "***** assert True" in text


def test_unopenable_log(tmp_path: Path, config: BistConfig) -> None:
    path = write_bist(tmp_path, "#!assert True\n")
    with pytest.raises(BistFileError):
        runner.test(str(path), "normal", str(tmp_path / "missing" / "run.log"), config=config)


def test_module_namespace_is_used(tmp_path: Path, config: BistConfig) -> None:
    path = write_bist(tmp_path, "LIMIT = 4\n#!assert LIMIT == 4\n")
    result, _ = run_file(path, config=config)
    assert result.successes == 1


def test_import_module_off(tmp_path: Path, config: BistConfig) -> None:
    path = write_bist(tmp_path, "LIMIT = 4\n#!error id=NameError LIMIT\n")
    result, _ = run_file(path, config=config.with_overrides(import_module=False))
    assert result.successes == 1


def test_broken_module_fails_one_test(tmp_path: Path, config: BistConfig) -> None:
    path = write_bist(tmp_path, "raise RuntimeError('import time')\n#!assert True\n")
    result, log = run_file(path, config=config)

    assert (result.tests, result.successes) == (1, 0)
    assert "could not import" in log


def test_dotted_module_name(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, config: BistConfig) -> None:
    pkg = tmp_path / "bistpkg_for_tests"
    pkg.mkdir()
    (pkg / "__init__.py").write_text("", encoding="utf-8")
    write_bist(pkg, "#!assert 2 + 2 == 4\n", name="mod.py")
    monkeypatch.syspath_prepend(str(tmp_path))

    result, _ = run_file(Path("bistpkg_for_tests.mod"), config=config)

    assert result.successes == 1


def test_main_exit_code(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = write_bist(tmp_path, "#!assert False\n")
    monkeypatch.setattr(sys, "argv", ["pybist", "--quiet", "--log", str(tmp_path / "out.log"), str(path)])
    monkeypatch.setattr(runner, "setup_logger", lambda level: None)

    with pytest.raises(SystemExit) as exc_info:
        runner.main()

    assert exc_info.value.code == 1


def test_main_exit_code_on_setup_failure(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = write_bist(tmp_path, "#!shared a\n#!  a = 1 / 0\n#!assert True\n")
    monkeypatch.setattr(sys, "argv", ["pybist", "--log", str(tmp_path / "out.log"), str(path)])
    monkeypatch.setattr(runner, "setup_logger", lambda level: None)

    with pytest.raises(SystemExit) as exc_info:
        runner.main()

    assert exc_info.value.code == 1
    assert "shared variable initialization failed" in (tmp_path / "out.log").read_text(encoding="utf-8")
