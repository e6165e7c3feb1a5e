from __future__ import annotations

import sys
from typing import Any, Dict, List, Optional, Tuple, Union

from loguru import logger

from .blocks import parse_blocks
from .config import BistConfig
from .engine import BistEngine, EngineOptions, Pause, grab_demos
from .evaluator import Evaluator, PythonEvaluator, module_namespace
from .extract import read_test_code
from .features import FeatureQuery
from .locate import locate
from .logger_config import setup_logger
from .output import SIGNAL_EMPTY, SIGNAL_FAIL, SIGNAL_FILE, LogTarget, OutputSink, explain
from .results import RunResult
from .types import BistError, BistUsageError

MODES = ("normal", "quiet", "verbose", "grabdemo", "explain")

TestOutput = Union[RunResult, Tuple[str, List[int]], None]


def make_options(mode: str, batch: bool, logfile: bool) -> EngineOptions:
    match mode:
        case "normal":
            if logfile:
                verbose = 1
            elif batch:
                verbose = -1
            else:
                verbose = 0
            return EngineOptions(verbose=verbose, batch=batch, logfile=logfile)
        case "quiet":
            return EngineOptions(verbose=-1, batch=batch, logfile=logfile)
        case "verbose":
            return EngineOptions(verbose=1, batch=batch, rundemo=not batch, logfile=logfile)
        case "grabdemo":
            return EngineOptions(verbose=-1, batch=batch, logfile=logfile)
        case _:
            raise BistUsageError(f"unknown mode '{mode}'")


def _base_namespace(file: str, config: BistConfig) -> Dict[str, Any]:
    if config.import_module and file.endswith(".py"):
        return module_namespace(file)

    return {"__name__": "__bist__", "__file__": file}


def test(
    name: Optional[str],
    mode: str = "normal",
    log: LogTarget = None,
    *,
    batch: bool = False,
    config: Optional[BistConfig] = None,
    evaluator: Optional[Evaluator] = None,
    features: Optional[FeatureQuery] = None,
    pause: Optional[Pause] = None,
) -> TestOutput:
    """
    Run the tests embedded in one file.

    `name` is a path or a dotted module name.  `log` is a path or an open
    text stream; giving one (or passing batch=True) runs in batch mode, where
    a hard failure does not stop the file.

    Returns the file's RunResult, `(code, offsets)` for "grabdemo", and None
    for "explain".
    """

    if mode not in MODES:
        raise BistUsageError(f"unknown mode '{mode}'")

    if mode != "explain" and not name:
        raise BistUsageError("a file or module name is required")

    config = config or BistConfig.from_env()
    logfile = log is not None
    batch = batch or logfile

    with OutputSink.open(log) as sink:
        if mode == "explain":
            explain(sink)
            return None

        if logfile:
            sink.emit(f"{SIGNAL_FILE}processing {name}\n")

        options = make_options(mode, batch, logfile)
        return _run_file(name, mode, sink, options, config, evaluator, features, pause)


# not a pytest test function
test.__test__ = False  # type: ignore[attr-defined]


def _run_file(
    name: str,
    mode: str,
    sink: OutputSink,
    options: EngineOptions,
    config: BistConfig,
    evaluator: Optional[Evaluator],
    features: Optional[FeatureQuery],
    pause: Optional[Pause],
) -> TestOutput:
    grabdemo = mode == "grabdemo"

    file = locate(name)
    if file is None:
        if grabdemo:
            return "", []
        sink.emit(f"{SIGNAL_EMPTY}{name} does not exist in path\n")
        return RunResult()

    body = read_test_code(file, config.marker)
    blocks = parse_blocks(body)

    if grabdemo:
        return grab_demos(blocks)

    if not body:
        sink.emit(f"{SIGNAL_EMPTY}{file} has no tests available\n")
        return RunResult().classify(file, config.fail_threshold)

    if options.verbose > 0:
        sink.emit(f"{SIGNAL_FILE}{file}\n")

    logger.info(f"running {len(blocks)} block(s) from {file}")

    if evaluator is None:
        try:
            evaluator = PythonEvaluator(_base_namespace(file, config), filename=file)
        except KeyboardInterrupt:
            raise
        except BaseException as exc:
            # A module that cannot be imported fails as one test.
            sink.emit(f"{SIGNAL_FAIL}could not import {file}\n{type(exc).__name__}: {exc}\n")
            return RunResult(tests=1).classify(file, config.fail_threshold)

    engine = BistEngine(evaluator, sink, options, config=config, features=features, pause=pause)
    result = engine.run(blocks, file)
    result.classify(file, config.fail_threshold)

    logger.info(f"{file}: {result.successes}/{result.tests} passed")

    if not options.batch:
        sink.emit(result.summary(file))

    return result


def main() -> None:
    mode = "normal"
    log = None
    name = None
    it = iter(sys.argv[1:])

    for token in it:
        if token in ("--quiet", "--verbose", "--explain"):
            mode = token[2:]
            continue

        if token.startswith("--log="):
            log = token.split("=", 1)[1]
            continue

        if token == "--log":
            try:
                log = next(it)
            except StopIteration:
                raise SystemExit("--log flag requires a path") from None
            continue

        if name is None:
            name = token
        else:
            raise SystemExit(f"Unexpected argument: {token}")

    if name is None and mode != "explain":
        raise SystemExit("usage: pybist [--quiet|--verbose|--explain] [--log PATH] NAME")

    setup_logger(BistConfig.from_env().log_level)

    try:
        result = test(name, mode, log)
    except BistError as exc:
        raise SystemExit(str(exc)) from None

    if isinstance(result, RunResult) and not result.success:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
