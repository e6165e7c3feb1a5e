"""Output sink and the line markers used in runner reports."""

from __future__ import annotations

import os
import sys
from typing import List, Optional, TextIO, Union

from .types import BistFileError

# Output from the runner is prefixed by a "key" to quickly understand the issue.
SIGNAL_FAIL = "!!!!! "
SIGNAL_EMPTY = "????? "
SIGNAL_BLOCK = "***** "
SIGNAL_FILE = ">>>>> "
SIGNAL_SKIP = "----- "

LogTarget = Union[str, "os.PathLike[str]", TextIO, "OutputSink", None]


class OutputSink:
    """Writable destination for diagnostics; flushes after every message."""

    def __init__(self, stream: TextIO, owned: bool = False, is_logfile: bool = False):
        self.stream = stream
        self.owned = owned
        self.is_logfile = is_logfile

    @classmethod
    def open(cls, target: LogTarget) -> "OutputSink":
        if target is None:
            return cls(sys.stdout)

        if isinstance(target, OutputSink):
            return target

        if isinstance(target, (str, os.PathLike)):
            path = os.fspath(target)
            try:
                stream = open(path, "w", encoding="utf-8")
            except OSError as exc:
                raise BistFileError(path, exc.strerror or str(exc)) from exc
            return cls(stream, owned=True, is_logfile=True)

        return cls(target, is_logfile=True)

    def emit(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()

    def close(self) -> None:
        if self.owned and not self.stream.closed:
            self.stream.close()

    def __enter__(self) -> "OutputSink":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class MemorySink(OutputSink):
    """Sink that keeps everything it was given; handy in tests and tools."""

    def __init__(self) -> None:
        super().__init__(sys.stdout, owned=False, is_logfile=False)
        self.chunks: List[str] = []

    def emit(self, text: str) -> None:
        self.chunks.append(text)

    def getvalue(self) -> str:
        return "".join(self.chunks)


def explain(sink: Optional[OutputSink] = None) -> str:
    """Write the legend for the line markers and return it."""
    lines = [
        f"# {SIGNAL_FILE} new test file\n",
        f"# {SIGNAL_EMPTY} no tests in file\n",
        f"# {SIGNAL_FAIL} test had an unexpected result\n",
        f"# {SIGNAL_SKIP} test was skipped\n",
        f"# {SIGNAL_BLOCK} code for the test\n\n",
        "# Search for the unexpected results in the file\n",
        "# then page back to find the filename which caused it.\n",
        "# The result may be an unexpected failure (in which\n",
        "# case an error will be reported) or an unexpected\n",
        "# success (in which case no error will be reported).\n",
    ]
    legend = "".join(lines)

    if sink is not None:
        sink.emit(legend)

    return legend
