from __future__ import annotations

import os
from typing import Iterable, Union

from .config import DEFAULT_MARKER
from .types import BistFileError


def extract_test_code(lines: Iterable[str], marker: str = DEFAULT_MARKER) -> str:
    """
    Collect the marked test lines of a source file into one buffer.
    - Only lines starting with `marker` are kept, marker stripped.
    - Newlines are preserved; other lines are dropped entirely, so line
      numbers inside the buffer do not match the source file.
    - A `#!/...` shebang on the first line is not test code.
    """

    body = []

    for lineno, line in enumerate(lines):
        if not line.startswith(marker):
            continue

        if lineno == 0 and line.startswith("#!/"):
            continue

        body.append(line[len(marker):])

    return "".join(body)


def read_test_code(path: Union[str, "os.PathLike[str]"], marker: str = DEFAULT_MARKER) -> str:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            return extract_test_code(handle, marker)
    except OSError as exc:
        raise BistFileError(os.fspath(path), exc.strerror or str(exc)) from exc
    except UnicodeDecodeError as exc:
        raise BistFileError(os.fspath(path), str(exc)) from exc
