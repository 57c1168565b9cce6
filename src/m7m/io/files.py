"""File read/append primitives with retry-and-sleep.

``retries=None`` means "no retry at all": the first failure is final. A
missing ``retry_interval`` defaults to one second.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import Path

from m7m.errors import FileOperationError
from m7m.io.retry import call_with_retries

DEFAULT_RETRY_INTERVAL = 1.0


def read_text_file(
    path: str | Path,
    retries: int | None = None,
    retry_interval: float | None = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """Read the whole file as UTF-8 text.

    Raises:
        FileOperationError: When every attempt failed.
    """
    target = Path(path)

    def attempt() -> str:
        try:
            return target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise FileOperationError(f"could not read file {target}: {e}") from e

    return call_with_retries(
        attempt,
        retries=retries or 0,
        retry_interval=DEFAULT_RETRY_INTERVAL if retry_interval is None else retry_interval,
        exceptions=(FileOperationError,),
        description=f"reading file {target}",
        sleep=sleep,
    )


def append_line(
    path: str | Path,
    text: str,
    retries: int | None = None,
    retry_interval: float | None = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Append ``text`` and a newline to the file, creating it if needed.

    Raises:
        FileOperationError: When every attempt failed.
    """
    target = Path(path)

    def attempt() -> None:
        try:
            with target.open("a", encoding="utf-8") as f:
                f.write(text + "\n")
        except OSError as e:
            raise FileOperationError(f"could not write to file {target}: {e}") from e

    call_with_retries(
        attempt,
        retries=retries or 0,
        retry_interval=DEFAULT_RETRY_INTERVAL if retry_interval is None else retry_interval,
        exceptions=(FileOperationError,),
        description=f"appending to file {target}",
        sleep=sleep,
    )
