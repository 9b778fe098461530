"""Module containing utilities for logging, along with a standard logger."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional


def _get_logger(name: Optional[str] = "teensycache") -> logging.Logger:
    stderrOutput = logging.StreamHandler()

    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    stderrOutput.setFormatter(formatter)

    logger = logging.getLogger(name)
    logger.addHandler(stderrOutput)

    return logger


def summarize(obj: Any, max_length: int = 255) -> str:
    """Return a stringified representation of the object up to the given length."""
    stringified_obj = str(obj)

    if len(stringified_obj) <= max_length:
        return stringified_obj
    else:
        return stringified_obj[: max_length - 3] + "..."


class Stopwatch:
    """
    Wall clock timer for round-trips to the device.

    The stopwatch starts when it is created and is restarted when used as a context
    manager. Leaving the block stops it, after which elapsed stays fixed.
    """

    def __init__(self):
        self._start = time.monotonic()
        self._end: Optional[float] = None

    def __enter__(self) -> Stopwatch:
        self._start = time.monotonic()
        self._end = None

        return self

    def __exit__(self, *exc_info) -> None:
        self._end = time.monotonic()

    @property
    def elapsed(self) -> float:
        """Return the number of seconds measured so far."""
        end = self._end if self._end is not None else time.monotonic()

        return end - self._start


# Default logger
log = _get_logger()
