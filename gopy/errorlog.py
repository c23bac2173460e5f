"""Append-only, timestamped error log used by the gopy driver."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, TextIO

DEFAULT_LOG = "gopy_errors.log"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
LINE_FORMAT = "[%(asctime)s] %(message)s"


class ClockFormatter(logging.Formatter):
    """Formatter that stamps records from an injectable clock."""

    def __init__(self, clock: Callable[[], datetime]):
        super().__init__(LINE_FORMAT, datefmt=TIMESTAMP_FORMAT)
        self.clock = clock

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return self.clock().strftime(datefmt or TIMESTAMP_FORMAT)


class ErrorLog:
    """Writes `[YYYY-MM-DD HH:MM:SS] message` lines through a private logger.

    The stream is injected and wrapped in a StreamHandler, which never closes
    it. ErrorLog.open() attaches a FileHandler instead, which close() does
    close. A log built with stream=None has no handler and drops messages.
    """

    def __init__(
        self,
        stream: TextIO | None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.clock: Callable[[], datetime] = clock
        # Not registered with logging.getLogger, so each log is independent.
        self.logger = logging.Logger("gopy.errors", logging.ERROR)
        self.logger.propagate = False
        self.logger.addHandler(logging.NullHandler())
        self.handler: logging.Handler | None = None
        if stream is not None:
            self._attach(logging.StreamHandler(stream))

    @classmethod
    def open(cls, path: str, clock: Callable[[], datetime] = datetime.now) -> ErrorLog:
        """Open path for appending, creating it if needed."""
        log = cls(None, clock)
        log._attach(logging.FileHandler(path, mode="a", encoding="utf-8"))
        return log

    def _attach(self, handler: logging.Handler) -> None:
        handler.setFormatter(ClockFormatter(self.clock))
        self.logger.addHandler(handler)
        self.handler = handler

    def log(self, message: str) -> None:
        self.logger.error(message)

    def close(self) -> None:
        if self.handler is not None:
            self.logger.removeHandler(self.handler)
            self.handler.close()
        self.handler = None

    def __enter__(self) -> ErrorLog:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
