"""Logging setup for the framework."""

from __future__ import annotations

import logging
import sys

_LOGGER = logging.getLogger("krpc")


class KrpcLogger:
    """Attaches a stderr handler to the framework logger for its lifetime."""

    def __init__(self, name: str) -> None:
        self.name = name
        safe_name = name.replace("%", "%%")
        self._handler: logging.Handler | None = logging.StreamHandler(sys.stderr)
        self._handler.setFormatter(
            logging.Formatter(f"%(levelname).1s %(asctime)s {safe_name}] %(message)s")
        )
        _LOGGER.addHandler(self._handler)
        _LOGGER.setLevel(logging.INFO)

    def close(self) -> None:
        """Detach the handler; safe to call more than once."""
        if self._handler is not None:
            _LOGGER.removeHandler(self._handler)
            self._handler = None

    def __enter__(self) -> "KrpcLogger":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @staticmethod
    def info(message: str) -> None:
        _LOGGER.info(message)

    @staticmethod
    def warning(message: str) -> None:
        _LOGGER.warning(message)

    @staticmethod
    def error(message: str) -> None:
        _LOGGER.error(message)

    @staticmethod
    def fatal(message: str) -> None:
        """Log ``message`` and terminate with exit status 1."""
        _LOGGER.critical(message)
        raise SystemExit(1)