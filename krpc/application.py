"""Process-wide framework state: command line and configuration."""

from __future__ import annotations

import getopt
import threading

from .config import Config

USAGE = "usage: command -i <config file path>"


class UsageError(Exception):
    """Raised when the command line does not name a configuration file."""

    def __init__(self, message: str = USAGE) -> None:
        super().__init__(message)


class Application:
    """The single framework instance holding the loaded configuration."""

    _instance: "Application | None" = None
    _lock = threading.Lock()

    def __init__(self) -> None:
        self.config = Config()


def parse_args(argv) -> str:
    """Return the configuration path given with ``-i`` in ``argv``."""
    args = list(argv)
    if not args:
        raise UsageError()
    try:
        options, _ = getopt.gnu_getopt(args, "i:")
    except getopt.GetoptError as exc:
        raise UsageError() from exc
    path = ""
    for _, value in options:
        path = value
    if not path:
        raise UsageError()
    return path


def get_instance() -> Application:
    """Return the process-wide application, creating it on first use."""
    with Application._lock:
        if Application._instance is None:
            Application._instance = Application()
        return Application._instance


def get_config() -> Config:
    return get_instance().config


def init(argv) -> Config:
    """Parse ``argv`` (without the program name) and load the configuration."""
    path = parse_args(argv)
    config = Config()
    config.load_file(path)
    get_instance().config = config
    return config