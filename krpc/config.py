"""Key/value configuration files of the form ``key = value``."""

from __future__ import annotations

from typing import Iterable


def _trim(text: str) -> str:
    return text.strip(" ")


def parse_config_lines(lines: Iterable[str]) -> dict[str, str]:
    """Parse configuration lines into a mapping.

    Lines are trimmed of spaces. Comment lines (starting with ``#``), empty
    lines and lines without ``=`` are skipped. When a key repeats, the first
    value wins.
    """
    entries: dict[str, str] = {}
    for raw in lines:
        line = _trim(raw)
        if not line or line.startswith("#"):
            continue
        key, sep, rest = line.partition("=")
        if not sep:
            continue
        value = _trim(rest.split("\n", 1)[0])
        entries.setdefault(_trim(key), value)
    return entries


class Config:
    """A store of configuration entries loaded from files."""

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def load_file(self, path) -> None:
        """Read entries from ``path``; raises ``OSError`` if it cannot be opened."""
        with open(path, encoding="utf-8") as handle:
            for key, value in parse_config_lines(handle).items():
                self._entries.setdefault(key, value)

    def load(self, key: str) -> str:
        """Return the value for ``key``, or an empty string if it is unknown."""
        return self._entries.get(key, "")

    def __contains__(self, key: object) -> bool:
        return key in self._entries