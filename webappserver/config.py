"""Configuration settings for the HTTP server."""

from __future__ import annotations

import configparser
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

_VERSION = "1.9.1"

_GENERAL_SECTION = "General"

_FALSE_WORDS = frozenset({"", "0", "false"})


def get_version() -> str:
    """Return the library version number."""
    return _VERSION


class Settings:
    """A group of key/value settings, usually read from one section of an INI file.

    Keys are case-sensitive.  ``file_name`` names the file the settings came
    from; relative paths found in the settings are resolved against its
    directory.
    """

    def __init__(self, values: Mapping[str, Any] | None = None, file_name: str | os.PathLike[str] = "") -> None:
        self._values: dict[str, Any] = dict(values or {})
        self.file_name = os.fspath(file_name)

    def __repr__(self) -> str:
        return f"Settings({self._values!r}, file_name={self.file_name!r})"

    @classmethod
    def from_ini(cls, path: str | os.PathLike[str], group: str | None = None) -> Settings:
        """Read the settings of one group (section) of an INI file.

        Keys that stand before any section header belong to the ``General``
        group, which is also the group used when ``group`` is None.  A group
        that does not exist yields empty settings.
        """
        text = Path(path).read_text(encoding="utf-8")
        parser = configparser.ConfigParser(interpolation=None, strict=False)
        parser.optionxform = str  # type: ignore[assignment,method-assign]
        parser.read_string(f"[{_GENERAL_SECTION}]\n{text}", source=os.fspath(path))
        section = group or _GENERAL_SECTION
        values = dict(parser.items(section)) if parser.has_section(section) else {}
        return cls(values, path)

    def get_int(self, key: str, default: int = 0) -> int:
        """Return the setting as an integer, or ``default`` if it is missing.

        Raises ValueError if the value is not an integer.
        """
        value = self._values.get(key)
        if value is None:
            return default
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, int):
            return value
        try:
            return int(str(value).strip())
        except ValueError:
            raise ValueError(f"setting {key!r} is not an integer: {value!r}") from None

    def get_str(self, key: str, default: str = "") -> str:
        """Return the setting as a string, or ``default`` if it is missing."""
        value = self._values.get(key)
        if value is None:
            return default
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Return the setting as a boolean, or ``default`` if it is missing.

        Strings are false when empty, ``"0"`` or ``"false"`` (any case).
        """
        value = self._values.get(key)
        if value is None:
            return default
        if isinstance(value, (bool, int)):
            return bool(value)
        return str(value).strip().lower() not in _FALSE_WORDS

    def resolve_path(self, path: str | os.PathLike[str]) -> str:
        """Make a path absolute, relative to the directory of the settings file."""
        path = os.fspath(path)
        if os.path.isabs(path):
            return path
        base = os.path.dirname(os.path.abspath(self.file_name)) if self.file_name else os.getcwd()
        return os.path.abspath(os.path.join(base, path))