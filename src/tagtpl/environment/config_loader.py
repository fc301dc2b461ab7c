"""Config resource loaders for the ``cfgload``/``config`` directives.

A config loader turns a path into a flat key → value mapping. The
``cfgload`` directive merges that mapping into the per-render config
namespace and ``config`` echoes one key from it.
"""

from __future__ import annotations

import configparser
from pathlib import Path
from typing import Protocol

_DEFAULT_SECTION = "__top__"


class ConfigLoader(Protocol):
    def read(self, path: str) -> dict[str, str]: ...

    def exists(self, path: str) -> bool: ...


class IniConfigLoader:
    """Read INI files into a flat dict.

    Sections are flattened: keys from every section land in one mapping, a
    later section overriding an earlier one. Keys before the first section
    header are accepted. Values are returned as strings with surrounding
    double quotes removed.

    Example:
            >>> IniConfigLoader().read("config/site.ini")
            {'title': 'My Site', 'per_page': '20'}
    """

    __slots__ = ("_encoding",)

    def __init__(self, encoding: str = "utf-8"):
        self._encoding = encoding

    def read(self, path: str) -> dict[str, str]:
        text = Path(path).read_text(self._encoding)
        parser = configparser.ConfigParser(interpolation=None, default_section=_DEFAULT_SECTION)
        parser.optionxform = str  # keep key case
        parser.read_string(f"[{_DEFAULT_SECTION}]\n{text}")

        values: dict[str, str] = dict(parser.defaults())
        for section in parser.sections():
            for key, value in parser.items(section, raw=True):
                values[key] = value
        return {key: _unquote(value) for key, value in values.items()}

    def exists(self, path: str) -> bool:
        return Path(path).is_file()


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value
