"""Filter registry for the tagtpl environment.

A filter segment is not looked up in a table at render time:
``{$name|upper}`` compiles to ``upper(name)``, so a filter is just a
name in the render namespace. `Template.render_context` copies the
registry once per render, below assigned variables and the render
context. A variable called ``title`` therefore hides the ``title``
filter for that render only.

Because filter names end up as Python names in generated code, the
registry only accepts identifiers. Names starting with ``_`` belong to
the runtime helpers and ``sysvar`` to request values; both are refused.
"""

from __future__ import annotations

import keyword
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING

from tagtpl.environment.request import SYSVAR

if TYPE_CHECKING:
    from tagtpl.environment.core import Environment


def check_filter_name(name: str) -> None:
    """Raise ValueError unless ``name`` can be called from a filter segment."""
    if not isinstance(name, str) or not name.isidentifier() or keyword.iskeyword(name):
        raise ValueError(f"Filter name {name!r} is not a valid identifier")
    if name.startswith("_") or name == SYSVAR:
        raise ValueError(f"Filter name {name!r} is reserved")


class FilterRegistry:
    """Dict-like view over an Environment's filters.

    Supports:
        - env.filters['name'] = func
        - env.filters.update({'name': func})
        - func = env.filters['name']
        - 'name' in env.filters
        - del env.filters['name']

    Every mutation replaces the Environment's dict with a new one, so a
    render that already copied the old dict is unaffected.
    """

    __slots__ = ("_attr", "_env")

    def __init__(self, env: Environment, attr: str):
        self._env = env
        self._attr = attr

    def _get_dict(self) -> dict[str, Callable]:
        return getattr(self._env, self._attr)

    def _set_dict(self, d: dict[str, Callable]) -> None:
        setattr(self._env, self._attr, d)

    def __getitem__(self, name: str) -> Callable:
        return self._get_dict()[name]

    def __setitem__(self, name: str, func: Callable) -> None:
        check_filter_name(name)
        new = self._get_dict().copy()
        new[name] = func
        self._set_dict(new)

    def __delitem__(self, name: str) -> None:
        new = self._get_dict().copy()
        del new[name]
        self._set_dict(new)

    def __contains__(self, name: object) -> bool:
        return name in self._get_dict()

    def __len__(self) -> int:
        return len(self._get_dict())

    def get(self, name: str, default: Callable | None = None) -> Callable | None:
        return self._get_dict().get(name, default)

    def update(self, mapping: Mapping[str, Callable]) -> None:
        """Batch update filters; nothing changes if any name is refused."""
        for name in mapping:
            check_filter_name(name)
        new = self._get_dict().copy()
        new.update(mapping)
        self._set_dict(new)

    def copy(self) -> dict[str, Callable]:
        """Snapshot for one render's namespace."""
        return self._get_dict().copy()
