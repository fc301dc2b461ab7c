"""Pure runtime helper functions injected into the template namespace.

These are called by generated code at render time. None of them close over
Environment state; the per-render helpers (``_write``, ``_echo``,
``_token``, ...) are built by `Template.render`.

"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any

_LOOKUP_ERRORS = (NameError, KeyError, IndexError, AttributeError, TypeError)


def isset(thunk: Callable[[], Any]) -> bool:
    """True when the expression evaluates without a lookup error and is not None.

    ``{$user.name|default="guest"}`` compiles to
    ``_isset(lambda: user['name'])``.
    """
    try:
        return thunk() is not None
    except _LOOKUP_ERRORS:
        return False


def items(collection: Any) -> Iterable[tuple[Any, Any]]:
    """Key/value pairs: mapping items, or (position, item) for sequences."""
    if collection is None:
        return ()
    if isinstance(collection, Mapping):
        return collection.items()
    return enumerate(collection)


def values(collection: Any) -> Iterable[Any]:
    if collection is None:
        return ()
    if isinstance(collection, Mapping):
        return collection.values()
    return collection


def span(start: Any, stop: Any, step: Any, comparison: str) -> Iterator[Any]:
    """Counting loop behind ``{for}``: yield while ``value <comparison> stop``."""
    test = _COMPARE[comparison]
    value = start
    while test(value, stop):
        yield value
        value += step


_COMPARE: dict[str, Callable[[Any, Any], bool]] = {
    "<": lambda a, b: a < b,
    ">": lambda a, b: a > b,
    "<=": lambda a, b: a <= b,
    ">=": lambda a, b: a >= b,
}


def _loose_equal(value: Any, candidate: str) -> bool:
    if value == candidate or str(value) == candidate:
        return True
    try:
        return float(value) == float(candidate)
    except (TypeError, ValueError):
        return False


def contains(value: Any, candidates: Iterable[str]) -> bool:
    """Membership test behind ``{in}``; ``5`` matches the candidate ``'5'``."""
    return any(_loose_equal(value, candidate) for candidate in candidates)


def strict_equal(left: Any, right: Any) -> bool:
    """Equal values of the same type: ``1`` is not strictly equal to ``True`` or ``'1'``."""
    return type(left) is type(right) and left == right


class _InfixComparison:
    """Infix form of a two-argument test, ``left |op| right``.

    ``left | op`` falls back to ``op.__ror__`` and binds the left operand;
    ``| right`` then calls the test.
    """

    __slots__ = ("_left", "_negate")

    def __init__(self, negate: bool = False, left: Any = None):
        self._negate = negate
        self._left = left

    def __ror__(self, left: Any) -> _InfixComparison:
        return _InfixComparison(self._negate, left)

    def __or__(self, right: Any) -> bool:
        return strict_equal(self._left, right) is not self._negate


STATIC_NAMESPACE: dict[str, Any] = {
    "_isset": isset,
    "_items": items,
    "_values": values,
    "_span": span,
    "_in": contains,
    "_heq": _InfixComparison(),
    "_nheq": _InfixComparison(negate=True),
}
