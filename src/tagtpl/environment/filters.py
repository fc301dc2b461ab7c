"""Default filters available to every template.

A filter segment ``|name`` becomes the call ``name(value)``; a segment
``|name=###,a,b`` becomes ``name(value, a, b)`` where ``###`` marks the
position of the value being filtered. Arguments are written as Python
expressions, so string arguments need quotes:

    {$title|upper}
    {$body|truncate=###,80}
    {$name|replace=###,'_',' '}
    {$created|date='%Y-%m-%d',###}

Python builtins (``len``, ``abs``, ``round``, ...) resolve the same way
and need no registration.
"""

from __future__ import annotations

import hashlib
import html
import re
from collections.abc import Callable, Iterable
from datetime import date as _date
from datetime import datetime
from typing import Any

_NEWLINE_RE = re.compile(r"(\r\n|\n|\r)")


def _str(value: Any) -> str:
    return "" if value is None else str(value)


def upper(value: Any) -> str:
    return _str(value).upper()


def lower(value: Any) -> str:
    return _str(value).lower()


def title(value: Any) -> str:
    return _str(value).title()


def capitalize(value: Any) -> str:
    return _str(value).capitalize()


def trim(value: Any, chars: str | None = None) -> str:
    return _str(value).strip(chars)


def length(value: Any) -> int:
    return len(value) if value is not None else 0


def escape(value: Any) -> str:
    """HTML-escape a value, quotes included."""
    return html.escape(_str(value))


def md5(value: Any) -> str:
    return hashlib.md5(_str(value).encode()).hexdigest()


def nl2br(value: Any) -> str:
    """Insert ``<br />`` before every newline."""
    return _NEWLINE_RE.sub(r"<br />\1", _str(value))


def truncate(value: Any, size: int = 255, end: str = "...") -> str:
    text = _str(value)
    if len(text) <= size:
        return text
    return text[:size] + end


def replace(value: Any, old: str, new: str) -> str:
    return _str(value).replace(old, new)


def join(value: Iterable[Any], separator: str = "") -> str:
    return separator.join(_str(v) for v in value)


def substr(value: Any, start: int, size: int | None = None) -> str:
    """Slice a string by start offset and optional length (negative offsets allowed)."""
    text = _str(value)
    if size is None:
        return text[start:]
    if size < 0:
        return text[start:size]
    stop = start + size
    return text[start:stop] if stop != 0 else text[start:]


def date(fmt: str, value: Any = None) -> str:
    """Format a timestamp, date or datetime with ``strftime``.

    Without a value the current local time is formatted.
    """
    if value is None:
        moment = datetime.now()
    elif isinstance(value, (datetime, _date)):
        moment = value
    else:
        moment = datetime.fromtimestamp(float(value))
    return moment.strftime(fmt)


DEFAULT_FILTERS: dict[str, Callable[..., Any]] = {
    "upper": upper,
    "lower": lower,
    "title": title,
    "capitalize": capitalize,
    "trim": trim,
    "length": length,
    "escape": escape,
    "e": escape,
    "md5": md5,
    "nl2br": nl2br,
    "truncate": truncate,
    "replace": replace,
    "join": join,
    "substr": substr,
    "date": date,
}
