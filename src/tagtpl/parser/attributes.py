"""Directive attribute parsing.

Grammar (non-strict):
    attrs := (token | junk)*
    token := NAME ( '=' QUOTE value QUOTE )?
    NAME  := [a-zA-Z_$] \\w*
    QUOTE := '"' | "'"      (the same character on both sides)

Text that does not form a token is skipped. A bare NAME maps to ``True``.
A value cannot contain its own delimiting quote; there is no escaping.

Example:
    >>> parse_attrs('name="users" item=\\'u\\' checked')
    {'name': 'users', 'item': 'u', 'checked': True}
    >>> parse_attrs('$list as $k $v')
    {'$list': True, 'as': True, '$k': True, '$v': True}
"""

from __future__ import annotations

import re

from tagtpl.environment.exceptions import ErrorCode, TemplateSyntaxError

_ATTR_RE = re.compile(r"""([a-zA-Z_$]\w*)(?:\s*=\s*(["'])(.*?)\2)?""")

Attributes = dict[str, "str | bool"]


def parse_attrs(text: str) -> Attributes:
    """Tokenize a raw attribute substring into a key → value map.

    Later occurrences of a key overwrite earlier ones; key order follows
    first appearance.
    """
    attrs: Attributes = {}
    for match in _ATTR_RE.finditer(text):
        value = match.group(3)
        attrs[match.group(1)] = True if value is None else value
    return attrs


def require_attr(attrs: Attributes, key: str, tag: str, template_name: str | None = None) -> str:
    """Return a required string attribute or fail with a descriptive error.

    A bare attribute (``True``) counts as missing: these attributes always
    carry a value.
    """
    value = attrs.get(key)
    if not isinstance(value, str):
        raise TemplateSyntaxError(
            f"'{tag}' tag requires the '{key}' attribute",
            name=template_name,
            code=ErrorCode.MISSING_ATTRIBUTE,
        )
    return value
