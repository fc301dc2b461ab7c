"""``{$...}`` interpolation.

Forms:
    {$name}                      echo a variable
    {$user->name}                attribute access
    {$user.address.city}         key access (``user['address']['city']``)
    {$title|default="Untitled"}  fallback when the expression fails
    {$name|upper|truncate=###,10}
                                 filter chain; ``###`` stands for the value
                                 so far and defaults to the only argument

Filter arguments are Python expressions: strings need quotes.
"""

from __future__ import annotations

import re

from tagtpl.compiler.expressions import py_literal, to_python

VARIABLE_RE = re.compile(r"\{\$(.*?)\}")
PLACEHOLDER = "###"

_DEFAULT_RE = re.compile(r"""default\s*=\s*(['"])(.*?)\1""", re.IGNORECASE)


def base_access(segment: str) -> str:
    """Template expression for the part before the first ``|``."""
    if "." in segment:
        head, *keys = (part.strip() for part in segment.split("."))
        return "$" + head + "".join(f"['{key}']" for key in keys)
    return "$" + segment


def apply_filter(segment: str, expr: str) -> str:
    """Wrap ``expr`` in one filter call: ``name=args`` → ``name(args)``."""
    name, _, args = (part.strip() for part in segment.partition("="))
    return f"{name}({args or PLACEHOLDER})".replace(PLACEHOLDER, expr)


def compile_variable(body: str) -> str | None:
    """Compile the text between ``{$`` and ``}``; None if there is nothing to echo."""
    segments = [s for s in (part.strip() for part in body.split("|")) if s]
    if not segments:
        return None

    expr = base_access(segments[0])
    filters = segments[1:]
    if filters:
        default = _DEFAULT_RE.search(filters[0])
        if default:
            value = to_python(expr)
            return (
                f"<% if _isset(lambda: {value}):\n_echo({value})\n"
                f"else:\n_echo({py_literal(default.group(2))})\nend %>"
            )
        for segment in filters:
            expr = apply_filter(segment, expr)
    return f"<% _echo({to_python(expr)}) %>"


def parse_variables(text: str) -> str:
    def _replace(match: re.Match[str]) -> str:
        code = compile_variable(match.group(1))
        return match.group(0) if code is None else code

    return VARIABLE_RE.sub(_replace, text)
