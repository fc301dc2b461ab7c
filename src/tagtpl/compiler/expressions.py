"""Text rewrites applied to expressions inside directives.

Expressions are never parsed into a tree. They are rewritten with regular
expressions and handed to Python as-is:

1. `substitute_operators`: word operators to Python operators
   (``$age gt 5`` → ``$age > 5``).
2. `rewrite_dot_path`: ``$a.b.c`` → ``$a['b']['c']``.
3. `to_python`: template variables to Python names
   (``$a['b']`` → ``a['b']``, ``$user->name`` → ``user.name``).

`py_literal` goes the other way: it turns raw template text into a Python
string literal that later passes cannot match. `escape_code_markers` keeps
``<%``/``%>`` typed in template text from opening code regions.
"""

from __future__ import annotations

import re

OPERATORS: dict[str, str] = {
    "eq": "==",
    "lt": "<",
    "gt": ">",
    "le": "<=",
    "ge": ">=",
    "and": "and",
    "or": "or",
    "neq": "!=",
    "not": "not",
    # Strict (type and value) equality, as infix helpers: ``a |_heq| b``.
    # ``|`` binds looser than arithmetic and tighter than comparisons.
    "heq": "|_heq|",
    "nheq": "|_nheq|",
}

_OPERATOR_RE = re.compile(r"\b(" + "|".join(OPERATORS) + r")\b", re.IGNORECASE)

_DOT_PATH_RE = re.compile(r"\$(\w+)((?:\s*\.\s*\w+)+)")
_DOT_KEY_RE = re.compile(r"\s*\.\s*(\w+)")

_PYTHON_RE = re.compile(
    r"""(?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")|\$(?=[A-Za-z_])|->"""
)

# Characters later passes look for: tag/variable braces, variable sigil,
# code-region markers.
_LITERAL_ESCAPES = {ord(c): f"\\x{ord(c):02x}" for c in "{}$<>%"}

# Code-region markers written as template text. They are swapped out before
# the first pass and only ever come back as output text.
CODE_MARKER_SENTINELS: dict[str, str] = {
    "_CODE_OPEN_": "<%",
    "_CODE_CLOSE_": "%>",
}


def substitute_operators(text: str) -> str:
    """Replace whole-word operator names, case-insensitively.

    >>> substitute_operators("$age eq 5 AND $x neq 1")
    '$age == 5 and $x != 1'
    >>> substitute_operators("eqeq")
    'eqeq'
    """
    return _OPERATOR_RE.sub(lambda m: OPERATORS[m.group(1).lower()], text)


def rewrite_dot_path(text: str) -> str:
    """Rewrite every ``$name.key[.key...]`` into bracket indexing.

    >>> rewrite_dot_path("$a.b.c > 1")
    "$a['b']['c'] > 1"
    """

    def _replace(match: re.Match[str]) -> str:
        keys = _DOT_KEY_RE.findall(match.group(2))
        return "$" + match.group(1) + "".join(f"['{key}']" for key in keys)

    return _DOT_PATH_RE.sub(_replace, text)


def parse_test(text: str) -> str:
    """Rewrite an ``if``/``elseif`` test: operators first, then dot paths."""
    return rewrite_dot_path(substitute_operators(text))


def to_python(expr: str) -> str:
    """Translate template variable syntax into Python, skipping string literals."""

    def _replace(match: re.Match[str]) -> str:
        if match.group("string") is not None:
            return match.group("string")
        return "." if match.group(0) == "->" else ""

    return _PYTHON_RE.sub(_replace, expr)


def variable(name: str) -> str:
    """Python expression for a ``name=`` attribute (``user.age`` or ``$user.age``)."""
    return to_python(rewrite_dot_path("$" + name.strip().lstrip("$")))


def py_literal(text: str) -> str:
    """Return a single-line Python string literal for ``text``.

    Characters that other passes match on are written as ``\\xNN`` escapes,
    so the literal survives every later pass unchanged.
    """
    return repr(restore_code_markers(text)).translate(_LITERAL_ESCAPES)


def escape_code_markers(text: str) -> str:
    """Hide ``<%`` and ``%>`` in template text from the code-region scanner."""
    for sentinel, marker in CODE_MARKER_SENTINELS.items():
        text = text.replace(marker, sentinel)
    return text


def restore_code_markers(text: str) -> str:
    for sentinel, marker in CODE_MARKER_SENTINELS.items():
        text = text.replace(sentinel, marker)
    return text
