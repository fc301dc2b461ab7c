"""Template source → compiled artifact.

``<%`` and ``%>`` already in the source are swapped for sentinels first, so
only the passes below open code regions. Passes run in a fixed order; each
one is a plain text rewrite:

1. inheritance (``extends``/``block``, placeholders restored at once)
2. body tags (``literal``, ``include``, ``case``, ``default``, ``nocache``)
3. paired tags (``if``, ``loop``, ``for``, ...)
4. ``{$...}`` interpolation
5. comments: ``{// ...}`` and ``{/* ... */}`` (may span lines)
6. shorthand calls: ``{:name(args)}``
7. adjacent code regions merged (``%> <%`` → newline)
8. blank lines removed
9. ``literal`` sentinels restored

The artifact is text with ``<% ... %>`` code regions; `tagtpl.template.codegen`
turns it into Python.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from tagtpl.compiler.body_tags import CoreBodyTagLib, restore_literal
from tagtpl.compiler.core_tags import CoreTagLib
from tagtpl.compiler.expressions import escape_code_markers, to_python
from tagtpl.compiler.variables import parse_variables
from tagtpl.parser.inheritance import InheritanceResolver

if TYPE_CHECKING:
    from tagtpl.environment.core import Environment

_LINE_COMMENT_RE = re.compile(r"\{\s*//.*?\}")
_BLOCK_COMMENT_RE = re.compile(r"\{\s*/\*.*?\*/\s*\}", re.DOTALL)
_SHORTHAND_CALL_RE = re.compile(r"\{:\s*([a-zA-Z_]\w*)\s*\((.*?)\)\s*\}")
_ADJACENT_REGIONS_RE = re.compile(r"%>\s*<%")
_BLANK_LINE_RE = re.compile(r"^\s*\r?\n", re.MULTILINE)


def strip_comments(text: str) -> str:
    return _BLOCK_COMMENT_RE.sub("", _LINE_COMMENT_RE.sub("", text))


def expand_shorthand_calls(text: str) -> str:
    """``{:format_price($total, 2)}`` → ``<% _echo(format_price(total, 2)) %>``"""
    return _SHORTHAND_CALL_RE.sub(
        lambda m: f"<% _echo({m.group(1)}({to_python(m.group(2))})) %>", text
    )


def merge_regions(text: str) -> str:
    return _ADJACENT_REGIONS_RE.sub("\n", text)


def remove_blank_lines(text: str) -> str:
    return _BLANK_LINE_RE.sub("", text)


class Compiler:
    """Run every pass over one template source.

    A new `InheritanceResolver` is created per `compile` call, so block
    tables never leak between templates. The tag libraries are created
    once per Compiler; their attribute stacks are reset on every parse.

    Example:
            >>> Compiler().compile("Hi {$name|upper}!")
            'Hi <% _echo(upper(name)) %>!'
    """

    __slots__ = ("_body_tags", "_core_tags", "env", "resolver", "template_name")

    def __init__(self, env: Environment | None = None, template_name: str | None = None):
        self.env = env
        self.template_name = template_name
        self.resolver: InheritanceResolver | None = None
        self._body_tags = CoreBodyTagLib(env, template_name)
        self._core_tags = CoreTagLib(env, template_name)

    def compile(self, source: str) -> str:
        return self.run_passes(escape_code_markers(source))

    def run_passes(self, text: str) -> str:
        """Run the passes over text whose own code markers are already escaped."""
        self.resolver = InheritanceResolver(self.env, self.template_name)
        text = self.resolver.resolve(text)
        text = self._body_tags.parse(text)
        text = self._core_tags.parse(text)
        text = parse_variables(text)
        text = strip_comments(text)
        text = expand_shorthand_calls(text)
        text = merge_regions(text)
        text = remove_blank_lines(text)
        return restore_literal(text)
