"""Compiled artifact → Python source.

A compiled artifact is text with ``<% ... %>`` code regions. Text outside
regions becomes ``_write('...')`` calls; each non-blank line inside a region
is one Python statement, written without indentation:

    <% for k, u in _items(users): %>
    <li><% _echo(u['name']) %></li>
    <% if u['admin']: %> (admin)<% end %>
    <% end %>

Indentation is derived from the statements themselves:

- a line ending in ``:`` opens a block
- ``end`` (or a line starting with ``#end``) closes the innermost block
- ``elif``/``else``/``except``/``finally`` close the current block and open
  the next one

Empty blocks get a ``pass``. A region left open at the end of the artifact
runs to the end. Code markers that were template text come back here, after
the regions are split, as plain characters.
"""

from __future__ import annotations

import re

from tagtpl.compiler.expressions import restore_code_markers
from tagtpl.environment.exceptions import ErrorCode, TemplateSyntaxError

_REGION_RE = re.compile(r"<%(.*?)(?:%>|\Z)", re.DOTALL)

_CONTINUATIONS = frozenset({"elif", "else", "except", "finally"})

_KEYWORD_RE = re.compile(r"[A-Za-z_]\w*")


class CodeBuilder:
    """Build Python source line by line, tracking indentation."""

    INDENT_STEP = 4

    __slots__ = ("_block_sizes", "_lines", "indent_level", "template_name")

    def __init__(self, template_name: str | None = None):
        self._lines: list[str] = []
        self._block_sizes: list[int] = []
        self.indent_level = 0
        self.template_name = template_name

    def __str__(self) -> str:
        return "".join(self._lines)

    def add_line(self, line: str, *, counts: bool = True) -> None:
        """Add one statement at the current indentation."""
        self._lines.extend([" " * self.indent_level, line, "\n"])
        if counts and self._block_sizes:
            self._block_sizes[-1] += 1

    def indent(self) -> None:
        self.indent_level += self.INDENT_STEP
        self._block_sizes.append(0)

    def dedent(self) -> None:
        if not self._block_sizes:
            raise TemplateSyntaxError(
                "'end' without an open block",
                name=self.template_name,
                code=ErrorCode.INVALID_CODE,
            )
        if self._block_sizes.pop() == 0:
            self._lines.extend([" " * self.indent_level, "pass", "\n"])
        self.indent_level -= self.INDENT_STEP

    def add_text(self, text: str) -> None:
        if text:
            self.add_line(f"_write({restore_code_markers(text)!r})")

    def add_code(self, code: str) -> None:
        """Add the statements of one code region."""
        for raw in restore_code_markers(code).splitlines():
            line = raw.strip()
            if not line:
                continue
            if line == "end" or line.startswith("#end"):
                self.dedent()
                continue
            if line.startswith("#"):
                self.add_line(line, counts=False)
                continue

            keyword = _KEYWORD_RE.match(line)
            if keyword and keyword.group(0) in _CONTINUATIONS:
                self.dedent()
                self.add_line(line)
                self.indent()
                continue

            self.add_line(line)
            if line.endswith(":"):
                self.indent()

    def finish(self) -> str:
        """Return the source; every block must be closed."""
        if self._block_sizes:
            raise TemplateSyntaxError(
                f"{len(self._block_sizes)} block(s) not closed with 'end'",
                name=self.template_name,
                code=ErrorCode.UNCLOSED_BLOCK,
            )
        return str(self)


def assemble(artifact: str, template_name: str | None = None) -> str:
    """Turn a compiled artifact into Python source."""
    builder = CodeBuilder(template_name)
    pos = 0
    for match in _REGION_RE.finditer(artifact):
        builder.add_text(artifact[pos : match.start()])
        builder.add_code(match.group(1))
        pos = match.end()
    builder.add_text(artifact[pos:])
    return builder.finish()
