"""Body core directives.

Handlers receive the raw text between the start and end tag. ``TAGS``
order is the pass order:

- ``literal`` first, so nothing inside it is rewritten. Its braces and
  ``$`` are swapped for sentinels that `restore_literal` reverses after
  every other pass.
- ``include`` next, so included text goes through every later pass (but a
  nested ``include`` inside it is not expanded).
- ``case``/``default`` build ``switch`` branches.
- ``nocache`` last.
"""

from __future__ import annotations

import html
import logging
from typing import ClassVar

from tagtpl.compiler.expressions import escape_code_markers, py_literal, restore_code_markers
from tagtpl.parser.attributes import Attributes, require_attr
from tagtpl.parser.taglib import BodyTagLib

logger = logging.getLogger(__name__)

LITERAL_SENTINELS: dict[str, str] = {
    "_LITERAL_1": "{",
    "_LITERAL_2": "}",
    "_LITERAL_3": "$",
}

_LITERAL_PROTECT = str.maketrans({char: key for key, char in LITERAL_SENTINELS.items()})


def restore_literal(text: str) -> str:
    """Undo the sentinel substitution made by ``{literal}``."""
    for sentinel, char in LITERAL_SENTINELS.items():
        text = text.replace(sentinel, char)
    return text


class CoreBodyTagLib(BodyTagLib):
    TAGS: ClassVar[dict[str, str]] = {
        "literal": "literal",
        "include": "include",
        "case": "case",
        "default": "default",
        "nocache": "nocache",
    }

    def _literal(self, attrs: Attributes, content: str) -> str:
        """``{literal}{$shown_as_is}{/literal}``: HTML-escaped, in a ``<pre>``."""
        return f"<pre>{html.escape(restore_code_markers(content)).translate(_LITERAL_PROTECT)}</pre>"

    def _include(self, attrs: Attributes, content: str) -> str:
        """``{include file="header.html"/}``: substitute the file's raw text."""
        name = require_attr(attrs, "file", "include", self.template_name).strip()
        if self.env is None:
            return ""
        if not self.env.loader.exists(name):
            logger.warning(f"Included template '{name}' of '{self.template_name}' not found")
            return ""
        return escape_code_markers(self.env.loader.get_source(name).source)

    def _case(self, attrs: Attributes, content: str) -> str:
        value = require_attr(attrs, "value", "case", self.template_name)
        return f"case {py_literal(value)}:\n_echo({py_literal(content)})\nend\n"

    def _default(self, attrs: Attributes, content: str) -> str:
        return f"case _:\n_echo({py_literal(content)})\nend\n"

    def _nocache(self, attrs: Attributes, content: str) -> str:
        """``{nocache}...{/nocache}``

        With page caching on, the raw region text is passed to the
        environment's nocache hook, and the text it returns is compiled and
        rendered in place. With caching off the region renders as ordinary
        template text.
        """
        return (
            f"<% if _caching:\n_render_nocache(_nocache({py_literal(content)}))\nelse: %>"
            f"{content}<% end %>"
        )
