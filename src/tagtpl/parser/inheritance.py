"""Template inheritance: ``extends`` and ``block``.

Example:
    base.html:
        <title>{block name="title"}Site{/block}</title>

    page.html:
        {extends parent="base.html"/}
        {block name="title"}Page{/block}

Resolution runs before every other pass, as a body-tag scan with two
states. Until an ``extends`` target is found the resolver has no parent.

``extends``
    If the parent exists, switch to *has-parent* and substitute the parent's
    raw text; otherwise substitute nothing and stay *no-parent*. Only one
    parent is supported.

``block``
    Scanned left to right over the whole text, parent text included.
    *no-parent*: the block becomes an echo of its content as a literal.
    *has-parent*: the first occurrence of a name records its content and
    leaves a placeholder; every later occurrence overwrites the recorded
    content and leaves nothing.

`restore_blocks` then swaps each placeholder for the last recorded
content, so a child's block wins over the parent's block of the same name.
This depends on each block name leaving exactly one placeholder.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar

from tagtpl.compiler.expressions import escape_code_markers, py_literal
from tagtpl.parser.attributes import Attributes, require_attr
from tagtpl.parser.taglib import BodyTagLib

if TYPE_CHECKING:
    from tagtpl.environment.core import Environment

logger = logging.getLogger(__name__)


def block_placeholder(name: str) -> str:
    return f"BLOCK_{name}_CONTENT"


class InheritanceResolver(BodyTagLib):
    """Resolve ``extends``/``block`` for one compile.

    Attributes:
        has_parent: True once an ``extends`` target was substituted.
        blocks: Block name → last recorded content.
    """

    TAGS: ClassVar[dict[str, str]] = {
        "extends": "extends",
        "block": "block",
    }

    def __init__(self, env: Environment | None = None, template_name: str | None = None):
        super().__init__(env, template_name)
        self.has_parent = False
        self.blocks: dict[str, str] = {}

    def resolve(self, text: str) -> str:
        """Run both passes and restore block placeholders."""
        return self.restore_blocks(self.parse(text))

    def restore_blocks(self, text: str) -> str:
        for name, content in self.blocks.items():
            text = text.replace(block_placeholder(name), content)
        return text

    def _extends(self, attrs: Attributes, content: str) -> str:
        parent = attrs.get("parent")
        if not isinstance(parent, str) or self.env is None:
            return ""
        if not self.env.loader.exists(parent):
            logger.warning(f"Parent template '{parent}' of '{self.template_name}' not found")
            return ""
        self.has_parent = True
        return escape_code_markers(self.env.loader.get_source(parent).source)

    def _block(self, attrs: Attributes, content: str) -> str:
        if not self.has_parent:
            return f"<% _echo({py_literal(content)}) %>"

        name = require_attr(attrs, "name", "block", self.template_name)
        if name in self.blocks:
            self.blocks[name] = content
            return ""
        self.blocks[name] = content
        return block_placeholder(name)
