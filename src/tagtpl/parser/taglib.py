"""Regex-driven tag engines.

Two engines rewrite directive occurrences into generated code, each driven
by a static dispatch table (``TAGS``) that subclasses fill in:

`TagLib` (paired tags)
    One left-to-right scan over the whole text matches every directive of
    the form ``{name attrs}``, ``{name attrs/}`` or ``{/name}``. Start and
    end tags are handled separately; an `AttributeStack` carries each start
    tag's attributes until its end tag.

`BodyTagLib` (body tags)
    One scan *per tag name*, in ``TAGS`` order. Each occurrence is matched
    whole, ``{name attrs}raw content{/name}`` or ``{name attrs/}``, and the
    handler receives the attributes plus the raw inner text. Order matters:
    a tag whose content must stay untouched (``literal``) has to come before
    any tag that would rewrite inside it.

Known limitations of the grammar (kept deliberately):
- Attribute text cannot span lines or contain the right delimiter.
- Text that merely looks like a directive of a registered name is rewritten;
  text naming an unregistered directive is returned verbatim.
- Body tags close at the first ``{/name}``, so a body tag cannot nest in
  itself.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import TYPE_CHECKING, ClassVar

from tagtpl.parser.attributes import Attributes, parse_attrs
from tagtpl.parser.stack import AttributeStack

if TYPE_CHECKING:
    from tagtpl.environment.core import Environment

StartHandler = Callable[[Attributes], str]
EndHandler = Callable[[], str]
BodyHandler = Callable[[Attributes, str], str]


class _TagLibBase:
    """Shared construction for both engines."""

    __slots__ = ("env", "left_delim", "right_delim", "template_name")

    def __init__(self, env: Environment | None = None, template_name: str | None = None):
        self.env = env
        self.template_name = template_name
        self.left_delim = env.left_delim if env is not None else "{"
        self.right_delim = env.right_delim if env is not None else "}"


class TagLib(_TagLibBase):
    """Paired-tag engine.

    ``TAGS`` maps a directive name to a handler stem. The stem resolves to
    ``_start_<stem>(attrs) -> str`` and, optionally, ``_end_<stem>() -> str``
    once, at construction.

    Per match:
        - ``{/name}``: call the end handler, then pop ``name``'s frame.
        - ``{name attrs}``: parse attrs, push a frame, call the start handler.
        - ``{name attrs/}``: as a start tag, then pop the frame right away.
          The end handler is *not* called, so self-closing handlers must
          produce complete code on their own.

    Handlers read and write the current frame through `get_attribute`,
    `set_attribute` and `current_attrs`.
    """

    __slots__ = ("_current", "_handlers", "_pattern", "_stack")

    TAGS: ClassVar[dict[str, str]] = {}

    def __init__(self, env: Environment | None = None, template_name: str | None = None):
        super().__init__(env, template_name)
        self._handlers: dict[str, tuple[StartHandler, EndHandler | None]] = {
            tag: (getattr(self, f"_start_{stem}"), getattr(self, f"_end_{stem}", None))
            for tag, stem in self.TAGS.items()
        }
        left, right = re.escape(self.left_delim), re.escape(self.right_delim)
        self._pattern = re.compile(
            rf"{left}(/?)([a-zA-Z_]\w*)([^\r\n{right}]*?)(/?)\s*{right}"
        )
        self._stack = AttributeStack(template_name)
        self._current = ""

    @property
    def stack(self) -> AttributeStack:
        """Attribute stack of the most recent `parse` call."""
        return self._stack

    def parse(self, text: str) -> str:
        self._stack = AttributeStack(self.template_name)
        return self._pattern.sub(self._dispatch, text)

    def _dispatch(self, match: re.Match[str]) -> str:
        closing, tag, attr_text, self_closing = match.groups()
        handlers = self._handlers.get(tag)
        if handlers is None:
            return match.group(0)

        start, end = handlers
        self._current = tag
        if closing:
            result = end() if end is not None else ""
            self._stack.pop(tag)
            return result

        attrs = parse_attrs(attr_text)
        self._stack.push(tag, attrs)
        result = start(attrs)
        if self_closing:
            self._stack.pop(tag)
        return result

    def current_attrs(self) -> Attributes:
        """Attributes of the innermost open tag with the current tag's name."""
        return self._stack.peek(self._current)

    def get_attribute(self, key: str) -> str | bool | None:
        return self.current_attrs().get(key)

    def set_attribute(self, key: str, value: str | bool) -> None:
        self._stack.set(self._current, key, value)


class BodyTagLib(_TagLibBase):
    """Body-tag engine.

    ``TAGS`` maps a directive name to a handler stem resolving to
    ``_<stem>(attrs, content) -> str``. Patterns are compiled once, at
    construction, and applied one tag name at a time in ``TAGS`` order.
    Tag names match case-insensitively and content may span lines.
    """

    __slots__ = ("_passes",)

    TAGS: ClassVar[dict[str, str]] = {}

    def __init__(self, env: Environment | None = None, template_name: str | None = None):
        super().__init__(env, template_name)
        left, right = re.escape(self.left_delim), re.escape(self.right_delim)
        self._passes: list[tuple[re.Pattern[str], BodyHandler]] = []
        for tag, stem in self.TAGS.items():
            name = re.escape(tag)
            pattern = re.compile(
                rf"{left}\s*{name}([^\r\n{right}]*?)"
                rf"(?:/\s*{right}|{right}(.*?){left}/{name}\s*{right})",
                re.IGNORECASE | re.DOTALL,
            )
            self._passes.append((pattern, getattr(self, f"_{stem}")))

    def parse(self, text: str) -> str:
        for pattern, handler in self._passes:
            text = pattern.sub(
                lambda m, handler=handler: handler(parse_attrs(m.group(1)), m.group(2) or ""),
                text,
            )
        return text
