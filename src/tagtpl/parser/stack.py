"""Per-tag-name attribute stacks for the paired-tag engine.

Start and end handlers of a paired directive run at different points of
the scan. The stack lets a start handler leave values on its own frame for
the matching end handler to read (``loop`` stores its index variable name
this way). One `AttributeStack` lives for exactly one parsing pass.

Invariant: ``depth(name)`` equals the number of ``name`` start tags seen so
far without a matching end tag. Interleaving of *different* names is not
validated: ``{if}{loop}{/if}{/loop}`` pops each name's own frame and
produces whatever code that implies.
"""

from __future__ import annotations

from tagtpl.environment.exceptions import ErrorCode, TemplateSyntaxError
from tagtpl.parser.attributes import Attributes


class AttributeStack:
    """Map of directive name → stack of attribute frames."""

    __slots__ = ("_frames", "_template_name")

    def __init__(self, template_name: str | None = None):
        self._frames: dict[str, list[Attributes]] = {}
        self._template_name = template_name

    def push(self, name: str, attrs: Attributes) -> None:
        self._frames.setdefault(name, []).append(dict(attrs))

    def peek(self, name: str) -> Attributes:
        """Return the top frame for ``name``."""
        frames = self._frames.get(name)
        if not frames:
            raise self._unmatched(name)
        return frames[-1]

    def pop(self, name: str) -> Attributes:
        frames = self._frames.get(name)
        if not frames:
            raise self._unmatched(name)
        return frames.pop()

    def set(self, name: str, key: str, value: str | bool) -> None:
        """Overwrite one attribute of the top frame for ``name``."""
        self.peek(name)[key] = value

    def depth(self, name: str) -> int:
        return len(self._frames.get(name, ()))

    def is_empty(self) -> bool:
        return not any(self._frames.values())

    def _unmatched(self, name: str) -> TemplateSyntaxError:
        return TemplateSyntaxError(
            f"End tag '/{name}' has no open '{name}' tag",
            name=self._template_name,
            code=ErrorCode.UNMATCHED_END_TAG,
        )
