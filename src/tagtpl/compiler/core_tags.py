"""Paired core directives.

Every handler returns a code region (``<% ... %>``) or an open/close half of
one. Block structure inside regions is explicit: a line ending in ``:``
opens a block, ``end`` closes it (see `tagtpl.template.codegen`).

Example:
    {loop name="users" item="u"}{$index}. {$u.name}{/loop}

    <% index = 1
    for k, u in _items(users): %>...<% index += 1
    end %>
"""

from __future__ import annotations

import logging
import re
from typing import ClassVar

from tagtpl.compiler.expressions import (
    parse_test,
    py_literal,
    rewrite_dot_path,
    substitute_operators,
    to_python,
    variable,
)
from tagtpl.environment.exceptions import ErrorCode, TemplateSyntaxError
from tagtpl.parser.attributes import Attributes, require_attr
from tagtpl.parser.taglib import TagLib

logger = logging.getLogger(__name__)

_NUMERIC_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")

_COMPARISONS = frozenset({"<", ">", "<=", ">="})

_CLOSE = "<% end %>"


def _number_literal(text: str) -> str | None:
    """Python literal for a numeric attribute value, or None if not numeric."""
    text = text.strip()
    if not _NUMERIC_RE.match(text):
        return None
    try:
        return repr(int(text))
    except ValueError:
        return repr(float(text))


class CoreTagLib(TagLib):
    """Loops, conditionals, assignment, raw code, config and form tokens."""

    TAGS: ClassVar[dict[str, str]] = {
        "loop": "loop",
        "switch": "switch",
        "if": "if",
        "elseif": "elseif",
        "elif": "elseif",
        "in": "in",
        "between": "between",
        "assign": "assign",
        "php": "php",
        "py": "php",
        "else": "else",
        "token": "token",
        "cfgload": "cfgload",
        "config": "config",
        "foreach": "foreach",
        "for": "for",
    }

    # for / foreach

    def _start_for(self, attrs: Attributes) -> str:
        """``{for name="i" start="0" stop="10" step="1" comparison="lt"}``"""
        name = variable(require_attr(attrs, "name", "for", self.template_name))
        start = to_python(require_attr(attrs, "start", "for", self.template_name))
        stop = to_python(require_attr(attrs, "stop", "for", self.template_name))
        step = attrs.get("step")
        step = to_python(step) if isinstance(step, str) else "1"

        comparison = attrs.get("comparison")
        op = substitute_operators(comparison).strip() if isinstance(comparison, str) else "<"
        if op not in _COMPARISONS:
            raise TemplateSyntaxError(
                f"'for' comparison must be one of lt, gt, le, ge (got {comparison!r})",
                name=self.template_name,
                code=ErrorCode.MISSING_ATTRIBUTE,
            )
        return f"<% for {name} in _span({start}, {stop}, {step}, '{op}'): %>"

    def _end_for(self) -> str:
        return _CLOSE

    def _start_foreach(self, attrs: Attributes) -> str:
        """``{foreach $list as $v}`` or ``{foreach $list as $k $v}``.

        Attribute keys are read by position: first the collection, third and
        fourth the loop variables. Values are ignored.
        """
        keys = list(attrs)
        if len(keys) < 3:
            raise TemplateSyntaxError(
                "'foreach' expects '$collection as $value' or '$collection as $key $value'",
                name=self.template_name,
                code=ErrorCode.MISSING_ATTRIBUTE,
            )
        collection = to_python(rewrite_dot_path(keys[0]))
        if len(keys) > 3:
            key, value = to_python(keys[2]), to_python(keys[3])
            return f"<% for {key}, {value} in _items({collection}): %>"
        return f"<% for {to_python(keys[2])} in _values({collection}): %>"

    def _end_foreach(self) -> str:
        return _CLOSE

    # loop

    def _start_loop(self, attrs: Attributes) -> str:
        """``{loop name="users" item="u" key="k" index="index"}``

        The index variable starts at 1. Nested loops must pick distinct
        ``index`` names.
        """
        name = variable(require_attr(attrs, "name", "loop", self.template_name))
        item = variable(require_attr(attrs, "item", "loop", self.template_name))
        key = attrs.get("key")
        key = variable(key) if isinstance(key, str) else "k"
        index = attrs.get("index")
        index = variable(index) if isinstance(index, str) else "index"

        self.set_attribute("index", index)
        return f"<% {index} = 1\nfor {key}, {item} in _items({name}): %>"

    def _end_loop(self) -> str:
        index = self.get_attribute("index")
        return f"<% {index} += 1\nend %>"

    # switch (case/default are body tags)

    def _start_switch(self, attrs: Attributes) -> str:
        name = variable(require_attr(attrs, "name", "switch", self.template_name))
        return f"<% match str({name}):\n"

    def _end_switch(self) -> str:
        return "\nend %>"

    # if / elseif / else

    def _start_if(self, attrs: Attributes) -> str:
        test = require_attr(attrs, "test", "if", self.template_name)
        return f"<% if ({to_python(parse_test(test))}): %>"

    def _end_if(self) -> str:
        return _CLOSE

    def _start_elseif(self, attrs: Attributes) -> str:
        test = require_attr(attrs, "test", "elseif", self.template_name)
        return f"<% elif ({to_python(parse_test(test))}): %>"

    def _start_else(self, attrs: Attributes) -> str:
        return "<% else: %>"

    # in / between

    def _start_in(self, attrs: Attributes) -> str:
        """``{in name="age" value="1,3,5"}...{else/}...{/in}``"""
        name = variable(require_attr(attrs, "name", "in", self.template_name))
        value = require_attr(attrs, "value", "in", self.template_name)
        candidates = ", ".join(py_literal(v.strip()) for v in value.split(","))
        return f"<% if _in({name}, [{candidates}]): %>"

    def _end_in(self) -> str:
        return _CLOSE

    def _start_between(self, attrs: Attributes) -> str:
        """``{between name="age" value="1,10"}``: inclusive on both ends."""
        name = variable(require_attr(attrs, "name", "between", self.template_name))
        value = require_attr(attrs, "value", "between", self.template_name)
        bounds = [b.strip() for b in value.split(",")]
        if len(bounds) < 2 or not bounds[0] or not bounds[1]:
            raise TemplateSyntaxError(
                f"'between' value must be 'low,high' (got {value!r})",
                name=self.template_name,
                code=ErrorCode.MISSING_ATTRIBUTE,
            )
        low, high = to_python(bounds[0]), to_python(bounds[1])
        return f"<% if {name} >= {low} and {name} <= {high}: %>"

    def _end_between(self) -> str:
        return _CLOSE

    # assign

    def _start_assign(self, attrs: Attributes) -> str:
        """``{assign name="total" value="10"/}``

        Numbers and ``true``/``false`` are assigned as such; anything else
        becomes a string.
        """
        name = variable(require_attr(attrs, "name", "assign", self.template_name))
        value = attrs.get("value", "")
        if value is True or value == "true":
            literal = "True"
        elif value == "false":
            literal = "False"
        else:
            literal = _number_literal(value) or py_literal(value)
        return f"<% {name} = {literal} %>"

    # raw code

    def _start_php(self, attrs: Attributes) -> str:
        return "<% "

    def _end_php(self) -> str:
        return " %>"

    # config

    def _start_cfgload(self, attrs: Attributes) -> str:
        """``{cfgload file="site.ini"/}`` or ``{cfgload path="/etc/app" file="site.ini"/}``

        A missing file compiles to nothing.
        """
        filename = require_attr(attrs, "file", "cfgload", self.template_name)
        path = attrs.get("path")
        if isinstance(path, str):
            location = path.rstrip("/") + "/" + filename
        elif self.env is not None:
            location = self.env.config_path(filename)
        else:
            location = "config/" + filename

        if self.env is not None and not self.env.config_loader.exists(location):
            logger.warning(f"Config file '{location}' not found ({self.template_name})")
            return ""
        return f"<% _cfg.update(_load_config({py_literal(location)})) %>"

    def _start_config(self, attrs: Attributes) -> str:
        """``{config name="title"/}`` or ``{config title/}``; an unknown key echoes nothing."""
        key = attrs.get("name")
        if not isinstance(key, str):
            key = next(iter(attrs), None)
        if key is None:
            raise TemplateSyntaxError(
                "'config' tag requires a key ('name' attribute or a bare key)",
                name=self.template_name,
                code=ErrorCode.MISSING_ATTRIBUTE,
            )
        return f"<% _echo(_cfg.get({py_literal(key)})) %>"

    # form token

    def _start_token(self, attrs: Attributes) -> str:
        return "<% _echo(_token()) %>"
