"""Directive scanning: attribute parsing, attribute stacks and the two tag engines.

Inheritance resolution lives in `tagtpl.parser.inheritance`.

"""

from tagtpl.parser.attributes import Attributes, parse_attrs, require_attr
from tagtpl.parser.stack import AttributeStack
from tagtpl.parser.taglib import BodyTagLib, TagLib

__all__ = [
    "AttributeStack",
    "Attributes",
    "BodyTagLib",
    "TagLib",
    "parse_attrs",
    "require_attr",
]
