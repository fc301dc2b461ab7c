"""Compiled template objects and the runtime they execute against.

"""

from tagtpl.template.codegen import CodeBuilder, assemble
from tagtpl.template.core import Template

__all__ = [
    "CodeBuilder",
    "Template",
    "assemble",
]
