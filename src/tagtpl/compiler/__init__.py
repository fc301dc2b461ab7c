"""Template source → compiled artifact.

See `tagtpl.compiler.core` for the pass order.

"""

from tagtpl.compiler.core import Compiler

__all__ = ["Compiler"]
