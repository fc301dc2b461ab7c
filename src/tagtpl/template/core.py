"""Template: a compiled artifact ready for rendering.

The artifact is assembled into Python source and compiled to a code object
once, at construction. Each render executes that code object in a fresh
namespace, so renders share nothing but the (immutable) code.

Namespace layers, later layers win:
    runtime helpers → filters → assigned variables → render context → sysvar

Example:
        >>> from tagtpl import Environment
        >>> env = Environment()
        >>> t = env.from_string("Hello, {$name|upper}!")
        >>> t.render(name="World")
        'Hello, WORLD!'
"""

from __future__ import annotations

import types
import weakref
from typing import TYPE_CHECKING, Any

from tagtpl.compiler.core import Compiler
from tagtpl.environment.exceptions import (
    ErrorCode,
    TemplateError,
    TemplateRuntimeError,
    TemplateSyntaxError,
    UndefinedError,
)
from tagtpl.environment.globals import issue_token
from tagtpl.environment.request import SYSVAR
from tagtpl.template.codegen import assemble
from tagtpl.template.helpers import STATIC_NAMESPACE

if TYPE_CHECKING:
    from tagtpl.environment.core import Environment


def compile_source(source: str, filename: str, name: str | None = None) -> types.CodeType:
    """Compile assembled Python source; a SyntaxError becomes TemplateSyntaxError."""
    try:
        return compile(source, filename, "exec")
    except SyntaxError as e:
        raise TemplateSyntaxError(
            f"Generated code is not valid Python: {e.msg}",
            name=name,
            lineno=e.lineno,
            code=ErrorCode.INVALID_CODE,
        ) from e


class Template:
    """Compiled template ready for rendering.

    Attributes:
        name: Template identifier (for error messages)
        filename: Source file path (for error messages)
        artifact: The compiled artifact text
        source: Python source assembled from the artifact
    """

    __slots__ = ("_code", "_env_ref", "_filename", "_name", "artifact", "source")

    def __init__(
        self,
        env: Environment,
        artifact: str,
        name: str | None = None,
        filename: str | None = None,
    ):
        self._env_ref: weakref.ref[Environment] = weakref.ref(env)
        self._name = name
        self._filename = filename
        self.artifact = artifact
        self.source = assemble(artifact, name)
        self._code = compile_source(self.source, filename or name or "<template>", name)

    @property
    def _env(self) -> Environment:
        env = self._env_ref()
        if env is None:
            raise RuntimeError(
                f"Environment has been garbage collected (template: {self._name or 'unknown'})"
            )
        return env

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def filename(self) -> str | None:
        return self._filename

    def render(self, *args: Any, **kwargs: Any) -> str:
        """Render with the environment's variables plus the given context.

        Args:
            *args: Single dict of context variables
            **kwargs: Context variables as keyword arguments

        Example:
            >>> t.render(name="World")
            'Hello, World!'
            >>> t.render({"name": "World"})
            'Hello, World!'
        """
        ctx: dict[str, Any] = {}
        if args:
            if len(args) == 1 and isinstance(args[0], dict):
                ctx.update(args[0])
            else:
                raise TypeError(
                    f"render() takes at most 1 positional argument (a dict), got {len(args)}"
                )
        ctx.update(kwargs)
        return self.render_context(ctx)

    def render_context(self, ctx: dict[str, Any], *, caching: bool = False) -> str:
        """Execute the compiled code against ``ctx``.

        ``caching`` is True when the output is headed for the page cache;
        ``nocache`` regions then go through the environment's nocache hook,
        and whatever the hook returns is compiled and run in this render's
        namespace, writing to the same output.
        """
        env = self._env
        buf: list[str] = []

        def _echo(value: Any) -> None:
            if value is not None:
                buf.append(str(value))

        def _render_nocache(text: Any) -> None:
            if text is None:
                return
            artifact = Compiler(env, self._name).compile(str(text))
            filename = self._filename or self._name or "<template>"
            exec(compile_source(assemble(artifact, self._name), filename, self._name), namespace)

        session = env.request.session if env.request is not None else None

        namespace: dict[str, Any] = dict(STATIC_NAMESPACE)
        namespace.update(
            _write=buf.append,
            _echo=_echo,
            _caching=caching,
            _cfg={},
            _load_config=env.config_loader.read,
            _token=lambda: issue_token(session),
            _nocache=env.nocache_hook,
            _render_nocache=_render_nocache,
        )
        namespace.update(env.filters.copy())
        namespace.update(env.globals)
        namespace.update(ctx)
        namespace[SYSVAR] = env.sysvar

        try:
            exec(self._code, namespace)
        except TemplateError:
            raise
        except NameError as e:
            available = frozenset(k for k in namespace if not k.startswith("_"))
            raise UndefinedError(
                e.name or str(e), self._name or "<string>", available
            ) from e
        except Exception as e:
            raise self._enhance_error(e) from e
        return "".join(buf)

    def _enhance_error(self, error: Exception) -> TemplateRuntimeError:
        """Convert a generic exception into TemplateRuntimeError with template context."""
        error_str = str(error).strip() or f"{type(error).__name__} (no details available)"
        suggestion = None
        if isinstance(error, KeyError):
            error_str = f"Missing key {error_str}"
            suggestion = "Use the default segment for optional keys: {$var.key|default=''}"
        elif isinstance(error, TypeError) and "NoneType" in error_str:
            suggestion = "A value is None; check it is bound before using it"
        return TemplateRuntimeError(
            error_str,
            template_name=self._name or "<string>",
            suggestion=suggestion,
        )

    def __repr__(self) -> str:
        return f"<Template {self._name or '(inline)'}>"
