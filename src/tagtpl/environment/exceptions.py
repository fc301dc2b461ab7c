"""Exceptions for the tagtpl template system.

Exception Hierarchy:
TemplateError (base)
├── TemplateNotFoundError     # Template source not found by loader
├── TemplateSyntaxError       # Compile-time error (tag contract, generated code)
├── TemplateRuntimeError      # Render-time error with template context
├── UndefinedError            # Undefined variable access
└── StorageError              # Artifact store not writable

Graceful Fallbacks:
Most template-level problems never raise. Malformed attribute text yields
an empty or partial attribute map, unknown directives pass through
unchanged, and missing ``extends``/``include``/``cfgload`` targets are
replaced by empty text. Only contract violations (a required attribute is
absent), unwritable storage, and failures of the generated code surface
as exceptions.

Example:
    ```
    TemplateSyntaxError: Syntax Error: 'loop' tag requires the 'name' attribute
      --> users.html
    ```

"""

from __future__ import annotations

from enum import Enum

# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------


class ErrorCode(Enum):
    """Searchable error codes for tagtpl errors.

    Format: T-{CATEGORY}-{NUMBER}
    Categories: PAR (parser/compiler), RUN (runtime), TPL (template loading),
    STO (artifact storage)
    """

    # Parser errors (T-PAR-xxx)
    MISSING_ATTRIBUTE = "T-PAR-001"
    UNMATCHED_END_TAG = "T-PAR-002"
    UNCLOSED_BLOCK = "T-PAR-003"
    INVALID_CODE = "T-PAR-004"

    # Runtime errors (T-RUN-xxx)
    UNDEFINED_VARIABLE = "T-RUN-001"
    RUNTIME_ERROR = "T-RUN-002"

    # Template loading errors (T-TPL-xxx)
    TEMPLATE_NOT_FOUND = "T-TPL-001"

    # Storage errors (T-STO-xxx)
    STORAGE_UNWRITABLE = "T-STO-001"


class TemplateError(Exception):
    """Base exception for all tagtpl errors.

    All template-related exceptions inherit from this class, enabling
    broad exception handling:

        >>> try:
        ...     env.render("index.html")
        ... except TemplateError as e:
        ...     log.error(f"Template error: {e}")

    Attributes:
        code: Optional ErrorCode for searchable error identification.
    """

    code: ErrorCode | None = None


class TemplateNotFoundError(TemplateError):
    """Template not found by the configured loader.

    Raised when ``Environment.get_template(name)`` cannot locate the
    template source. Directives that reference other templates
    (``extends``, ``include``) never raise this; they fall back to empty text.
    """

    code: ErrorCode | None = ErrorCode.TEMPLATE_NOT_FOUND


class TemplateSyntaxError(TemplateError):
    """Compile-time error in template source or generated code.

    Raised when a directive is used without a required attribute, when an
    end tag has no open start tag of the same name, or when the generated
    code cannot be assembled into valid Python.
    """

    code: ErrorCode | None = ErrorCode.INVALID_CODE

    def __init__(
        self,
        message: str,
        name: str | None = None,
        lineno: int | None = None,
        code: ErrorCode | None = None,
    ):
        self.message = message
        self.name = name
        self.lineno = lineno
        if code is not None:
            self.code = code
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        location = self.name or "<template>"
        if self.lineno:
            location += f":{self.lineno}"
        return f"Syntax Error: {self.message}\n  --> {location}"


class TemplateRuntimeError(TemplateError):
    """Render-time error with template context.

    Generic Python exceptions raised by generated code are converted to
    this type so callers see which template failed.

    Attributes:
        message: Error description
        template_name: Name of the template
        suggestion: Actionable fix suggestion
    """

    code: ErrorCode | None = ErrorCode.RUNTIME_ERROR

    def __init__(
        self,
        message: str,
        *,
        template_name: str | None = None,
        suggestion: str | None = None,
    ):
        self.message = message
        self.template_name = template_name
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [f"Runtime Error: {self.message}"]
        if self.template_name:
            parts.append(f"  Location: {self.template_name}")

        if self.suggestion:
            parts.append(f"\n  Suggestion: {self.suggestion}")

        return "\n".join(parts)


class UndefinedError(TemplateError):
    """Raised when generated code reads a variable that is not bound.

    If ``available_names`` is provided, a "Did you mean?" suggestion is
    included when a close match is found.

    Example:
            >>> env.from_string("{$titl}").render(title="x")
        UndefinedError: Undefined variable 'titl' in <string>. Did you mean 'title'?

    To fix:
        - Bind the variable: env.assign("titl", "value")
        - Use the default segment: {$titl|default=''}
    """

    code: ErrorCode | None = ErrorCode.UNDEFINED_VARIABLE

    def __init__(
        self,
        name: str,
        template: str | None = None,
        available_names: frozenset[str] | None = None,
    ):
        self.name = name
        self.template = template or "<template>"
        self._available_names = available_names
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"Undefined variable '{self.name}' in {self.template}"

        if self._available_names:
            from difflib import get_close_matches

            matches = get_close_matches(self.name, self._available_names, n=1, cutoff=0.6)
            if matches:
                msg += f". Did you mean '{matches[0]}'?"

        msg += f"\n  Hint: Use {{${self.name}|default=''}} for optional variables"
        return msg


class StorageError(TemplateError):
    """Artifact store cannot be written.

    Compilation and page caching abort with this error instead of serving
    stale or partial output.
    """

    code: ErrorCode | None = ErrorCode.STORAGE_UNWRITABLE

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message if path is None else f"{message}: {path}")
