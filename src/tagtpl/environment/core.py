"""Environment: configuration, variables and the two artifact caches.

Rendering a named template goes through two caches:

Compiled artifacts (``compile_store``)
    Key: ``md5(flat) + flat + ".compiled"`` where ``flat`` is the template
    name with ``/`` replaced by ``_dir_``. Reused while the artifact is
    newer than its source; recompiled otherwise.

Rendered output (``cache_store``, only with ``caching=True``)
    Key: ``[cache_id + "_"] + flat + ".html"``. Reused while younger than
    ``cache_lifetime`` seconds. A hit returns the stored text as-is; the
    template is not executed.

``debug=True`` bypasses both caches (artifacts are still written).

Example:
        >>> env = Environment(template_dir="templates", compile_dir="templates_c")
        >>> env.assign("title", "Home")
        >>> env.render("index.html")
"""

from __future__ import annotations

import hashlib
import logging
import os
import sys
import time
from collections.abc import Callable, Mapping
from typing import Any, TextIO

from tagtpl.compiler.core import Compiler
from tagtpl.environment.config_loader import ConfigLoader, IniConfigLoader
from tagtpl.environment.filters import DEFAULT_FILTERS
from tagtpl.environment.globals import TOKEN_NAME, verify_token
from tagtpl.environment.loaders import FileSystemLoader, Loader, TemplateSource
from tagtpl.environment.registry import FilterRegistry
from tagtpl.environment.request import SYSVAR, RequestContext
from tagtpl.environment.storage import ArtifactStore, FileSystemStore
from tagtpl.template.core import Template

logger = logging.getLogger(__name__)


def _passthrough(content: str) -> str:
    return content


def flatten_name(name: str) -> str:
    """``admin/users/list.html`` → ``admin_dir_users_dir_list.html``"""
    return name.replace("/", "_dir_")


class Environment:
    """Central configuration and cache manager.

    Attributes:
        template_dir: Directory of the default `FileSystemLoader`
        compile_dir: Directory of the default compiled-artifact store
        config_dir: Base directory for ``{cfgload file="..."/}``
        cache_dir: Directory of the default rendered-output store
        cache_lifetime: Seconds a rendered page stays valid
        caching: Enable the rendered-output cache
        debug: Recompile and re-render on every call
        left_delim/right_delim: Tag delimiters (``{$...}`` always uses braces)
        loader: Template source loader
        compile_store: Compiled-artifact store
        cache_store: Rendered-output store
        config_loader: Reader behind ``cfgload``
        request: Request-like inputs for ``sysvar`` and form tokens
        nocache_hook: Called with the raw text of each ``nocache`` region
            while rendering for the page cache; its result is rendered as
            template text (identity by default)
        globals: Variables bound with `assign`
    """

    def __init__(
        self,
        *,
        template_dir: str = "templates",
        compile_dir: str = "templates_c",
        config_dir: str = "config",
        cache_dir: str = "cache",
        cache_lifetime: float = 60,
        caching: bool = False,
        debug: bool = False,
        left_delim: str = "{",
        right_delim: str = "}",
        loader: Loader | None = None,
        compile_store: ArtifactStore | None = None,
        cache_store: ArtifactStore | None = None,
        config_loader: ConfigLoader | None = None,
        request: RequestContext | None = None,
        nocache_hook: Callable[[str], str] | None = None,
        filters: Mapping[str, Callable[..., Any]] | None = None,
    ):
        self.template_dir = template_dir
        self.compile_dir = compile_dir
        self.config_dir = config_dir
        self.cache_dir = cache_dir
        self.cache_lifetime = cache_lifetime
        self.caching = caching
        self.debug = debug
        self.left_delim = left_delim
        self.right_delim = right_delim
        self.loader: Loader = loader if loader is not None else FileSystemLoader(template_dir)
        self.compile_store: ArtifactStore = (
            compile_store if compile_store is not None else FileSystemStore(compile_dir)
        )
        self.cache_store: ArtifactStore = (
            cache_store if cache_store is not None else FileSystemStore(cache_dir)
        )
        self.config_loader: ConfigLoader = (
            config_loader if config_loader is not None else IniConfigLoader()
        )
        self.request = request
        self.nocache_hook = nocache_hook if nocache_hook is not None else _passthrough
        self.globals: dict[str, Any] = {}

        self._filters: dict[str, Callable[..., Any]] = dict(DEFAULT_FILTERS)
        if filters:
            self.filters.update(filters)
        self.sysvar: dict[str, Any] = (request or RequestContext()).sysvar()
        self._templates: dict[str, Template] = {}

    @property
    def filters(self) -> FilterRegistry:
        """Filters available to ``{$expr|name}``."""
        return FilterRegistry(self, "_filters")

    def config_path(self, filename: str) -> str:
        return os.path.join(self.config_dir, filename)

    # -- variables --------------------------------------------------------

    def assign(self, name: str | Mapping[str, Any], value: Any = None) -> None:
        """Bind one variable, or several from a mapping.

        ``sysvar`` is reserved and cannot be assigned.
        """
        values = dict(name) if isinstance(name, Mapping) else {name: value}
        if SYSVAR in values:
            raise ValueError(f"'{SYSVAR}' is reserved for request values")
        self.globals.update(values)

    # -- cache keys -------------------------------------------------------

    def compiled_key(self, name: str) -> str:
        flat = flatten_name(name)
        return hashlib.md5(flat.encode()).hexdigest() + flat + ".compiled"

    def cache_key(self, name: str, cache_id: str | None = None) -> str:
        prefix = f"{cache_id}_" if cache_id else ""
        return prefix + flatten_name(name) + ".html"

    # -- compilation ------------------------------------------------------

    def compile_template(self, name: str) -> str:
        """Return the compiled artifact for ``name``, compiling if stale.

        Raises:
            TemplateNotFoundError: If the loader has no such template
            StorageError: If the artifact cannot be written
        """
        return self._compile(name, self.loader.get_source(name))

    def _compile(self, name: str, source: TemplateSource) -> str:
        key = self.compiled_key(name)
        store = self.compile_store
        if not self.debug and store.exists(key) and store.mtime(key) > source.mtime:
            logger.debug(f"Compiled artifact for '{name}' is current ({key})")
            return store.read(key)

        logger.debug(f"Compiling '{name}' → {key}")
        artifact = Compiler(self, name).compile(source.source)
        store.write(key, artifact)
        return artifact

    def get_template(self, name: str) -> Template:
        """Load a template by name, recompiling when its source changed.

        Raises:
            TemplateNotFoundError: If the loader has no such template
        """
        source = self.loader.get_source(name)
        artifact = self._compile(name, source)
        cached = self._templates.get(name)
        if cached is not None and cached.artifact == artifact:
            return cached
        template = Template(self, artifact, name, source.filename)
        self._templates[name] = template
        return template

    def from_string(self, source: str, name: str | None = None) -> Template:
        """Compile template text.

        The artifact is stored under the md5 of the text and is never
        recompiled: new text means a new key.
        """
        key = hashlib.md5(source.encode()).hexdigest() + ".compiled"
        store = self.compile_store
        if store.exists(key):
            artifact = store.read(key)
        else:
            artifact = Compiler(self, name).compile(source)
            store.write(key, artifact)
        return Template(self, artifact, name)

    def render_string(self, source: str, *args: Any, **kwargs: Any) -> str:
        return self.from_string(source).render(*args, **kwargs)

    # -- rendering --------------------------------------------------------

    def render(self, name: str, cache_id: str | None = None, **context: Any) -> str:
        """Render a named template with the assigned variables.

        With ``caching`` on, output younger than ``cache_lifetime`` is
        returned from the page cache; ``cache_id`` keeps several cached
        variants of one template apart.
        """
        template = self.get_template(name)
        if not self.caching:
            return template.render_context(context)

        key = self.cache_key(name, cache_id)
        store = self.cache_store
        if (
            not self.debug
            and store.exists(key)
            and time.time() - store.mtime(key) < self.cache_lifetime
        ):
            logger.debug(f"Page cache hit for '{name}' ({key})")
            return store.read(key)

        logger.debug(f"Page cache miss for '{name}' ({key})")
        output = template.render_context(context, caching=True)
        store.write(key, output)
        return output

    def display(
        self,
        name: str,
        cache_id: str | None = None,
        file: TextIO | None = None,
        **context: Any,
    ) -> None:
        """Render and write the output to ``file`` (stdout by default)."""
        (file or sys.stdout).write(self.render(name, cache_id, **context))

    # -- cache maintenance ------------------------------------------------

    def clear_cache(self, name: str, cache_id: str | None = None) -> None:
        """Delete rendered output of one template.

        With ``cache_id`` only that variant is deleted; without, every
        entry whose key contains the template's flattened name
        (case-insensitive).
        """
        store = self.cache_store
        if cache_id:
            store.delete(self.cache_key(name, cache_id))
            return
        flat = flatten_name(name).lower()
        for key in store.keys():
            if flat in key.lower():
                store.delete(key)

    def clear_all_cache(self) -> None:
        for key in self.cache_store.keys():
            self.cache_store.delete(key)

    # -- form tokens ------------------------------------------------------

    def check_token(self, submitted: str | None = None) -> bool:
        """Verify a submitted form token and rotate it.

        Without ``submitted`` the value is read from the request parameters.
        """
        if self.request is None:
            return True
        if submitted is None:
            submitted = self.request.request.get(TOKEN_NAME)
        return verify_token(self.request.session, submitted)

    def __repr__(self) -> str:
        return (
            f"<Environment loader={type(self.loader).__name__} "
            f"caching={self.caching} debug={self.debug}>"
        )
