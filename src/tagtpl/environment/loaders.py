"""Template loaders for the tagtpl environment.

Loaders provide template source to the Environment. They implement
``get_source(name)`` returning a `TemplateSource` and ``exists(name)``.
The modification time carried by `TemplateSource` drives compiled-artifact
invalidation: a compiled artifact is reused only while it is newer than
its source.

Built-in Loaders:
- `FileSystemLoader`: Load from filesystem directories
- `DictLoader`: Load from in-memory dictionary (testing/embedded)

Custom Loaders:
Implement the Loader protocol:
    ```python
    class DatabaseLoader:
        def get_source(self, name: str) -> TemplateSource:
            row = db.query("SELECT source, updated FROM templates WHERE name = ?", name)
            if not row:
                raise TemplateNotFoundError(f"Template '{name}' not found")
            return TemplateSource(row.source, f"db://{name}", row.updated)

        def exists(self, name: str) -> bool:
            return db.exists("templates", name)
    ```

"""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from tagtpl.environment.exceptions import TemplateNotFoundError


@dataclass(frozen=True, slots=True)
class TemplateSource:
    """Immutable template text plus its identity and modification time.

    Attributes:
        source: Raw template text.
        filename: Where the text came from (for messages), or None.
        mtime: Modification timestamp in seconds since the epoch.
    """

    source: str
    filename: str | None
    mtime: float


class Loader(Protocol):
    def get_source(self, name: str) -> TemplateSource: ...

    def exists(self, name: str) -> bool: ...


class FileSystemLoader:
    """Load templates from filesystem directories.

    Searches one or more directories for templates by name. The first matching
    file is returned.

    Example:
            >>> loader = FileSystemLoader("templates/")
            >>> loader.get_source("pages/about.html").filename
            'templates/pages/about.html'

    Raises:
        TemplateNotFoundError: If template not found in any search path

    """

    __slots__ = ("_encoding", "_paths")

    def __init__(
        self,
        paths: str | Path | list[str | Path],
        encoding: str = "utf-8",
    ):
        if isinstance(paths, (str, Path)):
            paths = [paths]
        self._paths = [Path(p) for p in paths]
        self._encoding = encoding

    def _find(self, name: str) -> Path | None:
        for base in self._paths:
            path = base / name
            if path.is_file():
                return path
        return None

    def get_source(self, name: str) -> TemplateSource:
        """Load template source and modification time from the filesystem."""
        path = self._find(name)
        if path is None:
            raise TemplateNotFoundError(
                f"Template '{name}' not found in: {', '.join(str(p) for p in self._paths)}"
            )
        mtime = path.stat().st_mtime
        return TemplateSource(path.read_text(self._encoding), str(path), mtime)

    def exists(self, name: str) -> bool:
        return self._find(name) is not None

    def list_templates(self) -> list[str]:
        """List all files in search paths."""
        templates = set()
        for base in self._paths:
            if base.is_dir():
                for path in base.rglob("*"):
                    if path.is_file():
                        templates.add(path.relative_to(base).as_posix())
        return sorted(templates)


class DictLoader:
    """Load templates from an in-memory dictionary.

    Maps template names to source strings. Every entry reports the time it
    was last set as its modification time, so replacing an entry through
    ``loader[name] = source`` invalidates compiled artifacts built from it.

    Example:
            >>> loader = DictLoader({
            ...     "base.html": '<html>{block name="body"}{/block}</html>',
            ...     "page.html": '{extends parent="base.html"/}{block name="body"}Hi{/block}',
            ... })
            >>> env = Environment(loader=loader, compile_store=MemoryStore())
            >>> env.render("page.html")
            '<html>Hi</html>'

    Raises:
        TemplateNotFoundError: If template name not in mapping

    """

    __slots__ = ("_mapping", "_mtimes")

    def __init__(self, mapping: dict[str, str]):
        self._mapping = dict(mapping)
        now = time.time()
        self._mtimes = dict.fromkeys(self._mapping, now)

    def __setitem__(self, name: str, source: str) -> None:
        self._mapping[name] = source
        self._mtimes[name] = time.time()

    def get_source(self, name: str) -> TemplateSource:
        if name not in self._mapping:
            from difflib import get_close_matches

            available = sorted(self._mapping.keys())
            msg = f"Template '{name}' not found"
            matches = get_close_matches(name, available, n=1, cutoff=0.6)
            if matches:
                msg += f". Did you mean '{matches[0]}'?"
            elif available:
                msg += f". Available: {', '.join(available[:10])}"
                if len(available) > 10:
                    msg += f" ... ({len(available)} total)"
            raise TemplateNotFoundError(msg)
        return TemplateSource(self._mapping[name], None, self._mtimes[name])

    def exists(self, name: str) -> bool:
        return name in self._mapping

    def list_templates(self) -> list[str]:
        return sorted(self._mapping.keys())
