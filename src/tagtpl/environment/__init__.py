"""Environment, loaders, artifact stores and the error hierarchy.

"""

from tagtpl.environment.exceptions import (
    ErrorCode,
    StorageError,
    TemplateError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateSyntaxError,
    UndefinedError,
)
from tagtpl.environment.config_loader import ConfigLoader, IniConfigLoader
from tagtpl.environment.loaders import DictLoader, FileSystemLoader, Loader, TemplateSource
from tagtpl.environment.request import SYSVAR, RequestContext
from tagtpl.environment.storage import ArtifactStore, FileSystemStore, MemoryStore
from tagtpl.environment.core import Environment

__all__ = [
    "SYSVAR",
    "ArtifactStore",
    "ConfigLoader",
    "DictLoader",
    "Environment",
    "ErrorCode",
    "FileSystemLoader",
    "FileSystemStore",
    "IniConfigLoader",
    "Loader",
    "MemoryStore",
    "RequestContext",
    "StorageError",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateRuntimeError",
    "TemplateSource",
    "TemplateSyntaxError",
    "UndefinedError",
]
