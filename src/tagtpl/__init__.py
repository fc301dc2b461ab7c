"""tagtpl: tag-based text templates compiled to Python.

Quickstart:
    >>> from tagtpl import Environment
    >>> env = Environment()
    >>> env.render_string("Hello, {$name}!", name="World")
    'Hello, World!'

File-based templates:
    >>> env = Environment(template_dir="templates", compile_dir="templates_c")
    >>> env.assign("users", users)
    >>> env.render("users/list.html")

Template language:
    {$user.name}  {$title|upper}  {$bio|default="n/a"}
    {if test="$age ge 18"}...{elseif test="$age gt 12"/}...{else/}...{/if}
    {loop name="users" item="u"}{$index}. {$u.name}{/loop}
    {foreach $users as $k $u}...{/foreach}
    {for name="i" start="0" stop="10" step="2"}{$i}{/for}
    {switch name="role"}{case value="admin"}A{/case}{default}U{/default}{/switch}
    {in name="age" value="1,3,5"}...{/in}  {between name="age" value="1,10"}...{/between}
    {assign name="total" value="10"/}  {include file="header.html"/}
    {extends parent="base.html"/}  {block name="content"}...{/block}
    {literal}{$not_parsed}{/literal}  {nocache}...{/nocache}
    {cfgload file="site.ini"/}{config name="title"/}  {token/}
    {// comment}  {/* multi-line comment */}  {:format_price($total)}

Architecture:
Template Source → Inheritance → Body tags → Paired tags → Variables →
Comments/Calls → Compiled artifact (``<% %>`` regions) → Python source → exec()

Compiled artifacts are cached by source modification time; rendered pages
are cached for ``cache_lifetime`` seconds when ``caching`` is on.

"""

from tagtpl.environment import (
    SYSVAR,
    ArtifactStore,
    ConfigLoader,
    DictLoader,
    Environment,
    ErrorCode,
    FileSystemLoader,
    FileSystemStore,
    IniConfigLoader,
    Loader,
    MemoryStore,
    RequestContext,
    StorageError,
    TemplateError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    TemplateSource,
    TemplateSyntaxError,
    UndefinedError,
)
from tagtpl.template import Template

__version__ = "0.1.0"

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
    "Template",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateRuntimeError",
    "TemplateSource",
    "TemplateSyntaxError",
    "UndefinedError",
]
