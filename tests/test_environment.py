"""Test Environment: caches, variables, request values, errors."""

from __future__ import annotations

import hashlib
import io
import logging
import os
import time

import pytest

from tagtpl import (
    DictLoader,
    Environment,
    ErrorCode,
    FileSystemLoader,
    FileSystemStore,
    IniConfigLoader,
    MemoryStore,
    RequestContext,
    StorageError,
    TemplateNotFoundError,
    TemplateRuntimeError,
    UndefinedError,
)
from tagtpl.compiler.core import Compiler
from tagtpl.environment.core import flatten_name
from tagtpl.environment.globals import TOKEN_NAME


def _memory_env(**kwargs) -> Environment:
    kwargs.setdefault("loader", DictLoader({}))
    return Environment(compile_store=MemoryStore(), cache_store=MemoryStore(), **kwargs)


@pytest.fixture
def compile_calls(monkeypatch):
    """Record every source handed to the compiler."""
    calls: list[str] = []
    original = Compiler.compile

    def counting(self, source):
        calls.append(source)
        return original(self, source)

    monkeypatch.setattr(Compiler, "compile", counting)
    return calls


class TestCacheKeys:
    def test_flatten_name(self):
        assert flatten_name("admin/users/list.html") == "admin_dir_users_dir_list.html"

    def test_compiled_key(self, env):
        flat = "admin_dir_users.html"
        expected = hashlib.md5(flat.encode()).hexdigest() + flat + ".compiled"
        assert env.compiled_key("admin/users.html") == expected

    def test_cache_key(self, env):
        assert env.cache_key("admin/users.html") == "admin_dir_users.html"
        assert env.cache_key("admin/users.html", "u7") == "u7_admin_dir_users.html"


class TestCompiledCache:
    """Compiled artifacts are reused while newer than their source."""

    def test_reused_when_current(self, env_with_loader, compile_calls):
        env = env_with_loader
        assert env.render("partial.html", name="a") == "<p>a</p>"
        env.compile_store.touch(env.compiled_key("partial.html"), time.time() + 10)
        compile_calls.clear()
        assert env.render("partial.html", name="b") == "<p>b</p>"
        assert compile_calls == []

    def test_source_read_once_per_render(self, env_with_loader, monkeypatch):
        reads: list[str] = []
        original = DictLoader.get_source

        def counting(loader, name):
            reads.append(name)
            return original(loader, name)

        monkeypatch.setattr(DictLoader, "get_source", counting)
        env_with_loader.render("partial.html", name="a")
        env_with_loader.render("partial.html", name="b")
        assert reads == ["partial.html", "partial.html"]

    def test_template_keeps_source_filename(self, tmp_path):
        (tmp_path / "t.html").write_text("x")
        env = _memory_env(loader=FileSystemLoader(tmp_path))
        assert env.get_template("t.html").filename == str(tmp_path / "t.html")

    def test_stale_artifact_recompiled(self, env_with_loader, compile_calls):
        env = env_with_loader
        env.render("partial.html", name="a")
        env.compile_store.touch(env.compiled_key("partial.html"), 0)
        compile_calls.clear()
        env.render("partial.html", name="a")
        assert len(compile_calls) == 1

    def test_debug_always_recompiles(self, env_with_loader, compile_calls):
        env = env_with_loader
        env.render("partial.html", name="a")
        env.compile_store.touch(env.compiled_key("partial.html"), time.time() + 10)
        env.debug = True
        compile_calls.clear()
        env.render("partial.html", name="a")
        assert len(compile_calls) == 1

    def test_source_change_picked_up(self, env_with_loader):
        env = env_with_loader
        assert env.render("partial.html", name="a") == "<p>a</p>"
        env.compile_store.touch(env.compiled_key("partial.html"), 0)
        env.loader["partial.html"] = "<i>{$name}</i>"
        assert env.render("partial.html", name="a") == "<i>a</i>"

    def test_from_string_keyed_by_text(self, env, compile_calls):
        env.render_string("x{$a}", a=1)
        env.render_string("x{$a}", a=2)
        assert len(compile_calls) == 1
        assert hashlib.md5(b"x{$a}").hexdigest() + ".compiled" in env.compile_store.keys()

    def test_get_template_returns_cached_object(self, env_with_loader):
        first = env_with_loader.get_template("partial.html")
        assert env_with_loader.get_template("partial.html") is first

    def test_artifact_stored(self, env_with_loader):
        env_with_loader.render("admin/users.html", users=["x"])
        key = env_with_loader.compiled_key("admin/users.html")
        assert "_items(users)" in env_with_loader.compile_store.read(key)


class TestPageCache:
    """Rendered output is reused while younger than cache_lifetime."""

    @pytest.fixture
    def env(self, env_with_loader):
        env_with_loader.caching = True
        return env_with_loader

    def test_hit_returns_stored_output(self, env):
        assert env.render("partial.html", name="a") == "<p>a</p>"
        assert env.render("partial.html", name="b") == "<p>a</p>"

    def test_expired_entry_rerendered(self, env):
        env.render("partial.html", name="a")
        env.cache_store.touch(env.cache_key("partial.html"), time.time() - 120)
        assert env.render("partial.html", name="b") == "<p>b</p>"

    def test_cache_id_keeps_variants_apart(self, env):
        assert env.render("partial.html", "u1", name="a") == "<p>a</p>"
        assert env.render("partial.html", "u2", name="b") == "<p>b</p>"
        assert env.cache_store.keys() == ["u1_partial.html", "u2_partial.html"]

    def test_debug_bypasses_cache(self, env):
        env.render("partial.html", name="a")
        env.debug = True
        assert env.render("partial.html", name="b") == "<p>b</p>"

    def test_caching_off_writes_nothing(self, env_with_loader):
        env_with_loader.render("partial.html", name="a")
        assert env_with_loader.cache_store.keys() == []

    def test_clear_one_variant(self, env):
        env.render("partial.html", name="a")
        env.render("partial.html", "u2", name="a")
        env.clear_cache("partial.html", "u2")
        assert env.cache_store.keys() == ["partial.html"]

    def test_clear_every_variant(self, env):
        env.render("partial.html", name="a")
        env.render("partial.html", "u2", name="a")
        env.render("page.html", name="a")
        env.clear_cache("PARTIAL.html")
        assert env.cache_store.keys() == ["page.html"]

    def test_clear_all(self, env):
        env.render("partial.html", name="a")
        env.render("page.html", name="a")
        env.clear_all_cache()
        assert env.cache_store.keys() == []


class TestFileSystem:
    @pytest.fixture
    def env(self, tmp_path):
        (tmp_path / "templates" / "admin").mkdir(parents=True)
        (tmp_path / "templates" / "admin" / "page.html").write_text("Hi {$name}")
        return Environment(
            template_dir=str(tmp_path / "templates"),
            compile_dir=str(tmp_path / "compiled"),
            cache_dir=str(tmp_path / "cache"),
        )

    def test_render_writes_artifact(self, env, tmp_path):
        assert env.render("admin/page.html", name="A") == "Hi A"
        key = env.compiled_key("admin/page.html")
        assert (tmp_path / "compiled" / key).read_text() == "Hi <% _echo(name) %>"

    def test_modified_source_recompiled(self, env, tmp_path):
        env.render("admin/page.html", name="A")
        source = tmp_path / "templates" / "admin" / "page.html"
        source.write_text("Bye {$name}")
        future = time.time() + 100
        os.utime(source, (future, future))
        assert env.render("admin/page.html", name="A") == "Bye A"

    def test_page_cache_file(self, env, tmp_path):
        env.caching = True
        env.render("admin/page.html", "7", name="A")
        assert (tmp_path / "cache" / "7_admin_dir_page.html").read_text() == "Hi A"

    def test_unwritable_directory(self, env, tmp_path, monkeypatch):
        (tmp_path / "compiled").mkdir()
        monkeypatch.setattr("tagtpl.environment.storage.os.access", lambda *args: False)
        with pytest.raises(StorageError):
            env.render("admin/page.html", name="A")

    def test_store_stats_and_keys(self, tmp_path):
        store = FileSystemStore(tmp_path / "store")
        assert store.keys() == []
        store.write("a.compiled", "xyz")
        store.write("b.compiled", "")
        assert store.keys() == ["a.compiled", "b.compiled"]
        assert store.stats() == {"file_count": 2, "total_bytes": 3}
        store.delete("b.compiled")
        store.delete("missing")
        assert store.keys() == ["a.compiled"]


class TestVariables:
    def test_assign(self, env):
        env.assign("title", "Home")
        env.assign({"a": 1, "b": 2})
        assert env.render_string("{$title}{$a}{$b}") == "Home12"

    def test_context_overrides_assigned(self, env):
        env.assign("title", "Home")
        assert env.render_string("{$title}", title="Other") == "Other"

    def test_positional_dict(self, env):
        assert env.from_string("{$a}").render({"a": 1}, a=2) == "2"
        with pytest.raises(TypeError):
            env.from_string("{$a}").render({}, {})

    def test_sysvar_reserved(self, env):
        with pytest.raises(ValueError):
            env.assign("sysvar", {})
        with pytest.raises(ValueError):
            env.assign({"sysvar": {}})


class TestSysvar:
    @pytest.fixture
    def env(self):
        request = RequestContext(
            query={"page": "2"},
            form={"q": "find"},
            server={"REQUEST_METHOD": "GET"},
            constants={"SITE": "S"},
        )
        return _memory_env(request=request)

    def test_values(self, env):
        source = (
            "{$sysvar.get.page} {$sysvar.post.q} "
            "{$sysvar.server.request_method} {$sysvar.const.site}"
        )
        assert env.render_string(source) == "2 find GET S"

    def test_not_overridable_by_context(self, env):
        assert env.render_string("{$sysvar.get.page}", sysvar={"get": {"page": "x"}}) == "2"

    def test_empty_without_request(self):
        assert _memory_env().render_string("{$sysvar.session|length}") == "0"


class TestToken:
    def test_issue_and_check(self):
        session: dict = {}
        env = _memory_env(request=RequestContext(session=session))
        output = env.render_string("<form>{token/}</form>")
        token = session[TOKEN_NAME]
        assert f'name="{TOKEN_NAME}" value="{token}"' in output
        assert env.check_token("forged") is False
        assert env.check_token(token) is True
        assert session[TOKEN_NAME] != token

    def test_check_reads_request(self):
        session = {TOKEN_NAME: "abc"}
        env = _memory_env(request=RequestContext(session=session, request={TOKEN_NAME: "abc"}))
        assert env.check_token() is True

    def test_no_session(self, env):
        assert env.render_string("[{token/}]") == "[]"
        assert env.check_token("anything") is True


class TestConfig:
    INI = 'title = "My Site"\n[db]\nhost = localhost\n'

    def test_ini_loader(self, tmp_path):
        (tmp_path / "site.ini").write_text(self.INI)
        assert IniConfigLoader().read(str(tmp_path / "site.ini")) == {
            "title": "My Site",
            "host": "localhost",
        }

    def test_cfgload_and_config(self, tmp_path):
        (tmp_path / "site.ini").write_text(self.INI)
        env = _memory_env(config_dir=str(tmp_path))
        source = '{cfgload file="site.ini"/}{config name="title"/}@{config host/}'
        assert env.render_string(source) == "My Site@localhost"

    def test_config_is_per_render(self, tmp_path):
        (tmp_path / "site.ini").write_text(self.INI)
        env = _memory_env(config_dir=str(tmp_path))
        env.render_string('{cfgload file="site.ini"/}')
        assert env.render_string('[{config name="title"/}]') == "[]"

    def test_config_after_missing_file(self, env):
        assert env.render_string('A{cfgload file="missing.ini"/}{config title/}B') == "AB"

    def test_missing_file_compiles_to_nothing(self, env, caplog):
        with caplog.at_level(logging.WARNING):
            assert env.render_string('{cfgload file="nope.ini"/}x') == "x"
        assert "nope.ini" in caplog.text


class TestErrors:
    def test_template_not_found(self, env_with_loader):
        with pytest.raises(TemplateNotFoundError) as exc_info:
            env_with_loader.render("partal.html")
        assert "partial.html" in str(exc_info.value)

    def test_undefined_variable(self, env):
        with pytest.raises(UndefinedError) as exc_info:
            env.render_string("{$titl}", titel="x")
        assert exc_info.value.name == "titl"
        assert "Did you mean" in str(exc_info.value)

    def test_undefined_names_template(self, env_with_loader):
        with pytest.raises(UndefinedError) as exc_info:
            env_with_loader.render("partial.html")
        assert exc_info.value.template == "partial.html"

    def test_missing_key(self, env):
        with pytest.raises(TemplateRuntimeError) as exc_info:
            env.render_string("{$user.name}", user={})
        assert "Missing key" in str(exc_info.value)
        assert exc_info.value.suggestion

    def test_runtime_error(self, env):
        with pytest.raises(TemplateRuntimeError) as exc_info:
            env.render_string("{$n / 0}", n=1)
        assert exc_info.value.code == ErrorCode.RUNTIME_ERROR
        assert exc_info.value.suggestion is None
        assert "Location: <string>" in str(exc_info.value)


class TestFilters:
    def test_register(self, env):
        env.filters["shout"] = lambda v: str(v).upper() + "!"
        assert "shout" in env.filters
        assert env.render_string("{$x|shout}", x="hi") == "HI!"

    def test_constructor_filters(self):
        env = _memory_env(filters={"double": lambda v: v * 2})
        assert env.render_string("{$n|double}", n=4) == "8"

    def test_remove(self, env):
        del env.filters["upper"]
        assert "upper" not in env.filters

    @pytest.mark.parametrize("name", ["my-filter", "2x", "class", "_echo", "_private", "sysvar"])
    def test_refuses_names_generated_code_cannot_call(self, env, name):
        with pytest.raises(ValueError):
            env.filters[name] = str
        assert name not in env.filters

    def test_update_is_all_or_nothing(self, env):
        before = len(env.filters)
        with pytest.raises(ValueError):
            env.filters.update({"ok": str, "not ok": str})
        assert len(env.filters) == before
        assert env.filters.get("ok") is None

    def test_constructor_refuses_reserved_name(self):
        with pytest.raises(ValueError):
            _memory_env(filters={"_write": print})

    def test_render_keeps_its_snapshot(self, env):
        seen = []

        def late(value):
            seen.append(value)
            env.filters["tail"] = lambda v: "changed"
            return value

        env.filters["late"] = late
        env.filters["tail"] = lambda v: "original"
        assert env.render_string("{$a|late}{$a|tail}", a="x") == "xoriginal"
        assert env.render_string("{$a|tail}", a="x") == "changed"

    def test_variable_shadows_filter_for_one_render(self, env):
        assert env.render_string("{$title}", title="mine") == "mine"
        assert env.render_string("{$t|title}", t="ab cd") == "Ab Cd"


class TestDisplay:
    def test_writes_to_file(self, env_with_loader):
        buf = io.StringIO()
        env_with_loader.display("partial.html", file=buf, name="z")
        assert buf.getvalue() == "<p>z</p>"

    def test_repr(self, env):
        assert repr(env) == "<Environment loader=DictLoader caching=False debug=False>"
