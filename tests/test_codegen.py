"""Test artifact → Python source assembly."""

import pytest

from tagtpl import ErrorCode, TemplateSyntaxError
from tagtpl.template.codegen import CodeBuilder, assemble


class TestAssemble:
    def test_text_and_code(self):
        assert assemble("a<% x = 1 %>b") == "_write('a')\nx = 1\n_write('b')\n"

    def test_if_else(self):
        assert assemble("<% if a: %>y<% else: %>n<% end %>") == (
            "if a:\n    _write('y')\nelse:\n    _write('n')\n"
        )

    def test_elif_chain(self):
        source = assemble("<% if a: %>1<% elif b: %>2<% else: %>3<% end %>")
        assert source.splitlines() == [
            "if a:",
            "    _write('1')",
            "elif b:",
            "    _write('2')",
            "else:",
            "    _write('3')",
        ]

    def test_nested_blocks(self):
        source = assemble("<% for x in xs:\nif x:\n_echo(x)\nend\nend %>")
        assert source == "for x in xs:\n    if x:\n        _echo(x)\n"

    def test_empty_block_gets_pass(self):
        assert assemble("<% if a:\nend %>") == "if a:\n    pass\n"

    def test_comment_only_block_gets_pass(self):
        assert assemble("<% if a:\n# note\nend %>") == "if a:\n    # note\n    pass\n"

    def test_hash_end(self):
        assert assemble("<% for i in xs: %>x<% #end %>") == "for i in xs:\n    _write('x')\n"

    def test_open_region_runs_to_end(self):
        assert assemble("a<% x = 1") == "_write('a')\nx = 1\n"

    def test_identifier_starting_with_keyword(self):
        assert assemble("<% else_value = 1 %>") == "else_value = 1\n"

    def test_text_is_repr(self):
        assert assemble("it's\n\"x\"") == "_write('it\\'s\\n\"x\"')\n"


class TestErrors:
    def test_unclosed_block(self):
        with pytest.raises(TemplateSyntaxError) as exc_info:
            assemble("<% if a: %>x", "page.html")
        assert exc_info.value.code == ErrorCode.UNCLOSED_BLOCK
        assert "1 block(s)" in str(exc_info.value)
        assert exc_info.value.name == "page.html"

    def test_stray_end(self):
        with pytest.raises(TemplateSyntaxError) as exc_info:
            assemble("x<% end %>")
        assert exc_info.value.code == ErrorCode.INVALID_CODE

    def test_invalid_python(self, env):
        with pytest.raises(TemplateSyntaxError) as exc_info:
            env.from_string("{php}x = = 1{/php}")
        assert exc_info.value.code == ErrorCode.INVALID_CODE

    def test_unclosed_directive(self, env):
        with pytest.raises(TemplateSyntaxError) as exc_info:
            env.from_string('{if test="$a"}x')
        assert exc_info.value.code == ErrorCode.UNCLOSED_BLOCK


class TestCodeBuilder:
    def test_indent_tracking(self):
        builder = CodeBuilder()
        builder.add_line("while True:")
        builder.indent()
        builder.add_line("break")
        builder.dedent()
        assert builder.indent_level == 0
        assert builder.finish() == "while True:\n    break\n"
