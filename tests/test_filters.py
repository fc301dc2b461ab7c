"""Test the default filter set."""

from datetime import datetime

import pytest

from tagtpl.environment import filters


class TestStringFilters:
    def test_none_is_empty(self):
        assert filters.upper(None) == ""
        assert filters.length(None) == 0

    def test_truncate(self):
        assert filters.truncate("abcdef", 3) == "abc..."
        assert filters.truncate("abc", 3) == "abc"
        assert filters.truncate("abcdef", 2, "") == "ab"

    def test_nl2br(self):
        assert filters.nl2br("a\nb\r\nc") == "a<br />\nb<br />\r\nc"

    def test_escape(self):
        assert filters.escape("<a href=\"x\">") == "&lt;a href=&quot;x&quot;&gt;"

    def test_join_and_replace(self):
        assert filters.join([1, None, "x"], "-") == "1--x"
        assert filters.replace("a_b", "_", " ") == "a b"

    @pytest.mark.parametrize(
        ("args", "expected"),
        [
            ((1,), "bcdef"),
            ((1, 2), "bc"),
            ((-2,), "ef"),
            ((-3, 2), "de"),
            ((-2, 2), "ef"),
            ((0, -1), "abcde"),
        ],
    )
    def test_substr(self, args, expected):
        assert filters.substr("abcdef", *args) == expected

    def test_md5(self):
        assert filters.md5("") == "d41d8cd98f00b204e9800998ecf8427e"


class TestDate:
    def test_datetime(self):
        assert filters.date("%Y-%m-%d", datetime(2024, 3, 9, 12, 0)) == "2024-03-09"

    def test_timestamp(self):
        stamp = datetime(2024, 3, 9, 12, 0).timestamp()
        assert filters.date("%H:%M", stamp) == "12:00"

    def test_rendered(self, render):
        assert render("{$d|date='%d/%m',###}", d=datetime(2024, 3, 9)) == "09/03"
