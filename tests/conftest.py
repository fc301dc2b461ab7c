"""Pytest configuration and fixtures for tagtpl tests."""

import pytest

from tagtpl import DictLoader, Environment, MemoryStore


@pytest.fixture
def env():
    """Environment with in-memory stores and an empty loader."""
    return Environment(
        loader=DictLoader({}),
        compile_store=MemoryStore(),
        cache_store=MemoryStore(),
    )


@pytest.fixture
def env_with_loader():
    """Environment with DictLoader and test templates."""
    loader = DictLoader(
        {
            "base.html": (
                "<html>"
                '<head>{block name="head"}<title>Site</title>{/block}</head>'
                '<body>{block name="body"}P{/block}</body>'
                "</html>"
            ),
            "child.html": '{extends parent="base.html"/}{block name="body"}C{/block}',
            "partial.html": "<p>{$name}</p>",
            "page.html": 'Hello {$name}!{include file="partial.html"/}',
            "admin/users.html": "{loop name=\"users\" item=\"u\"}{$u}{/loop}",
        }
    )
    return Environment(
        loader=loader,
        compile_store=MemoryStore(),
        cache_store=MemoryStore(),
    )


@pytest.fixture
def render(env):
    """Compile and render a one-shot template."""

    def _render(source: str, **ctx: object) -> str:
        return env.from_string(source).render(**ctx)

    return _render

