"""Tests for Jinja2 template rendering (stackforge.stages.templates)."""

from __future__ import annotations

from pathlib import Path

import pytest
from jinja2 import UndefinedError

from stackforge.stages.templates import TemplateRenderer, default_renderer, pluralize


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


class TestTemplateRenderer:
    @pytest.mark.unit
    def test_strict_undefined(self, renderer):
        with pytest.raises(UndefinedError):
            renderer.render("tests/smoke.test.ts.j2", {})

    @pytest.mark.unit
    def test_render(self, renderer):
        out = renderer.render("tests/smoke.test.ts.j2", {"project_name": "Shop"})
        assert "describe('Shop'" in out
        assert out.endswith("\n")

    @pytest.mark.unit
    def test_custom_directory(self, tmp_path: Path):
        (tmp_path / "hello.j2").write_text("Hello {{ name | pascal_case }}!")
        assert TemplateRenderer(tmp_path).render("hello.j2", {"name": "big-shop"}) == "Hello BigShop!"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "template, expected",
        [
            ("{{ 'Task Manager' | slugify }}", "task-manager"),
            ("{{ 'order_item' | pascal_case }}", "OrderItem"),
            ("{{ 'OrderItem' | snake_case }}", "order_item"),
            ("{{ 'order-item' | camel_case }}", "orderItem"),
            ("{{ 'OrderItem' | kebab_case }}", "order-item"),
            ("{{ 'Category' | plural }}", "Categories"),
        ],
    )
    def test_filters(self, tmp_path: Path, template, expected):
        (tmp_path / "filter.j2").write_text(template)
        assert TemplateRenderer(tmp_path).render("filter.j2", {}) == expected

    @pytest.mark.unit
    def test_default_renderer_is_shared(self):
        assert default_renderer() is default_renderer()


class TestPluralize:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "word, expected",
        [
            ("Task", "Tasks"),
            ("Category", "Categories"),
            ("Day", "Days"),
            ("Box", "Boxes"),
            ("Address", "Addresses"),
            ("", ""),
        ],
    )
    def test_pluralize(self, word, expected):
        assert pluralize(word) == expected
