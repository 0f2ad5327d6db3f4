"""Jinja2 template rendering for generator stages.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``stackforge/stages/templates/`` directory and renders them with
stage-specific context data. Stages never write to disk; they return the
rendered text inside their output records.
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape


_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


class TemplateRenderer:
    """Renders ``.j2`` templates with a context dictionary.

    Undefined variables raise instead of rendering as empty strings, so a
    stage that forgets a context key fails loudly and is recorded as a
    failed stage by the runner.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        self.env.filters["slugify"] = _slugify_filter
        self.env.filters["pascal_case"] = _pascal_case_filter
        self.env.filters["snake_case"] = _snake_case_filter
        self.env.filters["camel_case"] = _camel_case_filter
        self.env.filters["kebab_case"] = _kebab_case_filter
        self.env.filters["plural"] = pluralize

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_path: Path relative to the template directory (e.g.
                ``"backend/service.ts.j2"``).
            context: Dictionary of variables available inside the template.
        """
        template = self.env.get_template(template_path)
        return template.render(**context)


@lru_cache(maxsize=1)
def default_renderer() -> TemplateRenderer:
    """Shared renderer for the bundled templates."""
    return TemplateRenderer()


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------

def _slugify_filter(value: str) -> str:
    """Convert a string to a URL/filename-safe slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower().strip())
    return slug.strip("-")


def _pascal_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = re.split(r"[-_\s]+", value)
    return "".join(word[:1].upper() + word[1:] for word in parts if word)


def _snake_case_filter(value: str) -> str:
    """Convert ``SomeThing`` or ``some-thing`` to ``some_thing``."""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", value)
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()


def _camel_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``SomeThing`` to ``someThing``."""
    pascal = _pascal_case_filter(value)
    if pascal:
        return pascal[0].lower() + pascal[1:]
    return ""


def _kebab_case_filter(value: str) -> str:
    """Convert ``SomeThing`` to ``some-thing``."""
    return _snake_case_filter(value).replace("_", "-")


def pluralize(value: str) -> str:
    """Naive English plural used for route and collection names."""
    if not value:
        return value
    lower = value.lower()
    if lower.endswith("y") and not lower.endswith(("ay", "ey", "oy", "uy")):
        return value[:-1] + "ies"
    if lower.endswith(("s", "sh", "ch", "x", "z")):
        return value + "es"
    return value + "s"
