"""Test generation stage.

Returns a bare list of file records: Vitest service tests when the server
stage succeeded, component tests when the UI stage succeeded, and a single
smoke test when neither did.
"""

from __future__ import annotations

from typing import Any

from stackforge.stages._shared import entity_contexts
from stackforge.stages.registry import StageContext
from stackforge.stages.templates import default_renderer


async def generate_tests(ctx: StageContext) -> list[dict[str, Any]]:
    renderer = default_renderer()
    entities = entity_contexts(ctx.entities)
    records: list[dict[str, Any]] = []

    if ctx.dependency("server") is not None:
        for entity in entities:
            records.append({
                "path": f"backend/tests/{entity['lower']}.service.test.ts",
                "content": renderer.render("tests/service.test.ts.j2", {"entity": entity}),
            })

    if ctx.dependency("ui") is not None:
        for entity in entities:
            records.append({
                "path": f"frontend/src/__tests__/{entity['name']}List.test.tsx",
                "content": renderer.render("tests/component.test.tsx.j2", {"entity": entity}),
            })

    if not records:
        records.append({
            "path": "backend/tests/smoke.test.ts",
            "content": renderer.render("tests/smoke.test.ts.j2", {"project_name": ctx.project_name}),
        })
    return records
