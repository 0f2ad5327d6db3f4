"""API surface stage.

Emits one zod request validator per entity, the frontend endpoint table and
an API reference document. The endpoint list and base URL are handed to the
UI stage.
"""

from __future__ import annotations

from typing import Any

from stackforge.stages._shared import API_BASE_URL, entity_contexts
from stackforge.stages.registry import StageContext
from stackforge.stages.templates import default_renderer


def _endpoints(entity: dict[str, Any]) -> list[dict[str, str]]:
    base = f"{API_BASE_URL}/{entity['route']}"
    name = entity["name"]
    return [
        {"method": "GET", "path": base, "summary": f"List {entity['plural'].lower()}"},
        {"method": "GET", "path": f"{base}/:id", "summary": f"Fetch one {name}"},
        {"method": "POST", "path": base, "summary": f"Create a {name}"},
        {"method": "PUT", "path": f"{base}/:id", "summary": f"Update a {name}"},
        {"method": "DELETE", "path": f"{base}/:id", "summary": f"Delete a {name}"},
    ]


async def generate_api(ctx: StageContext) -> dict[str, Any]:
    renderer = default_renderer()
    entities = entity_contexts(ctx.entities)
    endpoints = [ep for entity in entities for ep in _endpoints(entity)]

    files: list[dict[str, Any]] = [
        {
            "directory": "backend/src/validators",
            "fileName": f"{entity['lower']}.validator.ts",
            "content": renderer.render("api/validator.ts.j2", {"entity": entity}),
        }
        for entity in entities
    ]
    files.append({
        "directory": "frontend/src/api",
        "fileName": "endpoints.ts",
        "content": renderer.render("api/endpoints.ts.j2", {
            "entities": entities,
            "base_url": API_BASE_URL,
        }),
    })
    files.append({
        "path": "docs/API.md",
        "content": renderer.render("api/API.md.j2", {
            "project_name": ctx.project_name,
            "base_url": API_BASE_URL,
            "endpoints": endpoints,
        }),
    })

    return {"files": files, "endpoints": endpoints, "base_url": API_BASE_URL}
