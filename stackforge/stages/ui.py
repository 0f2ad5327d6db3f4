"""UI generation stage.

Returns a unit list: one unit for the application shell (``App.tsx``, the
entry point, styles and the API client) and one unit per entity holding its
page, list and form components and data hook. The entry point is emitted as
``src/index.tsx``; the stage's file hook renames it to ``main.tsx``.

Without the ``api`` stage the client falls back to the default base URL
instead of importing the endpoint table.
"""

from __future__ import annotations

from typing import Any

from stackforge.stages._shared import API_BASE_URL, entity_contexts
from stackforge.stages.registry import StageContext
from stackforge.stages.templates import default_renderer


def _file(directory: str, file_name: str, content: str) -> dict[str, str]:
    return {"path": directory, "filename": file_name, "content": content}


async def generate_ui(ctx: StageContext) -> dict[str, Any]:
    renderer = default_renderer()
    entities = entity_contexts(ctx.entities)
    api = ctx.dependency("api")
    base_url = api.get("base_url", API_BASE_URL) if isinstance(api, dict) else API_BASE_URL

    shell = {
        "name": "App",
        "files": [
            _file("frontend/src", "App.tsx", renderer.render("ui/App.tsx.j2", {
                "project_name": ctx.project_name,
                "entities": entities,
            })),
            _file("frontend/src", "index.tsx", renderer.render("ui/index.tsx.j2", {})),
            _file("frontend/src", "index.css", renderer.render("ui/index.css.j2", {})),
            _file("frontend/src/api", "client.ts", renderer.render("ui/client.ts.j2", {
                "has_endpoints": api is not None,
                "base_url": base_url,
            })),
        ],
    }

    units = [shell]
    for entity in entities:
        name = entity["name"]
        units.append({
            "name": name,
            "files": [
                _file("frontend/src/pages", f"{name}Page.tsx",
                      renderer.render("ui/Page.tsx.j2", {"entity": entity})),
                _file("frontend/src/components", f"{name}List.tsx",
                      renderer.render("ui/List.tsx.j2", {"entity": entity})),
                _file("frontend/src/components", f"{name}Form.tsx",
                      renderer.render("ui/Form.tsx.j2", {"entity": entity})),
                _file("frontend/src/hooks", f"use{entity['plural']}.ts",
                      renderer.render("ui/useEntity.ts.j2", {"entity": entity})),
            ],
        })

    return {"components": units, "routes": [f"/{e['route']}" for e in entities]}
