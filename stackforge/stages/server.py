"""Server layer stage.

Emits the Express entry point, the app module and one route, controller
and service module per entity, as named slots. Depends on ``architecture``
(for the shared config and logger modules) and ``schema`` (for typed
models); when either is missing the stage still returns a valid, smaller
server that does not import what was never generated.
"""

from __future__ import annotations

from typing import Any

from stackforge.stages._shared import BACKEND_PORT, entity_contexts
from stackforge.stages.registry import StageContext
from stackforge.stages.templates import default_renderer


async def generate_server(ctx: StageContext) -> dict[str, Any]:
    renderer = default_renderer()
    entities = entity_contexts(ctx.entities)
    has_architecture = ctx.dependency("architecture") is not None
    has_model = ctx.dependency("schema") is not None

    if has_architecture:
        server = renderer.render("server/server.ts.j2", {"project_name": ctx.project_name})
    else:
        server = renderer.render("server/server_standalone.ts.j2", {
            "project_name": ctx.project_name,
            "backend_port": BACKEND_PORT,
        })
    app = renderer.render("server/app.ts.j2", {
        "entities": entities,
        "has_logger": has_architecture,
    })

    routes: dict[str, str] = {}
    controllers: dict[str, str] = {}
    services: dict[str, str] = {}
    for entity in entities:
        key = entity["lower"]
        routes[key] = renderer.render("server/routes.ts.j2", {"entity": entity})
        controllers[key] = renderer.render("server/controller.ts.j2", {"entity": entity})
        services[key] = renderer.render("server/service.ts.j2", {
            "entity": entity,
            "has_model": has_model,
        })

    return {
        "server": server,
        "app": app,
        "routes": routes,
        "controllers": controllers,
        "services": services,
        "endpoints": [f"/api/{entity['route']}" for entity in entities],
    }
