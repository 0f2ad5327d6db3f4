"""Database schema stage.

Returns named slots: ``schema`` (the Prisma schema) and ``models`` (one
TypeScript model module per entity, keyed by entity name). The ``fields``
key is structured metadata for downstream stages and carries no file.
"""

from __future__ import annotations

from typing import Any

from stackforge.stages._shared import entity_contexts
from stackforge.stages.registry import StageContext
from stackforge.stages.templates import default_renderer


_PROVIDERS: dict[str, str] = {
    "postgres": "postgresql",
    "postgresql": "postgresql",
    "mysql": "mysql",
    "sqlite": "sqlite",
    "mongodb": "mongodb",
    "mongo": "mongodb",
}


def prisma_provider(database: str | None) -> str:
    """Map a free-text database hint to a Prisma datasource provider."""
    if not database:
        return "postgresql"
    return _PROVIDERS.get(database.strip().lower(), "postgresql")


async def design_schema(ctx: StageContext) -> dict[str, Any]:
    renderer = default_renderer()
    entities = entity_contexts(ctx.entities)

    schema = renderer.render("schema/schema.prisma.j2", {
        "project_name": ctx.project_name,
        "provider": prisma_provider(ctx.requirements.stack_hints.database),
        "entities": entities,
    })
    models = {
        entity["name"]: renderer.render("schema/model.ts.j2", {"entity": entity})
        for entity in entities
    }
    return {
        "schema": schema,
        "models": models,
        "fields": {entity["name"]: entity["fields"] for entity in entities},
    }
