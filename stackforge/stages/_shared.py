"""Context helpers shared by the generator stages.

Every stage derives its template variables from the same normalized
``Entity`` list, so the per-entity field table and the enriched template
context live here rather than in each stage module.
"""

from __future__ import annotations

import json
from typing import Any

from stackforge.models import Entity
from stackforge.stages.templates import pluralize


BACKEND_PORT = 4000
FRONTEND_PORT = 5173
API_BASE_URL = "/api"

# Field presets for well-known entity names: (name, type, required, unique).
_KNOWN_FIELDS: dict[str, list[tuple[str, str, bool, bool]]] = {
    "Task": [
        ("title", "string", True, False),
        ("description", "text", False, False),
        ("completed", "boolean", True, False),
        ("dueDate", "datetime", False, False),
    ],
    "User": [
        ("email", "string", True, True),
        ("name", "string", True, False),
    ],
    "Product": [
        ("name", "string", True, False),
        ("description", "text", False, False),
        ("price", "float", True, False),
        ("stock", "int", True, False),
    ],
    "Order": [
        ("status", "string", True, False),
        ("total", "float", True, False),
        ("placedAt", "datetime", True, False),
    ],
    "Customer": [
        ("name", "string", True, False),
        ("email", "string", True, True),
        ("phone", "string", False, False),
    ],
}

_DEFAULT_FIELDS: list[tuple[str, str, bool, bool]] = [
    ("name", "string", True, False),
    ("description", "text", False, False),
]

_TS_TYPE_MAP: dict[str, str] = {
    "string": "string",
    "text": "string",
    "boolean": "boolean",
    "datetime": "string",
    "int": "number",
    "float": "number",
}

_PRISMA_TYPE_MAP: dict[str, str] = {
    "string": "String",
    "text": "String",
    "boolean": "Boolean",
    "datetime": "DateTime",
    "int": "Int",
    "float": "Float",
}

_ZOD_TYPE_MAP: dict[str, str] = {
    "string": "z.string().min(1)",
    "text": "z.string()",
    "boolean": "z.boolean()",
    "datetime": "z.string().datetime()",
    "int": "z.number().int()",
    "float": "z.number()",
}


def entity_fields(entity: Entity) -> list[dict[str, Any]]:
    """Return the enriched field list for *entity*."""
    raw = _KNOWN_FIELDS.get(entity.canonical_name, _DEFAULT_FIELDS)
    return [
        {
            "name": name,
            "type": field_type,
            "required": required,
            "unique": unique,
            "ts_type": _TS_TYPE_MAP[field_type],
            "prisma_type": _PRISMA_TYPE_MAP[field_type],
            "zod_type": _ZOD_TYPE_MAP[field_type],
        }
        for name, field_type, required, unique in raw
    ]


def entity_context(entity: Entity) -> dict[str, Any]:
    """Build the per-entity template context.

    Adds ``lower``, ``camel``, ``plural``, ``route``, ``fields``,
    ``display_field`` and a ``sample`` JSON payload for generated tests.
    """
    fields = entity_fields(entity)
    plural = pluralize(entity.canonical_name)
    display = next((f["name"] for f in fields if f["ts_type"] == "string"), "id")
    return {
        "name": entity.canonical_name,
        "lower": entity.lower_name,
        "camel": entity.camel_name,
        "plural": plural,
        "route": plural.lower(),
        "fields": fields,
        "display_field": display,
        "sample": json.dumps(
            {f["name"]: _sample_value(f) for f in fields if f["required"]}
        ),
    }


def entity_contexts(entities: list[Entity]) -> list[dict[str, Any]]:
    return [entity_context(e) for e in entities]


def _sample_value(field: dict[str, Any]) -> Any:
    """Return a sample JSON-serializable value for use in test payloads."""
    name = field["name"].lower()
    field_type = field["type"]
    if "email" in name:
        return "test@example.com"
    if field_type == "boolean":
        return False
    if field_type == "int":
        return 42
    if field_type == "float":
        return 9.99
    if field_type == "datetime":
        return "2025-01-01T00:00:00Z"
    return f"test-{field['name']}"
