"""stackforge requirements parser.

Turns free-text requirements into the canonical entity list every generator
stage shares.

Usage::

    from stackforge.parser import extract_entities, normalize

    normalize(["order item", "Order-Item", "usuário"])  # ["OrderItem", "Usuario"]
    entities = extract_entities(request.requirements)
"""

from stackforge.parser.extractor import detect_entity_names, extract_entities, singularize
from stackforge.parser.normalizer import (
    DEFAULT_ENTITY,
    canonical_name,
    normalize,
    normalize_entities,
    strip_diacritics,
)

__all__ = [
    "DEFAULT_ENTITY",
    "canonical_name",
    "detect_entity_names",
    "extract_entities",
    "normalize",
    "normalize_entities",
    "singularize",
    "strip_diacritics",
]
