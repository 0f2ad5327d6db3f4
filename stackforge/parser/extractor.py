"""Heuristic entity detection from free-text requirements.

Scans a project description and its feature list for domain nouns using
pure regex and keyword matching -- no AI calls. The heuristic is kept
entirely behind ``extract_entities`` so it can be swapped without touching
any generator stage; whatever it finds is canonicalised by
``stackforge.parser.normalizer``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from stackforge.models import Entity, Requirements
from stackforge.parser.normalizer import DEFAULT_ENTITY, normalize_entities, strip_diacritics


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Known domain nouns, singular form -> canonical English spelling.
_ENTITY_KEYWORDS: dict[str, str] = {
    "user": "user",
    "task": "task",
    "project": "project",
    "product": "product",
    "order": "order",
    "customer": "customer",
    "item": "item",
    "comment": "comment",
    "category": "category",
    "invoice": "invoice",
    "payment": "payment",
    "cart": "cart",
    "catalog": "catalog",
    "inventory": "inventory",
    "post": "post",
    "article": "article",
    "team": "team",
    "event": "event",
    "booking": "booking",
    "ticket": "ticket",
    "message": "message",
    "note": "note",
    # Portuguese spellings seen in uploaded requirement documents.
    "usuario": "user",
    "produto": "product",
    "pedido": "order",
    "cliente": "customer",
    "carrinho": "cart",
    "catalogo": "catalog",
    "pagamento": "payment",
    "estoque": "inventory",
    "tarefa": "task",
}

# Words that introduce an entity: "a shop *with* reviews", "app *for* clinics".
_INTRODUCER_PATTERN = re.compile(
    r"\b(?:with|for|com|para)\s+([a-z][a-z\-]{2,})", re.IGNORECASE
)
_WORD_PATTERN = re.compile(r"[a-z][a-z\-]*", re.IGNORECASE)

_STOPWORDS: frozenset[str] = frozenset({
    # English
    "a", "an", "the", "and", "or", "of", "to", "in", "on", "with", "for",
    "some", "any", "all", "each", "every", "their", "its", "our", "your",
    # Portuguese
    "sistema", "de", "com", "para", "e", "o", "a", "os", "as", "um", "uma",
})

# Generic words that describe the application rather than a domain concept.
_GENERIC_WORDS: frozenset[str] = frozenset({
    "app", "application", "system", "platform", "manager", "management",
    "tool", "service", "dashboard", "api", "backend", "frontend", "website",
    "site", "page", "crud", "feature", "module", "support", "integration",
    "authentication", "auth", "login", "search", "filter", "simple", "basic",
    "real-time", "realtime", "admin", "data", "ability", "option", "options",
})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def singularize(word: str) -> str:
    """Reduce a simple English plural to its singular form.

    Examples::

        singularize("users")      -> "user"
        singularize("categories") -> "category"
        singularize("boxes")      -> "box"
        singularize("status")     -> "status"
    """
    lower = word.lower()
    if len(lower) <= 3:
        return lower
    if lower.endswith("ies"):
        return lower[:-3] + "y"
    if lower.endswith(("sses", "shes", "ches", "xes", "zes")):
        return lower[:-2]
    if lower.endswith(("ss", "us", "is")):
        return lower
    if lower.endswith("s"):
        return lower[:-1]
    return lower


def _candidate(word: str) -> str | None:
    """Return the canonical English noun for *word*, or ``None`` if ignored."""
    folded = strip_diacritics(word).lower().strip("-")
    if not folded or folded in _STOPWORDS or folded in _GENERIC_WORDS:
        return None
    singular = singularize(folded)
    if singular in _GENERIC_WORDS:
        return None
    return _ENTITY_KEYWORDS.get(singular) or _ENTITY_KEYWORDS.get(folded)


def _introduced_nouns(text: str) -> list[tuple[int, str]]:
    """Nouns following 'with'/'for' that are not stop or generic words."""
    found: list[tuple[int, str]] = []
    for match in _INTRODUCER_PATTERN.finditer(strip_diacritics(text)):
        word = match.group(1).lower().strip("-")
        singular = singularize(word)
        if word in _STOPWORDS or word in _GENERIC_WORDS or singular in _GENERIC_WORDS:
            continue
        found.append((match.start(1), _ENTITY_KEYWORDS.get(singular, singular)))
    return found


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def detect_entity_names(description: str, features: Iterable[str] = ()) -> list[str]:
    """Return raw entity names in first-mention order.

    The description is scanned first, then each feature string. Known domain
    nouns are recognised anywhere; unknown nouns are only accepted when they
    follow an introducer such as "with" or "for".

    Example::

        detect_entity_names("task manager with users", ["crud"])
        -> ["task", "user"]
    """
    names: list[str] = []
    for text in [description or "", *features]:
        hits: list[tuple[int, str]] = []
        for match in _WORD_PATTERN.finditer(strip_diacritics(text)):
            noun = _candidate(match.group(0))
            if noun:
                hits.append((match.start(), noun))
        hits.extend(_introduced_nouns(text))
        for _, noun in sorted(hits, key=lambda hit: hit[0]):
            if noun not in names:
                names.append(noun)
    return names


def extract_entities(
    requirements: Requirements,
    *,
    max_entities: int | None = 5,
    default: str = DEFAULT_ENTITY,
) -> list[Entity]:
    """Detect and canonicalise the entities of one run.

    Never returns an empty list: when nothing is detected the result is the
    single *default* entity. ``max_entities=None`` returns every entity found.
    """
    raw = detect_entity_names(requirements.description, requirements.features)
    entities = normalize_entities(raw, default=default)
    if max_entities is None:
        return entities
    return entities[:max_entities]
