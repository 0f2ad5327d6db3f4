"""Entity name canonicalisation.

Every stage receives the same list of entities, so their spelling has to be
settled before the first stage runs. ``normalize`` is the single place that
decides it: diacritics are stripped, the name is split into words on
whitespace, hyphens and underscores, each word is capitalized and the words
are concatenated.

The output of ``normalize`` is always a fixed point of ``normalize``.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable

from stackforge.models import Entity

DEFAULT_ENTITY = "Item"

_WORD_SPLIT = re.compile(r"[\s\-_]+")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def strip_diacritics(text: str) -> str:
    """Decompose *text* (NFD) and drop combining marks and non-ASCII leftovers.

    Examples::

        strip_diacritics("Catálogo") -> "Catalogo"
        strip_diacritics("usuário")  -> "usuario"
    """
    decomposed = unicodedata.normalize("NFD", text)
    without_marks = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return without_marks.encode("ascii", "ignore").decode("ascii")


def _capitalize_word(word: str) -> str:
    word = _NON_ALNUM.sub("", word)
    if not word:
        return ""
    rest = word[1:]
    if rest.isupper():
        rest = rest.lower()
    return word[0].upper() + rest


def canonical_name(raw: str) -> str:
    """Return the canonical spelling of one raw entity name (may be ``""``).

    Examples::

        canonical_name("order item")   -> "OrderItem"
        canonical_name("user-profile") -> "UserProfile"
        canonical_name("USERS")        -> "Users"
        canonical_name("a-b-c")        -> "Abc"
        canonical_name("  ")           -> ""
    """
    words = _WORD_SPLIT.split(strip_diacritics(raw or "").strip())
    name = "".join(_capitalize_word(w) for w in words if w)
    # Single-letter words can still join into an all-caps name ("a-b-c").
    if len(name) > 1 and name.isupper():
        name = name[0] + name[1:].lower()
    return name


def normalize(raw_names: Iterable[str], default: str = DEFAULT_ENTITY) -> list[str]:
    """Canonicalise and deduplicate *raw_names*, keeping first-occurrence order.

    Names that collapse to the same canonical string are merged. An empty
    result falls back to ``[default]`` so downstream stages always have at
    least one entity to generate for.
    """
    seen: set[str] = set()
    result: list[str] = []
    for raw in raw_names:
        name = canonical_name(raw)
        if name and name not in seen:
            seen.add(name)
            result.append(name)
    if not result:
        result.append(canonical_name(default) or DEFAULT_ENTITY)
    return result


def normalize_entities(raw_names: Iterable[str], default: str = DEFAULT_ENTITY) -> list[Entity]:
    """Like ``normalize`` but keeps the first raw spelling of each entity."""
    raw_list = list(raw_names)
    sources: dict[str, str] = {}
    for raw in raw_list:
        name = canonical_name(raw)
        if name and name not in sources:
            sources[name] = raw
    return [
        Entity(canonical_name=name, source_text=sources.get(name, default))
        for name in normalize(raw_list, default=default)
    ]
