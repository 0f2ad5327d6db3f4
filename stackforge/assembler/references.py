"""Import reference scanning and classification.

Both the extraction pre-pass and the import resolver work on the same
representation: one regex scan over a file's content that yields
``ReferenceSpan`` records, each classified once. Rewrites are applied in a
single pass over the original text, so a span is never rewritten twice and
the order of rules cannot matter.
"""

from __future__ import annotations

import posixpath
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum


_FROM_PATTERN = re.compile(r"""\bfrom\s+(?P<quote>['"])(?P<path>[^'"\n]*)(?P=quote)""")


class ReferenceKind(str, Enum):
    """How the resolver treats a reference."""
    RELATIVE = "relative"
    EXTERNAL = "external"
    INTERNAL = "internal"


@dataclass(frozen=True)
class ReferenceSpan:
    """One ``... from '<path>'`` occurrence; ``start``/``end`` delimit the path text."""
    path: str
    start: int
    end: int
    line: int
    kind: ReferenceKind


def classify_reference(
    path: str, external_packages: Iterable[str] = ()
) -> ReferenceKind:
    """Classify an import path.

    * ``./x``, ``../x``, ``.x`` -> relative (already resolved upstream).
    * no separator (``react``), a scoped package (``@scope/pkg``), a
      protocol-prefixed module (``node:fs/promises``) or a subpath of a
      declared external package (``react-dom/client``) -> external.
    * anything else, including ``@/alias`` paths -> internal.
    """
    if path.startswith("."):
        return ReferenceKind.RELATIVE
    if path and "/" not in path and "\\" not in path:
        return ReferenceKind.EXTERNAL
    if path.startswith("@") and not path.startswith("@/"):
        return ReferenceKind.EXTERNAL
    first = re.split(r"[/\\]", path, maxsplit=1)[0]
    if ":" in first:
        return ReferenceKind.EXTERNAL
    if first and first in set(external_packages):
        return ReferenceKind.EXTERNAL
    return ReferenceKind.INTERNAL


def scan_references(
    content: str, external_packages: Iterable[str] = ()
) -> list[ReferenceSpan]:
    """Return every ``from '<path>'`` reference in *content*, in text order."""
    if not content:
        return []
    externals = tuple(external_packages)
    spans: list[ReferenceSpan] = []
    for match in _FROM_PATTERN.finditer(content):
        path = match.group("path")
        spans.append(
            ReferenceSpan(
                path=path,
                start=match.start("path"),
                end=match.end("path"),
                line=content.count("\n", 0, match.start()) + 1,
                kind=classify_reference(path, externals),
            )
        )
    return spans


def rewrite_references(
    content: str,
    spans: Iterable[ReferenceSpan],
    replace: Callable[[ReferenceSpan], str | None],
) -> tuple[str, int]:
    """Rewrite reference paths in one pass.

    ``replace`` returns the new path for a span, or ``None`` to keep it.

    Returns:
        ``(new_content, rewritten_count)``.
    """
    parts: list[str] = []
    cursor = 0
    rewritten = 0
    for span in sorted(spans, key=lambda s: s.start):
        new_path = replace(span)
        if new_path is None or new_path == span.path:
            continue
        parts.append(content[cursor:span.start])
        parts.append(new_path)
        cursor = span.end
        rewritten += 1
    if not rewritten:
        return content, 0
    parts.append(content[cursor:])
    return "".join(parts), rewritten


def relative_reference(target: str, from_directory: str) -> str:
    """Spell *target* (a tree path) relative to *from_directory*.

    Examples::

        relative_reference("backend/src/services/task.service", "backend/src/controllers")
        -> "../services/task.service"
        relative_reference("frontend/src/App", "frontend/src") -> "./App"
    """
    rel = posixpath.relpath(target, from_directory or ".")
    if not (rel.startswith("../") or rel.startswith("./") or rel == ".."):
        rel = f"./{rel}"
    return rel
