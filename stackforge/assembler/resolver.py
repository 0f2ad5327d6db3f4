"""Import resolver.

Rewrites internal cross-file references in every file of the assembled
tree, using the run's ``SymbolTable``. Relative references were settled by
the extraction pre-pass and external-library references must never change,
so only internal references are looked up. A reference that cannot be
matched stays as written and is reported.

The resolver runs exactly once, after the full tree exists: a file emitted
by an early stage may import a file that only a later stage produces.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from stackforge.assembler.references import (
    ReferenceKind,
    ReferenceSpan,
    relative_reference,
    rewrite_references,
    scan_references,
)
from stackforge.assembler.symbols import SymbolTable
from stackforge.config import AssemblerConfig
from stackforge.models import LogicalFile, UnresolvedReference


@dataclass
class ResolutionReport:
    rewritten: int = 0
    unresolved: list[UnresolvedReference] = field(default_factory=list)
    files_touched: int = 0


@dataclass
class ResolutionResult:
    files: list[LogicalFile]
    report: ResolutionReport


class ImportResolver:
    """Single-pass reference rewriter."""

    def __init__(self, config: AssemblerConfig | None = None) -> None:
        self.config = config or AssemblerConfig()

    def resolve(self, files: Iterable[LogicalFile], table: SymbolTable) -> ResolutionResult:
        """Return new file records with rewritten content, in the same order.

        File identities (directory, file name, stage) are unchanged.
        """
        report = ResolutionReport()
        resolved: list[LogicalFile] = []
        for f in files:
            new_file, rewritten, unresolved = self.resolve_file(f, table)
            report.rewritten += rewritten
            report.unresolved.extend(unresolved)
            if rewritten:
                report.files_touched += 1
            resolved.append(new_file)
        return ResolutionResult(files=resolved, report=report)

    def resolve_file(
        self, file: LogicalFile, table: SymbolTable
    ) -> tuple[LogicalFile, int, list[UnresolvedReference]]:
        """Resolve one file; returns ``(file, rewritten_count, unresolved)``."""
        if file.file_name.endswith(".json"):
            return file, 0, []
        spans = scan_references(file.content, self.config.external_packages)
        unresolved: list[UnresolvedReference] = []

        def _replace(span: ReferenceSpan) -> str | None:
            if span.kind is not ReferenceKind.INTERNAL:
                return None
            target = table.lookup(span.path)
            if target is None:
                unresolved.append(
                    UnresolvedReference(file_path=file.path, reference=span.path, line=span.line)
                )
                return None
            return relative_reference(target, file.directory)

        content, rewritten = rewrite_references(file.content, spans, _replace)
        if not rewritten:
            return file, 0, unresolved
        return file.with_content(content), rewritten, unresolved
