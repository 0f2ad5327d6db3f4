"""stackforge assembler -- turns N stage outputs into one coherent tree.

Quick usage::

    from stackforge.assembler import ImportResolver, SymbolTable, VirtualProjectTree, extract

    tree = VirtualProjectTree()
    tree.extend(extract(stage_output, "ui").files)
    table = SymbolTable.build(tree.files())
    result = ImportResolver().resolve(tree.files(), table)
"""

from stackforge.assembler.extraction import (
    NAMED_SLOTS,
    ExtractionResult,
    classify_output,
    extract,
    normalize_vite_entry_point,
)
from stackforge.assembler.references import ReferenceKind, classify_reference, scan_references
from stackforge.assembler.resolver import ImportResolver, ResolutionResult
from stackforge.assembler.runner import run_stage
from stackforge.assembler.symbols import SymbolTable
from stackforge.assembler.tree import VirtualProjectTree

__all__ = [
    "NAMED_SLOTS",
    "ExtractionResult",
    "ImportResolver",
    "ReferenceKind",
    "ResolutionResult",
    "SymbolTable",
    "VirtualProjectTree",
    "classify_output",
    "classify_reference",
    "extract",
    "normalize_vite_entry_point",
    "run_stage",
    "scan_references",
]
