"""Report-only stages: optimization suggestions, quality scoring, verification.

These stages read a snapshot of the assembled tree (``ctx.files``) and
return a summary mapping. They never return files and never change file
content; the import resolver stays the only component that rewrites
content after extraction.
"""

from __future__ import annotations

import posixpath
import re
from collections import Counter
from typing import Any

from stackforge.assembler.references import ReferenceKind, scan_references
from stackforge.config import AssemblerConfig
from stackforge.models import LogicalFile
from stackforge.stages.registry import StageContext


_SOURCE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")
_STRING_LITERAL = re.compile(r"""(['"`])(?:\\.|(?!\1).)*\1""")
_FOR_EACH = re.compile(r"\w+\.forEach\(\s*\(?\w+")
_ANY_TYPE = re.compile(r":\s*any\b|as\s+any\b|<any>")


def _sources(files: tuple[LogicalFile, ...]) -> list[LogicalFile]:
    return [f for f in files if f.file_name.endswith(_SOURCE_EXTENSIONS)]


# ---------------------------------------------------------------------------
# Optimization
# ---------------------------------------------------------------------------

def _file_suggestions(f: LogicalFile) -> list[dict[str, str]]:
    found: list[dict[str, str]] = []

    def _add(kind: str, description: str) -> None:
        found.append({"file": f.path, "type": kind, "description": description})

    if re.search(r"\bvar\s", f.content):
        _add("best_practice", "Replace var with let or const")
    if ".then(" in f.content and "async " not in f.content:
        _add("best_practice", "Consider async/await instead of .then() chains")
    if _FOR_EACH.search(f.content):
        _add("optimize_loop", "Consider for...of instead of .forEach")
    if f.directory.startswith("backend/src") and "console.log(" in f.content and f.base_name != "logger":
        _add("logging", "Use the shared logger instead of console.log")

    literals = Counter(m.group(0) for m in _STRING_LITERAL.finditer(f.content) if len(m.group(0)) > 20)
    for literal, count in literals.items():
        if count > 2:
            _add("consolidate_duplicate", f"String {literal} repeated {count} times; extract a constant")
    return found


async def suggest_optimizations(ctx: StageContext) -> dict[str, Any]:
    """List optimization opportunities without applying them."""
    sources = _sources(ctx.files)
    suggestions = [s for f in sources for s in _file_suggestions(f)]
    by_type = Counter(s["type"] for s in suggestions)
    return {
        "files_analyzed": len(sources),
        "suggestions": suggestions,
        "by_type": dict(sorted(by_type.items())),
    }


# ---------------------------------------------------------------------------
# Quality analysis
# ---------------------------------------------------------------------------

def _grade(score: float) -> str:
    for threshold, grade in ((90, "A"), (80, "B"), (70, "C"), (60, "D")):
        if score >= threshold:
            return grade
    return "F"


def _score_reliability(code: str, issues: list[dict[str, str]]) -> int:
    score = 100
    async_functions = len(re.findall(r"async\s+function|async\s*\(|async\s+\w+\s*=>", code))
    try_blocks = len(re.findall(r"try\s*\{", code))
    if async_functions and not try_blocks:
        score -= 20
        issues.append({
            "severity": "high",
            "category": "reliability",
            "message": "Async functions without error handling",
        })
    return max(0, score)


def _score_security(code: str, issues: list[dict[str, str]]) -> int:
    score = 100
    if "eval(" in code:
        score -= 30
        issues.append({"severity": "critical", "category": "security", "message": "Use of eval() detected"})
    if "innerHTML" in code:
        score -= 15
        issues.append({"severity": "high", "category": "security", "message": "Direct innerHTML usage detected"})
    if re.search(r"""['"`](password|secret|token|api_key)['"`]\s*[:=]""", code, re.IGNORECASE):
        score -= 25
        issues.append({
            "severity": "critical",
            "category": "security",
            "message": "Potential hardcoded secrets detected",
        })
    return max(0, score)


def _score_type_safety(code: str, issues: list[dict[str, str]]) -> int:
    uses = len(_ANY_TYPE.findall(code))
    if uses:
        issues.append({
            "severity": "medium",
            "category": "type_safety",
            "message": f"{uses} use(s) of the any type",
        })
    return max(0, 100 - 5 * uses)


def _score_testability(files: tuple[LogicalFile, ...], issues: list[dict[str, str]]) -> int:
    tests = [f for f in files if ".test." in f.file_name or ".spec." in f.file_name]
    if not tests:
        issues.append({"severity": "medium", "category": "testability", "message": "No test files generated"})
        return 60
    return 100


async def analyze_quality(ctx: StageContext) -> dict[str, Any]:
    """Score the generated sources on a few weighted dimensions."""
    code = "\n\n".join(f.content for f in _sources(ctx.files))
    issues: list[dict[str, str]] = []
    metrics = {
        "reliability": _score_reliability(code, issues),
        "security": _score_security(code, issues),
        "type_safety": _score_type_safety(code, issues),
        "testability": _score_testability(ctx.files, issues),
    }
    score = round(sum(metrics.values()) / len(metrics))
    return {"score": score, "grade": _grade(score), "metrics": metrics, "issues": issues}


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------

_EXPECTED_FILES: dict[str, str] = {
    "backend_entry": "backend/src/server.ts",
    "backend_app": "backend/src/app.ts",
    "frontend_entry": "frontend/src/main.tsx",
    "prisma_schema": "backend/prisma/schema.prisma",
}


def broken_relative_references(
    files: tuple[LogicalFile, ...], config: AssemblerConfig | None = None
) -> list[dict[str, Any]]:
    """Relative references whose target is not in *files*.

    A reference matches a file by exact path, by path with the module
    extension stripped, or as a directory holding an ``index`` module.
    """
    config = config or AssemblerConfig()
    known: set[str] = set()
    for f in files:
        known.add(f.path)
        if config.is_module(f.file_name):
            stripped = config.strip_module_extension(f.path)
            known.add(stripped)
            if f.base_name == "index" and f.directory:
                known.add(f.directory)

    broken: list[dict[str, Any]] = []
    for f in files:
        if not config.is_module(f.file_name):
            continue
        for span in scan_references(f.content, config.external_packages):
            if span.kind is not ReferenceKind.RELATIVE:
                continue
            target = posixpath.normpath(posixpath.join(f.directory, span.path))
            if target not in known:
                broken.append({"file": f.path, "reference": span.path, "line": span.line})
    return broken


async def verify_output(ctx: StageContext) -> dict[str, Any]:
    """Check expected entry points exist and relative imports land on real files."""
    paths = {f.path for f in ctx.files}
    checks = {name: path in paths for name, path in _EXPECTED_FILES.items()}
    broken = broken_relative_references(ctx.files)
    return {
        "passed": all(checks.values()) and not broken,
        "checks": checks,
        "missing": [_EXPECTED_FILES[name] for name, ok in checks.items() if not ok],
        "broken_references": broken,
    }
