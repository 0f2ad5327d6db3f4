"""stackforge Pipeline Orchestrator.

Runs the generator stages in a fixed order and assembles their outputs into
one coherent project tree:

1. Validate the request and normalize the entity list once.
2. Run every enabled stage, in registry order, through the stage runner.
3. Reduce each successful stage's output to logical files and add them to
   the virtual project tree (last write wins on path collisions).
4. Append the static configuration files.
5. Build the symbol table and resolve internal imports in a single pass.
6. Compute metrics and return a ``GenerationResult``.

Only a malformed request is fatal. Stage failures, unrecognised stage
output and unresolvable imports are recorded and the run carries on.

Usage::

    python -m stackforge.pipeline request.yaml
    python -m stackforge.pipeline request.json --output ./my-project
"""

from __future__ import annotations

import asyncio
import sys
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from rich.panel import Panel

from stackforge.assembler.extraction import extract
from stackforge.assembler.resolver import ImportResolver
from stackforge.assembler.runner import run_stage
from stackforge.assembler.symbols import SymbolTable
from stackforge.assembler.tree import VirtualProjectTree, build_structure
from stackforge.config import AssemblerConfig
from stackforge.models import (
    Diagnostics,
    ExtractionMiss,
    GenerationMetrics,
    GenerationRequest,
    GenerationResult,
    LogicalFile,
    ResultMetadata,
    StageOutcome,
)
from stackforge.parser import extract_entities
from stackforge.stages.config_files import build_config_files
from stackforge.stages.registry import StageContext, StageRegistry, StageSpec, default_registry
from stackforge.utils import (
    console,
    format_duration,
    load_request_file,
    print_detail,
    print_error,
    print_stage_header,
    print_success,
    print_summary_table,
    print_warning,
    save_json,
    write_tree,
)

VERSION = "0.3.0"

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class GenerationError(Exception):
    """Raised when a run cannot produce a result at all."""

    def __init__(self, stage: str, message: str) -> None:
        self.stage = stage
        super().__init__(f"{stage}: {message}")


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class Orchestrator:
    """Drives one generation run from request to assembled tree.

    An orchestrator holds no per-run state; ``generate`` may be called any
    number of times and every call builds its own tree, symbol table and
    diagnostics.

    Attributes:
        registry: Ordered stages to run.
        config: Assembler settings (generation roots, module extensions ...).
    """

    def __init__(
        self,
        registry: StageRegistry | None = None,
        config: AssemblerConfig | None = None,
    ) -> None:
        self.registry = registry if registry is not None else default_registry()
        self.config = config or AssemblerConfig()

    # ------------------------------------------------------------------
    # Request validation
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(request: GenerationRequest | Mapping[str, Any]) -> GenerationRequest:
        if isinstance(request, GenerationRequest):
            return request
        if not isinstance(request, Mapping):
            raise GenerationError(
                "request", f"expected a mapping, got {type(request).__name__}"
            )
        try:
            return GenerationRequest.model_validate(dict(request))
        except ValidationError as exc:
            raise GenerationError("request", str(exc)) from exc

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    async def generate(
        self, request: GenerationRequest | Mapping[str, Any]
    ) -> GenerationResult:
        """Run every enabled stage and assemble the project.

        Raises:
            GenerationError: If *request* is malformed.
        """
        run_start = time.monotonic()
        req = self._validate(request)

        detected = extract_entities(
            req.requirements, max_entities=None, default=self.config.default_entity
        )
        entities = detected[: self.config.max_entities]
        dropped = [e.canonical_name for e in detected[len(entities):]]
        if dropped:
            print_warning(
                f"Generating {len(entities)} of {len(detected)} detected entities "
                f"(max_entities={self.config.max_entities}); dropped: {', '.join(dropped)}"
            )

        console.print(
            Panel(
                f"[bold bright_cyan]stackforge[/bold bright_cyan]\n"
                f"Project  : {req.project_name}\n"
                f"Entities : {', '.join(e.canonical_name for e in entities)}\n"
                f"Stages   : {', '.join(self.registry.names())}",
                title="[bold]Generation Start[/bold]",
                border_style="bright_cyan",
            )
        )

        tree = VirtualProjectTree()
        outputs: dict[str, Any] = {}
        outcomes: list[StageOutcome] = []
        misses: list[ExtractionMiss] = []

        for index, spec in enumerate(self.registry, start=1):
            if spec.option is not None and not getattr(req.options, spec.option):
                print_detail(f"Stage {spec.name} disabled by option {spec.option}")
                continue
            if spec.report_only and not len(tree):
                print_detail(f"Stage {spec.name} skipped: nothing generated yet")
                continue

            print_stage_header(index, spec.name)
            ctx = StageContext(
                project_name=req.project_name,
                requirements=req.requirements,
                entities=entities,
                options=req.options,
                upstream={dep: outputs[dep] for dep in spec.depends_on if dep in outputs},
                files=tree.snapshot() if spec.report_only else (),
            )
            missing = [dep for dep in spec.depends_on if dep not in outputs]
            if missing:
                print_warning(f"  Running without output from: {', '.join(missing)}")

            outcome, output = await run_stage(spec.name, spec.fn, ctx)
            if not outcome.success:
                print_error(
                    f"{spec.display_name} FAILED after "
                    f"{format_duration(outcome.duration_ms / 1000)}: {outcome.error}"
                )
                outcomes.append(outcome)
                continue

            if spec.report_only:
                summary = dict(output) if isinstance(output, Mapping) else {}
                outcome = outcome.model_copy(update={"summary": summary})
            else:
                # Extraction faults fail this stage only.
                assembled, files = await run_stage(
                    spec.name, self._extract_files, spec, output, misses
                )
                if not assembled.success:
                    outcome = outcome.model_copy(update={
                        "success": False,
                        "duration_ms": outcome.duration_ms + assembled.duration_ms,
                        "error": f"could not assemble output: {assembled.error}",
                    })
                    print_error(f"{spec.display_name} FAILED: {outcome.error}")
                    outcomes.append(outcome)
                    continue
                self._add_to_tree(files, tree)
                outcome = outcome.model_copy(update={"produced_file_count": len(files)})

            outputs[spec.name] = output
            outcomes.append(outcome)
            print_success(
                f"{spec.display_name} completed in "
                f"{format_duration(outcome.duration_ms / 1000)} "
                f"({outcome.produced_file_count} file(s))"
            )

        # Static configuration files bypass extraction.
        config_files = build_config_files(req.project_name, has_database="schema" in outputs)
        for collision in tree.extend(config_files):
            print_warning(f"  {collision.path}: {collision.previous_stage} overridden by config")

        table = SymbolTable.build(tree.files(), self.config)
        resolution = ImportResolver(self.config).resolve(tree.files(), table)
        files = resolution.files
        self._report_resolution(table, resolution.report.unresolved)

        elapsed_ms = (time.monotonic() - run_start) * 1000
        metrics = GenerationMetrics(
            total_files=len(files),
            total_lines=sum(f.line_count for f in files),
            generation_time_ms=elapsed_ms,
            files_by_type=tree.files_by_type(),
        )
        diagnostics = Diagnostics(
            collisions=list(tree.collisions),
            symbol_collisions=list(table.collisions),
            unresolved_references=resolution.report.unresolved,
            extraction_misses=misses,
            dropped_entities=dropped,
            rewritten_references=resolution.report.rewritten,
        )
        result = GenerationResult(
            success=bool(files),
            project_name=req.project_name,
            files=files,
            stage_outcomes=outcomes,
            metrics=metrics,
            diagnostics=diagnostics,
            structure=build_structure(files),
            metadata=ResultMetadata(
                timestamp=datetime.now(timezone.utc).isoformat(),
                version=VERSION,
            ),
        )
        self._print_final_summary(result)
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _extract_files(
        self,
        spec: StageSpec,
        output: Any,
        misses: list[ExtractionMiss],
    ) -> list[LogicalFile]:
        """Reduce *output* to logical files and apply the stage's file hooks."""
        extraction = extract(output, spec.name, self.config)
        if not extraction.recognized:
            misses.append(ExtractionMiss(stage=spec.name, output_type=type(output).__name__))
            print_warning(f"  No files recognised in {spec.name} output ({type(output).__name__})")
            return []

        files = extraction.files
        for hook in spec.file_hooks:
            files = list(hook(files))
            stray = next((f for f in files if not isinstance(f, LogicalFile)), None)
            if stray is not None:
                raise TypeError(
                    f"file hook {getattr(hook, '__name__', hook)!r} returned "
                    f"{type(stray).__name__}, expected LogicalFile"
                )
        return files

    def _add_to_tree(self, files: list[LogicalFile], tree: VirtualProjectTree) -> None:
        for collision in tree.extend(files):
            print_warning(
                f"  {collision.path}: {collision.previous_stage} output replaced by "
                f"{collision.winning_stage}"
            )

    def _report_resolution(self, table: SymbolTable, unresolved: list[Any]) -> None:
        if self.config.verbose:
            for entry in table.entries():
                print_detail(f"  symbol {entry.key} -> {entry.resolved_path}")
            for collision in table.collisions:
                print_detail(
                    f"  symbol {collision.key}: {collision.previous_path} -> "
                    f"{collision.winning_path}"
                )
        for ref in unresolved:
            print_warning(f"  Unresolved import '{ref.reference}' in {ref.file_path}:{ref.line}")

    def _print_final_summary(self, result: GenerationResult) -> None:
        failed = [o.name for o in result.stage_outcomes if not o.success]
        print_summary_table(
            {
                "Files": str(result.metrics.total_files),
                "Lines": str(result.metrics.total_lines),
                "Stages": f"{len(result.stage_outcomes) - len(failed)}/{len(result.stage_outcomes)} succeeded",
                "Failed stages": ", ".join(failed) or "none",
                "Collisions": str(len(result.diagnostics.collisions)),
                "Rewritten imports": str(result.diagnostics.rewritten_references),
                "Unresolved imports": str(len(result.diagnostics.unresolved_references)),
                "Duration": format_duration(result.metrics.generation_time_ms / 1000),
            },
            title=f"Generation Summary: {result.project_name}",
        )


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """CLI entry point for ``python -m stackforge.pipeline``."""
    import argparse

    parser = argparse.ArgumentParser(
        description="stackforge -- multi-stage full-stack scaffold generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m stackforge.pipeline request.yaml\n"
            "  python -m stackforge.pipeline request.json -o ./my-project\n"
            "  python -m stackforge.pipeline request.yaml -r result.json\n"
        ),
    )
    parser.add_argument("request", help="Path to a JSON or YAML generation request")
    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Write the generated tree to this directory",
    )
    parser.add_argument(
        "--report", "-r",
        default=None,
        help="Write the full generation result (outcomes, diagnostics, metrics) as JSON",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print symbol-table details",
    )
    args = parser.parse_args()

    req_path = Path(args.request)
    if not req_path.exists():
        console.print(f"[bold red]Error:[/bold red] Request file not found: {req_path}")
        sys.exit(1)

    try:
        request = load_request_file(req_path)
    except (ValueError, yaml.YAMLError) as exc:
        console.print(f"[bold red]Error:[/bold red] Could not read {req_path}: {exc}")
        sys.exit(1)

    config = AssemblerConfig.from_env()
    if args.verbose:
        config = config.model_copy(update={"verbose": True})

    try:
        result = asyncio.run(Orchestrator(config=config).generate(request))
    except GenerationError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)

    if args.output:
        written = asyncio.run(write_tree(result.files, args.output))
        console.print(f"Wrote {len(written)} file(s) to [bold]{Path(args.output).resolve()}[/bold]")

    if args.report:
        asyncio.run(save_json(result.model_dump(mode="json"), args.report))
        console.print(f"Result report saved to [bold]{Path(args.report).resolve()}[/bold]")

    if result.success:
        console.print("[bold green]Generation completed successfully![/bold green]")
    else:
        console.print("[bold red]Generation produced no files.[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
