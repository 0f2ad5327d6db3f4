"""Stage registry.

A registry is an ordered, immutable collection of ``StageSpec`` entries
built once and handed to the orchestrator. Each spec names the stage
function, the earlier stages whose structured output it consumes, and the
request option (if any) that switches it off.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from stackforge.assembler.extraction import FileHook
from stackforge.models import Entity, GenerationOptions, LogicalFile, Requirements


@dataclass(frozen=True)
class StageContext:
    """Everything a stage function may read.

    ``upstream`` only holds the outputs of successful stages this stage
    declared a dependency on; a missing key means the dependency failed (or
    was disabled) and the stage must produce a smaller valid output.
    ``files`` is only populated for report-only stages.
    """

    project_name: str
    requirements: Requirements
    entities: list[Entity]
    options: GenerationOptions
    upstream: Mapping[str, Any] = field(default_factory=dict)
    files: tuple[LogicalFile, ...] = ()

    def dependency(self, name: str) -> Any:
        return self.upstream.get(name)


StageFn = Callable[[StageContext], Any]


@dataclass(frozen=True)
class StageSpec:
    name: str
    fn: StageFn
    depends_on: tuple[str, ...] = ()
    option: str | None = None
    report_only: bool = False
    file_hooks: tuple[FileHook, ...] = ()
    title: str = ""

    @property
    def display_name(self) -> str:
        return self.title or self.name.replace("_", " ").title()


class StageRegistry:
    """Ordered stage collection with dependency validation."""

    def __init__(self, stages: Iterable[StageSpec]) -> None:
        self._stages: tuple[StageSpec, ...] = tuple(stages)
        seen: set[str] = set()
        for spec in self._stages:
            if spec.name in seen:
                raise ValueError(f"Duplicate stage name: {spec.name!r}")
            unknown = [dep for dep in spec.depends_on if dep not in seen]
            if unknown:
                raise ValueError(
                    f"Stage {spec.name!r} depends on {', '.join(unknown)}, "
                    "which must be registered before it"
                )
            if spec.option is not None and spec.option not in GenerationOptions.model_fields:
                raise ValueError(f"Stage {spec.name!r} is gated by unknown option {spec.option!r}")
            seen.add(spec.name)

    def __iter__(self) -> Iterator[StageSpec]:
        return iter(self._stages)

    def __len__(self) -> int:
        return len(self._stages)

    def names(self) -> list[str]:
        return [spec.name for spec in self._stages]

    def get(self, name: str) -> StageSpec:
        for spec in self._stages:
            if spec.name == name:
                return spec
        raise KeyError(name)

    def with_stage(self, name: str, fn: StageFn) -> "StageRegistry":
        """Return a copy of the registry with *name*'s function replaced."""
        self.get(name)
        return StageRegistry(
            replace(spec, fn=fn) if spec.name == name else spec for spec in self._stages
        )

    def without(self, *names: str) -> "StageRegistry":
        """Return a copy without the named stages (and without dangling dependencies)."""
        dropped = set(names)
        return StageRegistry(
            replace(spec, depends_on=tuple(d for d in spec.depends_on if d not in dropped))
            for spec in self._stages
            if spec.name not in dropped
        )


def default_registry() -> StageRegistry:
    """The production stage order: layers first, report-only passes last."""
    from stackforge.assembler.extraction import normalize_vite_entry_point
    from stackforge.stages import api, architecture, quality, schema, server, testgen, ui

    return StageRegistry([
        StageSpec("architecture", architecture.design_architecture, title="Architecture Design"),
        StageSpec("schema", schema.design_schema, title="Database Schema"),
        StageSpec(
            "server", server.generate_server,
            depends_on=("architecture", "schema"), title="Server Layer",
        ),
        StageSpec("api", api.generate_api, depends_on=("schema",), title="API Surface"),
        StageSpec(
            "ui", ui.generate_ui,
            depends_on=("architecture", "api"),
            file_hooks=(normalize_vite_entry_point,),
            title="UI Generation",
        ),
        StageSpec(
            "tests", testgen.generate_tests,
            depends_on=("server", "ui"), option="generate_tests", title="Test Generation",
        ),
        StageSpec(
            "optimization", quality.suggest_optimizations,
            option="optimize_code", report_only=True, title="Code Optimization",
        ),
        StageSpec(
            "quality", quality.analyze_quality,
            option="analyze_quality", report_only=True, title="Quality Analysis",
        ),
        StageSpec(
            "verification", quality.verify_output,
            report_only=True, title="Output Verification",
        ),
    ])
