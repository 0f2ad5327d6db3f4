"""Pydantic v2 models for stackforge.

Defines the request a host hands to the orchestrator, the canonical file
representation every stage's output is reduced to, and the diagnostics and
result records returned at the end of a run.
"""

from __future__ import annotations

import posixpath
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class FileType(str, Enum):
    """Coarse classification of an emitted file, by extension."""
    TYPESCRIPT = "typescript"
    TSX = "tsx"
    JAVASCRIPT = "javascript"
    JSX = "jsx"
    CSS = "css"
    HTML = "html"
    JSON = "json"
    MARKDOWN = "markdown"
    PRISMA = "prisma"
    OTHER = "other"


_EXTENSION_TYPES: dict[str, FileType] = {
    ".ts": FileType.TYPESCRIPT,
    ".mts": FileType.TYPESCRIPT,
    ".tsx": FileType.TSX,
    ".js": FileType.JAVASCRIPT,
    ".mjs": FileType.JAVASCRIPT,
    ".cjs": FileType.JAVASCRIPT,
    ".jsx": FileType.JSX,
    ".css": FileType.CSS,
    ".html": FileType.HTML,
    ".json": FileType.JSON,
    ".md": FileType.MARKDOWN,
    ".prisma": FileType.PRISMA,
}


def detect_file_type(file_name: str) -> FileType:
    """Classify *file_name* by its final extension."""
    _, ext = posixpath.splitext(file_name)
    return _EXTENSION_TYPES.get(ext.lower(), FileType.OTHER)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class _RequestModel(BaseModel):
    """Request payloads accept snake_case and camelCase keys and ignore extras."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class StackHints(_RequestModel):
    """Platform hints taken from the requirements source."""
    frontend: list[str] = Field(default_factory=list, description="e.g. ['react', 'vite']")
    backend: list[str] = Field(default_factory=list, description="e.g. ['express']")
    database: Optional[str] = Field(default=None, description="e.g. 'postgresql'")

    @property
    def frontend_framework(self) -> str:
        return self.frontend[0].lower() if self.frontend else "react"

    @property
    def backend_framework(self) -> str:
        return self.backend[0].lower() if self.backend else "express"


class Requirements(_RequestModel):
    """Structured requirements: free text plus feature flags and stack hints."""
    description: str = Field(..., description="Free-text project description")
    features: list[str] = Field(default_factory=list, description="Requested features")
    stack_hints: StackHints = Field(default_factory=StackHints)

    @field_validator("features", mode="before")
    @classmethod
    def _coerce_features(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


class GenerationOptions(_RequestModel):
    """Run toggles. Unset flags take their defaults; unknown flags are ignored."""
    generate_tests: bool = True
    optimize_code: bool = True
    analyze_quality: bool = True


class GenerationRequest(_RequestModel):
    """Top-level input to ``Orchestrator.generate``."""
    project_name: str = Field(..., min_length=1)
    requirements: Requirements
    options: GenerationOptions = Field(default_factory=GenerationOptions)

    @field_validator("project_name")
    @classmethod
    def _non_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("project_name must not be blank")
        return value.strip()

    @field_validator("options", mode="before")
    @classmethod
    def _none_options(cls, value: Any) -> Any:
        return {} if value is None else value


# ---------------------------------------------------------------------------
# Core records
# ---------------------------------------------------------------------------

class Entity(BaseModel):
    """A normalized domain noun shared by every stage in a run."""
    model_config = ConfigDict(frozen=True)

    canonical_name: str = Field(..., description="ASCII, word-capitalized, e.g. 'OrderItem'")
    source_text: str = Field(default="", description="The raw spelling it was derived from")

    @property
    def lower_name(self) -> str:
        return self.canonical_name.lower()

    @property
    def camel_name(self) -> str:
        return self.canonical_name[:1].lower() + self.canonical_name[1:]


class LogicalFile(BaseModel):
    """The canonical unit every stage output is reduced to.

    Structural fields never change after creation. ``content`` is replaced
    once, by the import resolver, which returns a copy via ``with_content``.
    """
    model_config = ConfigDict(frozen=True)

    directory: str = Field(default="", description="POSIX directory, '' for project root")
    file_name: str = Field(..., min_length=1)
    content: str = Field(default="")
    source_stage: str = Field(default="")
    is_root_artifact: bool = Field(default=False)

    @model_validator(mode="before")
    @classmethod
    def _place(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            directory = str(data.get("directory") or "").replace("\\", "/").strip("/")
            if data.get("is_root_artifact"):
                directory = ""
            data["directory"] = directory
        return data

    @property
    def key(self) -> tuple[str, str]:
        """Identity of the file inside a tree."""
        return (self.directory, self.file_name)

    @property
    def path(self) -> str:
        return f"{self.directory}/{self.file_name}" if self.directory else self.file_name

    @property
    def base_name(self) -> str:
        """File name without its final extension."""
        stem, _ = posixpath.splitext(self.file_name)
        return stem or self.file_name

    @property
    def extension(self) -> str:
        return posixpath.splitext(self.file_name)[1]

    @property
    def file_type(self) -> FileType:
        return detect_file_type(self.file_name)

    @property
    def line_count(self) -> int:
        return len(self.content.split("\n")) if self.content else 0

    def with_content(self, content: str) -> "LogicalFile":
        return self.model_copy(update={"content": content})


class SymbolTableEntry(BaseModel):
    """One spelling under which a file can be referenced."""
    model_config = ConfigDict(frozen=True)

    key: str
    resolved_path: str = Field(..., description="directory + base name, extension stripped")


class StageOutcome(BaseModel):
    """Diagnostic record for one executed stage."""
    model_config = ConfigDict(frozen=True)

    name: str
    success: bool
    duration_ms: float = Field(default=0.0, ge=0)
    produced_file_count: int = Field(default=0, ge=0)
    error: Optional[str] = None
    summary: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------

class FileCollision(BaseModel):
    """Two stages emitted the same (directory, file_name); the later one won."""
    directory: str
    file_name: str
    previous_stage: str
    winning_stage: str

    @property
    def path(self) -> str:
        return f"{self.directory}/{self.file_name}" if self.directory else self.file_name


class SymbolCollision(BaseModel):
    """A symbol-table key was re-registered for a different file."""
    key: str
    previous_path: str
    winning_path: str


class UnresolvedReference(BaseModel):
    """An internal import the resolver could not match to any file."""
    file_path: str
    reference: str
    line: int = Field(default=0, ge=0)


class ExtractionMiss(BaseModel):
    """A stage returned output in a shape the extraction adapter does not know."""
    stage: str
    output_type: str


class Diagnostics(BaseModel):
    """Everything below the orchestrator boundary that went sideways."""
    collisions: list[FileCollision] = Field(default_factory=list)
    symbol_collisions: list[SymbolCollision] = Field(default_factory=list)
    unresolved_references: list[UnresolvedReference] = Field(default_factory=list)
    extraction_misses: list[ExtractionMiss] = Field(default_factory=list)
    dropped_entities: list[str] = Field(
        default_factory=list, description="Detected entities past the configured cap"
    )
    rewritten_references: int = Field(default=0, ge=0)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

class GenerationMetrics(BaseModel):
    total_files: int = 0
    total_lines: int = 0
    generation_time_ms: float = 0.0
    files_by_type: dict[str, int] = Field(default_factory=dict)


class ResultMetadata(BaseModel):
    timestamp: str
    version: str


class GenerationResult(BaseModel):
    """What the orchestrator hands back to the host."""
    success: bool
    project_name: str
    files: list[LogicalFile] = Field(default_factory=list)
    stage_outcomes: list[StageOutcome] = Field(default_factory=list)
    metrics: GenerationMetrics = Field(default_factory=GenerationMetrics)
    diagnostics: Diagnostics = Field(default_factory=Diagnostics)
    structure: dict[str, Any] = Field(default_factory=dict)
    metadata: Optional[ResultMetadata] = None

    def find(self, path: str) -> Optional[LogicalFile]:
        """Return the file whose ``path`` equals *path*, if any."""
        for f in self.files:
            if f.path == path:
                return f
        return None

    def outcome(self, name: str) -> Optional[StageOutcome]:
        for outcome in self.stage_outcomes:
            if outcome.name == name:
                return outcome
        return None
