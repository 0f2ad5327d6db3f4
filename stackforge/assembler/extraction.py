"""File extraction adapter.

Generator stages return whatever is natural for them: a mapping with a
``files`` list, a bare list of file records, a list of component units that
each carry their own files, or a mapping of well-known named slots
(``server``, ``routes``, ``pages`` ...). ``classify_output`` turns that raw
value into one member of a closed tagged union, and ``extract`` reduces
every member to ``LogicalFile`` records.

Every extracted file goes through a content pre-pass that turns references
spelled as generation-root paths (``backend/src/...``) into relative ones and
strips module extensions from relative references, so the resolver that
runs later only has to deal with names.
"""

from __future__ import annotations

import posixpath
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Union

from pydantic import BaseModel

from stackforge.assembler.references import (
    ReferenceKind,
    ReferenceSpan,
    relative_reference,
    rewrite_references,
    scan_references,
)
from stackforge.config import AssemblerConfig
from stackforge.models import LogicalFile


# ---------------------------------------------------------------------------
# Named slots
# ---------------------------------------------------------------------------

# slot -> (directory, file name pattern). ``{name}`` is the mapping key.
NAMED_SLOTS: dict[str, tuple[str, str]] = {
    "server": ("backend/src", "server.ts"),
    "app": ("backend/src", "app.ts"),
    "routes": ("backend/src/routes", "{name}.routes.ts"),
    "controllers": ("backend/src/controllers", "{name}.controller.ts"),
    "services": ("backend/src/services", "{name}.service.ts"),
    "models": ("backend/src/models", "{name}.model.ts"),
    "schema": ("backend/prisma", "schema.prisma"),
    "pages": ("frontend/src/pages", "{name}.tsx"),
    "components": ("frontend/src/components", "{name}.tsx"),
    "hooks": ("frontend/src/hooks", "{name}.ts"),
}

_UNIT_KEYS = ("components", "units")
_DEFAULT_FILE_NAME = "generated.ts"
_DEFAULT_DIRECTORY = "src"
_INVALID_NAMES = frozenset({"", ".", ".."})
_DOT_RUN = re.compile(r"^\.{4,}/")


# ---------------------------------------------------------------------------
# Tagged union of recognised output shapes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FileListOutput:
    """``{"files": [...], ...}``; other keys are stage metadata."""
    records: list[Any]
    kind: Literal["file_list"] = "file_list"


@dataclass(frozen=True)
class BareListOutput:
    """A top-level list of file records."""
    records: list[Any]
    kind: Literal["bare_list"] = "bare_list"


@dataclass(frozen=True)
class UnitListOutput:
    """``{"components": [{"name": ..., "files": [...]}, ...]}``."""
    units: list[Mapping[str, Any]]
    kind: Literal["unit_list"] = "unit_list"


@dataclass(frozen=True)
class NamedSlotOutput:
    """``{"server": "...", "routes": {"task": "..."}, ...}``."""
    slots: dict[str, Any]
    kind: Literal["named_slots"] = "named_slots"


@dataclass(frozen=True)
class UnrecognizedOutput:
    output_type: str
    kind: Literal["unrecognized"] = "unrecognized"


StageOutput = Union[
    FileListOutput, BareListOutput, UnitListOutput, NamedSlotOutput, UnrecognizedOutput
]

FileHook = Callable[[list[LogicalFile]], list[LogicalFile]]


@dataclass
class ExtractionResult:
    files: list[LogicalFile] = field(default_factory=list)
    shape: str = "unrecognized"

    @property
    def recognized(self) -> bool:
        return self.shape != "unrecognized"


def classify_output(raw: Any) -> StageOutput:
    """Map a raw stage value onto one member of ``StageOutput``.

    Shapes are tried in order: explicit file list, bare list, unit list,
    named slots.
    """
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    if isinstance(raw, Mapping):
        files = raw.get("files")
        if isinstance(files, (list, tuple)):
            return FileListOutput(records=list(files))
    if isinstance(raw, (list, tuple)):
        return BareListOutput(records=list(raw))
    if isinstance(raw, Mapping):
        for key in _UNIT_KEYS:
            units = raw.get(key)
            if isinstance(units, (list, tuple)) and all(isinstance(u, Mapping) for u in units):
                return UnitListOutput(units=list(units))
        slots = {k: v for k, v in raw.items() if k in NAMED_SLOTS and v}
        if slots:
            return NamedSlotOutput(slots=slots)
    return UnrecognizedOutput(output_type=type(raw).__name__)


# ---------------------------------------------------------------------------
# Content pre-pass
# ---------------------------------------------------------------------------

def prepare_content(content: str, directory: str, config: AssemblerConfig) -> str:
    """Rewrite generation-root and malformed relative references in *content*.

    * ``from 'backend/src/services/x.ts'`` -> path relative to *directory*
    * ``from '....../x'`` -> ``from './x'``
    * ``from '.catalog.routes'`` -> ``from './catalog.routes'``
    * module extensions are stripped from every relative reference
    """
    spans = scan_references(content, config.external_packages)
    if not spans:
        return content
    roots = [f"{root}/" for root in config.generation_roots]

    def _replace(span: ReferenceSpan) -> str | None:
        path = span.path
        if any(path.startswith(root) for root in roots):
            path = relative_reference(posixpath.normpath(path), directory)
        elif _DOT_RUN.match(path):
            path = "./" + _DOT_RUN.sub("", path)
        elif span.kind is ReferenceKind.RELATIVE and re.match(r"^\.[A-Za-z0-9_]", path):
            path = "./" + path[1:]
        if not path.startswith("."):
            return None
        return config.strip_module_extension(path)

    new_content, _ = rewrite_references(content, spans, _replace)
    return new_content


# ---------------------------------------------------------------------------
# Record normalisation
# ---------------------------------------------------------------------------

def _first(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


def _is_root(record: Mapping[str, Any]) -> bool:
    metadata = record.get("metadata")
    if isinstance(metadata, Mapping) and metadata.get("isRoot"):
        return True
    return bool(
        record.get("isRoot") or record.get("isRootArtifact") or record.get("is_root_artifact")
    )


def normalize_record(
    record: Any, stage_name: str, config: AssemblerConfig
) -> LogicalFile | None:
    """Reduce one loosely-shaped file record to a ``LogicalFile``.

    Returns ``None`` for values that are not file records at all: non-mapping
    values, records whose name is empty after path splitting (``"src/"``) and
    records whose content is not text.
    """
    if isinstance(record, LogicalFile):
        return make_file(
            record.directory, record.file_name, record.content,
            record.source_stage or stage_name, config,
            is_root_artifact=record.is_root_artifact,
        )
    if isinstance(record, BaseModel):
        record = record.model_dump()
    if not isinstance(record, Mapping):
        return None

    file_name = _first(record, "filename", "fileName", "file_name", "name", "file")
    has_path = "path" in record and record["path"] is not None
    directory = str(record["path"]) if has_path else _first(record, "directory", "dir")
    directory = str(directory).replace("\\", "/").strip("/") if directory is not None else None

    # A path whose last segment looks like a file is a file path.
    if directory and "." in directory.rsplit("/", 1)[-1]:
        head, _, tail = directory.rpartition("/")
        if file_name is None or str(file_name) == tail:
            file_name = tail
        directory = head

    file_name = str(file_name or _DEFAULT_FILE_NAME).replace("\\", "/")
    if "/" in file_name:
        head, _, file_name = file_name.rpartition("/")
        directory = posixpath.join(directory, head) if directory else head
    if file_name in _INVALID_NAMES:
        return None
    if directory is None:
        directory = _DEFAULT_DIRECTORY

    content = _first(record, "content", "code") or ""
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    if not isinstance(content, str):
        return None
    return make_file(
        directory, file_name, content, stage_name, config,
        is_root_artifact=_is_root(record),
    )


def make_file(
    directory: str,
    file_name: str,
    content: str,
    stage_name: str,
    config: AssemblerConfig,
    *,
    is_root_artifact: bool = False,
) -> LogicalFile:
    """Create a ``LogicalFile`` with its content run through the pre-pass."""
    placed = "" if is_root_artifact else directory.strip("/")
    if not file_name.endswith(".json"):
        content = prepare_content(content, placed, config)
    return LogicalFile(
        directory=placed,
        file_name=file_name,
        content=content,
        source_stage=stage_name,
        is_root_artifact=is_root_artifact,
    )


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def _records_to_files(
    records: Iterable[Any], stage_name: str, config: AssemblerConfig
) -> list[LogicalFile]:
    files: list[LogicalFile] = []
    for record in records:
        logical = normalize_record(record, stage_name, config)
        if logical is not None:
            files.append(logical)
    return files


def _slot_files(
    slots: Mapping[str, Any], stage_name: str, config: AssemblerConfig
) -> list[LogicalFile]:
    files: list[LogicalFile] = []
    for slot, value in slots.items():
        directory, pattern = NAMED_SLOTS[slot]
        if isinstance(value, Mapping):
            entries = list(value.items())
        else:
            entries = [("index", value)]
        for name, content in entries:
            if not isinstance(content, str):
                continue
            file_name = pattern.format(name=name)
            files.append(make_file(directory, file_name, content, stage_name, config))
    return files


def extract(
    raw: Any, stage_name: str, config: AssemblerConfig | None = None
) -> ExtractionResult:
    """Reduce a stage's raw output to ``LogicalFile`` records.

    Unrecognised shapes produce an empty result whose ``recognized`` is
    ``False``; this is never an error.
    """
    config = config or AssemblerConfig()
    output = classify_output(raw)

    if isinstance(output, (FileListOutput, BareListOutput)):
        files = _records_to_files(output.records, stage_name, config)
    elif isinstance(output, UnitListOutput):
        files = []
        for unit in output.units:
            nested = unit.get("files")
            if isinstance(nested, (list, tuple)):
                files.extend(_records_to_files(nested, stage_name, config))
    elif isinstance(output, NamedSlotOutput):
        files = _slot_files(output.slots, stage_name, config)
    else:
        return ExtractionResult(files=[], shape=output.kind)

    return ExtractionResult(files=files, shape=output.kind)


# ---------------------------------------------------------------------------
# Post-extraction hooks
# ---------------------------------------------------------------------------

def normalize_vite_entry_point(files: list[LogicalFile]) -> list[LogicalFile]:
    """Rename a frontend ``src/index.ts(x)`` entry point to ``main.ts(x)``.

    Vite's default ``index.html`` loads ``/src/main.tsx``.
    """
    result: list[LogicalFile] = []
    for f in files:
        is_entry = f.file_name in ("index.tsx", "index.ts")
        in_src = f.directory == "src" or f.directory.endswith("/src")
        if is_entry and in_src and not f.directory.startswith("backend"):
            f = LogicalFile(
                directory=f.directory,
                file_name="main" + f.extension,
                content=f.content,
                source_stage=f.source_stage,
                is_root_artifact=f.is_root_artifact,
            )
        result.append(f)
    return result
