"""stackforge configuration.

Centralised, typed configuration for the assembler. All settings use
Pydantic v2 models so they can be validated at construction time and
serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator


DEFAULT_GENERATION_ROOTS: list[str] = ["backend/src", "frontend/src"]
DEFAULT_MODULE_EXTENSIONS: list[str] = [".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs"]
DEFAULT_EXTERNAL_PACKAGES: list[str] = [
    "react",
    "react-dom",
    "react-router-dom",
    "express",
    "vite",
    "vitest",
    "zod",
    "axios",
    "lodash",
]


class AssemblerConfig(BaseModel):
    """Tuning knobs for one generation run.

    Instances are typically created once by the CLI entry point (or by the
    hosting application) and handed to ``Orchestrator``. Nothing here is
    mutated during a run.
    """

    generation_roots: list[str] = Field(
        default_factory=lambda: list(DEFAULT_GENERATION_ROOTS),
        description="Tree prefixes that generators spell as absolute import paths",
    )
    module_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_MODULE_EXTENSIONS),
        description="File extensions registered in the symbol table and stripped from imports",
    )
    external_packages: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXTERNAL_PACKAGES),
        description="Package names whose subpath imports (react-dom/client) are never resolved",
    )
    default_entity: str = Field(
        default="Item", min_length=1, description="Entity used when none can be detected"
    )
    max_entities: int = Field(
        default=5, ge=1, description="Upper bound on detected entities per run"
    )
    verbose: bool = Field(
        default=False, description="Print symbol-table and per-file resolution details"
    )

    @field_validator("generation_roots")
    @classmethod
    def _strip_root_slashes(cls, value: list[str]) -> list[str]:
        return [root.strip("/") for root in value if root.strip("/")]

    @field_validator("module_extensions")
    @classmethod
    def _dot_prefix(cls, value: list[str]) -> list[str]:
        return [ext if ext.startswith(".") else f".{ext}" for ext in value if ext]

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Parent directories are created.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "AssemblerConfig":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "AssemblerConfig":
        """Build an ``AssemblerConfig`` from environment variables.

        Recognised variables (all optional):
            STACKFORGE_GENERATION_ROOTS, STACKFORGE_MODULE_EXTENSIONS,
            STACKFORGE_EXTERNAL_PACKAGES, STACKFORGE_DEFAULT_ENTITY, STACKFORGE_MAX_ENTITIES,
            STACKFORGE_VERBOSE.

        List-valued variables are comma separated.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("STACKFORGE_GENERATION_ROOTS"):
            kwargs["generation_roots"] = _split_csv(os.environ["STACKFORGE_GENERATION_ROOTS"])
        if os.environ.get("STACKFORGE_MODULE_EXTENSIONS"):
            kwargs["module_extensions"] = _split_csv(os.environ["STACKFORGE_MODULE_EXTENSIONS"])
        if os.environ.get("STACKFORGE_EXTERNAL_PACKAGES"):
            kwargs["external_packages"] = _split_csv(os.environ["STACKFORGE_EXTERNAL_PACKAGES"])
        if os.environ.get("STACKFORGE_DEFAULT_ENTITY"):
            kwargs["default_entity"] = os.environ["STACKFORGE_DEFAULT_ENTITY"]
        if os.environ.get("STACKFORGE_MAX_ENTITIES"):
            kwargs["max_entities"] = int(os.environ["STACKFORGE_MAX_ENTITIES"])
        if os.environ.get("STACKFORGE_VERBOSE"):
            kwargs["verbose"] = os.environ["STACKFORGE_VERBOSE"].strip().lower() in (
                "1", "true", "yes", "on",
            )
        return cls(**kwargs)

    def strip_module_extension(self, name: str) -> str:
        """Remove a trailing module extension (``.ts``, ``.tsx``, ...) from *name*."""
        for ext in sorted(self.module_extensions, key=len, reverse=True):
            if name.endswith(ext) and len(name) > len(ext):
                return name[: -len(ext)]
        return name

    def is_module(self, file_name: str) -> bool:
        """Return ``True`` if *file_name* carries one of the module extensions."""
        return any(file_name.endswith(ext) for ext in self.module_extensions)


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]
