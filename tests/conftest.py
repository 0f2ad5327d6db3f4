"""Shared pytest fixtures for the stackforge test suite.

Provides reusable fixtures for:
- Sample generation requests (camelCase and snake_case)
- Assembler configuration
- A ``LogicalFile`` factory
- Stage contexts for calling generator stages directly
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from stackforge.config import AssemblerConfig
from stackforge.models import Entity, GenerationOptions, LogicalFile, Requirements
from stackforge.stages.registry import StageContext
from stackforge.utils import console


# ---------------------------------------------------------------------------
# Console
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _quiet_console(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep Rich progress output out of the test log."""
    monkeypatch.setattr(console, "quiet", True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_request() -> dict[str, Any]:
    """The canonical happy-path request, spelled with camelCase keys."""
    return {
        "projectName": "Task Manager",
        "requirements": {
            "description": "task manager with users",
            "features": ["crud"],
            "stackHints": {
                "frontend": ["react", "vite"],
                "backend": ["express"],
                "database": "postgresql",
            },
        },
        "options": {
            "generateTests": True,
            "optimizeCode": True,
            "analyzeQuality": True,
        },
    }


@pytest.fixture
def minimal_request() -> dict[str, Any]:
    return {
        "project_name": "bare",
        "requirements": {"description": "a small internal tool"},
    }


# ---------------------------------------------------------------------------
# Assembler
# ---------------------------------------------------------------------------

@pytest.fixture
def assembler_config() -> AssemblerConfig:
    return AssemblerConfig()


@pytest.fixture
def make_file() -> Callable[..., LogicalFile]:
    """Factory: ``make_file("backend/src/services", "task.service.ts", "...")``."""

    def _make(
        directory: str,
        file_name: str,
        content: str = "",
        source_stage: str = "test",
        **kwargs: Any,
    ) -> LogicalFile:
        return LogicalFile(
            directory=directory,
            file_name=file_name,
            content=content,
            source_stage=source_stage,
            **kwargs,
        )

    return _make


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

@pytest.fixture
def task_entities() -> list[Entity]:
    return [
        Entity(canonical_name="Task", source_text="task"),
        Entity(canonical_name="User", source_text="users"),
    ]


@pytest.fixture
def stage_context(task_entities: list[Entity]) -> Callable[..., StageContext]:
    """Factory for a ``StageContext`` over the Task/User entities."""

    def _make(
        upstream: dict[str, Any] | None = None,
        files: tuple[LogicalFile, ...] = (),
        **requirements: Any,
    ) -> StageContext:
        reqs = Requirements(
            description=requirements.pop("description", "task manager with users"),
            **requirements,
        )
        return StageContext(
            project_name="Task Manager",
            requirements=reqs,
            entities=list(task_entities),
            options=GenerationOptions(),
            upstream=upstream or {},
            files=files,
        )

    return _make
