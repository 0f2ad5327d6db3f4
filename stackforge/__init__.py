"""stackforge -- multi-stage full-stack scaffold generator.

Runs a fixed sequence of generator stages and assembles their heterogeneous
outputs into one project tree whose cross-file imports resolve.

Usage::

    import asyncio
    from stackforge import Orchestrator

    result = asyncio.run(Orchestrator().generate({
        "projectName": "tasks",
        "requirements": {"description": "Task manager with users"},
    }))
"""

__version__ = "0.3.0"

from stackforge.config import AssemblerConfig
from stackforge.models import GenerationRequest, GenerationResult, LogicalFile
from stackforge.pipeline import GenerationError, Orchestrator

__all__ = [
    "AssemblerConfig",
    "GenerationError",
    "GenerationRequest",
    "GenerationResult",
    "LogicalFile",
    "Orchestrator",
    "__version__",
]
