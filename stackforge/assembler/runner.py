"""Stage runner.

Executes one generator stage, times it, and converts any exception into a
failed ``StageOutcome`` so the pipeline can carry on with the next stage.
"""

from __future__ import annotations

import inspect
import time
from collections.abc import Callable
from typing import Any

from stackforge.models import StageOutcome


async def run_stage(
    name: str, fn: Callable[..., Any], *args: Any
) -> tuple[StageOutcome, Any]:
    """Call ``fn(*args)``, awaiting the result if it is awaitable.

    Returns:
        ``(outcome, output)``. On failure ``output`` is ``None`` and
        ``outcome.error`` holds the exception message.
    """
    start = time.monotonic()
    try:
        output = fn(*args)
        if inspect.isawaitable(output):
            output = await output
    except Exception as exc:
        elapsed_ms = (time.monotonic() - start) * 1000
        message = str(exc) or type(exc).__name__
        return (
            StageOutcome(name=name, success=False, duration_ms=elapsed_ms, error=message),
            None,
        )

    elapsed_ms = (time.monotonic() - start) * 1000
    return StageOutcome(name=name, success=True, duration_ms=elapsed_ms), output
