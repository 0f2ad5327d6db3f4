"""Shared utility functions for stackforge.

Provides Rich-based progress reporting, request-file loading (JSON or YAML),
and the small file-system helpers used by the command-line host. The core
assembler itself never touches the disk; only ``write_tree`` does, and only
when the CLI is asked to.
"""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console
from rich.rule import Rule
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------


def sanitize_name(name: str) -> str:
    """Convert an arbitrary project name to a safe directory/package name.

    * Lowercases the input.
    * Replaces spaces and non-alphanumeric characters (except hyphens and
      underscores) with hyphens.
    * Collapses consecutive hyphens and strips leading/trailing hyphens.

    Examples::

        sanitize_name("Task Manager") -> "task-manager"
        sanitize_name("  Shop (v2)  ") -> "shop-v2"
    """
    result = re.sub(r"[^a-zA-Z0-9_-]", "-", name.strip().lower())
    result = re.sub(r"-+", "-", result)
    return result.strip("-")


# ---------------------------------------------------------------------------
# Request / JSON I/O
# ---------------------------------------------------------------------------


def load_request_file(path: str | Path) -> dict[str, Any]:
    """Load a generation request from a ``.json``, ``.yaml`` or ``.yml`` file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the document is not a mapping.
    """
    file_path = Path(path)
    raw = file_path.read_text(encoding="utf-8")
    if file_path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(raw)
    else:
        data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"Request file must contain a mapping, got {type(data).__name__}")
    return data


async def save_json(data: dict[str, Any] | list[Any], path: str | Path) -> None:
    """Save data as pretty-printed JSON.

    Parent directories are created automatically. The write itself is
    performed in a worker thread to avoid blocking the event loop.
    """
    file_path = Path(path)
    content = json.dumps(data, indent=2, ensure_ascii=False, default=str)
    await asyncio.to_thread(_write_file, file_path, content)


async def write_tree(files: Iterable[Any], output_dir: str | Path) -> list[Path]:
    """Write every logical file under *output_dir*.

    Each item needs ``path`` and ``content`` attributes (``LogicalFile``).

    Returns:
        The list of written paths, in tree order.
    """
    base = Path(output_dir)
    written: list[Path] = []
    for item in files:
        target = base / item.path
        await asyncio.to_thread(_write_file, target, item.content)
        written.append(target)
    return written


def _write_file(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(0.0042) -> "4ms"
        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
    """
    if seconds < 0:
        return "0ms"
    if seconds < 1:
        return f"{int(round(seconds * 1000))}ms"

    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes > 0:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


STAGE_COLORS: dict[str, str] = {
    "architecture": "bright_cyan",
    "schema": "bright_green",
    "server": "bright_yellow",
    "api": "bright_magenta",
    "ui": "bright_blue",
    "tests": "bright_red",
}


def print_stage_header(index: int, name: str) -> None:
    """Print a stage header rule, coloured according to the stage."""
    color = STAGE_COLORS.get(name, "white")
    console.print(
        Rule(f"[bold {color}] Stage {index}: {name.upper()} [/bold {color}]", style=color)
    )


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")


def print_detail(message: str) -> None:
    """Print a dimmed detail line."""
    console.print(f"[dim]{message}[/dim]")
