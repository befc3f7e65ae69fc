"""Shared utility functions for strapi-new.

Provides name helpers, deterministic JSON rendering, file-system helpers and
Rich-based console output used by the provisioner, installer and reporter.
"""

from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

console = Console()

# Trailing slice of stderr kept for events and telemetry.
STDERR_TAIL_LIMIT = 1024


# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------


def kebab_case(name: str) -> str:
    """Convert an arbitrary application name to kebab-case.

    * Splits camelCase boundaries and any run of non-alphanumerics.
    * Lowercases the words and joins them with single hyphens.

    Examples::

        kebab_case("My App") -> "my-app"
        kebab_case("myCoolApp") -> "my-cool-app"
        kebab_case("__Blog_API__") -> "blog-api"
    """
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", name)
    spaced = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1 \2", spaced)
    words = re.split(r"[^a-zA-Z0-9]+", spaced)
    return "-".join(w.lower() for w in words if w)


def truncate_tail(text: str, limit: int = STDERR_TAIL_LIMIT) -> str:
    """Return the last *limit* characters of *text*."""
    if limit <= 0:
        return ""
    return text[-limit:]


def collapse_newlines(chunk: str) -> str:
    """Flatten a chunk of process output onto a single line."""
    return chunk.replace("\r\n", " ").replace("\n", " ")


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def render_json(data: dict[str, Any] | list[Any]) -> str:
    """Serialise *data* with a stable 2-space layout and a trailing newline.

    Key order follows insertion order, so identical input always yields
    byte-identical output.
    """
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


async def save_json(data: dict[str, Any] | list[Any], path: str | Path) -> Path:
    """Save data as pretty-printed JSON.

    Parent directories are created automatically. The write itself is
    performed in a worker thread to avoid blocking the event loop.
    """
    file_path = Path(path)
    content = render_json(data)
    await asyncio.to_thread(write_text, file_path, content)
    return file_path


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def write_text(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def ensure_dir(path: str | Path) -> Path:
    """Create a directory (and parents) if it does not exist.

    Returns:
        The ``Path`` object.
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
    """
    if seconds < 0:
        return "0.0s"

    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes > 0:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")


def create_progress() -> Progress:
    """Create a single-line Rich spinner for the install phase.

    Returns:
        A ``Progress`` instance suitable for use as a context manager.
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )
