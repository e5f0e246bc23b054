"""Console rendering and progress helpers for the resource CLI.

Everything here writes to stderr; stdout carries only the JSON response.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .errors import UploadError
from .models import FileEntry, UploadResult


console = Console(stderr=True)


def _transfer_total(total_bytes: int) -> str:
    """Bytes published so far, e.g. ``512 B`` or ``3.25 MB``."""
    if total_bytes < 1024:
        return f"{max(total_bytes, 0)} B"
    scaled = float(total_bytes)
    for unit in ("KB", "MB", "GB"):
        scaled /= 1024.0
        if scaled < 1024.0:
            return f"{scaled:.2f} {unit}"
    return f"{scaled / 1024.0:.2f} TB"


def render_configuration_summary(config: Dict[str, Any], out: Console = None) -> None:
    """Render startup configuration summary."""
    out = out or console
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]gcs-resource[/bold green]",
        subtitle="[dim]out[/dim]",
        border_style="blue",
    )
    out.print(panel)


class PublishProgressDisplay:
    """Event-based console display for the out command."""

    def __init__(self, out: Console = None):
        self._console = out or console
        self._total = 0
        self._done = 0
        self._bytes = 0

    @property
    def uploaded(self) -> int:
        return self._done

    def on_scan_complete(self, scan_root: Path, files: List[FileEntry]) -> None:
        self._total = len(files)
        if not files:
            self._console.print(f"[yellow]No files found in[/yellow] {scan_root}")
            return
        self._console.print(f"[cyan]Publishing {self._total} file(s) from[/cyan] {scan_root}")

    def on_file_start(self, entry: FileEntry) -> None:
        self._console.print(
            f"  [{self._done + 1}/{self._total}] [cyan]Uploading:[/cyan] {entry.relative_path}"
        )

    def on_file_complete(self, entry: FileEntry, result: UploadResult) -> None:
        self._done += 1
        try:
            self._bytes += entry.size
        except OSError:
            pass
        self._console.print(
            f"  [green]Uploaded:[/green] {result.uri} "
            f"[dim](generation {result.generation or '-'})[/dim]"
        )

    def on_file_fail(self, entry: FileEntry, error: UploadError) -> None:
        self._console.print(f"  [red]Failed:[/red] {entry.relative_path} - {error.reason}")

    def on_finish(self) -> None:
        self._console.print(
            f"[green]Done:[/green] {self._done}/{self._total} file(s), {_transfer_total(self._bytes)}"
        )
