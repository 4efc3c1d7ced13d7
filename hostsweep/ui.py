# -*- coding: utf-8 -*-

"""
Console output: banners, progress bars, per-result lines and the run summary.
"""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn, TimeRemainingColumn
from rich.table import Table

console = Console()


class ProgressReporter:
    """
    Progress callback with the (processed, total, ok, failed) contract shared by
    the resolver and the prober. `every` throttles redraws; the last update is
    always shown.
    """

    def __init__(self, description: str, ok_label: str = "Live", fail_label: str = "Failed",
                 enabled: bool = True, every: int = 1):
        self.description = description
        self.ok_label = ok_label
        self.fail_label = fail_label
        self.enabled = enabled
        self.every = max(1, every)
        self._progress: Optional[Progress] = None
        self._task = None

    def __enter__(self) -> "ProgressReporter":
        if self.enabled:
            self._progress = Progress(
                "[progress.description]{task.description}",
                BarColumn(bar_width=None),
                TextColumn("{task.completed}/{task.total}"),
                "•",
                TextColumn("{task.fields[counts]}"),
                "•",
                TimeElapsedColumn(),
                "•",
                TimeRemainingColumn(),
                console=console,
                transient=False,
            )
            self._progress.start()
            self._task = self._progress.add_task(self.description, total=None, counts="")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None

    def __call__(self, processed: int, total: int, ok: int, failed: int) -> None:
        if self._progress is None:
            return
        if processed % self.every and processed < total:
            return
        self._progress.update(
            self._task,
            completed=processed,
            total=total or 1,
            counts=f"{self.ok_label}: {ok} | {self.fail_label}: {failed}",
        )


def print_banner(title: str, subtitle: str) -> None:
    console.print(Panel.fit(f"[bold green]{title}[/]\n[white]{subtitle}[/]", border_style="blue"))


def print_safety_warning(mode_label: str) -> None:
    console.print(Panel.fit(
        f"[bold yellow]{mode_label}[/] is for educational and authorized testing only.\n"
        "Do not scan targets without explicit permission.\n"
        "High-speed scanning may violate terms of service or laws.",
        title="[!] SAFETY WARNING", border_style="yellow",
    ))


def info(msg: str) -> None:
    console.print(f"[cyan][i][/] {msg}")


def error(msg: str) -> None:
    console.print(f"[bold red][!][/] {msg}")


def print_hit(host: str, protocol: str, status: int, extra: str) -> None:
    color = "green" if str(status).startswith("2") else "yellow" if str(status).startswith("3") else "red"
    console.print(f"[green][+][/] [cyan]{host}[/] ({protocol}) [bold {color}]{status}[/] {extra}")


def print_summary(mode_label: str, total: int, processed: int, live: int, failed: int, written: int,
                  output_path: str, fail_log: str = "", fail_logged: int = 0) -> None:
    table = Table(title=f"{mode_label} summary")
    table.add_column("Targets", style="cyan")
    table.add_column("Processed", style="white")
    table.add_column("Live", style="green")
    table.add_column("Failed", style="red")
    table.add_column("Written", style="white")
    table.add_column("Results", style="magenta")
    table.add_row(str(total), str(processed), str(live), str(failed), str(written), output_path)
    console.print(table)
    if fail_log:
        console.print(f"[green]✓[/] {fail_logged} failures logged to: [cyan]{fail_log}[/]")
