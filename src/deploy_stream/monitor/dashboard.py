"""Live terminal dashboard for running deployments.

One panel per project showing:
- status badge (active green, in progress blue, failed red)
- the tail of the display log
- training metrics with a loss bar

The dashboard is a ProjectStore listener; it re-renders on every applied
batch, so it never re-derives history from the raw stream.
"""

from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from rich import box
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..pipeline.context import JobStatus, Project, UpdateBatch
from ..store.projects import ProjectStore

STATUS_STYLES = {
    JobStatus.ACTIVE: "bold green",
    JobStatus.TRAINING: "bold blue",
    JobStatus.PROVISIONING: "bold blue",
    JobStatus.DEPLOYING: "bold blue",
    JobStatus.FAILED: "bold red",
}


def status_style(status: JobStatus) -> str:
    return STATUS_STYLES.get(status, "bold")


def _line_style(line: str) -> str:
    if line.startswith("[ERROR]"):
        return "red"
    if line.startswith("[SUCCESS]"):
        return "green"
    if line.startswith("Epoch "):
        return "yellow"
    return "dim"


def loss_bar(loss: float, max_loss: float, width: int = 24) -> str:
    if max_loss <= 0:
        return ""
    n = max(1, round(width * loss / max_loss)) if loss > 0 else 0
    return "█" * min(n, width)


def render_metrics(project: Project, max_rows: int = 8) -> Table:
    table = Table(box=box.SIMPLE, border_style="yellow", expand=False)
    table.add_column("Epoch", justify="right", style="cyan")
    table.add_column("Loss", justify="right")
    table.add_column("", style="yellow")
    max_loss = max((m.loss for m in project.metrics), default=0.0)
    for m in project.metrics[-max_rows:]:
        table.add_row(str(m.epoch), f"{m.loss:.4f}", loss_bar(m.loss, max_loss))
    return table


def render_project(project: Project, log_tail: int = 10) -> Panel:
    header = Text()
    header.append(f"{project.config.name}  ", style="bold")
    header.append(f"{project.config.model} | {project.config.compute_tier}\n", style="dim")
    header.append("Status: ")
    header.append(project.status.value, style=status_style(project.status))
    if project.error:
        header.append(f"  {project.error}", style="red")

    log_text = Text()
    for line in project.log_lines[-log_tail:]:
        log_text.append(f"{line}\n", style=_line_style(line))

    parts = [header, Panel(log_text, title="[bold]Log[/bold]", border_style="blue", box=box.ROUNDED)]
    if project.metrics:
        parts.append(render_metrics(project))
    return Panel(Group(*parts), title=f"[bold]{project.project_id}[/bold]", border_style="cyan")


class LiveDashboard:
    """Store listener that keeps a rich Live view of every project up to date."""

    def __init__(self, store: ProjectStore, console: Optional[Console] = None, log_tail: int = 10):
        self.store = store
        self.console = console or Console()
        self.log_tail = log_tail
        self._live: Optional[Live] = None

    def render(self) -> Group:
        panels: List = [render_project(self.store.snapshot(p.project_id), self.log_tail) for p in self.store.projects()]
        footer = Text(f"Last update: {datetime.now().strftime('%H:%M:%S')} | Ctrl+C to abort", style="dim")
        return Group(*panels, footer)

    def __call__(self, project_id: str, batch: UpdateBatch) -> None:
        if self._live is not None:
            self._live.update(self.render())

    def __enter__(self) -> "LiveDashboard":
        self._live = Live(self.render(), console=self.console, refresh_per_second=8)
        self._live.__enter__()
        self.store.subscribe(self)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.store.unsubscribe(self)
        if self._live is not None:
            self._live.update(self.render())
            self._live.__exit__(exc_type, exc, tb)
            self._live = None


class PlainPrinter:
    """Store listener that prints new display lines as they arrive (no Live view)."""

    def __init__(self, console: Optional[Console] = None, prefix_project: bool = True):
        self.console = console or Console()
        self.prefix_project = prefix_project

    def __call__(self, project_id: str, batch: UpdateBatch) -> None:
        prefix = f"[{project_id}] " if self.prefix_project else ""
        for line in batch.display_lines:
            self.console.print(Text(prefix + line, style=_line_style(line)))
        if batch.final:
            self.console.print(Text(f"{prefix}status={batch.status.value}", style=status_style(batch.status)))
