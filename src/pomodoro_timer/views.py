"""Rich renderers for a core Snapshot.

These functions only read a Snapshot; they never touch the engine or store.
"""

from __future__ import annotations

from rich.console import Group
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table
from rich.text import Text

from .models import Mode, Task
from .queries import DAILY_GOAL, Snapshot, task_progress

MODE_COLORS: dict[Mode, str] = {
    Mode.POMODORO: "#b23b3b",
    Mode.SHORT_BREAK: "#2f7d6b",
    Mode.LONG_BREAK: "#2f5f7d",
}


def _progress_bar(label: str, completed: float, total: float, style: str) -> Progress:
    progress = Progress(
        TextColumn(f"[bold]{label}"),
        BarColumn(complete_style=style, finished_style="green"),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
    )
    progress.add_task("", total=total, completed=completed)
    return progress


def render_timer_panel(snapshot: Snapshot, warning: str | None = None) -> Panel:
    """Build Rich Panel with the countdown, round, current task and daily goal.

    Args:
        snapshot: Snapshot to display
        warning: Optional warning line (e.g. a failed save)

    Returns:
        Rich Panel component ready for rendering
    """
    color = MODE_COLORS[snapshot.mode]

    tabs = Text()
    for mode in Mode:
        style = f"bold reverse {MODE_COLORS[mode]}" if mode == snapshot.mode else "dim"
        tabs.append(f" {mode.value} ", style=style)
        tabs.append(" ")

    clock = Text(snapshot.time_text, style=f"bold {color}", justify="center")
    state_text = Text(
        "running" if snapshot.running else "paused",
        style="green" if snapshot.running else "yellow",
        justify="center",
    )

    info = Table.grid(padding=(0, 2))
    info.add_column(style="bold cyan", justify="right")
    info.add_column()
    info.add_row("Round:", f"#{snapshot.round}")
    info.add_row(
        "Current task:",
        snapshot.current_task.name if snapshot.current_task else "[dim]None[/dim]",
    )
    info.add_row("Done today:", f"{snapshot.done_today}/{DAILY_GOAL}")
    info.add_row("Auto-start:", "on" if snapshot.auto_start_next else "off")

    items = [
        tabs,
        "",
        clock,
        state_text,
        "",
        info,
        "",
        _progress_bar("Daily goal:", snapshot.daily_goal_percent, 100, color),
    ]
    if warning:
        items.extend(["", Text(f"⚠ {warning}", style="red")])

    return Panel(
        Group(*items),
        title=f"[bold]{snapshot.mode_label}[/bold]",
        border_style=color,
        padding=(1, 2),
    )


def _task_row_name(task: Task, current: Task | None) -> str:
    if current is not None and task.id == current.id:
        return f"[bold]{task.name}[/bold] [yellow](current)[/yellow]"
    return task.name


def render_task_table(snapshot: Snapshot) -> Panel:
    """Build Rich Panel listing tasks, newest first."""
    table = Table(
        show_header=True,
        header_style="bold cyan",
        border_style="blue",
        padding=(0, 1),
        expand=True,
    )
    table.add_column("ID", style="yellow", no_wrap=True, width=8)
    table.add_column("Task", style="white")
    table.add_column("Done", justify="right", no_wrap=True)
    table.add_column("Progress", justify="right", no_wrap=True)

    for task in snapshot.tasks:
        table.add_row(
            task.id[:8],
            _task_row_name(task, snapshot.current_task),
            f"{task.done}/{task.estimate}",
            f"{task_progress(task) * 100:.0f}%",
        )
    if not snapshot.tasks:
        table.add_row("", "[dim italic]No tasks yet[/dim italic]", "", "")

    return Panel(
        table,
        title=f"[bold white]Tasks[/bold white] [dim]({len(snapshot.tasks)})[/dim]",
        border_style="blue",
        padding=(1, 2),
    )


def render_dashboard(snapshot: Snapshot, warning: str | None = None) -> Group:
    """Combine the timer panel and task table into one renderable."""
    return Group(render_timer_panel(snapshot, warning), render_task_table(snapshot))
