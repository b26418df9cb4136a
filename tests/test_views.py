"""Unit tests for rich renderers."""

from __future__ import annotations

from rich.console import Console, Group
from rich.panel import Panel

from pomodoro_timer.models import AppState, Mode, Task
from pomodoro_timer.queries import build_snapshot
from pomodoro_timer.views import (
    MODE_COLORS,
    render_dashboard,
    render_task_table,
    render_timer_panel,
)


def _render_to_text(renderable) -> str:
    console = Console(width=100, record=True, color_system=None)
    console.print(renderable)
    return console.export_text()


def _state_with_tasks() -> AppState:
    state = AppState.default("2024-03-15")
    state.tasks = [
        Task(id="aaaaaaaa-1111", name="Write docs", estimate=4, done=1),
        Task(id="bbbbbbbb-2222", name="Fix bug", estimate=2, done=2),
    ]
    state.current_task_id = "aaaaaaaa-1111"
    state.done_today = 3
    return state


class TestRenderTimerPanel:
    """Tests for render_timer_panel."""

    def test_returns_panel(self):
        """Test a Panel titled with the mode label."""
        panel = render_timer_panel(build_snapshot(AppState.default("2024-03-15")))

        assert isinstance(panel, Panel)
        assert "Focus" in str(panel.title)
        assert panel.border_style == MODE_COLORS[Mode.POMODORO]

    def test_content(self):
        """Test time, round and current task are shown."""
        text = _render_to_text(render_timer_panel(build_snapshot(_state_with_tasks())))

        assert "25:00" in text
        assert "#1" in text
        assert "Write docs" in text
        assert "3/12" in text
        assert "paused" in text

    def test_no_current_task(self):
        """Test placeholder when nothing is current."""
        text = _render_to_text(render_timer_panel(build_snapshot(AppState.default("2024-03-15"))))

        assert "None" in text

    def test_warning_line(self):
        """Test an optional warning is rendered."""
        text = _render_to_text(
            render_timer_panel(build_snapshot(AppState.default("2024-03-15")), "save failed")
        )

        assert "save failed" in text


class TestRenderTaskTable:
    """Tests for render_task_table."""

    def test_lists_tasks(self):
        """Test tasks, progress and current marker."""
        text = _render_to_text(render_task_table(build_snapshot(_state_with_tasks())))

        assert "Write docs" in text
        assert "(current)" in text
        assert "1/4" in text
        assert "25%" in text
        assert "100%" in text
        assert "aaaaaaaa" in text

    def test_empty(self):
        """Test placeholder for an empty task list."""
        text = _render_to_text(render_task_table(build_snapshot(AppState.default("2024-03-15"))))

        assert "No tasks yet" in text


def test_render_dashboard_groups_panels():
    """Verify dashboard combines both panels."""
    dashboard = render_dashboard(build_snapshot(_state_with_tasks()))

    assert isinstance(dashboard, Group)
    assert len(dashboard.renderables) == 2
