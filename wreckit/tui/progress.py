"""
Progress reporting for orchestration runs.

Two presentations share one interface: a line reporter that logs through
the run's logger, and a textual dashboard for interactive terminals. The
choice never changes what the orchestrator does.
"""

import logging
import os
import sys
from contextlib import contextmanager
from typing import Awaitable, Callable, Iterator, Optional, TypeVar

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.reactive import reactive
from textual.widgets import DataTable, Footer, Header, Log, Static
from textual.widgets.data_table import CellDoesNotExist

from wreckit.lib.errors import interrupted
from wreckit.store.models import IndexEntry

T = TypeVar("T")


def should_use_tui(no_tui: bool = False, stream=None) -> bool:
    """Dashboard only for an interactive terminal outside CI."""
    if no_tui:
        return False
    stream = stream or sys.stdout
    if not stream.isatty():
        return False
    if os.environ.get("CI"):
        return False
    return True


class LineProgress:
    """Line-oriented reporter for non-interactive runs."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def start(self, entries: list[IndexEntry]) -> None:
        self.logger.debug(f"{len(entries)} item(s) in backlog")

    def phase_started(self, item_id: str, phase: str) -> None:
        self.logger.info(f"[{item_id}] {phase}")

    def item_complete(self, item_id: str) -> None:
        self.logger.info(f"[{item_id}] complete")

    def item_failed(self, item_id: str, message: str) -> None:
        self.logger.error(f"[{item_id}] failed: {message}")

    def agent_output(self, text: str) -> None:
        for line in text.splitlines():
            if line.strip():
                self.logger.debug(f"  | {line}")


class CurrentWidget(Static):
    """Shows the item and phase being worked on."""

    item_id: reactive[Optional[str]] = reactive(None)
    phase: reactive[Optional[str]] = reactive(None)
    completed: reactive[int] = reactive(0)
    total: reactive[int] = reactive(0)

    def render(self) -> str:
        if not self.item_id:
            return "[dim]Waiting...[/dim]"
        return (
            f"[bold]{self.item_id}[/bold]\n"
            f"Phase: [cyan]{self.phase or '-'}[/cyan]\n"
            f"Completed: {self.completed}/{self.total}"
        )


class DashboardApp(App):
    """Runs an orchestration job while showing per-item progress."""

    CSS = """
    #main-container {
        layout: vertical;
        padding: 1;
    }

    #current-box {
        border: solid green;
        padding: 0 1;
        height: auto;
    }

    #items-box {
        border: solid blue;
        height: 1fr;
    }

    #output-box {
        border: solid $accent;
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, job: Callable[["DashboardProgress"], Awaitable[T]], entries: list[IndexEntry]) -> None:
        super().__init__()
        self.job = job
        self.entries = entries
        self.progress = DashboardProgress(self)
        self.result: Optional[T] = None
        self.error: Optional[BaseException] = None
        self.finished = False

    def compose(self) -> ComposeResult:
        yield Header()
        yield Container(
            Container(CurrentWidget(id="current"), id="current-box"),
            Container(DataTable(id="items"), id="items-box"),
            Container(Log(id="output"), id="output-box"),
            id="main-container",
        )
        yield Footer()

    def on_mount(self) -> None:
        self.title = "wreckit"
        table = self.query_one("#items", DataTable)
        table.add_column("Item", key="item")
        table.add_column("State", key="state")
        table.add_column("Status", key="status")
        for entry in self.entries:
            table.add_row(entry.id, entry.state.value, "", key=entry.id)
        current = self.query_one("#current", CurrentWidget)
        current.total = len(self.entries)
        current.completed = sum(1 for e in self.entries if e.state.value == "done")
        self.run_worker(self._run_job(), exclusive=True)

    async def _run_job(self) -> None:
        try:
            self.result = await self.job(self.progress)
            self.finished = True
        except Exception as e:
            self.error = e
        self.exit()

    def set_cell(self, item_id: str, column: str, value: str) -> None:
        table = self.query_one("#items", DataTable)
        try:
            table.update_cell(item_id, column, value)
        except CellDoesNotExist:
            pass  # item created after the dashboard started


class DashboardProgress:
    """Reporter that forwards events to a DashboardApp."""

    def __init__(self, app: DashboardApp):
        self.app = app

    def start(self, entries: list[IndexEntry]) -> None:
        pass  # rows are populated on mount

    def phase_started(self, item_id: str, phase: str) -> None:
        current = self.app.query_one("#current", CurrentWidget)
        current.item_id = item_id
        current.phase = phase
        self.app.set_cell(item_id, "status", f"running {phase}")

    def item_complete(self, item_id: str) -> None:
        current = self.app.query_one("#current", CurrentWidget)
        current.completed += 1
        self.app.set_cell(item_id, "state", "done")
        self.app.set_cell(item_id, "status", "complete")

    def item_failed(self, item_id: str, message: str) -> None:
        self.app.set_cell(item_id, "status", f"failed: {message}")
        self.app.query_one("#output", Log).write_line(f"Failed {item_id}: {message}")

    def agent_output(self, text: str) -> None:
        self.app.query_one("#output", Log).write(text)


class DashboardLogHandler(logging.Handler):
    """Writes log records into the dashboard's output pane."""

    def __init__(self, app: "DashboardApp"):
        super().__init__()
        self.app = app

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.app.query_one("#output", Log).write_line(self.format(record))
        except Exception:
            self.handleError(record)


@contextmanager
def logs_to_dashboard(logger: logging.Logger, app: "DashboardApp") -> Iterator[DashboardLogHandler]:
    """Swap the logger's handlers for the dashboard's pane while the app owns the terminal."""
    saved = list(logger.handlers)
    handler = DashboardLogHandler(app)
    formatter = next((h.formatter for h in saved if h.formatter), None)
    handler.setFormatter(formatter or logging.Formatter("%(message)s"))
    for h in saved:
        logger.removeHandler(h)
    logger.addHandler(handler)
    try:
        yield handler
    finally:
        logger.removeHandler(handler)
        for h in saved:
            logger.addHandler(h)


async def run_with_dashboard(
    entries: list[IndexEntry],
    job: Callable[[DashboardProgress], Awaitable[T]],
    logger: logging.Logger,
) -> T:
    """Run `job` inside the dashboard and return its result.

    Log output goes to the dashboard's output pane for the duration.
    Quitting the dashboard before the job finishes counts as an interrupt.
    """
    app = DashboardApp(job, entries)
    with logs_to_dashboard(logger, app):
        await app.run_async()
    if app.error is not None:
        raise app.error
    if not app.finished:
        raise interrupted("Run stopped from the dashboard")
    return app.result
