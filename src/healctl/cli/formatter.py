# src/healctl/cli/formatter.py
import json
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.theme import Theme

from healctl.core.errors import HealError
from healctl.core.models import ItemResult
from healctl.core.units import humanize_bytes
from healctl.healing.context import AggregateState

# Style map handed to every renderer; callers may pass their own
DEFAULT_STYLES: Dict[str, str] = {
    "heal": "bold green",
    "heal.stopped": "bold green",
    "heal.background.title": "bold green",
    "heal.background": "bold",
    "heal.update": "bold yellow",
    "heal.value": "bold white",
    "health.green": "green",
    "health.yellow": "yellow",
    "health.red": "red",
    "health.black": "bold magenta",
    "health.unknown": "dim",
    "error": "bold red",
}


class ProgressRenderer:
    """
    ProgressRenderer: the visual side of a heal run.
    Draws one live, redrawn status line while a sequence is being followed,
    and a final report for whatever outcome the controller returns.
    In JSON mode the live line is suppressed and reports are printed as JSON.
    """

    def __init__(self, console: Optional[Console] = None, styles: Optional[Dict[str, str]] = None,
                 json_mode: bool = False):
        self.styles = dict(DEFAULT_STYLES)
        if styles:
            self.styles.update(styles)
        self.json_mode = json_mode
        self.console = console or Console(theme=Theme(self.styles))
        if console is not None:
            self.console.push_theme(Theme(self.styles))
        self._progress: Optional[Progress] = None
        self._task_id = None

    @contextmanager
    def live(self, target: str) -> Iterator["ProgressRenderer"]:
        """Shows the spinner line for the duration of the block."""
        if self.json_mode:
            yield self
            return

        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[heal.update]{task.description}"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )
        with self._progress:
            self._task_id = self._progress.add_task(f"Healing {escape(target)} ...", total=None)
            try:
                yield self
            finally:
                self._progress = None
                self._task_id = None

    def describe(self, state: AggregateState, batch: Optional[List[ItemResult]] = None) -> str:
        line = f"{state.items_scanned} items, {humanize_bytes(state.bytes_scanned)} scanned"
        if batch:
            line += f" (+{len(batch)})"
        if state.items_failed:
            line += f", {state.items_failed} failed"
        if state.last_item:
            line += f" | {escape(state.last_item)}"
        return line

    def update(self, state: AggregateState, batch: List[ItemResult]):
        """Progress callback for the controller."""
        if self._progress is None:
            return
        self._progress.update(self._task_id, description=self.describe(state, batch))

    def render(self, outcome: Any):
        """Prints a terminal outcome (Completed, Stopped, Failed, BackgroundReport)."""
        if self.json_mode:
            self.print_json(outcome.structured())
            return

        if outcome.tag in ("completed", "failed"):
            border = "green" if outcome.tag == "completed" else "red"
            self.console.print(Panel(outcome.human(), border_style=border, expand=False))
        else:
            self.console.print(outcome.human())

    def render_error(self, error: HealError):
        """Reports an error that happened before any outcome existed."""
        if self.json_mode:
            self.print_json({"status": "error", "error": error.to_dict()})
            return
        self.console.print(f"[error]Error:[/error] {escape(error.message)}", highlight=False)
        for line in error.context:
            self.console.print(f"  [dim]{escape(line)}[/dim]", highlight=False)

    def print_json(self, data: Dict[str, Any]):
        # Plain output: machine readers must not see markup or wrapping
        self.console.out(json.dumps(data, indent=1, default=str), highlight=False)
