from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from garden_irrigation.core.enums import ZoneOutcomeKind
from garden_irrigation.core.zone_outcome import RunResult
from garden_irrigation.utils import time_utils


OUTCOME_STYLES = {
    ZoneOutcomeKind.SKIPPED: ("Skipped", "green"),
    ZoneOutcomeKind.TARGET_REACHED: ("Target reached", "green"),
    ZoneOutcomeKind.TIMED_OUT: ("Timed out", "orange3"),
    ZoneOutcomeKind.STOPPED_EXTERNALLY: ("Stopped", "yellow"),
    ZoneOutcomeKind.FAILED: ("Failed", "red"),
}


def render_zones_table(result: RunResult) -> Table:
    """Render one row per processed zone."""
    zones_table = Table(title="Zones", expand=True)
    zones_table.add_column("#", justify="center")
    zones_table.add_column("Name")
    zones_table.add_column("Result")
    zones_table.add_column("Moisture", justify="right")
    zones_table.add_column("Threshold", justify="right")
    zones_table.add_column("Target", justify="right")
    zones_table.add_column("Time limit", justify="right")

    for outcome in result.outcomes:
        label, style = OUTCOME_STYLES.get(outcome.kind, (outcome.kind.value, "white"))
        if not outcome.watered:
            minutes = Text("N/A", style="dim")
        else:
            minutes = Text(f"{outcome.effective_minutes} min")
        zones_table.add_row(
            str(outcome.zone_index),
            outcome.zone_name,
            Text(label, style=style),
            f"{outcome.final_moisture}%",
            f"{outcome.threshold_pct}%",
            f"{outcome.target_pct}%",
            minutes
        )
    return zones_table


def print_run_result(result: RunResult, console: Optional[Console] = None) -> None:
    """Print the run summary: the suppression reason, or the zones table followed by each zone's message."""
    console = console or Console()

    if result.suppressed:
        console.print(Panel(Text(result.reason or "Watering suppressed.", style="yellow"),
                            title="Watering suppressed", expand=True))
        return

    console.print(render_zones_table(result))
    for outcome in result.outcomes:
        console.print(outcome.message, highlight=False)

    if result.cancelled:
        console.print(Text("Run cancelled before all zones were processed.", style="yellow"))
    elif result.finished_at is not None:
        seconds = time_utils.elapsed_seconds(result.started_at, result.finished_at)
        console.print(Text(f"Watering complete in {seconds} s.", style="green"))
