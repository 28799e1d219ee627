# src/schemabridge/logging_utils.py

import time
from datetime import datetime
from typing import Iterable, Optional
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .failures import ValidationFailure

console = Console()


class BridgeLogger:
    """Timestamped console output for one validation stage."""

    def __init__(self, stage_name: str):
        self.stage_name = stage_name
        self.start_time = None

    def _get_timestamp(self) -> str:
        """Wall-clock prefix for console lines."""
        return datetime.now().strftime("%H:%M:%S")

    def start_stage(self, kind: str = "stage"):
        """Announce a stage and start its timer."""
        self.start_time = time.time()

        text = Text()
        text.append(f"{self._get_timestamp()} ", style="dim")
        text.append("START ", style="bold cyan")
        text.append(f"{kind} {self.stage_name}", style="bold")

        console.print(text)

    def info(self, message: str, prefix: str = ""):
        text = Text()
        text.append(f"{self._get_timestamp()} ", style="dim")
        if prefix:
            text.append(f"{prefix} ", style="cyan")
        text.append(message)

        console.print(text)

    def success(self, message: str):
        """Green OK line with the time elapsed since start_stage()."""
        text = Text()
        text.append(f"{self._get_timestamp()} ", style="dim")
        text.append("OK ", style="bold green")
        text.append(message)

        if self.start_time:
            text.append(f" [in {time.time() - self.start_time:.2f}s]", style="dim green")

        console.print(text)

    def warning(self, message: str):
        text = Text()
        text.append(f"{self._get_timestamp()} ", style="dim")
        text.append("WARN ", style="bold yellow")
        text.append(message, style="yellow")

        console.print(text)

    def error(self, message: str, exc_info: bool = False):
        """Red ERROR line, followed by the current traceback when exc_info is set."""
        text = Text()
        text.append(f"{self._get_timestamp()} ", style="dim")
        text.append("ERROR ", style="bold red")
        text.append(message, style="red")

        console.print(text)

        if exc_info:
            console.print_exception(show_locals=False)


def print_failures(stage_name: str, failures: Iterable[ValidationFailure]):
    """Print collected validation failures as a table."""
    table = Table(title=f"Validation failures: {stage_name}", show_header=True, header_style="bold red")
    table.add_column("Problem", style="white")
    table.add_column("Corrective action", style="green")
    table.add_column("Property", style="cyan")
    table.add_column("Field", style="magenta")

    for failure in failures:
        table.add_row(
            failure.message,
            failure.corrective_action or "",
            ", ".join(failure.config_properties),
            ", ".join(failure.field_paths),
        )
    console.print(table)


def print_summary(total_stages: int, failed_stages: int, total_time: Optional[float] = None):
    """Closing line for a validate run."""
    console.print()
    console.print("─" * 80, style="dim")
    text = Text()
    if failed_stages:
        text.append(f"{failed_stages} of {total_stages} stage(s) failed validation ", style="bold red")
    else:
        text.append("All stages are valid! ", style="bold green")
        text.append(f"Checked {total_stages} stage(s) ", style="white")
    if total_time is not None:
        text.append(f"in {total_time:.2f}s", style="dim")
    console.print(text)
    console.print()
