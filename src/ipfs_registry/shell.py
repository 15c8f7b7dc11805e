"""Human-readable status output."""

from typing import Any, Optional

from rich.console import Console
from rich.markup import escape


class Shell:
    """Prints cargo-style status lines such as ``  Retrieving serde v1.0.0``.

    Output goes to stderr so that stdout stays usable for command results.
    """

    def __init__(self, console: Optional[Console] = None, quiet: bool = False):
        self.console = console or Console(stderr=True, highlight=False)
        self.quiet = quiet

    def status(self, action: str, message: Any) -> None:
        """Print a status line.

        Args:
            action: Short verb phrase, right-aligned and highlighted
            message: Subject of the action (stringified)
        """
        if self.quiet:
            return
        self.console.print(
            f"[bold green]{escape(action):>12}[/bold green] {escape(str(message))}"
        )

