"""Console output for the CLI.

Provides a Console class that wraps rich for consistent output.
All CLI output should go through this module.
"""

from typing import Any

from rich.console import Console as RichConsole
from rich.table import Table


def human_size(size_bytes: int) -> str:
    """Format a byte count with binary units (e.g. '12.3 MiB')."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    size = size_bytes / 1024
    for unit in ("KiB", "MiB", "GiB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TiB"


class Console:
    """CLI output manager wrapping rich.

    Status messages go to stderr so that stdout stays parseable when
    structured output (JSON) is requested.
    """

    def __init__(self, *, force_terminal: bool | None = None) -> None:
        self._console = RichConsole(force_terminal=force_terminal, stderr=False)
        self._err_console = RichConsole(force_terminal=force_terminal, stderr=True)

    # -------------------------------------------------------------------------
    # Status messages
    # -------------------------------------------------------------------------

    def error(self, message: str, *, hint: str | None = None) -> None:
        """Print an error message to stderr."""
        self._err_console.print(f"[red]✗[/red] {message}")
        if hint:
            self._err_console.print(f"  [dim]{hint}[/dim]")

    def warning(self, message: str) -> None:
        """Print a warning message."""
        self._err_console.print(f"[yellow]⚠[/yellow] {message}")

    # -------------------------------------------------------------------------
    # Structured output
    # -------------------------------------------------------------------------

    def print_json(self, data: Any) -> None:
        self._console.print_json(data=data)

    def images(self, images: list[dict[str, Any]], *, title: str | None = None) -> None:
        """Print scanned images as a table, largest first, with a total row."""
        if not images:
            self.warning("No images found")
            return

        table = Table(title=title, show_header=True, header_style="bold")
        table.add_column("Image")
        table.add_column("Layers", justify="right")
        table.add_column("Size", justify="right")

        ordered = sorted(images, key=lambda image: image.get("size_bytes", 0), reverse=True)
        for image in ordered:
            table.add_row(
                str(image.get("image", "")),
                str(image.get("layers", "")),
                human_size(int(image.get("size_bytes", 0))),
            )

        total = sum(int(image.get("size_bytes", 0)) for image in images)
        table.add_section()
        table.add_row(f"[bold]{len(images)} image(s)[/bold]", "", f"[bold]{human_size(total)}[/bold]")
        self._console.print(table)

    def status(self, message: str):
        """Return a status context manager for long operations."""
        return self._err_console.status(message)


# Module-level default instance for convenience
_default: Console | None = None


def get_console() -> Console:
    """Get the default console instance."""
    global _default
    if _default is None:
        _default = Console()
    return _default
