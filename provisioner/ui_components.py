"""
Provisioner CLI - UI Components
Standardized headers and status styling
"""

from rich.console import Console

BRAND = "provisioner"

# Color scheme
BRAND_COLOR = "cyan"
SUCCESS_COLOR = "green"
WARNING_COLOR = "yellow"
ERROR_COLOR = "red"
INFO_COLOR = "blue"

STATUS_COLORS = {
    "In-Active": "dim",
    "Deploying": WARNING_COLOR,
    "Active": SUCCESS_COLOR,
    "Failed": ERROR_COLOR,
}


def show_header(
    title: str,
    subtitle: str = None,
    cluster: str = None,
    details: dict = None,
    console: Console = None,
):
    """
    Display a standardized command header.

    Args:
        title: Main title (e.g., "Deploy Cluster")
        subtitle: Optional subtitle line
        cluster: Cluster id or name (if applicable)
        details: Additional key-value pairs to display
        console: Rich Console instance (creates new if None)
    """
    if console is None:
        console = Console()

    prefix = f" [bold color(214)]{BRAND}[/bold color(214)] [dim]›[/dim]"

    console.print(f"{prefix} [bold white]{title}[/bold white]")

    if subtitle:
        console.print(f"{prefix} [dim]{subtitle}[/dim]")

    if cluster:
        console.print(f"{prefix} Cluster: [cyan]{cluster}[/cyan]")

    if details:
        for key, value in details.items():
            console.print(f"{prefix} {key}: [cyan]{value}[/cyan]")

    console.print()


def status_markup(status: str) -> str:
    """Cluster status wrapped in its color."""
    color = STATUS_COLORS.get(status, "white")
    return f"[{color}]{status}[/{color}]"
