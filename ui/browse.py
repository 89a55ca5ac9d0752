from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from sharing.errors import ShareError
from sharing.models import SharedFile
from sharing.service import ShareService
from ui.download import fmt_size

console = Console()


def browse_flow(service: ShareService) -> None:
    """List live shares and optionally revoke one."""
    while True:
        try:
            shares = service.list_owned()
        except ShareError as e:
            console.print(f"[red]Failed to list shares:[/red] {e}\n")
            return

        if not shares:
            console.print(
                "[yellow]No active shares.[/yellow]\n"
                "[dim]Use Share from the main menu to share a file.[/dim]\n"
            )
            return

        _render_listing(shares)

        choices = [str(i + 1) for i in range(len(shares))] + ["q"]
        choice = Prompt.ask("Select a share to revoke", choices=choices, default="q")

        if choice == "q":
            console.print()
            return

        _revoke_share(service, shares[int(choice) - 1])


def _revoke_share(service: ShareService, shared: SharedFile) -> None:
    confirm = Prompt.ask(
        f"Revoke [cyan]{shared.share_code}[/cyan] ({shared.file_name})?",
        choices=["y", "n"],
        default="n",
    )
    if confirm != "y":
        return

    try:
        service.revoke(shared.share_code)
    except ShareError as e:
        console.print(f"[red]Failed to revoke share:[/red] {e}\n")
        return

    console.print(
        f"[green]Code [cyan]{shared.share_code}[/cyan] revoked.[/green]"
        f" [cyan]{shared.file_name}[/cyan] can no longer be downloaded.\n"
    )


def _render_listing(shares: list[SharedFile]) -> None:
    table = Table(show_header=True, header_style="bold cyan", box=None, padding=(0, 2))
    table.add_column("#", style="cyan", width=4)
    table.add_column("Code", style="bold")
    table.add_column("File")
    table.add_column("Size", justify="right", style="dim")
    table.add_column("Downloads", justify="right")
    table.add_column("Expires", style="dim")
    table.add_column("", width=2)

    for i, shared in enumerate(shares, 1):
        limit = "∞" if shared.is_unlimited else str(shared.max_downloads)
        table.add_row(
            str(i),
            shared.share_code,
            shared.file_name,
            fmt_size(shared.file_size),
            f"{shared.download_count}/{limit}",
            shared.expires_at.astimezone().strftime("%Y-%m-%d %H:%M"),
            "🔒" if shared.has_password else "",
        )

    console.print(
        Panel(
            table,
            title="[bold cyan]My shares[/bold cyan]",
            subtitle="[dim]Select a number to revoke  [q] Back[/dim]",
            border_style="cyan",
            padding=(1, 2),
        )
    )
