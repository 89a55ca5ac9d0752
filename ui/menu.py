from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from sharing.service import ShareService
from ui.browse import browse_flow
from ui.download import download_flow
from ui.upload import upload_flow

console = Console()

MENU_OPTIONS = {
    "1": ("Share", "Share a file and get a code"),
    "2": ("Download", "Download a file with a share code"),
    "3": ("My shares", "List or revoke your shares"),
    "4": ("Exit", "Quit dropcode"),
}


def show_main_menu(service: ShareService) -> None:
    while True:
        _render_menu()
        choice = Prompt.ask("Select an option", choices=list(MENU_OPTIONS.keys()))

        if choice == "1":
            upload_flow(service)
        elif choice == "2":
            download_flow(service)
        elif choice == "3":
            browse_flow(service)
        elif choice == "4":
            console.print("\n[cyan]Goodbye![/cyan]\n")
            break


def _render_menu() -> None:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="cyan bold", width=4)
    table.add_column("Option", style="white")
    table.add_column("Description", style="dim")

    for key, (name, desc) in MENU_OPTIONS.items():
        table.add_row(f"[{key}]", name, desc)

    panel = Panel(
        table,
        title="[bold cyan]dropcode[/bold cyan]",
        border_style="cyan",
        padding=(1, 2),
    )
    console.print(panel)
