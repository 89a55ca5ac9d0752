from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from rich.prompt import Prompt

from sharing.errors import DuplicateCode, FileTooLarge, ShareError
from sharing.models import FileUpload, SharedFile
from sharing.service import ShareService
from ui.download import fmt_size
from ui.prompts import prompt_share_settings

console = Console()


def upload_flow(service: ShareService) -> None:
    """Pick a local file, choose share settings and print the code."""
    path_str = Prompt.ask("[cyan]Local file path[/cyan]").strip()
    local_path = Path(path_str).expanduser().resolve()

    if not local_path.exists():
        console.print(f"[red]File not found:[/red] {local_path}\n")
        return

    if not local_path.is_file():
        console.print("[red]That path points to a directory, not a file.[/red]\n")
        return

    try:
        upload = FileUpload.from_path(local_path)
    except OSError as e:
        console.print(f"[red]Cannot read file:[/red] {e}\n")
        return

    settings = prompt_share_settings(upload.name)
    console.print()

    try:
        with Progress(
            TextColumn("[cyan]{task.description}[/cyan]"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
        ) as progress:
            task = progress.add_task(upload.name, total=upload.size)
            shared = service.create_share(
                upload,
                settings,
                progress=lambda n: progress.update(task, advance=n),
            )
    except DuplicateCode as e:
        console.print(f"[red]Share code [cyan]{e.code}[/cyan] is already in use.[/red]"
                      " Choose a different one.\n")
        return
    except FileTooLarge as e:
        console.print(
            f"[red]File is too large to share.[/red] {fmt_size(e.size)}"
            f" exceeds the {fmt_size(e.limit)} limit.\n"
        )
        return
    except ShareError as e:
        console.print(f"[red]Share failed:[/red] {e}\n")
        return

    _print_share(shared)


def _print_share(shared: SharedFile) -> None:
    limit = "unlimited downloads" if shared.is_unlimited else f"{shared.max_downloads} download(s)"
    expires = shared.expires_at.astimezone().strftime("%Y-%m-%d %H:%M")
    body = f"[bold cyan]{shared.share_code}[/bold cyan]"
    if shared.password:
        body += f"\n\n[dim]Password:[/dim] [bold]{shared.password}[/bold]"

    console.print(
        Panel(
            body,
            title="[bold]Share Code[/bold]",
            subtitle=f"[dim]{shared.file_name}  ·  {limit}  ·  expires {expires}[/dim]",
            border_style="green",
            padding=(1, 4),
        )
    )
    if shared.password:
        console.print("[dim]The password is not stored and cannot be shown again.[/dim]")
    console.print("[dim]Give this code to the person you are sharing with.[/dim]\n")
