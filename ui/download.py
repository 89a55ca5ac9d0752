from pathlib import Path

from rich.console import Console
from rich.prompt import Prompt

from sharing.errors import (
    CorruptPayload,
    Expired,
    InvalidPassword,
    NotFound,
    PasswordRequired,
    QuotaExhausted,
    ShareError,
    StoreUnavailable,
)
from sharing.models import RedeemedFile
from sharing.service import ShareService

console = Console()

PASSWORD_ATTEMPTS = 3

_REFUSALS = {
    NotFound: "File not found. Please check the share code.",
    Expired: "This file has expired and is no longer available.",
    QuotaExhausted: "Download limit reached for this file.",
    CorruptPayload: "The shared file is damaged and cannot be restored.",
}


def download_flow(service: ShareService) -> None:
    """Redeem a share code, asking for the password if the share has one."""
    code = Prompt.ask("[cyan]Enter share code[/cyan]").strip().upper()
    if not code:
        console.print("[red]Share code cannot be empty.[/red]\n")
        return

    redeemed = _redeem(service, code)
    if redeemed is None:
        return

    console.print(
        f"[green]Code valid![/green] [cyan]{redeemed.file_name}[/cyan]"
        f"  [dim]{fmt_size(len(redeemed.data))}[/dim]"
    )
    save_file(redeemed)


def _redeem(service: ShareService, code: str) -> RedeemedFile | None:
    password = None
    attempts = 0
    while True:
        try:
            return service.redeem(code, password)
        except PasswordRequired:
            console.print("[yellow]This file is password protected.[/yellow]")
        except InvalidPassword:
            attempts += 1
            if attempts >= PASSWORD_ATTEMPTS:
                console.print("[red]Invalid password. Giving up.[/red]\n")
                return None
            console.print("[red]Invalid password.[/red] Try again.")
        except StoreUnavailable as e:
            console.print(f"[red]Share storage unavailable:[/red] {e}\n")
            return None
        except ShareError as e:
            console.print(f"[red]{_REFUSALS.get(type(e), str(e))}[/red]\n")
            return None

        password = Prompt.ask("[cyan]Password[/cyan]", password=True)


def save_file(redeemed: RedeemedFile) -> Path | None:
    dest_str = Prompt.ask("Save to directory", default=str(Path.cwd()))
    # Only the base name is used so a share cannot write outside the chosen directory
    filename = Path(redeemed.file_name).name
    if filename in ("", ".", ".."):
        filename = "download"
    local_path = Path(dest_str).expanduser().resolve() / filename

    try:
        local_path.parent.mkdir(parents=True, exist_ok=True)
        local_path.write_bytes(redeemed.data)
    except OSError as e:
        console.print(f"[red]Download failed:[/red] {e}\n")
        return None

    console.print(f"[green]Saved to[/green] {local_path}\n")
    return local_path


def fmt_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    elif size < 1024 ** 2:
        return f"{size / 1024:.1f} KB"
    else:
        return f"{size / 1024 ** 2:.1f} MB"
