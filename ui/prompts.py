import secrets
import string
from datetime import datetime

from rich.console import Console
from rich.prompt import Prompt

from sharing.code_generator import validate_custom
from sharing.errors import InvalidShareCode, InvalidShareSettings
from sharing.models import (
    DEFAULT_EXPIRY_PRESET,
    DEFAULT_MAX_DOWNLOADS,
    EXPIRY_PRESETS,
    MAX_CUSTOM_DOWNLOAD_LIMIT,
    UNLIMITED_DOWNLOADS,
    ShareSettings,
    resolve_expiry,
)

console = Console()

PASSWORD_CHARS = string.ascii_letters + string.digits
GENERATED_PASSWORD_LENGTH = 12


def prompt_share_settings(file_name: str) -> ShareSettings:
    shown_name = Prompt.ask("Name shown to recipients", default=file_name).strip()
    custom_code = _prompt_custom_code()
    password = _prompt_password()
    return ShareSettings(
        expires_at=prompt_expiry(),
        max_downloads=prompt_download_limit(),
        custom_code=custom_code,
        password=password,
        custom_file_name=shown_name if shown_name and shown_name != file_name else None,
    )


def prompt_expiry() -> datetime:
    """Ask for a preset lifetime or a custom date. Falls back to 7 days on bad input."""
    choice = Prompt.ask(
        "Expire after",
        choices=[*EXPIRY_PRESETS, "custom"],
        default=DEFAULT_EXPIRY_PRESET,
    )
    if choice != "custom":
        return resolve_expiry(choice)

    raw = Prompt.ask("Expiry date and time [dim](YYYY-MM-DD HH:MM, local time)[/dim]").strip()
    try:
        return resolve_expiry(custom=datetime.fromisoformat(raw).astimezone())
    except ValueError:
        console.print("[yellow]Invalid date. Using 7 days.[/yellow]")
    except InvalidShareSettings as e:
        console.print(f"[yellow]{e}. Using 7 days.[/yellow]")
    return resolve_expiry()


def prompt_download_limit() -> int:
    raw = Prompt.ask(
        "Download limit [dim](1-1000, or 'unlimited')[/dim]",
        default=str(DEFAULT_MAX_DOWNLOADS),
    ).strip().lower()

    if raw in ("unlimited", "u", "-1"):
        return UNLIMITED_DOWNLOADS
    try:
        limit = int(raw)
    except ValueError:
        console.print(f"[yellow]Invalid input. Using {DEFAULT_MAX_DOWNLOADS}.[/yellow]")
        return DEFAULT_MAX_DOWNLOADS
    if not 1 <= limit <= MAX_CUSTOM_DOWNLOAD_LIMIT:
        console.print(
            f"[yellow]Limit must be between 1 and {MAX_CUSTOM_DOWNLOAD_LIMIT}."
            f" Using {DEFAULT_MAX_DOWNLOADS}.[/yellow]"
        )
        return DEFAULT_MAX_DOWNLOADS
    return limit


def _prompt_custom_code() -> str | None:
    raw = Prompt.ask(
        "Custom share code [dim](press Enter to generate one)[/dim]", default=""
    ).strip()
    if not raw:
        return None
    try:
        code = validate_custom(raw)
    except InvalidShareCode:
        console.print("[yellow]No letters or digits in that code. Generating one instead.[/yellow]")
        return None
    if code != raw:
        console.print(f"[dim]Using code [cyan]{code}[/cyan][/dim]")
    return code


def generate_password(length: int = GENERATED_PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(PASSWORD_CHARS) for _ in range(length))


def _prompt_password() -> str | None:
    raw = Prompt.ask(
        "Password [dim](press Enter for none, or type 'generate' for a random one)[/dim]",
        password=True,
        default="",
    ).strip()
    if raw.lower() == "generate":
        console.print("[dim]Generated a random password. It is shown once the share is created.[/dim]")
        return generate_password()
    return raw or None
