import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt

from config import get_setting, load_config, run_setup_wizard, save_config, validate_config
from sharing.errors import StoreUnavailable
from sharing.factory import build_service, build_store
from storage.s3_client import S3Client
from ui.menu import show_main_menu

console = Console()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def _connect_s3(config: dict) -> S3Client | None:
    console.print("[dim]Connecting to AWS S3...[/dim]")
    client = S3Client(config)

    if not client.verify_connection():
        console.print(
            "[red]Failed to connect to AWS. Please check your credentials.[/red]"
        )
        reconfigure = Prompt.ask("Reconfigure credentials?", choices=["y", "n"], default="y")
        if reconfigure != "y":
            sys.exit(1)
        config.update(run_setup_wizard())
        save_config(config)
        if config["backend"] != "s3":
            return None
        client = S3Client(config)
        if not client.verify_connection():
            console.print("[red]Still unable to connect. Exiting.[/red]")
            sys.exit(1)

    # Ensure bucket exists (creates it if not)
    client.ensure_bucket_exists()
    console.print(
        f"[green]Connected.[/green] Bucket: [cyan]{config['bucket_name']}[/cyan]\n"
    )
    return client


def main() -> None:
    console.print(
        Panel.fit(
            "[bold cyan]dropcode[/bold cyan]\n[dim]Share files with a code[/dim]",
            border_style="cyan",
            padding=(1, 4),
        )
    )

    # Load config, run setup wizard on first launch or if config is invalid
    config = load_config()
    if config is None:
        console.print(
            "[yellow]No configuration found. Running first-time setup...[/yellow]\n"
        )
        config = run_setup_wizard()
        save_config(config)
        console.print("\n[green]Configuration saved to ~/.dropcode/config.json[/green]\n")
    elif not validate_config(config):
        console.print(
            "[yellow]Saved configuration is incomplete or corrupted. Re-running setup...[/yellow]\n"
        )
        config = run_setup_wizard()
        save_config(config)
        console.print("\n[green]Configuration updated.[/green]\n")

    configure_logging(str(get_setting(config, "log_level")))

    s3_client = _connect_s3(config) if config["backend"] == "s3" else None

    try:
        store = build_store(config, s3_client=s3_client)
    except StoreUnavailable as e:
        console.print(f"[red]Share storage unavailable:[/red] {e}")
        sys.exit(1)

    console.print(f"[dim]Storing shares with the [cyan]{config['backend']}[/cyan] backend.[/dim]\n")

    # Hand off to main menu
    service = build_service(config, store=store)
    show_main_menu(service)


if __name__ == "__main__":
    main()
