import json
from pathlib import Path
from rich.console import Console
from rich.prompt import Prompt

CONFIG_DIR = Path.home() / ".dropcode"
CONFIG_FILE = CONFIG_DIR / "config.json"

BACKENDS = ("local", "sql", "s3")

_REQUIRED_KEYS = {
    "local": {"local_store_path"},
    "sql": {"database_url"},
    "s3": {"aws_access_key", "aws_secret_key", "aws_region", "bucket_name"},
}

DEFAULTS = {
    "max_file_size_mb": 5,
    "log_level": "WARNING",
    "store_timeout_seconds": 10,
}

console = Console()


def load_config() -> dict | None:
    if not CONFIG_FILE.exists():
        return None
    try:
        with open(CONFIG_FILE) as f:
            return json.load(f)
    except (json.JSONDecodeError, KeyError):
        return None


def validate_config(config: dict) -> bool:
    """Return True if config names a known backend and has its keys with non-empty values."""
    if not isinstance(config, dict):
        return False
    backend = config.get("backend")
    if backend not in BACKENDS:
        return False
    return all(str(config.get(key, "")).strip() for key in _REQUIRED_KEYS[backend])


def get_setting(config: dict, key: str):
    return config.get(key, DEFAULTS[key])


def max_file_size_bytes(config: dict) -> int | None:
    """Upload limit in bytes; a limit of 0 disables the check."""
    megabytes = float(get_setting(config, "max_file_size_mb"))
    if megabytes <= 0:
        return None
    return int(megabytes * 1024 * 1024)


def save_config(config: dict) -> None:
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    with open(CONFIG_FILE, "w") as f:
        json.dump(config, f, indent=2)


def run_setup_wizard() -> dict:
    console.print("[bold]Share Storage Setup[/bold]\n")
    console.print(
        "[cyan]local[/cyan]  keeps shares in a file on this machine\n"
        "[cyan]sql[/cyan]    keeps shares in a database table reachable from other machines\n"
        "[cyan]s3[/cyan]     keeps shares in an S3 bucket\n"
    )

    backend = Prompt.ask("[cyan]Storage backend[/cyan]", choices=list(BACKENDS), default="local")
    config: dict = {"backend": backend}

    if backend == "local":
        config["local_store_path"] = Prompt.ask(
            "[cyan]Share file location[/cyan]", default=str(CONFIG_DIR / "shares.json")
        ).strip()
    elif backend == "sql":
        config["database_url"] = Prompt.ask(
            "[cyan]Database URL[/cyan]", default=f"sqlite:///{CONFIG_DIR / 'shares.db'}"
        ).strip()
    else:
        config["aws_access_key"] = Prompt.ask("[cyan]AWS Access Key ID[/cyan]").strip()
        config["aws_secret_key"] = Prompt.ask("[cyan]AWS Secret Access Key[/cyan]", password=True)
        config["aws_region"] = Prompt.ask("[cyan]AWS Region[/cyan]", default="us-east-1")
        config["bucket_name"] = Prompt.ask("[cyan]S3 Bucket Name[/cyan]", default="dropcode-shares")

    config["max_file_size_mb"] = DEFAULTS["max_file_size_mb"]
    return config
