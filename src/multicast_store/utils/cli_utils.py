from rich.console import Console
from rich.markup import escape
from uuid import UUID

import typer

from multicast_store.models import EUI64
from multicast_store.exceptions import InvalidKeyError

def get_rich_console() -> Console: return Console(stderr=True)


def parse_dev_eui(value: str) -> EUI64:
    """Конвертер аргумента CLI: hex-строка -> EUI64."""
    try:
        return EUI64.from_hex(value)
    except InvalidKeyError as e:
        raise typer.BadParameter(str(e))


def parse_group_id(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise typer.BadParameter(f"invalid multicast-group id '{value}'")


def format_error(e: Exception) -> str:
    return f"[bold red]✖[/bold red] {type(e).__name__}: {escape(str(e))}"
