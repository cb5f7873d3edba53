import asyncio
import typer
import logging
from typing import Awaitable, Callable, List, TypeVar
from multicast_store import create_multicast_client, create_tables, MulticastClient
from multicast_store.context import bind_context_id
from multicast_store.exceptions import DataClientError
from multicast_store.utils.cli_utils import get_rich_console, parse_dev_eui, parse_group_id, format_error


app = typer.Typer(help="CLI for multicast-group membership management.")
logger = logging.getLogger(__name__)
console = get_rich_console()

T = TypeVar("T")


def _run(op: Callable[[MulticastClient], Awaitable[T]]) -> T:
    """
    Выполняет операцию с клиентом в новом event loop под свежим ctx_id.
    Ошибки пакета печатаются и завершают команду с кодом 1.
    """
    async def _main() -> T:
        with bind_context_id() as ctx_id:
            logger.debug(f"cli ctx_id={ctx_id}")
            async with create_multicast_client() as client:
                return await op(client)

    try:
        return asyncio.run(_main())
    except DataClientError as e:
        console.print(format_error(e))
        raise typer.Exit(code=1)


@app.command()
def init():
    """Creates the device_multicast_group table if it does not exist."""
    console.rule("[bold cyan]Database Initialization[/bold cyan]")
    with console.status("Creating tables...", spinner="dots"):
        async def _create(client: MulticastClient):
            await create_tables(client.engine)
        _run(_create)
    console.print("[bold green]✔[/bold green] Database tables created successfully.")


@app.command()
def check():
    """Checks connectivity to the database."""
    console.rule("[bold cyan]Connection Check[/bold cyan]")
    statuses = _run(lambda client: client.check_connections())

    pg_status = statuses.get("postgres", "unknown error")
    if pg_status == "ok":
        console.print("[bold green]✔[/bold green] Database connection: OK")
    else:
        console.print(f"[bold red]✖[/bold red] Database connection: FAILED ({pg_status})")
        raise typer.Exit(code=1)


@app.command()
def add(
    dev_eui: str = typer.Argument(..., help="Device EUI, 16 hex characters."),
    group_id: str = typer.Argument(..., help="Multicast-group UUID."),
):
    """Adds a device to a multicast-group."""
    eui, gid = parse_dev_eui(dev_eui), parse_group_id(group_id)
    _run(lambda client: client.add_device_to_multicast_group(eui, gid))
    console.print(f"[bold green]✔[/bold green] {eui} added to {gid}")


@app.command()
def remove(
    dev_eui: str = typer.Argument(..., help="Device EUI, 16 hex characters."),
    group_id: str = typer.Argument(..., help="Multicast-group UUID."),
):
    """Removes a device from a multicast-group."""
    eui, gid = parse_dev_eui(dev_eui), parse_group_id(group_id)
    _run(lambda client: client.remove_device_from_multicast_group(eui, gid))
    console.print(f"[bold green]✔[/bold green] {eui} removed from {gid}")


@app.command("batch-add")
def batch_add(
    group_id: str = typer.Argument(..., help="Multicast-group UUID."),
    dev_euis: List[str] = typer.Argument(..., help="Device EUIs, 16 hex characters each."),
):
    """Adds all given devices to a multicast-group in one transaction."""
    gid = parse_group_id(group_id)
    euis = [parse_dev_eui(d) for d in dev_euis]
    _run(lambda client: client.batch_add_devices_to_multicast_group(euis, gid))
    console.print(f"[bold green]✔[/bold green] {len(euis)} device(s) added to {gid}")


@app.command()
def groups(dev_eui: str = typer.Argument(..., help="Device EUI, 16 hex characters.")):
    """Lists the multicast-groups of a device, one per line."""
    eui = parse_dev_eui(dev_eui)
    for group in _run(lambda client: client.get_multicast_groups_for_dev_eui(eui)):
        typer.echo(str(group))


@app.command()
def devices(group_id: str = typer.Argument(..., help="Multicast-group UUID.")):
    """Lists the devices of a multicast-group, one per line."""
    gid = parse_group_id(group_id)
    for eui in _run(lambda client: client.get_dev_euis_for_multicast_group(gid)):
        typer.echo(str(eui))


def main():
    from multicast_store.logging import configure
    configure()
    app()


if __name__ == "__main__":
    main()
