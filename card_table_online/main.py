from __future__ import annotations

import socket
from typing import Annotated

import stun
import typer

from card_table.config import tweak
from card_table.handlers import Table_Context
from card_table.library import Deck_Library
from card_table.logging_utils import setup_logging
from card_table_online.client import run_client
from card_table_online.server import Table_Server

app = typer.Typer()


def local_ip() -> str:
    return socket.gethostbyname_ex(socket.gethostname())[-1][-1]


def announce_address(port: int, stun_host: str, stun_port: int) -> None:
    if stun_host == "local":
        typer.echo(f"Open the table on this machine at localhost:{port}")
        typer.echo(f"Or on your network at {local_ip()}:{port}")
        return

    _, public_ip, _ = stun.get_ip_info(stun_host=stun_host, stun_port=stun_port)
    if public_ip is None:
        typer.echo("Could not discover your public IP using STUN. Falling back to the local address.")
        typer.echo(f"Local address: {local_ip()}:{port}")
        return
    typer.echo(f"Your public IP is: {public_ip}\nForward port {port} on your router so friends can join.")


@app.command()
def serve(
    host: Annotated[str, typer.Option("--host", help="Interface to listen on")] = tweak["host"],
    port: Annotated[int, typer.Option("-p", "--port", help="TCP port to listen on")] = tweak["port"],
    uploads: Annotated[str, typer.Option("--uploads", help="Folder holding one sub-folder per deck")] = tweak["uploads_dir"],
    use_stun: Annotated[bool, typer.Option("--stun/--no-stun", help="Discover the public IP with STUN instead of printing the LAN address")] = False,
    stun_host: Annotated[str, typer.Option("--stun-host", help="STUN host for discovering the public IP, or 'local'")] = tweak["stun_host"],
    stun_port: Annotated[int, typer.Option("--stun-port", help="STUN port")] = tweak["stun_port"],
):
    """Run the shared table server."""
    setup_logging()
    ctx = Table_Context(library=Deck_Library(root=uploads))
    server = Table_Server(ctx, host=host, port=port)
    _, bound_port = server.bind()
    announce_address(bound_port, stun_host if use_stun else "local", stun_port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        typer.echo("Shutting down...")
        server.shutdown()


@app.command()
def watch(
    host: Annotated[str, typer.Argument(help="Server address")] = "localhost",
    port: Annotated[int, typer.Argument(help="Server port")] = tweak["port"],
):
    """Connect to a table and print it every time it changes."""
    run_client(host, port)


@app.command()
def decks(
    uploads: Annotated[str, typer.Option("--uploads", help="Folder holding one sub-folder per deck")] = tweak["uploads_dir"],
):
    """List the decks stored in the library."""
    library = Deck_Library(root=uploads)
    found = library.list_decks()
    if not found:
        typer.echo(f"No decks in {uploads}")
        return
    for deck in found:
        typer.echo(f"{deck['id']}: {deck['card_count']} cards, back {deck['card_back']}")


if __name__ == "__main__":
    app()
