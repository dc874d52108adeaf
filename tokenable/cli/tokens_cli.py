# tokenable/cli/tokens_cli.py
import asyncio
import typer
from typing import Annotated, Optional

from .utils_cli import make_api_request
from ..storage.sqlite_base import close_sqlite_db_connection
from ..tokens.errors import TokenStoreError
from ..tokens.maintenance import prune_expired_tokens

app = typer.Typer(
    name="tokens",
    help="Manage personal access tokens.",
    no_args_is_help=True
)


def _owner_path(owner_type: str, owner_id: str) -> str:
    return f"/admin/owners/{owner_type}/{owner_id}/tokens"


@app.command("issue")
def issue_token(
    owner_type: Annotated[str, typer.Argument(help="Owner type, e.g. 'user'.")],
    owner_id: Annotated[str, typer.Argument(help="Owner identifier.")],
    name: Annotated[Optional[str], typer.Option(help="Label for the token, e.g. 'cli'.")] = None,
    ttl_seconds: Annotated[
        Optional[int],
        typer.Option("--ttl-seconds", min=0, help="Lifetime in seconds. Omit for the server default.")
    ] = None
):
    """Issue a token for an owner. The plaintext token is printed once."""
    payload = {"name": name}
    if ttl_seconds is not None:
        payload["ttl_seconds"] = ttl_seconds
    data = make_api_request(
        "POST",
        _owner_path(owner_type, owner_id),
        json_payload=payload,
        expected_status=201
    )
    typer.secho(
        f"Token: {data['plain_text_token']}\nCopy it now; it will not be shown again.",
        fg=typer.colors.GREEN
    )


@app.command("list")
def list_tokens(
    owner_type: Annotated[str, typer.Argument(help="Owner type.")],
    owner_id: Annotated[str, typer.Argument(help="Owner identifier.")]
):
    """List an owner's active tokens."""
    make_api_request("GET", _owner_path(owner_type, owner_id))


@app.command("revoke")
def revoke_token(
    owner_type: Annotated[str, typer.Argument(help="Owner type.")],
    owner_id: Annotated[str, typer.Argument(help="Owner identifier.")],
    token_id: Annotated[str, typer.Argument(help="Id of the token to revoke.")]
):
    """Revoke a single token."""
    make_api_request(
        "DELETE",
        f"{_owner_path(owner_type, owner_id)}/{token_id}",
        expected_status=204,
        expect_json_response=False
    )


@app.command("revoke-all")
def revoke_all_tokens(
    owner_type: Annotated[str, typer.Argument(help="Owner type.")],
    owner_id: Annotated[str, typer.Argument(help="Owner identifier.")],
    force: Annotated[
        bool,
        typer.Option("--force", prompt="Revoke ALL tokens for this owner?", help="Confirm revocation.", show_default=False)
    ] = False
):
    """Revoke every token belonging to an owner."""
    if not force:
        typer.echo("Revocation cancelled.")
        raise typer.Abort()
    make_api_request("DELETE", _owner_path(owner_type, owner_id))


async def _prune() -> int:
    try:
        return await prune_expired_tokens()
    finally:
        await close_sqlite_db_connection()


@app.command("prune-expired")
def prune_expired():
    """Remove all expired tokens directly from the database. Suitable for cron."""
    typer.echo("Removing expired access tokens...")
    try:
        deleted = asyncio.run(_prune())
    except TokenStoreError as e:
        typer.secho(f"Error: {e.detail}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    if deleted > 0:
        typer.secho(f"Removed {deleted} expired access token(s).", fg=typer.colors.GREEN)
    else:
        typer.echo("No expired access tokens found.")


if __name__ == "__main__":
    app()
