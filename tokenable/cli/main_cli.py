# tokenable/cli/main_cli.py
import typer
from dotenv import load_dotenv
from pathlib import Path
from typing import Annotated, Optional

from . import tokens_cli
from .utils_cli import DEFAULT_API_BASE_URL, configure_api_target
from .. import __version__

# <project>/tokenable/cli/main_cli.py -> <project>/.env
load_dotenv(dotenv_path=Path(__file__).parent.parent.parent.resolve() / ".env")

app = typer.Typer(
    name="tokenable",
    help="Issue, list and revoke personal access tokens.",
    no_args_is_help=True
)

app.add_typer(tokens_cli.app, name="tokens")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"tokenable {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    api_url: Annotated[
        str,
        typer.Option(envvar="TOKENABLE_CLI_API_BASE_URL", help="Base URL of the running Tokenable API.")
    ] = DEFAULT_API_BASE_URL,
    admin_key: Annotated[
        Optional[str],
        typer.Option(envvar="ADMIN_API_KEY", help="Admin API key sent as X-Admin-API-Key.", show_default=False)
    ] = None,
    version: Annotated[
        bool,
        typer.Option("--version", callback=_print_version, is_eager=True, help="Show the version and exit.")
    ] = False
):
    """
    Tokenable command line interface.

    Admin commands talk to the API at --api-url; `tokens prune-expired`
    works on the configured database directly.
    """
    configure_api_target(api_url, admin_key)


def cli_entry_point():
    """Console script entry point (see [project.scripts] in pyproject.toml)."""
    app()


if __name__ == "__main__":
    cli_entry_point()
