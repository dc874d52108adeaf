# tokenable/cli/utils_cli.py
import requests
import typer
import json
from typing import Optional, Dict, Any, Union, List
from pydantic import BaseModel

DEFAULT_API_BASE_URL = "http://127.0.0.1:8000"


class ApiTarget(BaseModel):
    """Where admin commands are sent, set once per invocation by the root callback."""
    base_url: str = DEFAULT_API_BASE_URL
    admin_api_key: Optional[str] = None


api_target = ApiTarget()


def configure_api_target(base_url: Optional[str], admin_api_key: Optional[str]) -> ApiTarget:
    api_target.base_url = (base_url or DEFAULT_API_BASE_URL).rstrip("/")
    api_target.admin_api_key = admin_api_key or None
    return api_target


def make_api_request(
    method: str,
    endpoint: str,
    json_payload: Optional[Dict[str, Any]] = None,
    params_payload: Optional[Dict[str, Any]] = None,
    expected_status: Union[int, List[int]] = 200,
    expect_json_response: bool = True
) -> Any:
    """
    Makes an HTTP request to the admin API and echoes the outcome.

    Sends the admin API key when configured. Any unexpected status or
    connection problem exits the CLI with code 1.
    """
    full_url = f"{api_target.base_url}{endpoint}"
    headers: Dict[str, str] = {}

    if api_target.admin_api_key:
        headers["X-Admin-API-Key"] = api_target.admin_api_key
    elif endpoint.startswith("/admin/"):
        typer.secho(
            "CLI: Warning - no admin key (--admin-key or ADMIN_API_KEY). Admin API calls will be rejected.",
            fg=typer.colors.YELLOW
        )

    typer.echo(f"CLI: {method.upper()} {full_url}")
    if json_payload:
        typer.echo(f"CLI: JSON Payload: {json.dumps(json_payload, indent=2)}")
    if params_payload:
        typer.echo(f"CLI: Query Params: {params_payload}")

    try:
        response = requests.request(
            method,
            full_url,
            json=json_payload,
            params=params_payload,
            headers=headers,
            timeout=30
        )
    except requests.exceptions.ConnectionError as e:
        typer.secho(
            f"CLI: Connection Error - Could not connect to API at {full_url}. Is the server running? Error: {e}",
            fg=typer.colors.RED
        )
        raise typer.Exit(code=1)
    except requests.exceptions.RequestException as e:
        typer.secho(f"CLI: Request Error - {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.echo(f"CLI: Response Status: {response.status_code}")
    expected_statuses = [expected_status] if isinstance(expected_status, int) else expected_status

    if response.status_code not in expected_statuses:
        err_msg = f"CLI: API Error - Expected status {expected_status}, got {response.status_code}."
        try:
            err_data = response.json()
            err_msg += f" Detail: {err_data.get('detail', response.text)}"
        except ValueError:
            err_msg += f" Raw response: {response.text}"
        typer.secho(err_msg, fg=typer.colors.RED)
        raise typer.Exit(code=1)

    if response.status_code == 204 or not expect_json_response:
        typer.secho(f"CLI: Success (Status {response.status_code}).", fg=typer.colors.GREEN)
        return None

    try:
        data = response.json()
    except ValueError:
        typer.secho(
            f"CLI: Error - Could not decode JSON response. Raw text: {response.text}",
            fg=typer.colors.RED
        )
        raise typer.Exit(code=1)
    typer.echo(typer.style("CLI: Response JSON:", fg=typer.colors.CYAN))
    typer.echo(json.dumps(data, indent=2))
    return data
