"""CLI entrypoint for Repo Rover."""

from __future__ import annotations

import json
import os
from typing import Optional

import requests
import typer

app = typer.Typer(name="rover", help="Repo Rover command-line interface")

DEFAULT_HOST = "http://127.0.0.1:8000"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip("/")
    env_host = os.environ.get("RROV_HOST")
    if env_host:
        return env_host.rstrip("/")
    return DEFAULT_HOST


def _auth_headers(token: Optional[str]) -> dict[str, str]:
    token = token or os.environ.get("RROV_TOKEN")
    if not token:
        typer.echo("A token is required (--token or RROV_TOKEN)", err=True)
        raise typer.Exit(code=2)
    return {"Authorization": f"Bearer {token}"}


def _request(
    method: str,
    path: str,
    host: Optional[str] = None,
    token: Optional[str] = None,
    timeout: float = 600,
    **kwargs,
) -> requests.Response:
    url = f"{_resolve_host(host)}{path}"
    resp = requests.request(method, url, headers=_auth_headers(token), timeout=timeout, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json()
        except Exception:  # noqa: BLE001
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


HostOption = typer.Option(None, "--host", help="Override backend host")
TokenOption = typer.Option(None, "--token", help="Bearer token")


@app.command()
def ingest(
    repo_url: str = typer.Argument(..., help="GitHub repository URL"),
    host: Optional[str] = HostOption,
    token: Optional[str] = TokenOption,
) -> None:
    """Scan and index a repository."""
    resp = _request("POST", "/ingest", host=host, token=token, json={"repo_url": repo_url})
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def ask(
    repo_url: str = typer.Argument(..., help="GitHub repository URL"),
    question: str = typer.Argument(..., help="Question about the code"),
    host: Optional[str] = HostOption,
    token: Optional[str] = TokenOption,
) -> None:
    """Ask a question about an indexed repository."""
    resp = _request("POST", "/chat", host=host, token=token, json={"repo_url": repo_url, "question": question})
    payload = resp.json()
    typer.echo(payload["answer"])
    if payload.get("sources"):
        typer.echo("\nSources:")
        for source in payload["sources"]:
            typer.echo(f"  {source}")


@app.command()
def history(
    repo_url: str = typer.Argument(..., help="GitHub repository URL"),
    host: Optional[str] = HostOption,
    token: Optional[str] = TokenOption,
) -> None:
    """Print the conversation for one repository."""
    resp = _request("GET", "/history", host=host, token=token, params={"repo_url": repo_url})
    for message in resp.json()["messages"]:
        typer.echo(f"[{message['timestamp']}] {message['role']}: {message['text']}")


@app.command()
def repos(
    host: Optional[str] = HostOption,
    token: Optional[str] = TokenOption,
) -> None:
    """List repositories with a conversation, most recent first."""
    resp = _request("GET", "/repositories", host=host, token=token)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def progress(
    host: Optional[str] = HostOption,
    token: Optional[str] = TokenOption,
) -> None:
    """Follow the ingestion progress stream until interrupted."""
    resp = _request("GET", "/progress", host=host, token=token, stream=True)
    with resp:
        for line in resp.iter_lines(decode_unicode=True):
            if line and line.startswith("data: "):
                typer.echo(line[len("data: ") :])


@app.command()
def serve(
    bind: str = typer.Option("127.0.0.1", "--bind", help="Interface to listen on"),
    port: int = typer.Option(8000, "--port", help="Port to listen on"),
) -> None:
    """Run the API server."""
    import uvicorn

    uvicorn.run("repo_rover.app:app", host=bind, port=port)


if __name__ == "__main__":
    app()
