"""CLI entrypoint for agent memory."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

import requests
import typer

app = typer.Typer(name="agmem", help="Agent memory command-line interface")

DEFAULT_HOST = "http://127.0.0.1:8765"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip('/')
    env_host = os.environ.get("AGMEM_HOST")
    if env_host:
        return env_host.rstrip('/')
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    try:
        resp = requests.request(method, url, timeout=60, **kwargs)
    except requests.RequestException as exc:
        typer.echo(f"Could not reach {base}: {exc}", err=True)
        raise typer.Exit(code=1)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


def _echo(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2))


@app.command()
def ingest(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file with id, messages, channel?, userId?"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Ingest a session (its messages are appended)."""
    try:
        body = json.loads(file.expanduser().read_text(encoding="utf-8"))
    except ValueError as exc:
        typer.echo(f"{file} is not valid JSON: {exc}", err=True)
        raise typer.Exit(code=1)
    resp = _request("POST", "/sessions", host=host, json=body)
    _echo(resp.json())


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Maximum number of results"),
    type: Optional[str] = typer.Option(None, "--type", help="all, session or memory"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Search sessions and memories."""
    payload: dict[str, object] = {"query": query}
    if limit is not None:
        payload["limit"] = limit
    if type is not None:
        payload["type"] = type
    resp = _request("POST", "/search", host=host, json=payload)
    _echo(resp.json())


@app.command()
def read(
    item_id: str = typer.Argument(..., help="Session or memory id"),
    chunk: int = typer.Option(0, "--chunk", min=0, help="Chunk index (sessions only)"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Read a session chunk or a memory."""
    resp = _request("GET", f"/items/{quote(item_id, safe='')}", host=host, params={"chunk": chunk})
    _echo(resp.json())


@app.command()
def write(
    title: str = typer.Option(..., "--title", help="Memory title"),
    content: str = typer.Option(..., "--content", help="Memory content"),
    tag: Optional[List[str]] = typer.Option(None, "--tag", help="Tag (repeatable)"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Write a new memory."""
    payload = {"title": title, "content": content, "tags": tag or []}
    resp = _request("POST", "/memories", host=host, json=payload)
    _echo(resp.json())


@app.command()
def update(
    memory_id: str = typer.Argument(..., help="Memory id"),
    title: Optional[str] = typer.Option(None, "--title", help="New title"),
    content: Optional[str] = typer.Option(None, "--content", help="New content"),
    tag: Optional[List[str]] = typer.Option(None, "--tag", help="Replacement tag (repeatable)"),
    clear_tags: bool = typer.Option(False, "--clear-tags", help="Remove all tags"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Update fields of an existing memory."""
    payload: dict[str, object] = {}
    if title is not None:
        payload["title"] = title
    if content is not None:
        payload["content"] = content
    if tag and clear_tags:
        typer.echo("--tag and --clear-tags are mutually exclusive", err=True)
        raise typer.Exit(code=2)
    if tag:
        payload["tags"] = tag
    elif clear_tags:
        payload["tags"] = []
    if not payload:
        typer.echo("Nothing to update", err=True)
        raise typer.Exit(code=2)
    resp = _request("PATCH", f"/memories/{quote(memory_id, safe='')}", host=host, json=payload)
    _echo(resp.json())


@app.command()
def delete(
    item_id: str = typer.Argument(..., help="Session or memory id"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Soft-delete a session or memory."""
    resp = _request("DELETE", f"/items/{quote(item_id, safe='')}", host=host)
    _echo(resp.json())


if __name__ == "__main__":
    app()
