"""CLI entry point for helpline."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
from rich import print as rprint
from rich.markup import escape

from helpline.activity import ActivityLog
from helpline.config import Config
from helpline.log import setup_logging
from helpline.service import HelpService
from helpline.workspace import scan_workspace

app = typer.Typer(help="Hand stuck coding problems from AI agents to human support.")


@app.command()
def serve() -> None:
    """Start the MCP server (called by Claude Code / Cursor automatically)."""
    from helpline.mcp_server import main as mcp_main
    asyncio.run(mcp_main())


@app.command()
def request(
    arguments_file: Path = typer.Argument(help="JSON file with request_help arguments"),
    mock: bool = typer.Option(False, "--mock", help="Simulate the support API"),
) -> None:
    """Run a help request from a JSON file and print the tool response."""
    config = Config.load()
    if mock:
        config.use_mock_api = True
    setup_logging(config.log_level, config.sessions_dir)

    issues = config.validate()
    if issues:
        for issue in issues:
            rprint(f"[red]Config error: {issue}[/red]")
        raise typer.Exit(1)

    try:
        arguments = json.loads(arguments_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        rprint(f"[red]Could not read {arguments_file}: {e}[/red]")
        raise typer.Exit(1)

    service = HelpService.from_config(config)
    typer.echo(asyncio.run(service.request_help(arguments)))


@app.command()
def session(
    session_id: str = typer.Argument(help="Session ID returned by request_help"),
) -> None:
    """Print a stored help session."""
    config = Config.load()
    service = HelpService.from_config(config)
    result = json.loads(service.get_session(session_id))
    if not result["success"]:
        rprint(f"[red]{result['error']}: {session_id}[/red]")
        raise typer.Exit(1)
    typer.echo(json.dumps(result["data"], indent=2, ensure_ascii=False))


@app.command()
def scan(
    path: Path = typer.Argument(Path("."), help="Workspace root to scan"),
) -> None:
    """Show what a help request would capture from a workspace."""
    state = scan_workspace(str(path))
    if state is None:
        rprint(f"[red]Workspace {path} is not accessible[/red]")
        raise typer.Exit(1)

    rprint(f"[bold]{state.root_path}[/bold]: {state.total_files} files")
    for ext, count in sorted(state.file_types.items(), key=lambda kv: -kv[1]):
        rprint(f"  {ext}: {count}")
    if state.recent_files:
        rprint("\n[bold]Recently modified:[/bold]")
        for rel in state.recent_files:
            rprint(f"  {rel}")


@app.command()
def activity(
    limit: int = typer.Option(20, help="Number of entries to show"),
    tool: str = typer.Option(None, "--tool", help="Only show calls to this tool"),
    session_id: str = typer.Option(None, "--session", help="Only show this session"),
) -> None:
    """Show recent help requests and session lookups."""
    log = ActivityLog.for_config(Config.load())
    entries = log.recent(limit=limit, tool_name=tool, session_id=session_id)
    if not entries:
        rprint(f"No activity recorded in {log.path}.")
        return
    colors = {"submitted": "green", "found": "green", "failed": "red"}
    for entry in entries:
        outcome = entry.get("outcome", "?")
        color = colors.get(outcome, "yellow")
        line = (
            f"{entry.get('timestamp', '?')}  {entry.get('tool', '?')}  "
            f"[{color}]{outcome}[/{color}]  {entry.get('durationMs', 0)}ms"
        )
        if entry.get("sessionId"):
            line += f"  session {entry['sessionId']}"
        if entry.get("ticketId"):
            line += f"  ticket {entry['ticketId']} ({entry.get('status')})"
        if entry.get("error"):
            line += f"  {escape(str(entry['error']))}"
        rprint(line)


if __name__ == "__main__":
    app()
