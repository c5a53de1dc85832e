"""chatmemo CLI - inspect, search, back up and maintain a conversation store."""

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer

from chatmemo import __version__
from chatmemo.config import get_settings
from chatmemo.exceptions import ChatMemoError
from chatmemo.logging import setup_logging
from chatmemo.store import ConversationStore

app = typer.Typer(
    name="chatmemo",
    help="chatmemo - local store and full-text search for AI chat history.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"chatmemo {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    data_dir: Optional[Path] = typer.Option(
        None,
        "--data-dir",
        "-d",
        help="Directory holding the database (default: from config)",
    ),
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """chatmemo - local store and full-text search for AI chat history."""
    settings = get_settings()
    setup_logging(settings.log_level, json_output=settings.log_json)
    ctx.obj = {"data_dir": data_dir}


@contextmanager
def _open_store(ctx: typer.Context) -> Iterator[ConversationStore]:
    """Open the store for one command; storage errors exit with code 1."""
    try:
        with ConversationStore(data_dir=ctx.obj["data_dir"]) as store:
            yield store
    except ChatMemoError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _output(data: object, as_json: bool, human_message: str) -> None:
    """Output data as JSON or human-readable format."""
    if as_json:
        typer.echo(json.dumps(data, ensure_ascii=False, indent=2))
    else:
        typer.echo(human_message)


@app.command()
def stats(
    ctx: typer.Context,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output in JSON format"),
) -> None:
    """Show conversation/message counts and database size."""
    with _open_store(ctx) as store:
        storage = store.get_storage_stats()
    _output(
        storage.model_dump(),
        output_json,
        f"Conversations: {storage.conversation_count}\n"
        f"Messages:      {storage.message_count}\n"
        f"Size:          {storage.size_in_mb} MB ({storage.size_in_bytes} bytes)",
    )


@app.command()
def platforms(
    ctx: typer.Context,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output in JSON format"),
) -> None:
    """Show how many conversations each platform has."""
    with _open_store(ctx) as store:
        counts = store.get_conversation_count_by_platform()
    lines = [f"{platform:<16} {count}" for platform, count in sorted(counts.items())]
    _output(counts, output_json, "\n".join(lines) or "No conversations stored.")


@app.command()
def recent(
    ctx: typer.Context,
    platform: Optional[str] = typer.Option(None, "--platform", "-p", help="Only this platform"),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Maximum conversations to list"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output in JSON format"),
) -> None:
    """List the most recently updated conversations."""
    with _open_store(ctx) as store:
        if platform:
            conversations = store.get_conversations_by_platform(platform, limit)
        else:
            conversations = store.get_recent_conversations(limit)
    lines = [
        f"{c.updated_at or '-':<26} {c.platform:<10} {c.message_count:>4}  {c.title or '(untitled)'}  [{c.id}]"
        for c in conversations
    ]
    _output(
        [c.model_dump() for c in conversations],
        output_json,
        "\n".join(lines) or "No conversations stored.",
    )


@app.command()
def show(
    ctx: typer.Context,
    conversation_id: Optional[str] = typer.Argument(None, help="Conversation ID"),
    url: Optional[str] = typer.Option(None, "--url", "-u", help="Look up by source URL instead"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output in JSON format"),
) -> None:
    """Print a conversation with its messages."""
    if not conversation_id and not url:
        typer.echo("Error: give a conversation ID or --url", err=True)
        raise typer.Exit(2)

    with _open_store(ctx) as store:
        conversation = store.find_by_url(url) if url else store.get_conversation(conversation_id)

    if conversation is None:
        _output({"status": "not_found"}, output_json, "Conversation not found.")
        raise typer.Exit(1)

    lines = [f"{conversation.title or '(untitled)'} [{conversation.platform}]", ""]
    for message in conversation.messages:
        lines.append(f"{message.sender.upper()}: {message.content}")
        lines.append("")
    _output(conversation.model_dump(), output_json, "\n".join(lines).rstrip())


@app.command()
def search(
    ctx: typer.Context,
    keyword: str = typer.Argument(..., help="Text to search for"),
    platform: Optional[list[str]] = typer.Option(None, "--platform", "-p", help="Restrict to platform (repeatable)"),
    sender: Optional[str] = typer.Option(None, "--sender", "-s", help="Restrict to sender, e.g. user"),
    start: Optional[str] = typer.Option(None, "--from", help="Earliest message timestamp (ISO-8601)"),
    end: Optional[str] = typer.Option(None, "--to", help="Latest message timestamp (ISO-8601)"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, help="Maximum results (default: from config)"),
    offset: int = typer.Option(0, "--offset", min=0, help="Results to skip"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output in JSON format"),
) -> None:
    """Full-text search across all stored messages."""
    filters: dict = {}
    if platform:
        filters["platform"] = platform
    if sender:
        filters["sender"] = sender
    if start or end:
        # Open ends: "" sorts before and "9999" after any ISO timestamp
        filters["date_range"] = {"start": start or "", "end": end or "9999"}

    query = {
        "keyword": keyword,
        "filters": filters,
        "options": {"limit": limit or get_settings().search_default_limit, "offset": offset},
    }

    with _open_store(ctx) as store:
        outcome = store.advanced_search(query)

    if not outcome.ok:
        _output({"status": "error", "message": outcome.error}, output_json, f"Search failed: {outcome.error}")
        raise typer.Exit(1)

    lines = [
        f"[{hit.platform}] {hit.title or '(untitled)'} - {hit.sender} @ {hit.created_at}\n    {hit.snippet}"
        for hit in outcome.results
    ]
    _output(
        [hit.model_dump() for hit in outcome.results],
        output_json,
        "\n".join(lines) or "No matches.",
    )


@app.command(name="export")
def export_command(
    ctx: typer.Context,
    output: Path = typer.Argument(..., help="JSON file to write"),
) -> None:
    """Write every conversation with its messages to a JSON file."""
    with _open_store(ctx) as store:
        conversations = store.export_conversations()
    output.write_text(
        json.dumps([c.model_dump() for c in conversations], ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    typer.echo(f"Exported {len(conversations)} conversations to {output}")


@app.command(name="import")
def import_command(
    ctx: typer.Context,
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file from 'export'"),
) -> None:
    """Load conversations from a JSON export (existing IDs are updated)."""
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        typer.echo(f"Error: cannot read {source}: {e}", err=True)
        raise typer.Exit(1)

    if not isinstance(payload, list):
        typer.echo("Error: export file must contain a JSON list", err=True)
        raise typer.Exit(1)

    with _open_store(ctx) as store:
        try:
            count = store.import_conversations(payload)
        except (ChatMemoError, ValueError) as e:
            typer.echo(f"Error: import failed: {e}", err=True)
            raise typer.Exit(1)
    typer.echo(f"Imported {count} conversations from {source}")


@app.command()
def reindex(ctx: typer.Context) -> None:
    """Rebuild the full-text index from current message content."""
    with _open_store(ctx) as store:
        count = store.reindex_messages()
    typer.echo(f"Re-indexed {count} messages")


@app.command()
def clear(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Delete every conversation and message."""
    if not yes:
        typer.confirm("Delete ALL stored conversations?", abort=True)
    with _open_store(ctx) as store:
        store.clear_all_data()
    typer.echo("All data cleared.")


if __name__ == "__main__":
    app()
