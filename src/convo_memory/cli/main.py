"""
Main CLI application for the conversation memory manager.

Provides a command-line interface for:
- Creating conversations and appending messages
- Inspecting context, usage and history
- Compressing, archiving, deleting and purging conversations
- Managing configuration and runtime memory settings
"""

import json
from pathlib import Path
from typing import NoReturn, Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from convo_memory import __version__
from convo_memory.config import Settings, get_default_config_path, load_config
from convo_memory.core.exceptions import ConfigurationError, ConvoMemoryError
from convo_memory.memory_store import MemoryStore
from convo_memory.utils.logging import get_logger, setup_logging

app = typer.Typer(
    name="convo-memory",
    help="Conversation memory manager - store, compress and recall chat context",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
logger = get_logger(__name__)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(
            f"[bold blue]Conversation Memory[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file",
        exists=True,
        dir_okay=False,
    ),
    db: Optional[Path] = typer.Option(
        None,
        "--db",
        help="SQLite database path (overrides configured storage)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable verbose logging",
    ),
) -> None:
    """
    Conversation memory manager.

    Use 'convo-memory --help' for command list.
    """
    try:
        settings = load_config(config_file or get_default_config_path())
    except (ValueError, FileNotFoundError, yaml.YAMLError) as e:
        console.print(f"[red]Invalid configuration:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if db is not None:
        settings.storage.backend = "sqlite"
        settings.storage.database_path = db

    # Commands print their own results; logs stay quiet unless asked for
    setup_logging(settings.logging, level="DEBUG" if verbose else "WARNING")
    logger.debug(f"Using {settings.storage.backend} storage backend")

    ctx.obj = {"settings": settings}


def _open_store(ctx: typer.Context) -> MemoryStore:
    settings: Settings = ctx.obj["settings"]
    return MemoryStore.from_settings(settings)


def _fail(message: str) -> NoReturn:
    console.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(1)


@app.command()
def new(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="Owner of the conversation"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Conversation title"),
    name: Optional[str] = typer.Option(None, "--name", help="User's name"),
    company: Optional[str] = typer.Option(None, "--company", help="User's company"),
    industry: Optional[str] = typer.Option(None, "--industry", help="User's industry"),
    role: Optional[str] = typer.Option(None, "--role", help="User's job title"),
) -> None:
    """
    Create a conversation and print its id.

    Example:
        convo-memory new user-1 --name Amy --company Acme --role CMO
    """
    user_context = {
        "name": name,
        "companyName": company,
        "industry": industry,
        "jobTitle": role,
    }
    store = _open_store(ctx)
    try:
        conversation_id = store.create_conversation(
            user_id, title=title, user_context=user_context)
    finally:
        store.close()

    typer.echo(conversation_id)


@app.command()
def say(
    ctx: typer.Context,
    conversation_id: str = typer.Argument(..., help="Conversation id"),
    role: str = typer.Argument(..., help="user, assistant or system"),
    content: str = typer.Argument(..., help="Message text"),
    research: Optional[str] = typer.Option(
        None,
        "--research",
        help="Record that a research tool of this type produced the message",
    ),
) -> None:
    """Append a message to a conversation."""
    metadata = {"researchData": {"type": research}} if research else None

    store = _open_store(ctx)
    try:
        message = store.add_message(conversation_id, role, content, metadata)
        usage = store.get_memory_usage(conversation_id)
    except (ValueError, ConvoMemoryError) as e:
        _fail(str(e))
    finally:
        store.close()

    console.print(
        f"[green]✓[/green] {message.id} "
        f"[dim]({usage.token_count}/{usage.max_tokens} tokens)[/dim]"
    )


@app.command()
def show(
    ctx: typer.Context,
    conversation_id: str = typer.Argument(..., help="Conversation id"),
) -> None:
    """Show a conversation's messages and compressed context."""
    store = _open_store(ctx)
    try:
        conversation = store.get_conversation(conversation_id)
    finally:
        store.close()

    if conversation is None:
        _fail(f"Conversation not found: {conversation_id}")

    status = "active" if conversation.is_active else "archived"
    console.print(Panel(
        f"[bold]{conversation.title}[/bold]\n"
        f"[dim]{conversation.conversation_id} · {conversation.user_id} · {status}[/dim]",
        border_style="blue",
    ))

    table = Table(show_header=True)
    table.add_column("#", style="dim", width=3)
    table.add_column("Role", style="cyan")
    table.add_column("Content")
    table.add_column("Time", style="dim")

    for i, message in enumerate(conversation.messages, 1):
        content = message.content[:120] + \
            "..." if len(message.content) > 120 else message.content
        table.add_row(
            str(i),
            message.role.value,
            content.replace("\n", " "),
            message.timestamp.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)

    context = conversation.context
    console.print("\n[bold]Context:[/bold]")
    context_table = Table(show_header=False, box=None)
    context_table.add_column("Field", style="dim")
    context_table.add_column("Value")
    context_table.add_row("Budget", context.business_context.budget or "-")
    context_table.add_row("Timeframe", context.business_context.timeframe or "-")
    context_table.add_row("Challenges", str(len(context.business_context.challenges)))
    context_table.add_row("Key insights", str(len(context.key_insights)))
    context_table.add_row("Next actions", str(len(context.next_actions)))
    context_table.add_row("Research", str(len(context.research_conducted)))
    console.print(context_table)


@app.command()
def context(
    ctx: typer.Context,
    conversation_id: str = typer.Argument(..., help="Conversation id"),
) -> None:
    """Print the context block for the next model call."""
    store = _open_store(ctx)
    try:
        text = store.get_context_for_new_message(conversation_id)
    finally:
        store.close()

    if not text:
        _fail(f"Conversation not found: {conversation_id}")

    typer.echo(text, nl=False)


@app.command()
def usage(
    ctx: typer.Context,
    conversation_id: str = typer.Argument(..., help="Conversation id"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
) -> None:
    """Show token usage for a conversation."""
    store = _open_store(ctx)
    try:
        report = store.get_memory_usage(conversation_id)
    finally:
        store.close()

    if as_json:
        typer.echo(json.dumps(report.to_dict()))
        return

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")
    table.add_row("Tokens", str(report.token_count))
    table.add_row("Max tokens", str(report.max_tokens))
    table.add_row("Usage", f"{report.usage_percentage:.1f}%")
    table.add_row(
        "Compression",
        "[yellow]advised[/yellow]" if report.compression_needed else "not needed",
    )
    console.print(table)


@app.command("list")
def list_conversations(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="Owner to list"),
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum results", min=1),
    active_only: bool = typer.Option(False, "--active-only", help="Hide archived conversations"),
) -> None:
    """List a user's conversations, most recent first."""
    store = _open_store(ctx)
    try:
        conversations = store.get_user_conversations(
            user_id, limit=limit, include_archived=not active_only)
    finally:
        store.close()

    if not conversations:
        console.print("[yellow]No conversations found[/yellow]")
        return

    table = Table(
        title=f"Conversations ({len(conversations)} found)", show_header=True)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="cyan")
    table.add_column("Messages", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Status")
    table.add_column("Updated", style="dim")

    for conversation in conversations:
        status_style = "green" if conversation.is_active else "yellow"
        status = "active" if conversation.is_active else "archived"
        table.add_row(
            conversation.conversation_id,
            conversation.title,
            str(conversation.message_count),
            str(conversation.token_count),
            f"[{status_style}]{status}[/{status_style}]",
            conversation.last_updated.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@app.command()
def compress(
    ctx: typer.Context,
    conversation_id: str = typer.Argument(..., help="Conversation id"),
) -> None:
    """Fold older messages into the conversation summary."""
    store = _open_store(ctx)
    try:
        compressed = store.compress_conversation(conversation_id)
    except ConvoMemoryError as e:
        _fail(str(e))
    finally:
        store.close()

    if compressed:
        console.print("[green]✓[/green] Conversation compressed")
    else:
        console.print("[dim]Nothing to compress[/dim]")


@app.command()
def archive(
    ctx: typer.Context,
    conversation_id: str = typer.Argument(..., help="Conversation id"),
) -> None:
    """Mark a conversation inactive."""
    store = _open_store(ctx)
    try:
        store.archive_conversation(conversation_id)
    except ConvoMemoryError as e:
        _fail(str(e))
    finally:
        store.close()

    console.print("[green]✓[/green] Conversation archived")


@app.command()
def delete(
    ctx: typer.Context,
    conversation_id: str = typer.Argument(..., help="Conversation id"),
    user_id: str = typer.Argument(..., help="Owner of the conversation"),
) -> None:
    """Delete a conversation and its persisted copy."""
    store = _open_store(ctx)
    try:
        store.delete_conversation(conversation_id, user_id)
    finally:
        store.close()

    console.print("[green]✓[/green] Conversation deleted")


@app.command()
def purge(ctx: typer.Context) -> None:
    """Delete conversations idle longer than the retention period."""
    store = _open_store(ctx)
    try:
        count = store.purge_expired()
    finally:
        store.close()

    console.print(f"[green]✓[/green] Purged {count} conversation(s)")


@app.command()
def settings(
    ctx: typer.Context,
    assignments: Optional[list[str]] = typer.Option(
        None,
        "--set",
        help="Update a memory setting, e.g. --set compression_threshold=4000",
    ),
) -> None:
    """
    Show or update persisted memory settings.

    Example:
        convo-memory settings --set auto_compress=false
    """
    changes = {}
    for assignment in assignments or []:
        key, sep, value = assignment.partition("=")
        if not sep:
            _fail(f"Expected KEY=VALUE, got: {assignment}")
        changes[key.strip()] = value.strip()

    store = _open_store(ctx)
    try:
        if changes:
            current = store.update_settings(**changes)
        else:
            current = store.get_settings()
    except ConfigurationError as e:
        _fail(str(e))
    finally:
        store.close()

    table = Table(show_header=False, box=None)
    table.add_column("Setting", style="dim")
    table.add_column("Value")
    for key, value in current.model_dump().items():
        table.add_row(key, str(value))
    console.print(table)


@app.command()
def config(
    ctx: typer.Context,
    show: bool = typer.Option(
        False,
        "--show",
        "-s",
        help="Show current configuration",
    ),
    init: bool = typer.Option(
        False,
        "--init",
        help="Create default configuration file",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output path for config file",
    ),
) -> None:
    """
    Configuration management.

    Examples:
        convo-memory config --show
        convo-memory config --init --output ./my-config.yaml
    """
    if init:
        _init_config(output)
    elif show:
        _show_config(ctx.obj["settings"])
    else:
        console.print(
            "Use --show to view config or --init to create default config")


def _show_config(settings: Settings) -> None:
    """Show current configuration."""
    config_dict = settings.model_dump(mode="json")

    console.print(Panel(
        "[bold]Current Configuration[/bold]",
        border_style="blue",
    ))

    for section, values in config_dict.items():
        console.print(f"\n[bold cyan]{section}:[/bold cyan]")
        if isinstance(values, dict):
            for key, value in values.items():
                console.print(f"  {key}: [dim]{value}[/dim]")
        else:
            console.print(f"  {values}")


def _init_config(output: Optional[Path]) -> None:
    """Create default configuration file."""
    config_dict = Settings().model_dump(mode="json")

    output_path = output or Path("config.yaml")

    if output_path.exists():
        if not typer.confirm(f"File {output_path} exists. Overwrite?"):
            raise typer.Exit(0)

    with open(output_path, "w", encoding="utf-8") as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)

    console.print(f"[green]✓[/green] Configuration saved to: {output_path}")


if __name__ == "__main__":
    app()
