"""CLI interface for tokenbook."""

import sys
from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from tabulate import tabulate

from tokenbook import __version__
from tokenbook.core.bulk import BulkSummary
from tokenbook.core.controller import StatusLevel, TokenBook
from tokenbook.core.gateway import get_config, get_gateway, save_config
from tokenbook.core.gateway.factory import GATEWAY_TYPES
from tokenbook.core.policy import capabilities_for
from tokenbook.core.render import TableView, mask_value
from tokenbook.core.session import Role, SessionContext, SessionStore
from tokenbook.core.token import Tag, TokenStatus
from tokenbook.core.view import DateRange, SortOrder
from tokenbook.exceptions import AuthenticationError
from tokenbook.transfer import export_filename
from tokenbook.utils.logging import configure_logging
from tokenbook.utils.progress import bulk_progress, progress_spinner

console = Console(stderr=True)
stdout_console = Console()

TAG_CHOICES = [tag.value for tag in Tag]
DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M"]

EXPIRY_CHOICES = {
    "expired": TokenStatus.EXPIRED,
    "expiring": TokenStatus.EXPIRING_SOON,
    "active": TokenStatus.ACTIVE,
}


def _parse_tag(value: str | None) -> Tag | None:
    if not value or value == "none":
        return None
    return Tag(value)


def _local(value: datetime | None) -> datetime | None:
    """click.DateTime yields naive datetimes; they are local wall-clock times."""
    return value.astimezone() if value else None


def filter_options(func):
    """Options shared by every command that works on the filtered view."""
    options = [
        click.option("--search", default="", help="Substring of name or value"),
        click.option(
            "--range",
            "date_range",
            type=click.Choice([r.value for r in DateRange]),
            default=DateRange.ALL.value,
            help="Only tokens added within this range",
        ),
        click.option(
            "--tag", "tag_filter", type=click.Choice(TAG_CHOICES), help="Exact tag"
        ),
        click.option(
            "--expiry", type=click.Choice(list(EXPIRY_CHOICES)), help="Expiry bucket"
        ),
        click.option(
            "--sort",
            type=click.Choice([s.value for s in SortOrder]),
            default=SortOrder.NEWEST.value,
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _apply_filters(
    book: TokenBook,
    search: str,
    date_range: str,
    tag_filter: str | None,
    expiry: str | None,
    sort: str,
) -> None:
    book.set_filters(
        search=search,
        date_range=DateRange(date_range),
        tag=_parse_tag(tag_filter),
        expiry=EXPIRY_CHOICES.get(expiry) if expiry else None,
        sort=SortOrder(sort),
    )


def _print_status(book: TokenBook) -> None:
    status = book.state.status
    if status is None:
        return
    if status.level == StatusLevel.ERROR:
        console.print(f"[red]✗ {escape(status.text)}[/red]")
    elif status.level == StatusLevel.SUCCESS:
        stdout_console.print(f"[green]✓ {escape(status.text)}[/green]")
    else:
        stdout_console.print(f"[cyan]{escape(status.text)}[/cyan]")


def _token_not_found(token_id: str) -> None:
    console.print(f"[red]✗ Token not found:[/red] [cyan]{escape(token_id)}[/cyan]")


def _finish(book: TokenBook, ok: bool) -> None:
    """Print the status line and exit non-zero on failure or sign-out."""
    _print_status(book)
    if not book.signed_in:
        console.print("[yellow]Run[/yellow] [cyan]tokenbook login[/cyan]")
        sys.exit(1)
    if not ok:
        sys.exit(1)


def _open_book() -> TokenBook:
    session_store = SessionStore()
    session = session_store.load()
    if session is None:
        console.print(
            "[red]Not signed in. Use[/red] [cyan]tokenbook login[/cyan] "
            "[red]first.[/red]"
        )
        sys.exit(1)

    try:
        gateway = get_gateway(session)
    except (ValueError, AuthenticationError) as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)

    book = TokenBook(gateway, session, session_store=session_store)
    with progress_spinner("Loading tokens"):
        ok = book.refresh()
    if not ok:
        _finish(book, False)
    return book


def _run_bulk(book: TokenBook, label: str, action) -> BulkSummary | None:
    with bulk_progress(label) as advance:
        book.bulk.on_progress = advance
        try:
            summary = action()
        finally:
            book.bulk.on_progress = None
    _finish(book, summary is not None and summary.aborted is None)
    return summary


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose: bool):
    """tokenbook - Role-gated token bookkeeping."""
    level = "DEBUG" if verbose else str(get_config().get("log_level", "WARNING"))
    configure_logging(level)


# Session commands
@cli.command()
@click.option("--name", "display_name", required=True, help="Operator display name")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    required=True,
    help="Role granted by the login service",
)
@click.option(
    "--credential",
    prompt=True,
    hide_input=True,
    help="Bearer credential issued by the login service",
)
def login(display_name: str, role: str, credential: str):
    """Store a session issued by the login service."""
    session = SessionContext(
        role=Role(role), display_name=display_name, credential=credential.strip()
    )
    SessionStore().save(session)
    stdout_console.print(
        f"[green]✓ Signed in as[/green] [cyan]{escape(display_name)}[/cyan] "
        f"[dim]({session.role_label})[/dim]"
    )


@cli.command()
def logout():
    """Sign out and forget the stored session."""
    session_store = SessionStore()
    session = session_store.load()
    if session is None:
        console.print("[yellow]Not signed in.[/yellow]")
        return

    try:
        gateway = get_gateway(session)
    except ValueError:
        session_store.clear()
        stdout_console.print("[green]✓ Signed out[/green]")
        return

    book = TokenBook(gateway, session, session_store=session_store)
    book.sign_out()
    gateway.close()
    _print_status(book)


@cli.command()
def whoami():
    """Show the signed-in operator and their capabilities."""
    session = SessionStore().load()
    if session is None:
        console.print("[yellow]Not signed in.[/yellow]")
        sys.exit(1)

    stdout_console.print(f"[bold cyan]{escape(session.display_name)}[/bold cyan]")
    stdout_console.print(f"[cyan]Role:[/cyan] {session.role_label}")
    for label, allowed in _capability_lines(session):
        mark = "[green]✓[/green]" if allowed else "[red]✗[/red]"
        stdout_console.print(f"  {mark} {label}")


def _capability_lines(session: SessionContext) -> list[tuple[str, bool]]:
    caps = capabilities_for(session.role)
    return [
        ("Delete tokens", caps.can_delete),
        ("Bulk delete", caps.can_bulk_delete),
        ("Delete by pasted list", caps.can_delete_by_search),
        ("Choose tags", caps.can_edit_tag),
        ("Bulk tag update", caps.can_bulk_tag),
        ("Bulk date update", caps.can_bulk_date),
    ]


# Token commands
@cli.command("list")
@filter_options
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["rich", "simple", "plain"]),
    default="rich",
    help="Output format (rich=styled, simple=tabulate, plain=no borders)",
)
@click.option("--reveal", multiple=True, help="Show the full value of a token id")
def list_tokens(
    search: str,
    date_range: str,
    tag_filter: str | None,
    expiry: str | None,
    sort: str,
    output_format: str,
    reveal: tuple,
):
    """List tokens with filters and sorting."""
    book = _open_book()
    _apply_filters(book, search, date_range, tag_filter, expiry, sort)
    for token_id in reveal:
        book.toggle_reveal(token_id)

    table = book.render()
    if table.empty:
        console.print(
            "[yellow]No tokens yet. Use[/yellow] "
            "[cyan]tokenbook add[/cyan] [yellow]to get started.[/yellow]"
        )
        return
    if table.no_results:
        console.print("[yellow]No tokens found matching your filters[/yellow]")
        _print_stats(table, output_format)
        return

    if output_format == "rich":
        _print_rich_table(table)
    else:
        tablefmt = "simple" if output_format == "simple" else "plain"
        _print_tabulate_table(table, tablefmt)
    _print_stats(table, output_format)


def _print_rich_table(table: TableView) -> None:
    """Print tokens as rich styled table."""
    status_color = {
        TokenStatus.ACTIVE: "dim",
        TokenStatus.EXPIRING_SOON: "yellow",
        TokenStatus.EXPIRED: "red",
    }

    title = "[bold]Tokens[/bold]"
    if table.user:
        title += f" [dim]({escape(table.user)}, {table.role_label})[/dim]"

    rich_table = Table(title=title, show_header=True, header_style="bold")
    rich_table.add_column("ID", style="dim", no_wrap=True)
    rich_table.add_column("Name", style="cyan", no_wrap=True)
    rich_table.add_column("Token", style="magenta")
    rich_table.add_column("Tag")
    rich_table.add_column("Added On", style="blue")
    rich_table.add_column("Age")

    for row in table.rows:
        color = status_color[row.status]
        rich_table.add_row(
            escape(row.id),
            escape(row.name),
            escape(row.value),
            row.tag,
            row.added_on,
            f"[{color}]{row.age_note}[/{color}]",
        )

    stdout_console.print(rich_table)


def _print_tabulate_table(table: TableView, tablefmt: str) -> None:
    """Print tokens as tabulate table."""
    table_data = [
        [row.id, row.name, row.value, row.tag, row.added_on, row.age_note]
        for row in table.rows
    ]
    headers = ["ID", "Name", "Token", "Tag", "Added On", "Age"]
    print(tabulate(table_data, headers=headers, tablefmt=tablefmt))


def _print_stats(table: TableView, output_format: str) -> None:
    lines = []
    if table.show_filter_stats:
        lines.append(f"Showing {table.stats.filtered} of {table.stats.total} tokens")
    else:
        lines.append(f"{table.stats.total} tokens")
    if table.show_expiry_stats:
        lines.append(
            f"{table.stats.expired} expired, "
            f"{table.stats.expiring_soon} expiring soon"
        )

    if output_format == "rich":
        for line in lines:
            stdout_console.print(f"[dim]{line}[/dim]")
    else:
        print()
        for line in lines:
            print(line)


@cli.command()
@click.argument("name")
@click.option("--value", prompt=True, hide_input=True, help="Token value")
@click.option("--tag", type=click.Choice(TAG_CHOICES + ["none"]), default="none")
@click.option(
    "--date",
    "created_at",
    type=click.DateTime(formats=DATE_FORMATS),
    help="When the token was added (defaults to now)",
)
def add(name: str, value: str, tag: str, created_at: datetime | None):
    """Add a new token."""
    book = _open_book()
    if book.capabilities.tag_locked and _parse_tag(tag) not in (
        None,
        book.capabilities.forced_tag,
    ):
        console.print(
            f"[yellow]Tag is auto-assigned for your role: "
            f"{book.capabilities.forced_tag.value}[/yellow]"
        )

    with progress_spinner("Adding token"):
        token = book.add_token(name, value, _parse_tag(tag), _local(created_at))

    _finish(book, token is not None)
    stdout_console.print(f"  [cyan]ID:[/cyan] {escape(token.id)}")
    stdout_console.print(f"  [cyan]Name:[/cyan] {escape(token.name)}")
    stdout_console.print(f"  [cyan]Tag:[/cyan] {token.tag.value if token.tag else '-'}")


@cli.command()
@click.argument("token_id")
@click.option("--name", help="New name")
@click.option("--value", help="New token value")
@click.option("--tag", type=click.Choice(TAG_CHOICES + ["none"]), help="New tag")
@click.option(
    "--date", "created_at", type=click.DateTime(formats=DATE_FORMATS), help="New date"
)
def edit(
    token_id: str,
    name: str | None,
    value: str | None,
    tag: str | None,
    created_at: datetime | None,
):
    """Edit a token. Fields not given keep their current value."""
    book = _open_book()
    token = book.state.store.get(token_id)
    if token is None:
        _token_not_found(token_id)
        sys.exit(1)

    if name is None and value is None and tag is None and created_at is None:
        console.print("[yellow]No changes specified. Use --help for options.[/yellow]")
        return

    with progress_spinner(f"Updating {token_id}"):
        updated = book.edit_token(
            token_id,
            name=name if name is not None else token.name,
            value=value if value is not None else token.value,
            tag=_parse_tag(tag) if tag is not None else token.tag,
            created_at=_local(created_at) or token.created_at,
        )
    _finish(book, updated is not None)


@cli.command()
@click.argument("token_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
def delete(token_id: str, yes: bool):
    """Delete a single token (Super Admin only)."""
    book = _open_book()
    token = book.state.store.get(token_id)
    if token is None:
        _token_not_found(token_id)
        sys.exit(1)

    if book.capabilities.can_delete and not yes:
        click.confirm(f"Delete token '{token.name}'?", abort=True)

    with progress_spinner(f"Deleting {token_id}"):
        ok = book.delete_token(token_id)
    _finish(book, ok)


# Bulk commands
@cli.group()
def bulk():
    """Act on several tokens at once.

    Targets are chosen with --id (repeatable) and/or --all-visible, which
    selects every token the filter options let through.
    """
    pass


def target_options(func):
    func = click.option(
        "--all-visible", is_flag=True, help="Select every token in the filtered view"
    )(func)
    func = click.option("--id", "ids", multiple=True, help="Token id to select")(func)
    return filter_options(func)


def _select_targets(
    book: TokenBook,
    ids: tuple,
    all_visible: bool,
    search: str,
    date_range: str,
    tag_filter: str | None,
    expiry: str | None,
    sort: str,
) -> int:
    _apply_filters(book, search, date_range, tag_filter, expiry, sort)
    if all_visible:
        book.set_select_all(True)
    for token_id in ids:
        if token_id in book.state.selection:
            continue
        if not book.toggle_selection(token_id):
            console.print(
                f"[yellow]Unknown token id skipped: {escape(token_id)}[/yellow]"
            )

    count = len(book.state.selection)
    if count == 0:
        console.print("[red]No tokens selected! Use --id or --all-visible.[/red]")
        sys.exit(1)
    return count


@bulk.command("delete")
@target_options
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
def bulk_delete(ids, all_visible, search, date_range, tag_filter, expiry, sort, yes):
    """Delete the selected tokens (Super Admin only)."""
    book = _open_book()
    count = _select_targets(
        book, ids, all_visible, search, date_range, tag_filter, expiry, sort
    )
    if book.capabilities.can_bulk_delete and not yes:
        click.confirm(f"Delete {count} selected tokens?", abort=True)
    _run_bulk(book, "Deleting tokens", book.bulk_delete_selected)


@bulk.command("tag")
@click.argument("new_tag", type=click.Choice(TAG_CHOICES + ["none"]))
@target_options
def bulk_tag(new_tag, ids, all_visible, search, date_range, tag_filter, expiry, sort):
    """Set the tag of the selected tokens (Super Admin only)."""
    book = _open_book()
    _select_targets(
        book, ids, all_visible, search, date_range, tag_filter, expiry, sort
    )
    _run_bulk(book, "Updating tags", lambda: book.bulk_update_tag(_parse_tag(new_tag)))


@bulk.command("date")
@click.argument("new_date", type=click.DateTime(formats=DATE_FORMATS))
@target_options
def bulk_date(new_date, ids, all_visible, search, date_range, tag_filter, expiry, sort):
    """Set the added-on date of the selected tokens."""
    book = _open_book()
    _select_targets(
        book, ids, all_visible, search, date_range, tag_filter, expiry, sort
    )
    _run_bulk(book, "Updating dates", lambda: book.bulk_update_date(_local(new_date)))


@cli.command("delete-matching")
@click.argument("source", type=click.File("r"))
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
def delete_matching(source, yes: bool):
    """Delete tokens whose values appear in a pasted list (Super Admin only).

    SOURCE holds values separated by newlines, spaces or commas, or chat log
    lines; use - for stdin.
    """
    book = _open_book()
    if not book.capabilities.can_delete_by_search:
        book.confirm_bulk_delete()
        _finish(book, False)

    matches = book.find_tokens_to_delete(source.read())
    if not matches:
        _finish(book, False)

    _print_status(book)
    for token in matches:
        stdout_console.print(
            f"  [red]•[/red] [cyan]{escape(token.name)}[/cyan] "
            f"[dim]{escape(token.value)}[/dim]"
        )

    if not yes:
        click.confirm(
            f"Delete {len(matches)} tokens? This action cannot be undone!", abort=True
        )
    _run_bulk(book, "Deleting tokens", book.confirm_bulk_delete)


@cli.command("import-messages")
@click.argument("source", type=click.File("r"))
@click.option("--tag", type=click.Choice(TAG_CHOICES + ["none"]), default="none")
@click.option("--dry-run", is_flag=True, help="Only show what would be imported")
def import_messages(source, tag: str, dry_run: bool):
    """Import tokens from a chat log: [MM/DD/YYYY HH:MM AM] Name: token"""
    book = _open_book()
    candidates = book.parse_messages(source.read())
    if not candidates:
        _finish(book, False)

    _print_status(book)
    rows = [
        [c.name, mask_value(c.value), c.created_at.strftime("%Y-%m-%d %H:%M")]
        for c in candidates
    ]
    print(tabulate(rows, headers=["Name", "Token", "Sent"], tablefmt="simple"))

    if dry_run:
        return
    _run_bulk(
        book,
        "Importing tokens",
        lambda: book.import_parsed_messages(_parse_tag(tag)),
    )


@cli.command("import")
@click.argument("source", type=click.File("r", encoding="utf-8-sig"))
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
def import_tokens(source, yes: bool):
    """Import tokens from a JSON export."""
    book = _open_book()
    text = source.read()
    if not yes:
        click.confirm(
            "Import tokens? They will be added to your existing tokens.", abort=True
        )
    _run_bulk(book, "Importing tokens", lambda: book.import_json(text))


@cli.command()
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["csv", "json"]),
    default="csv",
    help="File format",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, allow_dash=True),
    help="Output file (default tokens-backup-<date>.<format>, - for stdout)",
)
def export(fmt: str, output: str | None):
    """Export every token to CSV or JSON."""
    book = _open_book()
    data = book.export(fmt)

    if output == "-":
        click.echo(data, nl=False)
        return

    path = Path(output or export_filename(fmt))
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(data)
    _print_status(book)
    stdout_console.print(f"  [dim]→[/dim] {path}")


# Configuration commands
@cli.group()
def config():
    """Manage tokenbook configuration."""
    pass


@config.command("show")
def config_show():
    """Show current configuration."""
    current = get_config()
    gateway_type = current.get("gateway", "http")

    stdout_console.print("[bold]Configuration[/bold]\n")
    stdout_console.print(f"[cyan]Gateway:[/cyan] {gateway_type}")
    if gateway_type == "http":
        http_config = current.get("http", {})
        stdout_console.print(f"[cyan]Base URL:[/cyan] {http_config.get('base_url')}")
        stdout_console.print(f"[cyan]Timeout:[/cyan] {http_config.get('timeout')}s")
    elif gateway_type == "local":
        local_config = current.get("local", {})
        data_dir = local_config.get("data_dir")
        stdout_console.print(f"[cyan]Data directory:[/cyan] {data_dir}")
    stdout_console.print(f"[cyan]Log level:[/cyan] {current.get('log_level')}")


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str):
    """Set a configuration value.

    Examples:
        tokenbook config set gateway local
        tokenbook config set http.base_url https://tokens.example.com
    """
    current = get_config()

    if key == "gateway" and value not in GATEWAY_TYPES:
        console.print(f"[red]Unknown gateway: {value}. Use one of: http, local[/red]")
        sys.exit(1)

    section, _, name = key.rpartition(".")
    target = current
    if section:
        if not isinstance(current.get(section), dict):
            console.print(f"[red]Unknown config section: {section}[/red]")
            sys.exit(1)
        target = current[section]

    parsed: str | float = value
    if name == "timeout":
        try:
            parsed = float(value)
        except ValueError:
            console.print(f"[red]Timeout must be a number: {value}[/red]")
            sys.exit(1)

    target[name] = parsed
    save_config(current)
    stdout_console.print(f"[green]✓ {key} set to:[/green] {value}")


if __name__ == "__main__":
    cli()
