"""Library commands: list, push, pull, delete against the active backend."""

from __future__ import annotations

import asyncio
import signal
from contextlib import suppress
from datetime import datetime
from pathlib import Path

import click
from rich.table import Table

from .. import TTUSYNC_HOME
from ..errors import TtuSyncError
from ..models import DeleteOutcome, RawResource
from ._common import HOME_HELP, CliContext, console, open_context, run


def _fmt_ms(value: int) -> str:
    if not value:
        return "-"
    return datetime.fromtimestamp(value / 1000).strftime("%Y-%m-%d %H:%M")


async def _with_handler(ctx: CliContext, operation):
    handler = ctx.handler()
    try:
        return await operation(handler)
    finally:
        await handler.aclose()


def _run_or_exit(ctx: CliContext, operation):
    try:
        return run(_with_handler(ctx, operation))
    except TtuSyncError as exc:
        console.print(f"\n  [red]{exc}[/]\n")
        raise SystemExit(1)


def register_library_commands(main: click.Group) -> None:
    """Register the library command group."""

    @main.group()
    def library():
        """Books on the selected backend.

        Operates on whichever backend `ttusync source use` selected.
        """

    @library.command("list")
    @click.option("--home", default=TTUSYNC_HOME, type=click.Path(), help=HOME_HELP)
    def library_list(home: str):
        """List the books the backend holds."""
        ctx = open_context(home)
        books = _run_or_exit(ctx, lambda handler: handler.get_book_list())

        if not books:
            console.print("\n  [dim]No books found.[/]\n")
            return

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2),
                      title=f"Books on {ctx.registry.storage_source.value} ({len(books)})")
        table.add_column("ID", style="cyan")
        table.add_column("Title")
        table.add_column("Size", justify="right", style="dim")
        table.add_column("Modified", style="dim")
        for book in sorted(books, key=lambda b: b.title.lower()):
            table.add_row(book.id, book.title, f"{book.size / 1024:.0f} KB", _fmt_ms(book.last_book_modified))
        console.print(table)
        console.print()

    @library.command("push")
    @click.argument("book_file", type=click.Path(exists=True, dir_okay=False))
    @click.option("--home", default=TTUSYNC_HOME, type=click.Path(), help=HOME_HELP)
    def library_push(book_file: str, home: str):
        """Upload an ebook file to the backend."""
        ctx = open_context(home)
        path = Path(book_file)
        resource = RawResource(
            name=path.name,
            data=path.read_bytes(),
            last_modified=int(path.stat().st_mtime * 1000),
        )
        book_number = _run_or_exit(ctx, lambda handler: handler.save_book(resource))
        console.print(f"\n  [green]Uploaded[/] {path.name} (id {book_number})\n")

    @library.command("pull")
    @click.argument("book_id")
    @click.option("--home", default=TTUSYNC_HOME, type=click.Path(), help=HOME_HELP)
    @click.option("--output", "-o", default=".", type=click.Path(file_okay=False),
                  help="Directory to write the book to.")
    def library_pull(book_id: str, home: str, output: str):
        """Download a book from the backend."""
        ctx = open_context(home)
        book = _run_or_exit(ctx, lambda handler: handler.get_book(book_id))
        if book is None:
            console.print(f"\n  [red]No book {book_id} on {ctx.registry.storage_source.value}[/]\n")
            raise SystemExit(1)

        out_dir = Path(output).expanduser()
        out_dir.mkdir(parents=True, exist_ok=True)
        if isinstance(book, RawResource):
            target = out_dir / book.name
            target.write_bytes(book.data)
        else:
            target = out_dir / f"{book_id}.json"
            target.write_text(book.model_dump_json(indent=2), encoding="utf-8")
        console.print(f"\n  [green]Saved[/] [cyan]{target}[/]\n")

    @library.command("delete")
    @click.argument("book_ids", nargs=-1, required=True)
    @click.option("--home", default=TTUSYNC_HOME, type=click.Path(), help=HOME_HELP)
    @click.option("--keep-statistics", is_flag=True, help="Keep reading statistics of deleted books.")
    @click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
    def library_delete(book_ids: tuple[str, ...], home: str, keep_statistics: bool, yes: bool):
        """Delete books and all their data from the backend.

        Ctrl-C stops after the book currently being deleted.
        """
        ctx = open_context(home)
        if not yes:
            click.confirm(
                f"Delete {len(book_ids)} book(s) from {ctx.registry.storage_source.value}?",
                abort=True,
            )

        async def delete(handler):
            cancel = asyncio.Event()
            loop = asyncio.get_running_loop()
            with suppress(NotImplementedError, ValueError):
                loop.add_signal_handler(signal.SIGINT, cancel.set)
            try:
                return await handler.delete_book_data(
                    list(book_ids), cancel_signal=cancel, keep_local_statistics=keep_statistics
                )
            finally:
                with suppress(NotImplementedError, ValueError):
                    loop.remove_signal_handler(signal.SIGINT)

        result = _run_or_exit(ctx, delete)

        style = {
            DeleteOutcome.DELETED: "[green]deleted[/]",
            DeleteOutcome.SKIPPED: "[dim]not found[/]",
            DeleteOutcome.FAILED: "[red]failed[/]",
        }
        console.print()
        for book_id in book_ids:
            outcome = result.outcomes.get(book_id)
            if outcome is None:
                console.print(f"  {book_id}: [yellow]not processed[/]")
                continue
            line = f"  {book_id}: {style[outcome]}"
            if book_id in result.errors:
                line += f" [dim]({result.errors[book_id]})[/]"
            console.print(line)
        if result.cancelled:
            console.print("\n  [yellow]Cancelled.[/]")
        console.print()
        if result.failed:
            raise SystemExit(1)
