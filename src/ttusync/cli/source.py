"""Storage source commands: list, add-webdav, add-fs, remove, use."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click
from rich.table import Table

from .. import TTUSYNC_HOME
from ..errors import TtuSyncError
from ..storage.models import FsHandle, StorageKey, WebDavContext
from ._common import HOME_HELP, console, open_context, run

_KIND_CHOICE = click.Choice([k.value for k in StorageKey])


def register_source_commands(main: click.Group) -> None:
    """Register the source command group."""

    @main.group()
    def source():
        """Storage sources -- named backends and their credentials.

        Credentials are encrypted with a secret of your choice. The secret
        can be kept in the system keyring so unlocking never prompts.
        """

    @source.command("list")
    @click.option("--home", default=TTUSYNC_HOME, type=click.Path(), help=HOME_HELP)
    @click.option("--kind", type=_KIND_CHOICE, default=None, help="Only show one backend kind.")
    def source_list(home: str, kind: Optional[str]):
        """List storage sources and which ones are active."""
        ctx = open_context(home)
        sources = run(ctx.manager.list_storage_sources(StorageKey(kind) if kind else None))

        console.print(f"\n  Selected backend: [bold cyan]{ctx.registry.storage_source.value}[/]")
        if not sources:
            console.print("  [dim]No storage sources saved.[/]\n")
            return

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2),
                      title=f"Storage Sources ({len(sources)})")
        table.add_column("", width=1)
        table.add_column("Name", style="cyan")
        table.add_column("Type", style="dim")
        table.add_column("Encrypted")
        table.add_column("Keyring")

        for item in sources:
            active = ctx.registry.get_active_source(item.type) == item.name
            table.add_row(
                "[green]*[/]" if active else "",
                item.name,
                item.type.value,
                "[green]yes[/]" if item.encrypted else "[yellow]no[/]",
                "yes" if item.stored_in_manager else "",
            )
        console.print(table)
        console.print()

    @source.command("add-webdav")
    @click.argument("name")
    @click.option("--home", default=TTUSYNC_HOME, type=click.Path(), help=HOME_HELP)
    @click.option("--url", required=True, help="WebDAV collection URL.")
    @click.option("--username", required=True, help="WebDAV login.")
    @click.option("--password", prompt=True, hide_input=True, help="WebDAV password.")
    @click.option("--secret", prompt=True, hide_input=True, confirmation_prompt=True,
                  help="Secret used to encrypt the credentials.")
    @click.option("--store-in-manager", is_flag=True, help="Keep the secret in the system keyring.")
    @click.option("--rename-from", default=None, help="Existing source this one replaces.")
    @click.option("--use/--no-use", default=True, help="Make it the active WebDAV source.")
    def source_add_webdav(
        name: str,
        home: str,
        url: str,
        username: str,
        password: str,
        secret: str,
        store_in_manager: bool,
        rename_from: Optional[str],
        use: bool,
    ):
        """Save a WebDAV server as a storage source.

        Examples:

            ttusync source add-webdav nas --url https://nas/dav/books --username me

            ttusync source add-webdav nas --url ... --username me --secret s3 --store-in-manager
        """
        ctx = open_context(home)
        context = WebDavContext(url=url, username=username, password=password)
        try:
            result = run(ctx.manager.save_storage_source(
                name,
                StorageKey.WEBDAV,
                context,
                secret=secret or None,
                store_in_manager=store_in_manager,
                old_name=rename_from,
            ))
        except TtuSyncError as exc:
            console.print(f"\n  [red]{exc}[/]\n")
            raise SystemExit(1)

        if use:
            ctx.registry.set_active_source(result.new.name, StorageKey.WEBDAV)
        ctx.save()

        state = "encrypted" if result.new.encrypted else "[yellow]unencrypted[/]"
        console.print(f"\n  [green]Saved[/] {result.new.name} ({state})")
        if result.old:
            console.print(f"  [dim]Replaces {result.old}[/]")
        console.print()

    @source.command("add-fs")
    @click.argument("name")
    @click.argument("directory", type=click.Path(file_okay=False))
    @click.option("--home", default=TTUSYNC_HOME, type=click.Path(), help=HOME_HELP)
    @click.option("--use/--no-use", default=True, help="Make it the active folder source.")
    def source_add_fs(name: str, directory: str, home: str, use: bool):
        """Save a local folder as a storage source."""
        ctx = open_context(home)
        path = Path(directory).expanduser().resolve()
        if not path.is_dir():
            console.print(f"\n  [red]{path} is not a directory[/]\n")
            raise SystemExit(1)

        try:
            result = run(ctx.manager.save_storage_source(
                name, StorageKey.FS, FsHandle(directory_handle=path, fs_path=str(path))
            ))
        except TtuSyncError as exc:
            console.print(f"\n  [red]{exc}[/]\n")
            raise SystemExit(1)

        if use:
            ctx.registry.set_active_source(result.new.name, StorageKey.FS)
        ctx.save()
        console.print(f"\n  [green]Saved[/] {result.new.name} -> {path}\n")

    @source.command("remove")
    @click.argument("name")
    @click.option("--home", default=TTUSYNC_HOME, type=click.Path(), help=HOME_HELP)
    def source_remove(name: str, home: str):
        """Delete a storage source and its keyring entry."""
        ctx = open_context(home)
        try:
            run(ctx.manager.delete_storage_source(name))
        except TtuSyncError as exc:
            console.print(f"\n  [red]{exc}[/]\n")
            raise SystemExit(1)
        ctx.save()
        console.print(f"\n  [green]Removed[/] {name}\n")

    @source.command("use")
    @click.argument("kind", type=_KIND_CHOICE)
    @click.argument("name", required=False, default="")
    @click.option("--home", default=TTUSYNC_HOME, type=click.Path(), help=HOME_HELP)
    def source_use(kind: str, name: str, home: str):
        """Select the backend to replicate to, and optionally its source.

        Without NAME the kind keeps its current source (cloud drives fall
        back to their default source).

        Examples:

            ttusync source use webdav nas

            ttusync source use browser
        """
        ctx = open_context(home)
        key = StorageKey(kind)

        if name:
            stored = run(ctx.manager.repository.get(name))
            if stored is None or stored.type != key:
                console.print(f"\n  [red]No {kind} storage source named {name}[/]\n")
                raise SystemExit(1)
            ctx.registry.set_active_source(name, key)

        if key != StorageKey.BROWSER and not ctx.registry.get_active_source(key):
            console.print(f"\n  [red]No {kind} storage source selected[/]\n")
            raise SystemExit(1)

        ctx.registry.storage_source = key
        ctx.save()
        active = ctx.registry.get_active_source(key)
        console.print(f"\n  Now replicating to [bold cyan]{kind}[/]{f' ({active})' if active else ''}\n")
