"""
Interactive unlock -- asking the reader for a storage source password.

The unlock coordinator only knows the :class:`UnlockPrompt` contract.
:class:`ConsoleUnlockPrompt` is the terminal implementation used by the CLI.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

import click
from pydantic import BaseModel
from rich.console import Console

from ..errors import AuthenticationError
from .crypto import decrypt_source_data
from .models import StorageSourceData, StorageUnlockAction, is_unencrypted_data

logger = logging.getLogger("ttusync.storage.prompt")


class UnlockProps(BaseModel):
    """What the prompt needs besides the description."""

    action: str
    encrypted_data: StorageSourceData
    forward_secret: bool = False


class UnlockPrompt(Protocol):
    """Asks the reader to unlock a source.

    Resolves to the unlocked credentials, or None if the reader cancelled.
    """

    async def __call__(
        self, description: str, props: UnlockProps
    ) -> Optional[StorageUnlockAction]: ...


class ConsoleUnlockPrompt:
    """Terminal password prompt.

    Args:
        console: Rich console to print the description on.
        max_attempts: Wrong passwords accepted before giving up.
    """

    def __init__(self, console: Optional[Console] = None, max_attempts: int = 3) -> None:
        self.console = console or Console(stderr=True)
        self.max_attempts = max_attempts

    def _ask(self) -> str:
        try:
            return click.prompt(
                "  Password", hide_input=True, default="", show_default=False
            )
        except click.Abort:
            return ""

    async def __call__(
        self, description: str, props: UnlockProps
    ) -> Optional[StorageUnlockAction]:
        self.console.print(f"\n  [bold yellow]{description}[/]")
        self.console.print(f"  [dim]{props.action}[/]")

        if is_unencrypted_data(props.encrypted_data):
            return StorageUnlockAction(data=props.encrypted_data)

        for attempt in range(1, self.max_attempts + 1):
            secret = await asyncio.to_thread(self._ask)
            if not secret:
                logger.info("Unlock cancelled")
                return None
            try:
                data = await asyncio.to_thread(
                    decrypt_source_data, props.encrypted_data, secret
                )
            except AuthenticationError:
                remaining = self.max_attempts - attempt
                self.console.print(
                    f"  [red]Wrong password.[/] {remaining} attempt(s) left."
                )
                continue
            return StorageUnlockAction(
                data=data, secret=secret if props.forward_secret else None
            )

        logger.warning("Unlock gave up after %d attempts", self.max_attempts)
        return None
