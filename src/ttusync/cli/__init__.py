"""
ttusync CLI -- manage storage sources and the replicated library.

The main Click group is defined here; command groups live in their own
modules and are registered via register functions.

Entry point: ttusync.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="ttusync")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
def main(verbose: bool):
    """ttusync -- replicate a reader's library to storage backends."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


# ---------------------------------------------------------------------------
# Register all command groups from modular files
# ---------------------------------------------------------------------------

from .library import register_library_commands
from .source import register_source_commands

register_source_commands(main)
register_library_commands(main)
