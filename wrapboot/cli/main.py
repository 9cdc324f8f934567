"""wrapboot CLI"""

import logging
import os
import shlex
import sys
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from wrapboot.bootstrap import BootstrapOrchestrator
from wrapboot.config import load_settings
from wrapboot.constants import BootstrapResult

from .debug import add_debug_option
from .utils.args import consume_bootstrap_args
from .utils.logging import configure_logging

logger = logging.getLogger("wrapboot")


def current_executable() -> Optional[Path]:
    """The script or executable this process was started from, if it is a file."""
    if not sys.argv or not sys.argv[0]:
        return None
    path = Path(sys.argv[0])
    return path.resolve() if path.is_file() else None


@click.command(
    context_settings={
        "ignore_unknown_options": True,
        "allow_interspersed_args": False,
        "help_option_names": [],
    }
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def cli(ctx, args):
    """
    Make sure the tool's packages are available, then run the tool.

    Everything on the command line is passed to the tool, except the
    bootstrap flags (-InstallHref, -SystemRepositoryPath, -ProxyHref,
    -ProxyUsername, -ProxyPassword, -ShellInstall, -ShellPanic, -UseSystem,
    -ShellDebug).
    """
    ctx.ensure_object(dict)
    parsed = consume_bootstrap_args(args)
    debug = bool(parsed.options.pop("debug", False) or ctx.obj.get("DEBUG", False))
    configure_logging(debug)
    logger.debug(f"Consumed bootstrap flags: {', '.join(parsed.consumed) or 'none'}")

    try:
        settings = load_settings({**parsed.options, "debug": debug})
    except ValidationError as e:
        logger.error(f"Invalid bootstrap settings: {e}")
        ctx.exit(int(BootstrapResult.BOOTSTRAP_FAILED))

    orchestrator = BootstrapOrchestrator(
        settings,
        args=parsed.remaining,
        consumed_args=parsed.consumed,
        cwd=Path(os.getcwd()),
        command_line=shlex.join(args),
        current_executable=current_executable(),
    )
    ctx.exit(int(orchestrator.run()))


add_debug_option(cli)

if __name__ == "__main__":
    cli(obj={})
