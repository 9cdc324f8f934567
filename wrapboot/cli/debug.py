import click

from .utils.logging import configure_logging


def _enable_debug(ctx: click.Context, param, value: bool) -> bool:
    if value:
        ctx.ensure_object(dict)["DEBUG"] = True
        configure_logging(True)
    return value


def add_debug_option(cmd: click.Command) -> click.Command:
    """Give a command a --debug flag, the long spelling of -ShellDebug.

    The flag is eager so logging is configured before anything else runs. It
    is only recognized before the first argument meant for the tool.
    """
    if not any(param.name == "debug" for param in cmd.params):
        cmd.params.insert(
            0,
            click.Option(
                ["--debug"],
                is_flag=True,
                is_eager=True,
                expose_value=False,
                callback=_enable_debug,
                help="Log package resolution and module loading details",
            ),
        )
    return cmd
