# melcepstra/cli/base_cmd.py

"""
Shared CLI plumbing: a click Group that prepares configuration and logging,
and the common verbosity options.
"""

import logging
import sys

import click

from melcepstra.config import load_configuration, MelcepstraConfig
from melcepstra.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def _verbosity(params: dict) -> int:
    """Maps the -q/-v flags of the group to a setup_logging verbosity."""
    if params.get('quiet'):
        return -1
    return params.get('verbose') or 0


class ConfigGroup(click.Group):
    """
    Click Group that makes `ctx.obj['config']` available to every subcommand.

    The configuration is loaded once per invocation unless the caller already
    placed one in `obj` (as tests do). Logging is configured from it and from
    the -v/-q flags before the subcommand runs.
    """
    def invoke(self, ctx: click.Context):
        ctx.ensure_object(dict)
        try:
            config: MelcepstraConfig = ctx.obj.get('config') or load_configuration()
            ctx.obj['config'] = config
            setup_logging(config, _verbosity(ctx.params))
        except Exception as e:
            # Nothing is usable without config and logging; fail before any work starts
            print(f"CRITICAL SETUP ERROR: {e!r}", file=sys.stderr)
            ctx.exit(1)

        logger.debug(f"CLI context ready (verbosity={_verbosity(ctx.params)}).")
        return super().invoke(ctx)


# --- Common CLI Options ---
verbose_option = click.option(
    '-v', '--verbose',
    count=True,
    help="Increase verbosity level (-v for INFO, -vv for DEBUG)."
)
quiet_option = click.option(
    '-q', '--quiet',
    is_flag=True,
    default=False,
    help="Suppress all console output except critical errors."
)
