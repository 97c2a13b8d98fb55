# melcepstra/cli/main.py

"""
Main entry point for the melcepstra CLI application.
Uses Click for command-line interface handling.
"""

import logging

import click

from melcepstra.version import __version__
from .base_cmd import ConfigGroup, verbose_option, quiet_option
from .features_cmd import features_cmd

logger = logging.getLogger(__name__)

CONTEXT_SETTINGS = dict(help_option_names=['-h', '--help'])


@click.group(context_settings=CONTEXT_SETTINGS, cls=ConfigGroup)
@click.version_option(__version__, '-V', '--version', package_name='melcepstra', prog_name='melcepstra')
@verbose_option
@quiet_option
@click.pass_context
def main_cli(ctx, verbose: int, quiet: bool):
    """
    melcepstra: MFCC time series extraction for audio matching.

    Configuration is loaded from:
    Defaults -> ./melcepstra.toml -> ~/.config/melcepstra/melcepstra.toml -> Env Vars

    Use -v for verbose output, -vv for debug output, -q for quiet mode.
    """
    logger.debug(f"melcepstra CLI group invoked with config: {ctx.obj['config'].parameters.mfcc}")


main_cli.add_command(features_cmd)

cli = main_cli

if __name__ == "__main__":
    cli()
