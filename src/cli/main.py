"""
error-relay CLI

Command-line interface for checking error reporting.

Usage:
    error-relay [OPTIONS] COMMAND [ARGS]...

Commands:
    test      Send a test event (and optionally a transaction)
"""

import click
import logging
import sys
from dotenv import load_dotenv

from src import __version__
from src.reporting.setup import init_reporting


def setup_logging(verbose: bool):
    """Configure logging to output to stdout."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(message)s',  # Simple format for CLI
        handlers=[logging.StreamHandler(sys.stdout)]
    )


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Verbose output (show DEBUG logs)')
@click.option('-q', '--quiet', is_flag=True, help='Quiet mode (only show warnings/errors)')
@click.version_option(__version__, prog_name='error-relay')
@click.pass_context
def cli(ctx, verbose, quiet):
    """error-relay - Error reporting diagnostics."""
    # Load .env file
    load_dotenv()

    # Configure logging based on verbosity
    if quiet:
        logging.basicConfig(level=logging.WARNING, format='%(message)s')
    else:
        setup_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose

    # The test command reads the DSN from this client when --dsn is omitted
    init_reporting(install_hook=False)


# Import and register commands
from .diagnostics import test_command

cli.add_command(test_command)


if __name__ == '__main__':
    cli()
