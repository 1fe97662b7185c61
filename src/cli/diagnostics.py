"""Diagnostic commands."""

import click

from src.reporting.connectivity import ConnectivityTest


@click.command('test')
@click.option('--dsn', default=None, help='DSN to test (defaults to the configured one)')
@click.option('--transaction', is_flag=True, help='Also send a test transaction')
@click.pass_context
def test_command(ctx, dsn, transaction):
    """Generate a test event and send it to the collector."""
    verbose = ctx.obj.get('verbose', False) if ctx.obj else False

    exit_code = ConnectivityTest(verbose=verbose).run(dsn=dsn, transaction=transaction)
    ctx.exit(exit_code)
