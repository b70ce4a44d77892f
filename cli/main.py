"""
Main CLI entry point for the SLI Builder.

This module provides the command-line interface with global options and
registers the command groups for building Shipper's Letters of Instruction
from supplier invoices.
"""

import sys
import logging

import click

from database.models import DatabaseError
from cli.context import CLIContext, DB_ENV_VAR, DEFAULT_DB_PATH
from cli.version import get_version
from cli.commands import sli_commands, product_commands, config_commands, utils_commands
from cli.formatters import setup_logging


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-essential output')
@click.option('--database', type=click.Path(), envvar=DB_ENV_VAR, default=DEFAULT_DB_PATH,
              show_default=True, help='Product master database path')
@click.version_option(version=get_version(), prog_name="sli")
@click.pass_context
def cli(ctx, verbose, quiet, database):
    """
    SLI Builder - Shipper's Letter of Instruction generator

    Parses supplier invoices, aggregates line items by Schedule B code and
    origin, computes weights and values from product master data and writes
    the SLI workbook.

    Examples:
        # Parse invoices, then build the SLI
        sli parse ./invoices
        sli build --header shipment.json

        # Both steps at once, prompting for anything missing
        sli generate ./invoices --interactive

        # Add master data for a product
        sli products add 40858 0.25 12.5 48 X
    """
    cli_ctx = ctx.ensure_object(CLIContext)
    cli_ctx.verbose = verbose
    cli_ctx.quiet = quiet
    cli_ctx.database_path = database

    setup_logging(verbose, quiet)


cli.add_command(sli_commands.parse)
cli.add_command(sli_commands.build)
cli.add_command(sli_commands.generate)
cli.add_command(sli_commands.reset)
cli.add_command(product_commands.products_group)
cli.add_command(config_commands.config_group)
cli.add_command(utils_commands.boxes)
cli.add_command(utils_commands.template_group)
cli.add_command(utils_commands.status)
cli.add_command(utils_commands.version)


def main():
    """Main entry point for the CLI application."""
    try:
        cli()
    except DatabaseError as e:
        click.echo(f"Database Error: {e}", err=True)
        sys.exit(7)
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user.", err=True)
        sys.exit(130)
    except Exception as e:
        logger = logging.getLogger(__name__)
        logger.exception("Unexpected error occurred")
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
