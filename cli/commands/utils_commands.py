"""
Utility commands for the CLI interface.

This module implements utility commands including:
- boxes: Master carton calculator
- template init: Write the built-in SLI template for customization
- version: Show version information
- status: Show system status
"""

import logging
import sys
import platform
from pathlib import Path

import click

from cli.context import pass_context
from cli.formatters import print_success, print_warning, print_info, format_json, display_summary
from cli.exceptions import CLIError
from cli.version import get_version_info
from database.models import DatabaseError
from processing.box_calculator import calculate_boxes
from document.template import save_default_template


logger = logging.getLogger(__name__)


@click.command()
@click.argument('input_file', type=click.File('r', encoding='utf-8'))
@pass_context
def boxes(ctx, input_file):
    """
    Count master cartons for pasted spreadsheet rows.

    INPUT_FILE holds one row per line with the product code in the first
    column and the quantity in the third, separated by tabs or commas.
    Use '-' to read from standard input.

    Example:
        sli boxes picklist.tsv
    """
    try:
        result = calculate_boxes(input_file.read(), ctx.get_db_manager())
    except DatabaseError as e:
        raise CLIError(f"Database error: {e}")

    if not result.is_complete:
        raise CLIError(
            f"Missing product: {result.missing_code}. Add it with 'sli products add' and run again.",
            exit_code=8
        )

    if result.skipped_codes:
        print_warning(f"No units per carton for {', '.join(result.skipped_codes)}; lines skipped")
    print_success(f"Total master cartons: {result.total_boxes}")


@click.group(name='template')
def template_group():
    """SLI template commands."""
    pass


@template_group.command(name='init')
@click.argument('path', type=click.Path())
@click.option('--force', is_flag=True, help='Overwrite an existing file')
@click.option('--use', 'use_template', is_flag=True,
              help='Also set template_path to the new file')
@pass_context
def init_template(ctx, path, force, use_template):
    """
    Write the built-in SLI template to PATH.

    Example:
        sli template init ./SLI.xlsx --use
    """
    target = Path(path)
    if target.exists() and not force:
        raise CLIError(f"{target} already exists; use --force to overwrite")

    saved = save_default_template(target)
    print_success(f"Template written to {saved}")

    if use_template:
        try:
            ctx.get_db_manager().set_config_value('template_path', str(saved.resolve()))
        except DatabaseError as e:
            raise CLIError(f"Database error: {e}")
        print_info("template_path now points to the new template")


@click.command()
@click.option('--detailed', is_flag=True, help='Show git and interpreter details')
def version(detailed):
    """Display version information."""
    info = get_version_info()
    click.echo(f"SLI Builder v{info['version']}")

    if detailed:
        details = {
            'Base Version': info['base_version'],
            'Python Version': info['python_version'],
            'Platform': platform.platform(),
        }
        if info['git_available']:
            details['Git Commit'] = info['commit_hash']
            details['Git Branch'] = info['branch']
        for key, value in details.items():
            click.echo(f"{key:20}: {value}")


@click.command()
@click.option('--format', '-f', type=click.Choice(['table', 'json']), default='table',
              help='Output format')
@pass_context
def status(ctx, format):
    """Display database and configuration status."""
    status_info = {}
    try:
        db_manager = ctx.get_db_manager()
        stats = db_manager.get_database_stats()
        status_info.update({
            'Database': str(db_manager.db_path),
            'Database Version': stats.get('database_version', 'Unknown'),
            'Database Size (KB)': round(stats.get('database_size_bytes', 0) / 1024, 1),
            'Products': stats.get('total_products', 0),
            'Products Without Carton Quantity': stats.get('degenerate_products', 0),
            'Cached Sessions': stats.get('cached_sessions', 0),
            'Resolution Log Entries': stats.get('resolution_log_entries', 0),
            'Template': db_manager.get_config_value('template_path', '') or 'built-in',
            'Mixed Unit Policy': db_manager.get_config_value('mixed_unit_policy', 'warn'),
        })
    except DatabaseError as e:
        status_info['Database Status'] = f'Error: {e}'

    status_info['Python Version'] = sys.version.split()[0]

    if format == 'json':
        click.echo(format_json(status_info))
    else:
        display_summary("SLI Builder Status", status_info)
