"""
Configuration management commands for the CLI interface.

This module implements configuration-related commands including:
- get: Get configuration value
- set: Set configuration value
- list: List all configurations
- reset: Restore a setting to its default
"""

import json
import logging

import click

from cli.context import pass_context
from cli.formatters import print_success, print_info, format_table, format_json, truncate_text
from cli.exceptions import (
    CLIError, ValidationError as CLIValidationError, ConfigurationError as CLIConfigurationError
)
from database.models import ConfigurationError, DatabaseError, ValidationError, DEFAULT_CONFIG


logger = logging.getLogger(__name__)


# Create config command group
@click.group(name='config')
def config_group():
    """Configuration management commands."""
    pass


@config_group.command()
@click.argument('key', type=str)
@click.option('--format', '-f', type=click.Choice(['value', 'json']), default='value',
              help='Output format')
@pass_context
def get(ctx, key, format):
    """
    Retrieve a configuration value.

    Examples:
        sli config get aes_value_threshold
        sli config get mixed_unit_policy --format json
    """
    try:
        config = ctx.get_db_manager().get_config(key)
    except ConfigurationError:
        raise CLIConfigurationError(f"Configuration not found: {key}")
    except DatabaseError as e:
        raise CLIError(f"Database error: {e}")

    if format == 'value':
        click.echo(str(config.get_typed_value()))
    else:
        click.echo(format_json({
            'key': config.key,
            'value': config.get_typed_value(),
            'data_type': config.data_type,
            'description': config.description,
            'category': config.category,
            'last_updated': config.last_updated.isoformat() if config.last_updated else None
        }))


@config_group.command(name='set')
@click.argument('key', type=str)
@click.argument('value', type=str)
@click.option('--type', '-t', 'data_type', type=click.Choice(['string', 'number', 'boolean', 'json']),
              help='Value type (existing settings keep theirs)')
@click.option('--description', '-d', type=str, help='Configuration description')
@pass_context
def set_value(ctx, key, value, data_type, description):
    """
    Set a configuration value.

    Examples:
        sli config set mixed_unit_policy reject
        sli config set aes_value_threshold 2500
        sli config set template_path ./templates/SLI.xlsx
    """
    try:
        db_manager = ctx.get_db_manager()
        try:
            effective_type = data_type or db_manager.get_config(key).data_type
        except ConfigurationError:
            effective_type = data_type or 'string'

        typed_value = json.loads(value) if effective_type == 'json' else value
        config = db_manager.set_config_value(key, typed_value, data_type=effective_type,
                                             description=description)
        print_success(f"Configuration '{key}' set to {config.get_typed_value()}")

    except (ValidationError, ValueError) as e:
        raise CLIValidationError(str(e))
    except DatabaseError as e:
        raise CLIError(f"Database error: {e}")


@config_group.command(name='list')
@click.option('--category', '-c', type=str, help='Filter by category')
@click.option('--format', '-f', type=click.Choice(['table', 'json']), default='table',
              help='Output format')
@pass_context
def list_config(ctx, category, format):
    """
    List all configuration settings.

    Examples:
        sli config list
        sli config list --category document
    """
    try:
        configs = ctx.get_db_manager().list_config(category=category)
    except DatabaseError as e:
        raise CLIError(f"Database error: {e}")

    if not configs:
        print_info("No configurations found.")
        return

    if format == 'json':
        click.echo(format_json([
            {
                'key': config.key,
                'value': config.get_typed_value(),
                'data_type': config.data_type,
                'category': config.category,
                'description': config.description
            }
            for config in configs
        ]))
        return

    click.echo(format_table([
        {
            'Key': config.key,
            'Value': str(config.get_typed_value()),
            'Type': config.data_type,
            'Category': config.category,
            'Description': truncate_text(config.description, 60)
        }
        for config in configs
    ]))


@config_group.command()
@click.argument('key', type=str)
@pass_context
def reset(ctx, key):
    """Restore a setting to its default value."""
    default = DEFAULT_CONFIG.get(key)
    if default is None:
        raise CLIConfigurationError(f"No default exists for '{key}'")

    try:
        ctx.get_db_manager().set_config_value(
            key, default.get_typed_value() if default.value else '',
            data_type=default.data_type, description=default.description,
            category=default.category
        )
    except DatabaseError as e:
        raise CLIError(f"Database error: {e}")
    print_success(f"Configuration '{key}' reset to '{default.value}'")
