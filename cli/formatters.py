"""
Output formatting utilities for the CLI interface.

This module provides functions for formatting output, setting up logging,
and displaying data as tables, JSON and styled status messages.
"""

import logging
import json
from typing import List, Dict, Any, Optional, Union
from decimal import Decimal
from datetime import datetime

import click
from tabulate import tabulate


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """
    Setup logging configuration for the CLI application.

    Args:
        verbose: Enable verbose (DEBUG) logging
        quiet: Suppress non-essential output (WARNING+ only)
    """
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    # Configure root logger
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # pdfplumber's parser is chatty at DEBUG
    if not verbose:
        logging.getLogger('pdfminer').setLevel(logging.WARNING)


def format_currency(amount: Union[Decimal, float, int, None]) -> str:
    """Format a numeric amount as currency, "N/A" for None."""
    if amount is None:
        return "N/A"

    try:
        return f"${float(amount):,.2f}"
    except (ValueError, TypeError):
        return str(amount)


def format_weight(value: Optional[float]) -> str:
    """Format a weight with one decimal, matching the SLI cells."""
    if value is None:
        return "N/A"
    return f"{value:,.1f}"


def format_datetime(dt: Optional[datetime], format_str: str = "%Y-%m-%d %H:%M:%S") -> str:
    if dt is None:
        return "N/A"

    try:
        return dt.strftime(format_str)
    except (ValueError, AttributeError):
        return str(dt)


def truncate_text(text: Optional[str], max_length: int = 50) -> str:
    """
    Truncate text to a maximum length with ellipsis.

    Args:
        text: Text to truncate
        max_length: Maximum length before truncation

    Returns:
        Truncated text with ellipsis if needed
    """
    if not text:
        return ""

    if len(text) <= max_length:
        return text

    return text[:max_length - 3] + "..."


def format_table(data: List[Dict[str, Any]], headers: Optional[List[str]] = None,
                 tablefmt: str = "grid") -> str:
    """
    Format data as a table using tabulate.

    Args:
        data: List of dictionaries containing row data
        headers: Optional list of column headers
        tablefmt: Table format style

    Returns:
        Formatted table string
    """
    if not data:
        return "No data to display."

    if headers is None:
        headers = list(data[0].keys())

    rows = []
    for row in data:
        formatted_row = []
        for header in headers:
            value = row.get(header, "")

            if isinstance(value, Decimal) or (isinstance(value, float) and 'value' in header.lower()):
                formatted_row.append(format_currency(value))
            elif isinstance(value, datetime):
                formatted_row.append(format_datetime(value))
            elif isinstance(value, str) and len(value) > 50:
                formatted_row.append(truncate_text(value))
            else:
                formatted_row.append(str(value) if value is not None else "")

        rows.append(formatted_row)

    return tabulate(rows, headers=headers, tablefmt=tablefmt)


def format_json(data: Any, indent: int = 2) -> str:
    """
    Format data as JSON string.

    Args:
        data: Data to format as JSON
        indent: JSON indentation level

    Returns:
        Formatted JSON string
    """
    def json_serializer(obj):
        """Custom JSON serializer for special types."""
        if isinstance(obj, Decimal):
            return float(obj)
        elif isinstance(obj, datetime):
            return obj.isoformat()
        elif hasattr(obj, 'to_dict'):
            return obj.to_dict()
        raise TypeError(f"Object of type {type(obj)} is not JSON serializable")

    return json.dumps(data, indent=indent, default=json_serializer, ensure_ascii=False)


def print_success(message: str) -> None:
    """Print a success message with green checkmark."""
    click.echo(click.style(f"✓ {message}", fg='green'))


def print_warning(message: str) -> None:
    """Print a warning message with yellow warning symbol."""
    click.echo(click.style(f"⚠ Warning: {message}", fg='yellow'))


def print_info(message: str) -> None:
    """Print an info message with blue info symbol."""
    click.echo(click.style(f"ℹ {message}", fg='blue'))


def display_summary(title: str, stats: Dict[str, Any]) -> None:
    """
    Display a formatted summary with title and statistics.

    Args:
        title: Summary title
        stats: Dictionary of statistics to display
    """
    click.echo(f"\n{title}")
    click.echo("=" * len(title))

    for key, value in stats.items():
        formatted_key = key.replace('_', ' ').title()

        if isinstance(value, Decimal):
            formatted_value = format_currency(value)
        elif isinstance(value, datetime):
            formatted_value = format_datetime(value)
        elif isinstance(value, bool):
            formatted_value = "Yes" if value else "No"
        else:
            formatted_value = str(value)

        click.echo(f"  {formatted_key}: {formatted_value}")
