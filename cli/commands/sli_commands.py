"""
SLI commands for the CLI interface.

This module implements the commands of an SLI run:
- parse: Extract and aggregate invoices, caching the result per session
- build: Check master data, compute commodity rows and write the SLI
- generate: parse and build in one step
- reset: Drop a session's cached aggregation
"""

import logging
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, Tuple

import click

from cli.context import pass_context, CLIContext
from cli.exceptions import CLIError, MissingMasterDataExit, ProcessingError
from cli.formatters import (
    print_success, print_warning, print_info, format_table, format_weight, format_currency
)
from cli.prompts import HeaderWizard, resolve_missing_interactively
from database.models import DatabaseError, ValidationError
from document.header import HeaderData, load_header
from document.renderer import OUTPUT_FILENAME
from processing.exceptions import (
    SLIProcessingError, MissingMasterDataError, AggregationCacheError
)
from processing.aggregator import ordered_group_keys
from processing.pipeline import ParseResult, BuildResult
from processing.session_cache import DEFAULT_SESSION


logger = logging.getLogger(__name__)

INVOICE_PATTERNS = ('*.pdf', '*.txt')


def collect_invoice_files(paths: Tuple[str, ...]) -> List[Path]:
    """Expand directories into their PDF and text invoices, keeping argument order."""
    files: List[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            found = sorted({f for pattern in INVOICE_PATTERNS for f in path.glob(pattern)})
            if not found:
                print_warning(f"No invoices found in {path}")
            files.extend(found)
        else:
            files.append(path)
    return files


def show_parse_result(result: ParseResult) -> None:
    invoice_rows = [
        {
            'Invoice': invoice.source,
            'Line Items': len(invoice.items),
            'Status': invoice.error or ('OK' if invoice.items else 'No items found')
        }
        for invoice in result.invoices
    ]
    click.echo(format_table(invoice_rows))

    group_rows = []
    for key in ordered_group_keys(result.groups):
        schedule, bucket = key
        items = result.groups[key]
        group_rows.append({
            'Schedule B': schedule,
            'Origin': bucket,
            'Products': len(items),
            'Quantity': sum(item.quantity for item in items),
            'Value': sum((item.total_price for item in items), Decimal('0'))
        })
    if group_rows:
        click.echo()
        click.echo(format_table(group_rows))


def show_build_result(result: BuildResult) -> None:
    rows = [
        {
            'D/F': row.customs_flag,
            'Schedule B': row.schedule_code,
            'Net': format_weight(row.net_weight_kg),
            'Unit': row.unit_label,
            'Gross Kg': format_weight(row.gross_weight_kg),
            'Value': format_currency(row.total_value)
        }
        for row in result.rows
    ]
    click.echo(format_table(rows))

    for code in result.report.degenerate_codes:
        print_warning(f"{code} has no units per carton; left out of gross weight")
    for (schedule, bucket), families in result.report.mixed_unit_groups.items():
        print_warning(f"{schedule} ({bucket}) mixes units {', '.join(families)}")


def resolve_header(header_file: Optional[str], interactive: bool) -> HeaderData:
    if header_file:
        try:
            header = load_header(header_file)
        except ValidationError as e:
            raise CLIError(str(e), exit_code=2)
        if interactive:
            return HeaderWizard().collect(defaults=header)
        return header
    if interactive:
        return HeaderWizard().collect()
    print_warning("No header file given; header fields will be left blank")
    return HeaderData()


def run_build(ctx: CLIContext, session: str, header: HeaderData,
              output: Optional[str], interactive: bool) -> BuildResult:
    """Build the SLI, resolving missing master data interactively when allowed."""
    db_manager = ctx.get_db_manager()
    pipeline = ctx.get_pipeline()
    output_path = Path(output or db_manager.get_config_value('output_filename', OUTPUT_FILENAME))

    while True:
        try:
            result = pipeline.build(header, session_id=session, output_path=output_path)
            break
        except MissingMasterDataError as e:
            if not interactive:
                raise MissingMasterDataExit(e.codes)
            merged = pipeline.cache.load(session)
            resolve_missing_interactively(pipeline.resolver, e.codes, merged, session_id=session)
            print_info("Master data updated; rebuilding from the cached aggregation")

    show_build_result(result)
    print_success(f"SLI written to {result.output_path} ({len(result.rows)} commodity rows)")
    return result


@click.command()
@click.argument('files', nargs=-1, required=True, type=click.Path(exists=True))
@click.option('--session', '-s', default=DEFAULT_SESSION, show_default=True,
              help='Session id the aggregation is cached under')
@pass_context
def parse(ctx, files, session):
    """
    Parse invoices and cache the aggregated line items.

    FILES may be PDF or text invoices, or directories containing them.

    Examples:
        # Parse two invoices
        sli parse INV-1001.pdf INV-1002.pdf

        # Parse a folder under a named session
        sli parse ./invoices --session order-4521
    """
    try:
        pipeline = ctx.get_pipeline()
        result = pipeline.parse(collect_invoice_files(files), session_id=session)
        show_parse_result(result)

        if not result.merged:
            print_warning("No line items were recognized")
            return

        print_success(
            f"Cached {len(result.merged)} products in {len(result.groups)} groups "
            f"for session '{session}'"
        )
        missing = pipeline.missing_codes(session)
        if missing:
            print_warning(f"Master data missing for: {', '.join(missing)}")
            print_info("Add them with 'sli products add' before running 'sli build'")

    except SLIProcessingError as e:
        raise ProcessingError(str(e))
    except DatabaseError as e:
        raise CLIError(f"Database error: {e}")


@click.command()
@click.option('--session', '-s', default=DEFAULT_SESSION, show_default=True,
              help='Session id of the cached aggregation')
@click.option('--header', 'header_file', type=click.Path(exists=True),
              help='JSON file with forwarder, consignee, shipment and shipper fields')
@click.option('--output', '-o', type=click.Path(), help='Output path (default: configured output_filename)')
@click.option('--interactive', '-i', is_flag=True,
              help='Prompt for missing master data and header fields')
@pass_context
def build(ctx, session, header_file, output, interactive):
    """
    Build the SLI from the last parsed invoices.

    Exits with code 8 and lists the product codes when master data is
    missing, unless --interactive is given.

    Examples:
        sli build --header shipment.json --output SLI-4521.xlsx
        sli build --interactive
    """
    header = resolve_header(header_file, interactive)
    try:
        run_build(ctx, session, header, output, interactive)
    except AggregationCacheError as e:
        raise CLIError(str(e), exit_code=6)
    except SLIProcessingError as e:
        raise ProcessingError(str(e))
    except DatabaseError as e:
        raise CLIError(f"Database error: {e}")


@click.command()
@click.argument('files', nargs=-1, required=True, type=click.Path(exists=True))
@click.option('--session', '-s', default=DEFAULT_SESSION, show_default=True)
@click.option('--header', 'header_file', type=click.Path(exists=True),
              help='JSON file with forwarder, consignee, shipment and shipper fields')
@click.option('--output', '-o', type=click.Path(), help='Output path')
@click.option('--interactive', '-i', is_flag=True,
              help='Prompt for missing master data and header fields')
@pass_context
def generate(ctx, files, session, header_file, output, interactive):
    """
    Parse invoices and build the SLI in one step.

    Example:
        sli generate ./invoices --header shipment.json
    """
    header = resolve_header(header_file, interactive)
    try:
        result = ctx.get_pipeline().parse(collect_invoice_files(files), session_id=session)
        show_parse_result(result)
        if not result.merged:
            raise ProcessingError("No line items were recognized in the given invoices")
        click.echo()
        run_build(ctx, session, header, output, interactive)
    except SLIProcessingError as e:
        raise ProcessingError(str(e))
    except DatabaseError as e:
        raise CLIError(f"Database error: {e}")


@click.command()
@click.option('--session', '-s', default=DEFAULT_SESSION, show_default=True)
@pass_context
def reset(ctx, session):
    """Forget the cached aggregation of a session."""
    try:
        pipeline = ctx.get_pipeline()
        if pipeline.cache.clear(session):
            print_success(f"Session '{session}' cleared")
        else:
            print_info(f"Nothing cached for session '{session}'")
    except DatabaseError as e:
        raise CLIError(f"Database error: {e}")
