"""
Product master commands for the CLI interface.

This module implements maintenance of the per-product reference data the
weight calculation depends on:
- add: Add or overwrite a product
- show: Show one product
- list: List products
- update: Change selected fields of a product
- delete: Delete a product
- import / export: CSV bulk operations
"""

import logging

import click

from cli.context import pass_context
from cli.exceptions import CLIError, ValidationError as CLIValidationError
from cli.formatters import (
    print_success, print_warning, print_info, format_table, format_json, display_summary,
    format_datetime, truncate_text
)
from database.models import (
    ProductMasterRecord, DatabaseError, ProductNotFoundError, ValidationError
)
from processing.missing_data import MissingDataResolver


logger = logging.getLogger(__name__)


def _record_row(record: ProductMasterRecord) -> dict:
    return {
        'Product Code': record.product_code,
        'Unit Weight': record.unit_weight,
        'Carton Weight': record.carton_weight,
        'Units/Carton': record.units_per_carton,
        'U of M': record.unit_of_measure,
        'Notes': truncate_text(record.notes, 40)
    }


@click.group(name='products')
def products_group():
    """Product master data management commands."""
    pass


@products_group.command()
@click.argument('product_code', type=str)
@click.argument('unit_weight', type=float)
@click.argument('carton_weight', type=float)
@click.argument('units_per_carton', type=int)
@click.argument('unit_of_measure', type=str)
@click.option('--notes', '-n', type=str, help='Free-form notes')
@click.option('--session', '-s', type=str, help='Session the record resolves (for the resolution log)')
@pass_context
def add(ctx, product_code, unit_weight, carton_weight, units_per_carton, unit_of_measure,
        notes, session):
    """
    Add a product, or overwrite it if the code already exists.

    Weights are in pounds, except UNIT_WEIGHT for M2 products. UNIT_OF_MEASURE
    decides the net weight rule: KG/KGS/X convert the unit weight from pounds,
    DOZ/DZ count dozens, M2 multiplies quantity by UNIT_WEIGHT as entered
    (kg per unit, no conversion), anything else counts units.

    Examples:
        sli products add 40858 0.25 12.5 48 X
        sli products add 210013-010 0 9.8 24 DOZ --notes "HeroClip mini"
    """
    try:
        record = ProductMasterRecord(
            product_code=product_code,
            unit_weight=unit_weight,
            carton_weight=carton_weight,
            units_per_carton=units_per_carton,
            unit_of_measure=unit_of_measure,
            notes=notes
        )
        stored = MissingDataResolver(ctx.get_db_manager()).resolve(record, session_id=session)

        print_success(f"Saved product {stored.product_code}")
        if stored.is_degenerate():
            print_warning("Units per carton is 0; this product will be left out of gross weight")

    except ValidationError as e:
        raise CLIValidationError(str(e))
    except DatabaseError as e:
        raise CLIError(f"Database error: {e}")


@products_group.command()
@click.argument('product_code', type=str)
@click.option('--format', '-f', type=click.Choice(['table', 'json']), default='table',
              help='Output format')
@pass_context
def show(ctx, product_code, format):
    """Show one product's master data."""
    try:
        record = ctx.get_db_manager().get_product(product_code)
    except ProductNotFoundError:
        raise CLIError(f"Product not found: {product_code}", exit_code=3)
    except DatabaseError as e:
        raise CLIError(f"Database error: {e}")

    if format == 'json':
        click.echo(format_json(record.to_dict()))
    else:
        display_summary(f"Product {record.product_code}", {
            'unit_weight': record.unit_weight,
            'carton_weight': record.carton_weight,
            'units_per_carton': record.units_per_carton,
            'unit_of_measure': record.unit_of_measure,
            'notes': record.notes or '',
            'last_updated': format_datetime(record.last_updated)
        })


@products_group.command(name='list')
@click.option('--search', type=str, help='Only codes containing this text')
@click.option('--limit', '-l', type=int, help='Maximum number of products')
@click.option('--format', '-f', type=click.Choice(['table', 'json']), default='table',
              help='Output format')
@pass_context
def list_products(ctx, search, limit, format):
    """
    List products.

    Examples:
        sli products list
        sli products list --search 2100 --limit 20
    """
    try:
        records = ctx.get_db_manager().list_products(search=search, limit=limit)
    except DatabaseError as e:
        raise CLIError(f"Database error: {e}")

    if format == 'json':
        click.echo(format_json([record.to_dict() for record in records]))
        return

    if not records:
        print_info("No products found")
        return
    click.echo(format_table([_record_row(record) for record in records]))
    print_info(f"{len(records)} products")


@products_group.command()
@click.argument('product_code', type=str)
@click.option('--unit-weight', type=float, help='Single unit weight (lb; kg per unit for M2)')
@click.option('--carton-weight', type=float, help='Master carton weight (lb)')
@click.option('--units-per-carton', type=int, help='Units per master carton')
@click.option('--unit-of-measure', type=str, help='Unit of measure')
@click.option('--notes', type=str, help='Free-form notes')
@pass_context
def update(ctx, product_code, unit_weight, carton_weight, units_per_carton,
           unit_of_measure, notes):
    """
    Change selected fields of an existing product.

    Example:
        sli products update 40858 --units-per-carton 36
    """
    changes = {
        'unit_weight': unit_weight,
        'carton_weight': carton_weight,
        'units_per_carton': units_per_carton,
        'unit_of_measure': unit_of_measure,
        'notes': notes
    }
    changes = {key: value for key, value in changes.items() if value is not None}
    if not changes:
        raise CLIValidationError("Nothing to update; give at least one field option")

    try:
        db_manager = ctx.get_db_manager()
        data = db_manager.get_product(product_code).to_dict()
        data.update(changes)
        record = ProductMasterRecord.from_dict(data)
        MissingDataResolver(db_manager).resolve(record, notes='updated from CLI')
        print_success(f"Updated product {record.product_code}: {', '.join(sorted(changes))}")

    except ProductNotFoundError:
        raise CLIError(f"Product not found: {product_code}", exit_code=3)
    except ValidationError as e:
        raise CLIValidationError(str(e))
    except DatabaseError as e:
        raise CLIError(f"Database error: {e}")


@products_group.command()
@click.argument('product_code', type=str)
@click.option('--force', is_flag=True, help='Skip confirmation prompt')
@pass_context
def delete(ctx, product_code, force):
    """Delete a product."""
    if not force and not click.confirm(f"Delete product {product_code}?", default=False):
        print_info("Delete cancelled")
        return

    try:
        ctx.get_db_manager().delete_product(product_code)
        print_success(f"Deleted product {product_code}")
    except ProductNotFoundError:
        raise CLIError(f"Product not found: {product_code}", exit_code=3)
    except DatabaseError as e:
        raise CLIError(f"Database error: {e}")


@products_group.command(name='import')
@click.argument('csv_file', type=click.Path(exists=True))
@pass_context
def import_products(ctx, csv_file):
    """
    Import (upsert) products from CSV.

    Columns: product_code, unit_weight, carton_weight, units_per_carton,
    unit_of_measure, notes.
    """
    try:
        summary = ctx.get_db_manager().import_products_from_csv(csv_file)
    except DatabaseError as e:
        raise CLIError(f"Database error: {e}")

    print_success(f"Imported {summary['created']} new and {summary['updated']} updated products")
    if summary['failed']:
        print_warning(f"{summary['failed']} rows failed")
        for error in summary['errors']:
            click.echo(f"  {error}")


@products_group.command(name='export')
@click.argument('csv_file', type=click.Path())
@pass_context
def export_products(ctx, csv_file):
    """Export all products to CSV."""
    try:
        count = ctx.get_db_manager().export_products_to_csv(csv_file)
    except DatabaseError as e:
        raise CLIError(f"Database error: {e}")
    print_success(f"Exported {count} products to {csv_file}")
