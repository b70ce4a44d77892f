"""
Interactive prompts for the SLI workflow.

This module provides the rich-based prompts used when a build stops on
missing product master data, and the wizard that collects the SLI header
(forwarder, consignee, shipment and shipper details).
"""

import logging
from typing import Dict, List, Optional, Sequence

from rich.console import Console
from rich.prompt import Prompt, Confirm, FloatPrompt, IntPrompt
from rich.table import Table

from cli.exceptions import UserCancelledError, ValidationError as CLIValidationError
from database.models import ProductMasterRecord, ValidationError, validate_product_code
from document.header import HeaderData, SHIP_MODES
from processing.models import MergedItem


logger = logging.getLogger(__name__)


class MasterDataPrompt:
    """
    Collects product master records for codes that have none.

    Each record is confirmed before it is returned; declining re-asks the
    whole record.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def show_missing(self, codes: Sequence[str], merged: Sequence[MergedItem]) -> None:
        """Table of missing codes with what the invoices say about them."""
        by_code: Dict[str, MergedItem] = {}
        for item in merged:
            by_code.setdefault(item.product_code, item)

        table = Table(title="Products Without Master Data", show_header=True,
                      header_style="bold magenta")
        table.add_column("Product Code", style="cyan")
        table.add_column("Description")
        table.add_column("Quantity", justify="right")
        table.add_column("Schedule B")

        for code in codes:
            item = by_code.get(code)
            table.add_row(
                code,
                item.description if item else "N/A",
                str(item.quantity) if item else "N/A",
                item.schedule_code if item else "N/A"
            )

        self.console.print()
        self.console.print(table)
        self.console.print()

    def prompt_for_record(self, product_code: str) -> ProductMasterRecord:
        """
        Ask for the master data of one product.

        Raises:
            UserCancelledError: If the user interrupts input
            CLIValidationError: If ``product_code`` itself cannot be stored
        """
        try:
            validate_product_code(product_code)
        except ValidationError as e:
            raise CLIValidationError(f"{product_code!r}: {e}")

        try:
            while True:
                self.console.print(f"\n[bold]Master data for [cyan]{product_code}[/cyan][/bold]")
                unit_weight = FloatPrompt.ask("Single unit weight (lb; kg per unit for M2)", default=0.0)
                carton_weight = FloatPrompt.ask("Master carton weight (lb)")
                units_per_carton = IntPrompt.ask("Units per master carton")
                unit_of_measure = Prompt.ask("Unit of measure (KG, X, DOZ, M2, NO...)", default="NO")

                try:
                    record = ProductMasterRecord(
                        product_code=product_code,
                        unit_weight=unit_weight,
                        carton_weight=carton_weight,
                        units_per_carton=units_per_carton,
                        unit_of_measure=unit_of_measure
                    )
                except ValidationError as e:
                    self.console.print(f"[red]{e}[/red]")
                    continue

                if record.is_degenerate():
                    self.console.print(
                        "[yellow]Units per carton is 0; this product will be left out of gross weight.[/yellow]"
                    )
                if Confirm.ask("Save this product?", default=True):
                    return record

        except (KeyboardInterrupt, EOFError):
            raise UserCancelledError("Master data entry cancelled")


class HeaderWizard:
    """Step-by-step collection of HeaderData."""

    STEPS = [
        ("Forwarder", [
            ('forwarder_name', "Forwarder name"),
            ('forwarder_addr1', "Address line 1"),
            ('forwarder_addr2', "Address line 2 (optional)"),
            ('forwarder_addr3', "Address line 3 (optional)"),
            ('forwarder_city_state_zip', "City, State ZIP"),
        ]),
        ("Consignee", [
            ('consignee_name', "Consignee name"),
            ('consignee_addr1', "Address line 1"),
            ('consignee_addr2', "Address line 2 (optional)"),
            ('consignee_city_state_zip', "City, State ZIP"),
        ]),
        ("Order", [
            ('so_number', "SO number"),
            ('destination_country', "Country of ultimate destination"),
            ('ship_payment_type', "Shipping payment type"),
        ]),
        ("Shipper", [
            ('shipper_name', "Shipper name"),
            ('shipper_email', "Shipper email"),
            ('shipper_phone', "Shipper phone"),
        ]),
    ]

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def collect(self, defaults: Optional[HeaderData] = None) -> HeaderData:
        """
        Ask for every header field, offering ``defaults`` where given.

        Raises:
            UserCancelledError: If the user interrupts input
        """
        current = (defaults or HeaderData()).to_dict()
        values: Dict[str, str] = {}

        try:
            for title, fields in self.STEPS:
                self.console.print(f"\n[bold]{title}[/bold]")
                for name, label in fields:
                    values[name] = Prompt.ask(label, default=current.get(name, ''),
                                              show_default=bool(current.get(name)))
                if title == "Order":
                    values['hazardous'] = Prompt.ask(
                        "Hazardous material", choices=['YES', 'NO'],
                        default=current.get('hazardous') or 'NO'
                    )
                    values['ship_mode'] = Prompt.ask(
                        "Method of transportation", choices=list(SHIP_MODES),
                        default=current.get('ship_mode') or 'Air'
                    )
        except (KeyboardInterrupt, EOFError):
            raise UserCancelledError("Header entry cancelled")

        return HeaderData.from_dict(values)


def resolve_missing_interactively(resolver, codes: List[str], merged: Sequence[MergedItem],
                                  session_id: Optional[str] = None,
                                  prompt: Optional[MasterDataPrompt] = None) -> int:
    """
    Prompt for and store a record for every missing code.

    Returns:
        Number of records stored
    """
    prompt = prompt or MasterDataPrompt()
    prompt.show_missing(codes, merged)

    stored = 0
    for code in codes:
        record = prompt.prompt_for_record(code)
        resolver.resolve(record, session_id=session_id, notes='entered interactively')
        stored += 1

    logger.info(f"Stored master data for {stored} products")
    return stored
