"""
Invoice text parsing.

This module turns the raw text of one commercial invoice into LineItem
objects. Invoice PDFs lay their lines out as a table, but the extracted text
wraps descriptions over several lines, so the item section is flattened into
a single token stream before matching.
"""

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Iterable, Tuple

from .code_normalizer import normalize_product_code
from .models import LineItem, ParsedInvoice


logger = logging.getLogger(__name__)


class InvoiceTextParser:
    """
    Extract line items from the text of a single invoice.

    Items are read from the section between the "Total Value" column header
    and the "Invoice Line" trailer. Each item has the shape::

        QTY EA SKU CC UNIT_PRICE TOTAL_PRICE DESCRIPTION... SCHEDULE_B
        12  EA 10689 TW 2.99     35.88       Widget -       3926.90.9990
    """

    SECTION_START = re.compile(r'Total Value', re.IGNORECASE)
    SECTION_END = re.compile(r'Invoice Line', re.IGNORECASE)
    WHITESPACE = re.compile(r'\s+')

    LINE_ITEM_PATTERN = re.compile(
        r'(\d+)\s+'                   # Quantity
        r'EA\s+'                      # Unit marker
        r'(\S+)\s+'                   # Raw product code token
        r'([A-Z]{2})\s+'              # Country of origin
        r'([\d.,]+)\s+'               # Unit price
        r'([\d.,]+)\s+'               # Total price
        r'(.+?)\s+'                   # Description (non-greedy)
        r'(\d{4}\.\d{2}\.\d{4})',     # Schedule B code
        re.DOTALL
    )

    TRAILING_HYPHEN = re.compile(r'\s+-\s*$')

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def extract_section(self, text: str) -> Optional[str]:
        """
        Return the flattened item section of an invoice, or None if absent.

        The section starts at the line break following the first "Total Value"
        and ends at the first "Invoice Line" after that point.
        """
        if not text:
            return None

        anchor = self.SECTION_START.search(text)
        if not anchor:
            return None

        start = text.find('\n', anchor.start())
        if start == -1:
            return None

        end_match = self.SECTION_END.search(text, start)
        end = end_match.start() if end_match else len(text)

        return self.WHITESPACE.sub(' ', text[start:end])

    def parse(self, text: str) -> List[LineItem]:
        """
        Parse invoice text into line items.

        Never raises. Token runs that do not form a complete line item are
        dropped without partial results.
        """
        section = self.extract_section(text)
        if section is None:
            self.logger.debug("No 'Total Value' section found in invoice text")
            return []

        items = []
        for match in self.LINE_ITEM_PATTERN.finditer(section):
            item = self._build_line_item(match)
            if item is not None:
                items.append(item)

        self.logger.debug(f"Parsed {len(items)} line items from invoice section")
        return items

    def parse_many(self, sources: Iterable[Tuple[str, str]]) -> List[ParsedInvoice]:
        """
        Parse several invoices independently.

        Args:
            sources: (source name, invoice text) pairs

        Returns:
            One ParsedInvoice per source, in input order
        """
        results = []
        for name, text in sources:
            items = self.parse(text)
            if not items:
                self.logger.warning(f"No line items recognized in {name}")
            results.append(ParsedInvoice(source=name, items=items))
        return results

    def _build_line_item(self, match: re.Match) -> Optional[LineItem]:
        quantity, raw_code, origin, unit_raw, total_raw, description, schedule = match.groups()

        try:
            unit_price = self._parse_amount(unit_raw)
            total_price = self._parse_amount(total_raw)
        except InvalidOperation:
            self.logger.debug(f"Skipping line with unreadable prices: {match.group(0)!r}")
            return None

        product_code = normalize_product_code(raw_code)
        if not product_code:
            self.logger.warning(f"Skipping line without a product code: {match.group(0)!r}")
            return None

        description = self.TRAILING_HYPHEN.sub('', description.strip())

        return LineItem(
            quantity=int(quantity),
            product_code=product_code,
            origin_country=origin,
            unit_price=unit_price,
            total_price=total_price,
            description=description,
            schedule_code=schedule
        )

    @staticmethod
    def _parse_amount(raw: str) -> Decimal:
        """Parse a price, dropping thousands separators."""
        return Decimal(raw.replace(',', ''))


def parse_invoice_text(text: str) -> List[LineItem]:
    """Parse one invoice's text with a default parser."""
    return InvoiceTextParser().parse(text)
