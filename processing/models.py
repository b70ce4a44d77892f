"""
Data models for extracted and aggregated invoice information.

This module defines the data structures that flow through the SLI pipeline:
parsed line items, merged items, schedule/origin groups and the commodity
rows written to the document.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Dict, Any, NamedTuple, Tuple


US_BUCKET = 'US'
NON_US_BUCKET = 'Non-US'
UNKNOWN_SCHEDULE = 'UNKNOWN'

GroupKey = Tuple[str, str]


class MergeKey(NamedTuple):
    """Identity of "the same product" across invoices."""
    product_code: str
    origin_country: str
    unit_price: str
    schedule_code: str
    description: str


def _quantize_price(value: Decimal) -> str:
    return str(Decimal(value).quantize(Decimal('0.0001'), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class LineItem:
    """
    A single line item parsed from one invoice.

    Attributes:
        quantity: Number of units shipped
        product_code: Normalized product code (e.g. 210013-010)
        origin_country: Two-letter country of origin
        unit_price: Price per unit
        total_price: Extended line price
        description: Item description
        schedule_code: Schedule B code (####.##.####)
    """
    quantity: int
    product_code: str
    origin_country: str
    unit_price: Decimal
    total_price: Decimal
    description: str
    schedule_code: str

    def merge_key(self) -> MergeKey:
        return MergeKey(
            self.product_code,
            self.origin_country,
            _quantize_price(self.unit_price),
            self.schedule_code,
            self.description
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'quantity': self.quantity,
            'product_code': self.product_code,
            'origin_country': self.origin_country,
            'unit_price': str(self.unit_price),
            'total_price': str(self.total_price),
            'description': self.description,
            'schedule_code': self.schedule_code
        }


@dataclass
class MergedItem:
    """
    A product aggregated across every invoice in a run.

    Quantity and total price are summed over all contributing line items;
    the remaining fields come from the first contributor.
    """
    quantity: int
    product_code: str
    origin_country: str
    unit_price: Decimal
    total_price: Decimal
    description: str
    schedule_code: str
    source_count: int = 1

    @classmethod
    def from_line_item(cls, item: LineItem) -> 'MergedItem':
        return cls(
            quantity=item.quantity,
            product_code=item.product_code,
            origin_country=item.origin_country,
            unit_price=item.unit_price,
            total_price=item.total_price,
            description=item.description,
            schedule_code=item.schedule_code
        )

    @property
    def origin_bucket(self) -> str:
        return US_BUCKET if self.origin_country == US_BUCKET else NON_US_BUCKET

    def merge_key(self) -> MergeKey:
        return MergeKey(
            self.product_code,
            self.origin_country,
            _quantize_price(self.unit_price),
            self.schedule_code,
            self.description
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert merged item to dictionary for caching and display."""
        return {
            'quantity': self.quantity,
            'product_code': self.product_code,
            'origin_country': self.origin_country,
            'unit_price': str(self.unit_price),
            'total_price': str(self.total_price),
            'description': self.description,
            'schedule_code': self.schedule_code,
            'source_count': self.source_count
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MergedItem':
        return cls(
            quantity=int(data['quantity']),
            product_code=data['product_code'],
            origin_country=data['origin_country'],
            unit_price=Decimal(str(data['unit_price'])),
            total_price=Decimal(str(data['total_price'])),
            description=data.get('description', ''),
            schedule_code=data.get('schedule_code', ''),
            source_count=int(data.get('source_count', 1))
        )


@dataclass
class ParsedInvoice:
    """
    Result of parsing one invoice source.

    A source that could not be read carries an error and no items; the
    other sources of the run are unaffected.
    """
    source: str
    items: List[LineItem] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.items


@dataclass
class GroupTotals:
    """Weights and value computed for one schedule/origin group."""
    net_kg: float = 0.0
    gross_kg: float = 0.0
    value: Decimal = Decimal('0')
    unit_label: str = ''
    unit_families: List[str] = field(default_factory=list)
    degenerate_codes: List[str] = field(default_factory=list)

    @property
    def is_mixed_unit(self) -> bool:
        return len(self.unit_families) > 1


@dataclass
class CommodityRow:
    """One declaration row of the SLI commodity block."""
    customs_flag: str
    schedule_code: str
    net_weight_kg: float
    unit_label: str
    gross_weight_kg: float
    total_value: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            'customs_flag': self.customs_flag,
            'schedule_code': self.schedule_code,
            'net_weight_kg': round(self.net_weight_kg, 1),
            'unit_label': self.unit_label,
            'gross_weight_kg': round(self.gross_weight_kg, 1),
            'total_value': self.total_value
        }


@dataclass
class RowBuildReport:
    """Data-quality findings collected while building commodity rows."""
    degenerate_codes: List[str] = field(default_factory=list)
    mixed_unit_groups: Dict[GroupKey, List[str]] = field(default_factory=dict)

    @property
    def has_warnings(self) -> bool:
        return bool(self.degenerate_codes or self.mixed_unit_groups)
