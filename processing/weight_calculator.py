"""
Net weight, gross weight and value per schedule/origin group.

Net weight depends on the product's unit of measure:

    KG, KGS, X  -> quantity * unit_weight * 0.454   (pounds to kilograms)
    DOZ, DZ     -> quantity / 12
    M2          -> quantity * unit_weight
    anything else (NO, PCS, EA, ...) -> quantity

Gross weight always comes from master cartons:
(quantity / units_per_carton) * carton_weight * 0.454.
"""

import logging
import re
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from database.models import ProductMasterRecord
from .aggregator import ordered_group_keys
from .exceptions import MixedUnitGroupError
from .models import (
    MergedItem, GroupTotals, CommodityRow, RowBuildReport, GroupKey, US_BUCKET
)


logger = logging.getLogger(__name__)

LB_TO_KG = 0.454

WEIGHT_UNITS = frozenset({'kg', 'kgs', 'x'})
DOZEN_UNITS = frozenset({'doz', 'dz'})
AREA_UNITS = frozenset({'m2'})

MIXED_UNIT_POLICIES = ('warn', 'reject')


def normalize_unit_of_measure(raw: str) -> str:
    """Lower-case a unit of measure and drop all whitespace ("KG " -> "kg")."""
    return re.sub(r'\s+', '', (raw or '').lower())


def unit_family(raw: str) -> str:
    """Map a unit of measure onto its label: kg, doz, m2 or no."""
    unit = normalize_unit_of_measure(raw)
    if unit in WEIGHT_UNITS:
        return 'kg'
    if unit in DOZEN_UNITS:
        return 'doz'
    if unit in AREA_UNITS:
        return 'm2'
    return 'no'


def net_weight(quantity: float, record: ProductMasterRecord) -> Tuple[float, str]:
    """Net contribution of one item and its unit label."""
    family = unit_family(record.unit_of_measure)
    if family == 'kg':
        return quantity * record.unit_weight * LB_TO_KG, family
    if family == 'doz':
        return quantity / 12.0, family
    if family == 'm2':
        return quantity * record.unit_weight, family
    return quantity, family


class WeightValueCalculator:
    """Compute the declared weights and value of one group of merged items."""

    def compute(self, items: Sequence[MergedItem],
                master: Mapping[str, ProductMasterRecord]) -> GroupTotals:
        """
        Compute net kg, gross kg, total value and unit label for a group.

        Every item's product code must be present in ``master``; the missing
        data gate guarantees this before any computation happens.

        Items whose master record has no carton quantity contribute nothing to
        gross weight and are reported in ``degenerate_codes``.
        """
        totals = GroupTotals()

        for item in items:
            record = master[item.product_code]
            quantity = float(item.quantity)

            totals.value += Decimal(item.total_price)

            item_net, family = net_weight(quantity, record)
            totals.net_kg += item_net
            totals.unit_label = family
            if family not in totals.unit_families:
                totals.unit_families.append(family)

            if record.is_degenerate():
                if item.product_code not in totals.degenerate_codes:
                    totals.degenerate_codes.append(item.product_code)
                logger.warning(
                    f"Product {item.product_code} has no carton quantity; "
                    f"gross weight excludes it"
                )
                continue

            cartons = quantity / record.units_per_carton
            totals.gross_kg += cartons * record.carton_weight * LB_TO_KG

        return totals


def build_commodity_rows(groups: Dict[GroupKey, List[MergedItem]],
                         master: Mapping[str, ProductMasterRecord],
                         mixed_unit_policy: str = 'warn',
                         calculator: Optional[WeightValueCalculator] = None
                         ) -> Tuple[List[CommodityRow], RowBuildReport]:
    """
    Build the SLI commodity rows, US (D) groups first, then Non-US (F).

    Args:
        groups: Output of group_merged_items
        master: Product master records for every code in the groups
        mixed_unit_policy: 'warn' keeps the last unit label seen, 'reject'
            raises MixedUnitGroupError
        calculator: Optional calculator instance

    Returns:
        (commodity rows, data-quality report)
    """
    if mixed_unit_policy not in MIXED_UNIT_POLICIES:
        raise ValueError(f"Unknown mixed unit policy: {mixed_unit_policy}")

    calculator = calculator or WeightValueCalculator()
    report = RowBuildReport()
    rows: List[CommodityRow] = []

    for key in ordered_group_keys(groups):
        schedule, bucket = key
        totals = calculator.compute(groups[key], master)

        if totals.is_mixed_unit:
            if mixed_unit_policy == 'reject':
                raise MixedUnitGroupError(schedule, bucket, totals.unit_families)
            report.mixed_unit_groups[key] = list(totals.unit_families)
            logger.warning(
                f"Group {schedule} ({bucket}) mixes units {totals.unit_families}; "
                f"labelled '{totals.unit_label}'"
            )

        for code in totals.degenerate_codes:
            if code not in report.degenerate_codes:
                report.degenerate_codes.append(code)

        rows.append(CommodityRow(
            customs_flag='D' if bucket == US_BUCKET else 'F',
            schedule_code=schedule,
            net_weight_kg=totals.net_kg,
            unit_label=totals.unit_label,
            gross_weight_kg=totals.gross_kg,
            total_value=totals.value
        ))

    logger.info(f"Built {len(rows)} commodity rows")
    return rows, report
