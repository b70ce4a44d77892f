"""
Master carton calculator.

Counts the master cartons needed for a pasted spreadsheet selection: product
code in the first column, quantity in the third. Columns are tab separated
(as copied from a spreadsheet) with comma separation as a fallback.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from database.database import DatabaseManager


logger = logging.getLogger(__name__)

LEADING_INT = re.compile(r'^[+-]?\d+')


@dataclass
class BoxCalculation:
    """
    Result of a carton calculation.

    When ``missing_code`` is set the calculation stopped at that line and
    ``total_boxes`` only covers the lines before it.
    """
    total_boxes: int = 0
    lines_counted: int = 0
    lines_skipped: int = 0
    missing_code: Optional[str] = None
    skipped_codes: List[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.missing_code is None


def split_line(line: str) -> List[str]:
    """Split on TAB, falling back to comma when that yields fewer than 3 fields."""
    parts = line.split('\t')
    if len(parts) < 3:
        parts = line.split(',')
    return parts


def parse_quantity(raw: str) -> int:
    """Leading integer of a quantity cell; 0 when there is none."""
    match = LEADING_INT.match(raw.strip())
    return int(match.group(0)) if match else 0


def parse_rows(raw_text: str) -> List[Tuple[str, int]]:
    """(product code, quantity) for every usable line, in input order."""
    rows = []
    for line in raw_text.splitlines():
        if not line.strip():
            continue
        parts = split_line(line)
        if len(parts) < 3:
            logger.debug(f"Skipping line with fewer than 3 fields: {line!r}")
            continue
        rows.append((parts[0].strip(), parse_quantity(parts[2])))
    return rows


def calculate_boxes(raw_text: str, db_manager: DatabaseManager) -> BoxCalculation:
    """
    Total master cartons for the pasted rows.

    Each line rounds up on its own: ``sum(ceil(qty / units_per_carton))``.
    Products without a carton quantity are skipped. The first product with
    no master record stops the calculation.
    """
    rows = parse_rows(raw_text)
    master = db_manager.lookup_products(code for code, _ in rows)
    result = BoxCalculation()

    for code, quantity in rows:
        record = master.get(code)
        if record is None:
            result.missing_code = code
            logger.warning(f"Box calculation stopped: no master data for {code}")
            break

        if record.units_per_carton <= 0:
            result.lines_skipped += 1
            if code not in result.skipped_codes:
                result.skipped_codes.append(code)
            continue

        result.total_boxes += math.ceil(quantity / record.units_per_carton)
        result.lines_counted += 1

    logger.info(f"Box calculation: {result.total_boxes} cartons over {result.lines_counted} lines")
    return result
