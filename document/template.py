"""
SLI template workbook.

A deployment normally points ``template_path`` at its own SLI.xlsx. When no
template is configured the built-in one from build_default_template() is
used; it has the same cell layout (see SLILayout) as the forwarder's form.
"""

import logging
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Union

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Border, Font, Side
from openpyxl.utils import range_boundaries
from openpyxl.worksheet.worksheet import Worksheet

from processing.exceptions import TemplateLayoutError
from .layout import SLILayout, COLUMNS


logger = logging.getLogger(__name__)

THIN = Side(style='thin')
BOX = Border(left=THIN, right=THIN, top=THIN, bottom=THIN)
LABEL_FONT = Font(name='Arial', size=7, bold=True)
VALUE_FONT = Font(name='Arial', size=8)

HEADER_MERGES = [
    'A1:N1',
    'J3:N3', 'J4:N4', 'J5:N5', 'J6:N6', 'J7:N7',
    'C9:D9',
    'A11:D11', 'A12:D12', 'A13:D13', 'A14:D14',
    'E16:F16', 'E17:F17',
    'A19:N19',
    'B22:D22', 'J22:L22',
]

FOOTER_MERGES = [
    'A24:L24',
    'B25:N25',
    'A26:N27',
    'A28:C28', 'D28:H28', 'I28:K28', 'L28:N28',
    'A29:G29', 'H29:N29',
    'A30:H30', 'I30:L30',
    'A31:N31',
    'A32:N33',
]

HEADER_LABELS = {
    'A1': "SHIPPER'S LETTER OF INSTRUCTIONS",
    'A3': '1. Shipper / USPPI',
    'I3': '2. Forwarding Agent',
    'A9': 'SO #',
    'A10': '3. Ultimate Consignee',
    'A16': '4. Country of Ultimate Destination',
    'A17': '5. Hazardous Material (Yes/No)',
    'A18': '6. Method of Transportation',
    'G18': 'Air',
    'H18': 'Ocean',
    'A22': 'D/F',
    'B22': 'Schedule B Number',
    'E22': 'Net Qty',
    'F22': 'Unit',
    'G22': 'Gross Kg',
    'H22': 'ECCN',
    'I22': 'Lic. Req.',
    'J22': 'License Type',
    'M22': 'Value (USD)',
    'N22': 'License Value',
}

FOOTER_LABELS = {
    'A24': 'Total',
    'B25': SLILayout.AES_LABEL,
    'A26': '33. I certify that the statements made and all information contained herein '
           'are true and correct.',
    'A28': 'Email',
    'I28': 'Phone',
    'A29': 'Printed Name',
    'A30': 'Title',
    'M30': 'Date',
    'A31': 'Signature',
    'A32': 'Validation: The USPPI authorizes the forwarder named above to act as '
           'forwarding agent for export control and customs purposes.',
}

ROW_HEIGHTS = {1: 24, 22: 22, 23: 15, 25: 20, 26: 14, 27: 14, 32: 14, 33: 14}


def build_default_template() -> Workbook:
    """Create the built-in SLI template."""
    wb = Workbook()
    ws = wb.active
    ws.title = 'SLI'

    for cell, value in {**HEADER_LABELS, **FOOTER_LABELS}.items():
        ws[cell] = value
        ws[cell].font = LABEL_FONT
        ws[cell].alignment = Alignment(vertical='center', wrap_text=True)
    ws['A1'].font = Font(name='Arial', size=12, bold=True)

    anchor = SLILayout.ANCHOR_ROW
    for column in COLUMNS:
        cell = ws[f"{column}{anchor}"]
        cell.font = VALUE_FONT
        cell.border = BOX
        cell.alignment = Alignment(horizontal='center', vertical='center')
        ws[f"{column}22"].border = BOX

    for row in range(SLILayout.FOOTER_START, SLILayout.FOOTER_END + 1):
        for column in COLUMNS:
            ws[f"{column}{row}"].border = BOX

    for cell_range in HEADER_MERGES + FOOTER_MERGES:
        ws.merge_cells(cell_range)
    for start, end in SLILayout.ROW_MERGES:
        ws.merge_cells(f"{start}{anchor}:{end}{anchor}")

    for row, height in ROW_HEIGHTS.items():
        ws.row_dimensions[row].height = height
    for column in COLUMNS:
        ws.column_dimensions[column].width = 11

    return wb


def default_template_bytes() -> bytes:
    buffer = BytesIO()
    build_default_template().save(buffer)
    return buffer.getvalue()


def load_template_bytes(template_path: Optional[Union[str, Path]] = None) -> bytes:
    """
    Raw bytes of the template to render into.

    The bytes are loaded twice by the renderer: once as the working sheet and
    once as the untouched reference for the footer copy.

    Raises:
        TemplateLayoutError: If a configured template cannot be read
    """
    if not template_path:
        logger.debug("Using built-in SLI template")
        return default_template_bytes()

    path = Path(template_path)
    try:
        return path.read_bytes()
    except OSError as e:
        raise TemplateLayoutError(f"SLI template not readable: {e}", template=str(path))


def save_default_template(path: Union[str, Path]) -> Path:
    """Write the built-in template to ``path`` so it can be customized."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    build_default_template().save(path)
    logger.info(f"Wrote SLI template to {path}")
    return path


def _has_merge(ws: Worksheet, cell_range: str) -> bool:
    wanted = range_boundaries(cell_range)
    return any(merged.bounds == wanted for merged in ws.merged_cells.ranges)


def validate_template(ws: Worksheet, name: Optional[str] = None) -> None:
    """
    Check that a sheet has the anchor row merges and the footer block.

    Raises:
        TemplateLayoutError: Listing every missing piece
    """
    missing: List[str] = []
    anchor = SLILayout.ANCHOR_ROW

    for start, end in SLILayout.ROW_MERGES:
        cell_range = f"{start}{anchor}:{end}{anchor}"
        if not _has_merge(ws, cell_range):
            missing.append(f"merge {cell_range}")

    if ws.max_row < SLILayout.FOOTER_END:
        missing.append(f"footer rows {SLILayout.FOOTER_START}-{SLILayout.FOOTER_END}")

    if missing:
        raise TemplateLayoutError(
            f"SLI template is missing: {', '.join(missing)}", template=name, missing=missing
        )


def open_template(template_bytes: bytes, name: Optional[str] = None) -> Workbook:
    """
    Load template bytes as a workbook, keeping rich text runs.

    Raises:
        TemplateLayoutError: If the bytes are not a readable workbook
    """
    try:
        return load_workbook(BytesIO(template_bytes), rich_text=True)
    except Exception as e:
        raise TemplateLayoutError(f"Cannot open SLI template: {e}", template=name) from e
