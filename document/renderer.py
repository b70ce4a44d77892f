"""
SLI document rendering.

The DocumentLayoutExpander fills the template's header, writes one commodity
row per group starting at the anchor row and moves the footer block down by
the number of extra rows. The footer is rebuilt from an untouched copy of
the template so labels, styles, heights and merges survive the growth.
"""

import logging
from copy import copy
from datetime import date
from decimal import Decimal
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Sequence, Union

from openpyxl import Workbook
from openpyxl.cell.cell import MergedCell
from openpyxl.cell.rich_text import CellRichText, TextBlock
from openpyxl.cell.text import InlineFont
from openpyxl.worksheet.worksheet import Worksheet

from processing.exceptions import TemplateLayoutError, DocumentWriteError
from processing.models import CommodityRow
from .header import HeaderData
from .layout import SLILayout, COLUMNS, footer_offset, shift
from .template import load_template_bytes, open_template, validate_template


logger = logging.getLogger(__name__)

OUTPUT_FILENAME = 'SLI.xlsx'
XLSX_MIME_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
DEFAULT_AES_THRESHOLD = Decimal('2500')


def check_mark() -> TextBlock:
    return TextBlock(InlineFont(rFont=SLILayout.CHECK_FONT, sz=SLILayout.CHECK_SIZE),
                     SLILayout.CHECK_MARK)


def label_run(text: str) -> TextBlock:
    return TextBlock(InlineFont(rFont=SLILayout.LABEL_FONT, sz=SLILayout.LABEL_SIZE), text)


def copy_cell_style(source, target) -> None:
    """Copy style attribute-wise; works across workbooks."""
    target.font = copy(source.font)
    target.border = copy(source.border)
    target.fill = copy(source.fill)
    target.number_format = source.number_format
    target.protection = copy(source.protection)
    target.alignment = copy(source.alignment)


def set_alignment(cell, horizontal: str) -> None:
    alignment = copy(cell.alignment)
    alignment.horizontal = horizontal
    cell.alignment = alignment


def set_font_size(cell, size: float) -> None:
    font = copy(cell.font)
    font.size = size
    cell.font = font


def unmerge_rows(ws: Worksheet, first_row: int, last_row: int) -> None:
    """Unmerge every merged range that overlaps rows first_row..last_row."""
    for merged in list(ws.merged_cells.ranges):
        if merged.max_row < first_row or merged.min_row > last_row:
            continue
        ws.unmerge_cells(merged.coord)


class DocumentLayoutExpander:
    """
    Render commodity rows and header data into an SLI workbook.

    Args:
        aes_threshold: A row valued above this requires AES filing; when no
            row does, the exemption checkbox (item 32) is marked
        template_path: Template workbook; None uses the built-in template
    """

    def __init__(self, aes_threshold: Union[Decimal, float, int] = DEFAULT_AES_THRESHOLD,
                 template_path: Optional[Union[str, Path]] = None):
        self.aes_threshold = Decimal(str(aes_threshold))
        self.template_path = template_path
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def render(self, rows: Sequence[CommodityRow], header: HeaderData,
               template: Optional[bytes] = None, today: Optional[date] = None) -> Workbook:
        """
        Produce the finished workbook.

        Args:
            rows: Commodity rows in document order
            header: Operator-supplied header and footer fields
            template: Template bytes; defaults to the configured template
            today: Date printed in the footer (defaults to today)

        Raises:
            TemplateLayoutError: If the template lacks the anchor merges or
                footer rows, or a target cell is covered by a merge
        """
        if template is None:
            template = load_template_bytes(self.template_path)
        name = str(self.template_path) if self.template_path else None

        workbook = open_template(template, name)
        reference = open_template(template, name)
        sheet = workbook.active
        ref_sheet = reference.active
        validate_template(ref_sheet, name)

        self._write_header(sheet, header)
        self._write_commodity_rows(sheet, rows)

        offset = footer_offset(len(rows))
        self._move_footer(sheet, ref_sheet, offset)

        requires_aes = any(Decimal(row.total_value) > self.aes_threshold for row in rows)
        self._write_footer(sheet, header, offset, requires_aes, today or date.today())

        self.logger.info(
            f"Rendered {len(rows)} commodity rows (footer offset {offset}, "
            f"AES {'required' if requires_aes else 'exempt'})"
        )
        return workbook

    def render_bytes(self, rows: Sequence[CommodityRow], header: HeaderData,
                     template: Optional[bytes] = None, today: Optional[date] = None) -> bytes:
        """Render and serialize to xlsx bytes."""
        workbook = self.render(rows, header, template, today)
        buffer = BytesIO()
        try:
            workbook.save(buffer)
        except Exception as e:
            raise DocumentWriteError(f"Failed to serialize SLI workbook: {e}", original_error=e) from e
        return buffer.getvalue()

    def save(self, rows: Sequence[CommodityRow], header: HeaderData,
             output_path: Union[str, Path], template: Optional[bytes] = None,
             today: Optional[date] = None) -> Path:
        """
        Render and write the document to ``output_path``.

        The document is fully serialized before the file is opened, and a
        failed write removes whatever was written.
        """
        return self.write(self.render_bytes(rows, header, template, today), output_path)

    def write(self, data: bytes, output_path: Union[str, Path]) -> Path:
        """Write serialized document bytes, leaving no partial file on failure."""
        output_path = Path(output_path)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(data)
        except OSError as e:
            if output_path.is_file():
                output_path.unlink()
            raise DocumentWriteError(
                f"Failed to write SLI document: {e}", output_path=str(output_path), original_error=e
            ) from e

        self.logger.info(f"Wrote SLI document to {output_path}")
        return output_path

    def _set(self, sheet: Worksheet, coordinate: str, value) -> None:
        cell = sheet[coordinate]
        if isinstance(cell, MergedCell):
            raise TemplateLayoutError(
                f"Cell {coordinate} is inside a merged range and cannot hold a value",
                missing=[coordinate]
            )
        cell.value = value

    def _write_header(self, sheet: Worksheet, header: HeaderData) -> None:
        self._set(sheet, SLILayout.FORWARDER_NAME, header.forwarder_name)
        for coordinate, value in zip(SLILayout.FORWARDER_LINES, header.forwarder_lines()):
            self._set(sheet, coordinate, value)

        self._set(sheet, SLILayout.CONSIGNEE_NAME, header.consignee_name)
        for coordinate, value in zip(SLILayout.CONSIGNEE_LINES, header.consignee_lines()):
            self._set(sheet, coordinate, value)

        self._set(sheet, SLILayout.SO_NUMBER, header.so_number)

        if header.destination_country:
            self._set(sheet, SLILayout.DESTINATION, header.destination_country.upper())
        if header.hazardous:
            self._set(sheet, SLILayout.HAZARDOUS, header.hazardous.upper())

        mode_cell = SLILayout.SHIP_MODE_CELLS.get(header.ship_mode)
        if mode_cell:
            self._set(sheet, mode_cell, CellRichText(check_mark(), label_run(header.ship_mode)))

        if header.ship_payment_type:
            self._set(sheet, SLILayout.PAYMENT_TYPE,
                      SLILayout.PAYMENT_TYPE_PREFIX + header.ship_payment_type.upper())

    def _prepare_row(self, sheet: Worksheet, row: int) -> None:
        """Turn ``row`` into a copy of the anchor row: style, height, merges, no values."""
        anchor = SLILayout.ANCHOR_ROW
        unmerge_rows(sheet, row, row)

        for column in COLUMNS:
            target = sheet[f"{column}{row}"]
            target.value = None
            copy_cell_style(sheet[f"{column}{anchor}"], target)

        sheet.row_dimensions[row].height = sheet.row_dimensions[anchor].height

        for start, end in SLILayout.ROW_MERGES:
            sheet.merge_cells(f"{start}{row}:{end}{row}")

    def _write_commodity_rows(self, sheet: Worksheet, rows: Sequence[CommodityRow]) -> None:
        for index, commodity in enumerate(rows):
            row = SLILayout.commodity_row(index)
            if row != SLILayout.ANCHOR_ROW:
                self._prepare_row(sheet, row)

            self._set(sheet, f"{SLILayout.FLAG_COLUMN}{row}", commodity.customs_flag)
            self._set(sheet, f"{SLILayout.SCHEDULE_COLUMN}{row}", commodity.schedule_code)

            net = sheet[f"{SLILayout.NET_WEIGHT_COLUMN}{row}"]
            net.value = round(commodity.net_weight_kg, 1)
            net.number_format = SLILayout.WEIGHT_FORMAT

            self._set(sheet, f"{SLILayout.UNIT_COLUMN}{row}", commodity.unit_label)

            gross = sheet[f"{SLILayout.GROSS_WEIGHT_COLUMN}{row}"]
            gross.value = round(commodity.gross_weight_kg, 1)
            gross.number_format = SLILayout.WEIGHT_FORMAT

            value = sheet[f"{SLILayout.VALUE_COLUMN}{row}"]
            value.value = commodity.total_value
            value.number_format = SLILayout.VALUE_FORMAT

            for column, constant in SLILayout.ROW_CONSTANTS.items():
                self._set(sheet, f"{column}{row}", constant)

    def _move_footer(self, sheet: Worksheet, ref_sheet: Worksheet, offset: int) -> None:
        """Copy the reference footer block to its shifted position and re-create its merges."""
        start, end = SLILayout.FOOTER_START, SLILayout.FOOTER_END
        unmerge_rows(sheet, shift(start, offset), shift(end, offset))

        for src_row in range(start, end + 1):
            dst_row = shift(src_row, offset)
            sheet.row_dimensions[dst_row].height = ref_sheet.row_dimensions[src_row].height
            for column in COLUMNS:
                source = ref_sheet[f"{column}{src_row}"]
                target = sheet[f"{column}{dst_row}"]
                target.value = source.value
                copy_cell_style(source, target)

        for merged in ref_sheet.merged_cells.ranges:
            if merged.max_row < start or merged.min_row > end:
                continue
            sheet.merge_cells(
                start_row=shift(merged.min_row, offset),
                start_column=merged.min_col,
                end_row=shift(merged.max_row, offset),
                end_column=merged.max_col
            )
        self.logger.debug(f"Footer rows {start}-{end} moved to {shift(start, offset)}-{shift(end, offset)}")

    def _write_footer(self, sheet: Worksheet, header: HeaderData, offset: int,
                      requires_aes: bool, today: date) -> None:
        totals_row = shift(SLILayout.TOTALS_ROW, offset)
        for column in SLILayout.TOTALS_CENTERED:
            set_alignment(sheet[f"{column}{totals_row}"], 'center')

        aes_row = shift(SLILayout.AES_ROW, offset)
        if not requires_aes:
            self._set(sheet, f"{SLILayout.AES_CHECKBOX_COLUMN}{aes_row}", CellRichText(check_mark()))
        label_cell = f"{SLILayout.AES_LABEL_COLUMN}{aes_row}"
        self._set(sheet, label_cell, CellRichText(label_run(SLILayout.AES_LABEL)))
        set_alignment(sheet[label_cell], 'left')

        contact_row = shift(SLILayout.CONTACT_ROW, offset)
        name_row = shift(SLILayout.NAME_ROW, offset)
        title_row = shift(SLILayout.TITLE_DATE_ROW, offset)

        centered: List[tuple] = [
            (f"{SLILayout.EMAIL_COLUMN}{contact_row}", header.shipper_email, SLILayout.CONTACT_FONT_SIZE),
            (f"{SLILayout.PHONE_COLUMN}{contact_row}", header.formatted_phone, SLILayout.CONTACT_FONT_SIZE),
            (f"{SLILayout.NAME_COLUMN}{name_row}", header.shipper_name, None),
            (f"{SLILayout.TITLE_COLUMN}{title_row}", SLILayout.SHIPPER_TITLE, None),
            (f"{SLILayout.DATE_COLUMN}{title_row}", today.strftime(SLILayout.DATE_FORMAT),
             SLILayout.CONTACT_FONT_SIZE),
        ]
        for coordinate, value, size in centered:
            self._set(sheet, coordinate, value)
            if size:
                set_font_size(sheet[coordinate], size)
            set_alignment(sheet[coordinate], 'center')
