"""
Fixed coordinates of the SLI template.

Header cells never move. Commodity rows start at the anchor row and grow
downward; every footer coordinate moves down by the number of extra
commodity rows (see shift()).
"""

from typing import Tuple


COLUMNS = tuple('ABCDEFGHIJKLMN')
FIRST_COLUMN = 'A'
LAST_COLUMN = 'N'


def shift(row: int, offset: int) -> int:
    """Template row ``row`` after the footer moved down by ``offset`` rows."""
    return row + offset


def footer_offset(row_count: int) -> int:
    """Rows the footer moves down for ``row_count`` commodity rows."""
    return max(0, row_count - 1)


class SLILayout:
    """Cell coordinates of the SLI template."""

    # Forwarder block (J:N merged on rows 3-7)
    FORWARDER_NAME = 'J3'
    FORWARDER_LINES = ('J4', 'J5', 'J6', 'J7')

    # Consignee block (A:D merged on rows 11-14)
    CONSIGNEE_NAME = 'A11'
    CONSIGNEE_LINES = ('A12', 'A13', 'A14')

    SO_NUMBER = 'C9'
    DESTINATION = 'E16'
    HAZARDOUS = 'E17'
    SHIP_MODE_CELLS = {'Air': 'G18', 'Ocean': 'H18'}
    PAYMENT_TYPE = 'A19'
    PAYMENT_TYPE_PREFIX = 'Shipping Payment Type: '

    # Commodity block
    ANCHOR_ROW = 23
    ROW_MERGES: Tuple[Tuple[str, str], ...] = (('B', 'D'), ('J', 'L'))

    FLAG_COLUMN = 'A'
    SCHEDULE_COLUMN = 'B'
    NET_WEIGHT_COLUMN = 'E'
    UNIT_COLUMN = 'F'
    GROSS_WEIGHT_COLUMN = 'G'
    ECCN_COLUMN = 'H'
    LICENSE_TYPE_COLUMN = 'I'
    LICENSE_COLUMN = 'J'
    VALUE_COLUMN = 'M'
    LICENSE_VALUE_COLUMN = 'N'

    ROW_CONSTANTS = {'H': 'EAR99', 'I': 'N', 'J': 'NLR', 'N': 'N/A'}

    WEIGHT_FORMAT = '#,##0.0'
    VALUE_FORMAT = '"$"#,##0.00'

    # Footer block of the unmodified template
    FOOTER_START = 24
    FOOTER_END = 33

    TOTALS_ROW = 24
    TOTALS_CENTERED = ('M', 'N')
    AES_ROW = 25
    AES_CHECKBOX_COLUMN = 'A'
    AES_LABEL_COLUMN = 'B'
    CONTACT_ROW = 28
    EMAIL_COLUMN = 'D'
    PHONE_COLUMN = 'L'
    NAME_ROW = 29
    NAME_COLUMN = 'H'
    TITLE_DATE_ROW = 30
    TITLE_COLUMN = 'I'
    DATE_COLUMN = 'N'

    SHIPPER_TITLE = 'Shipper'
    DATE_FORMAT = '%m/%d/%Y'

    AES_LABEL = (
        '32. Check here if there are any remaining non-licensable Schedule B / '
        'HTS Numbers that are valued $2500.00 or less and that do not otherwise '
        'require AES filing.'
    )

    CHECK_MARK = 'x'
    CHECK_FONT = 'Wingdings'
    CHECK_SIZE = 8
    LABEL_FONT = 'Arial'
    LABEL_SIZE = 7
    CONTACT_FONT_SIZE = 9

    @classmethod
    def commodity_row(cls, index: int) -> int:
        """Sheet row of the ``index``-th (0-based) commodity row."""
        return cls.ANCHOR_ROW + index

    @classmethod
    def footer_cell(cls, column: str, template_row: int, offset: int) -> str:
        return f"{column}{shift(template_row, offset)}"
