"""
SLI document generation.

Fills the SLI spreadsheet template with header data and commodity rows,
growing the footer to fit.
"""

from .header import HeaderData, load_header, format_phone
from .layout import SLILayout, shift, footer_offset
from .renderer import DocumentLayoutExpander, OUTPUT_FILENAME, XLSX_MIME_TYPE
from .template import (
    build_default_template,
    load_template_bytes,
    save_default_template,
    validate_template
)

__all__ = [
    'HeaderData',
    'load_header',
    'format_phone',
    'SLILayout',
    'shift',
    'footer_offset',
    'DocumentLayoutExpander',
    'OUTPUT_FILENAME',
    'XLSX_MIME_TYPE',
    'build_default_template',
    'load_template_bytes',
    'save_default_template',
    'validate_template'
]
