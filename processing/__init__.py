"""
Invoice processing for the SLI Builder.

This package turns commercial invoice text into customs commodity rows:
text extraction, line item parsing, cross-invoice aggregation, the master
data gate and weight/value computation. The end-to-end run lives in
processing.pipeline.
"""

from .models import LineItem, MergedItem, ParsedInvoice, CommodityRow, RowBuildReport
from .exceptions import (
    SLIProcessingError,
    TextExtractionError,
    MissingMasterDataError,
    MixedUnitGroupError,
    AggregationCacheError,
    TemplateLayoutError,
    DocumentWriteError
)
from .code_normalizer import normalize_product_code
from .invoice_parser import InvoiceTextParser, parse_invoice_text
from .aggregator import ItemAggregator, merge_line_items, group_merged_items
from .weight_calculator import WeightValueCalculator, build_commodity_rows
from .missing_data import MissingDataResolver, find_missing

__all__ = [
    'LineItem',
    'MergedItem',
    'ParsedInvoice',
    'CommodityRow',
    'RowBuildReport',
    'SLIProcessingError',
    'TextExtractionError',
    'MissingMasterDataError',
    'MixedUnitGroupError',
    'AggregationCacheError',
    'TemplateLayoutError',
    'DocumentWriteError',
    'normalize_product_code',
    'InvoiceTextParser',
    'parse_invoice_text',
    'ItemAggregator',
    'merge_line_items',
    'group_merged_items',
    'WeightValueCalculator',
    'build_commodity_rows',
    'MissingDataResolver',
    'find_missing'
]
