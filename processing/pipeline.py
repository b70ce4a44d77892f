"""
SLI pipeline.

Chains the steps of one SLI run:

    invoice files -> text -> line items -> merged items (cached per session)
        -> master data gate -> commodity rows -> SLI workbook

The run is split in two halves around the cache. ``parse`` ends by caching
the merged items; ``build`` starts from the cache, so a run stopped by
missing master data resumes without parsing the invoices again.

Usage:

    pipeline = SLIPipeline(DatabaseManager("sli_builder.db"))
    parsed = pipeline.parse(["inv1.pdf", "inv2.pdf"])
    result = pipeline.build(header, output_path="SLI.xlsx")
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from database.database import DatabaseManager
from document.header import HeaderData
from document.renderer import DocumentLayoutExpander
from .aggregator import ItemAggregator
from .exceptions import SLIProcessingError, TextExtractionError
from .invoice_parser import InvoiceTextParser
from .missing_data import MissingDataResolver, find_missing
from .models import MergedItem, ParsedInvoice, CommodityRow, RowBuildReport, GroupKey
from .pdf_text import text_of
from .session_cache import AggregationCache, DEFAULT_SESSION
from .weight_calculator import build_commodity_rows


logger = logging.getLogger(__name__)


@dataclass
class ParseResult:
    """Outcome of the parse half of a run."""
    session_id: str
    invoices: List[ParsedInvoice] = field(default_factory=list)
    merged: List[MergedItem] = field(default_factory=list)
    groups: Dict[GroupKey, List[MergedItem]] = field(default_factory=dict)

    @property
    def failed_sources(self) -> List[ParsedInvoice]:
        return [invoice for invoice in self.invoices if invoice.error]

    @property
    def line_count(self) -> int:
        return sum(len(invoice.items) for invoice in self.invoices)


@dataclass
class BuildResult:
    """Outcome of the build half of a run."""
    rows: List[CommodityRow]
    report: RowBuildReport
    document: bytes
    output_path: Optional[Path] = None


class SLIPipeline:
    """
    Orchestrates parsing, aggregation, the master data gate and rendering.

    Settings (AES threshold, mixed unit policy, template, cache retention)
    are read from the database configuration.
    """

    def __init__(self, db_manager: DatabaseManager,
                 text_extractor: Callable[[Union[str, Path]], str] = text_of,
                 parser: Optional[InvoiceTextParser] = None,
                 aggregator: Optional[ItemAggregator] = None):
        self.db_manager = db_manager
        self.text_extractor = text_extractor
        self.parser = parser or InvoiceTextParser()
        self.aggregator = aggregator or ItemAggregator()
        self.resolver = MissingDataResolver(db_manager)
        self.cache = AggregationCache(
            db_manager,
            retention_hours=db_manager.get_config_value('cache_retention_hours', 24)
        )
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def read_sources(self, paths: Iterable[Union[str, Path]]) -> List[ParsedInvoice]:
        """
        Extract and parse every invoice file.

        A file whose text cannot be extracted yields a ParsedInvoice with the
        error set and no items; the remaining files are still processed.
        """
        results = []
        for path in paths:
            name = Path(path).name
            try:
                text = self.text_extractor(path)
            except TextExtractionError as e:
                self.logger.error(f"Skipping {name}: {e}")
                results.append(ParsedInvoice(source=name, error=str(e)))
                continue
            results.extend(self.parser.parse_many([(name, text)]))
        return results

    def parse(self, paths: Iterable[Union[str, Path]],
              session_id: str = DEFAULT_SESSION) -> ParseResult:
        """Parse invoice files, aggregate them and cache the merged items."""
        return self._aggregate(self.read_sources(paths), session_id)

    def parse_texts(self, sources: Iterable[Tuple[str, str]],
                    session_id: str = DEFAULT_SESSION) -> ParseResult:
        """Same as parse() for already-extracted (name, text) pairs."""
        return self._aggregate(self.parser.parse_many(sources), session_id)

    def _aggregate(self, invoices: List[ParsedInvoice], session_id: str) -> ParseResult:
        merged = self.aggregator.merge(invoice.items for invoice in invoices)
        groups = self.aggregator.group(merged)
        self.cache.store(merged, session_id)

        result = ParseResult(session_id=session_id, invoices=invoices,
                             merged=merged, groups=groups)
        self.logger.info(
            f"Session '{session_id}': {len(invoices)} invoices, {result.line_count} line items, "
            f"{len(merged)} merged items, {len(groups)} groups"
        )
        return result

    def missing_codes(self, session_id: str = DEFAULT_SESSION) -> List[str]:
        """Product codes of the cached aggregation that still lack master data."""
        merged = self.cache.load(session_id)
        master = self.resolver.lookup(merged)
        return sorted(find_missing(merged, master))

    def build(self, header: HeaderData, session_id: str = DEFAULT_SESSION,
              output_path: Optional[Union[str, Path]] = None,
              merged: Optional[List[MergedItem]] = None) -> BuildResult:
        """
        Build the SLI from the cached aggregation of ``session_id``.

        Raises:
            AggregationCacheError: If nothing usable is cached
            SLIProcessingError: If the aggregation holds no items
            MissingMasterDataError: If any product lacks master data
            MixedUnitGroupError: If mixing is rejected by configuration
            TemplateLayoutError, DocumentWriteError: If rendering fails
        """
        if merged is None:
            merged = self.cache.load(session_id)
        if not merged:
            raise SLIProcessingError(f"Session '{session_id}' has no line items to declare")

        master = self.resolver.check(merged, session_id=session_id)
        groups = self.aggregator.group(merged)

        rows, report = build_commodity_rows(
            groups, master,
            mixed_unit_policy=self.db_manager.get_config_value('mixed_unit_policy', 'warn')
        )
        if report.degenerate_codes:
            self.resolver.flag_degenerate(report.degenerate_codes, session_id=session_id)

        renderer = DocumentLayoutExpander(
            aes_threshold=Decimal(str(self.db_manager.get_config_value('aes_value_threshold', 2500))),
            template_path=self.db_manager.get_config_value('template_path', '') or None
        )

        document = renderer.render_bytes(rows, header)
        saved = renderer.write(document, output_path) if output_path is not None else None

        return BuildResult(rows=rows, report=report, document=document, output_path=saved)
