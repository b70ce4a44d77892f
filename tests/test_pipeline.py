"""
Integration tests for the SLI pipeline.

These tests run the parse and build halves against a temporary database,
the built-in template and plain text invoices.
"""

import shutil
import tempfile
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

import pytest
from openpyxl import load_workbook

from database.database import DatabaseManager
from database.models import ProductMasterRecord
from document.header import HeaderData
from processing.exceptions import (
    AggregationCacheError, MissingMasterDataError, MixedUnitGroupError, SLIProcessingError
)
from processing.pipeline import SLIPipeline


INVOICE_A = """Commercial Invoice 10045
Qty UOM Item CO Unit Price Total Value
12 EA 10689 TW 2.99 35.88 Widget -
3926.90.9990
10 EA 40858-M40858 US 5.00 50.00 Clip 8305.20.0000
Invoice Line Total 85.88
"""

INVOICE_B = """Commercial Invoice 10046
Qty UOM Item CO Unit Price Total Value
8 EA 10689 TW 2.99 23.92 Widget - 3926.90.9990
Invoice Line Total 23.92
"""


class TestSLIPipeline:
    """Test a full run from invoice text to the SLI workbook."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.db_manager = DatabaseManager(str(Path(self.temp_dir) / "test.db"))
        self.pipeline = SLIPipeline(self.db_manager)
        self.header = HeaderData(shipper_name='Pat Doe', ship_mode='Air')
        self.output = Path(self.temp_dir) / "SLI.xlsx"

    def teardown_method(self):
        self.db_manager.close()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def add_master_data(self, carton_quantity=20):
        self.db_manager.upsert_product(ProductMasterRecord('10689', 0.5, 10.0, carton_quantity, 'X'))
        self.db_manager.upsert_product(ProductMasterRecord('40858', 0.25, 12.5, 48, 'NO'))

    def write_invoice(self, name, text):
        path = Path(self.temp_dir) / name
        path.write_text(text, encoding='utf-8')
        return path

    def test_parse_merges_across_invoices(self):
        result = self.pipeline.parse_texts([('a.txt', INVOICE_A), ('b.txt', INVOICE_B)])

        assert result.line_count == 3
        assert len(result.merged) == 2
        widget = next(item for item in result.merged if item.product_code == '10689')
        assert widget.quantity == 20
        assert widget.total_price == Decimal('59.80')
        assert set(result.groups) == {('3926.90.9990', 'Non-US'), ('8305.20.0000', 'US')}

    def test_parse_then_build(self):
        self.add_master_data()
        self.pipeline.parse_texts([('a.txt', INVOICE_A), ('b.txt', INVOICE_B)])

        result = self.pipeline.build(self.header, output_path=self.output)

        assert [(row.customs_flag, row.schedule_code) for row in result.rows] == [
            ('D', '8305.20.0000'),
            ('F', '3926.90.9990'),
        ]
        us_row, foreign_row = result.rows
        assert us_row.net_weight_kg == 10
        assert us_row.unit_label == 'no'
        assert us_row.gross_weight_kg == pytest.approx((10 / 48) * 12.5 * 0.454)
        assert foreign_row.net_weight_kg == pytest.approx(20 * 0.5 * 0.454)
        assert foreign_row.gross_weight_kg == pytest.approx(10.0 * 0.454)
        assert foreign_row.total_value == Decimal('59.80')

        assert result.output_path == self.output
        sheet = load_workbook(self.output).active
        assert sheet['B23'].value == '8305.20.0000'
        assert sheet['B24'].value == '3926.90.9990'
        assert sheet['A25'].value == 'Total'

    def test_missing_master_data_stops_then_resumes(self):
        self.pipeline.parse_texts([('a.txt', INVOICE_A)], session_id='order-1')

        with patch('processing.pipeline.build_commodity_rows') as build_rows:
            with pytest.raises(MissingMasterDataError) as exc_info:
                self.pipeline.build(self.header, session_id='order-1', output_path=self.output)
            build_rows.assert_not_called()
        assert exc_info.value.codes == ['10689', '40858']
        assert not self.output.exists()

        self.add_master_data()
        with patch.object(self.pipeline.parser, 'parse') as parse:
            result = self.pipeline.build(self.header, session_id='order-1', output_path=self.output)
            parse.assert_not_called()

        assert len(result.rows) == 2
        assert self.output.exists()

    def test_code_with_slash_can_be_resolved(self):
        text = "Qty Total Value\n3 EA AB/12-X1 CN 1.00 3.00 Bracket 7326.90.8688\nInvoice Line"
        self.pipeline.parse_texts([('c.txt', text)], session_id='s2')
        assert self.pipeline.missing_codes('s2') == ['AB/12']

        self.pipeline.resolver.resolve(ProductMasterRecord('AB/12', 0.2, 4.0, 10, 'X'), session_id='s2')
        result = self.pipeline.build(self.header, session_id='s2', output_path=self.output)

        assert self.pipeline.missing_codes('s2') == []
        assert [row.schedule_code for row in result.rows] == ['7326.90.8688']

    def test_missing_codes_after_parse(self):
        self.db_manager.upsert_product(ProductMasterRecord('40858', 0.25, 12.5, 48, 'NO'))
        self.pipeline.parse_texts([('a.txt', INVOICE_A)])
        assert self.pipeline.missing_codes() == ['10689']

    def test_degenerate_record_is_flagged(self):
        self.add_master_data(carton_quantity=0)
        self.pipeline.parse_texts([('a.txt', INVOICE_A)], session_id='s1')

        result = self.pipeline.build(self.header, session_id='s1')

        assert result.report.degenerate_codes == ['10689']
        assert result.rows[1].gross_weight_kg == 0
        flagged = self.db_manager.list_resolution_logs(session_id='s1')
        assert [(entry.product_code, entry.action_taken) for entry in flagged] == [('10689', 'flagged')]
        assert result.output_path is None
        assert result.document[:2] == b'PK'

    def test_mixed_unit_policy_from_configuration(self):
        self.db_manager.upsert_product(ProductMasterRecord('10689', 0.5, 10.0, 20, 'X'))
        self.db_manager.upsert_product(ProductMasterRecord('40858', 0.25, 12.5, 48, 'NO'))
        text = INVOICE_A.replace('40858-M40858 US 5.00 50.00 Clip 8305.20.0000',
                                 '40858-M40858 TW 5.00 50.00 Clip 3926.90.9990')
        self.pipeline.parse_texts([('a.txt', text)])

        result = self.pipeline.build(self.header)
        assert result.report.mixed_unit_groups

        self.db_manager.set_config_value('mixed_unit_policy', 'reject')
        with pytest.raises(MixedUnitGroupError):
            self.pipeline.build(self.header)

    def test_aes_threshold_from_configuration(self):
        self.add_master_data()
        self.db_manager.set_config_value('aes_value_threshold', 50)
        self.pipeline.parse_texts([('a.txt', INVOICE_A), ('b.txt', INVOICE_B)])

        self.pipeline.build(self.header, output_path=self.output)
        assert load_workbook(self.output).active['A26'].value is None

    def test_build_without_parse(self):
        with pytest.raises(AggregationCacheError):
            self.pipeline.build(self.header, session_id='never-parsed')

    def test_build_with_no_items(self):
        self.pipeline.parse_texts([('empty.txt', 'nothing to see')])
        with pytest.raises(SLIProcessingError):
            self.pipeline.build(self.header)

    def test_unreadable_source_does_not_stop_others(self):
        good = self.write_invoice('a.txt', INVOICE_A)
        missing = Path(self.temp_dir) / 'missing.pdf'

        result = self.pipeline.parse([missing, good])

        assert [invoice.source for invoice in result.failed_sources] == ['missing.pdf']
        assert len(result.merged) == 2

    def test_new_parse_replaces_cached_aggregation(self):
        self.pipeline.parse_texts([('a.txt', INVOICE_A)])
        self.pipeline.parse_texts([('b.txt', INVOICE_B)])
        assert [item.product_code for item in self.pipeline.cache.load()] == ['10689']
