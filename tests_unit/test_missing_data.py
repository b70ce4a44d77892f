"""
Tests for the missing master data gate.
"""

import shutil
import tempfile
from decimal import Decimal
from pathlib import Path

import pytest

from database.database import DatabaseManager
from database.models import ProductMasterRecord
from processing.exceptions import MissingMasterDataError
from processing.invoice_parser import InvoiceTextParser
from processing.missing_data import MissingDataResolver, find_missing
from processing.models import MergedItem


def merged(code):
    return MergedItem(
        quantity=1, product_code=code, origin_country='TW',
        unit_price=Decimal('1.00'), total_price=Decimal('1.00'),
        description=code, schedule_code='3926.90.9990'
    )


class TestFindMissing:

    def test_distinct_missing_codes(self):
        master = {'A': ProductMasterRecord('A', 1, 1, 1, 'NO')}
        items = [merged('A'), merged('B'), merged('B'), merged('C')]
        assert find_missing(items, master) == {'B', 'C'}

    def test_nothing_missing(self):
        assert find_missing([], {}) == set()


class TestMissingDataResolver:
    """Test the gate and the resolution path against a real store."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.db_manager = DatabaseManager(str(Path(self.temp_dir) / "test.db"))
        self.resolver = MissingDataResolver(self.db_manager)

    def teardown_method(self):
        self.db_manager.close()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_check_raises_with_sorted_codes(self):
        self.db_manager.upsert_product(ProductMasterRecord('A', 1, 1, 1, 'NO'))

        with pytest.raises(MissingMasterDataError) as exc_info:
            self.resolver.check([merged('C'), merged('A'), merged('B')], session_id='s1')

        assert exc_info.value.codes == ['B', 'C']
        logged = self.db_manager.list_resolution_logs(session_id='s1')
        assert sorted(entry.product_code for entry in logged) == ['B', 'C']
        assert {entry.action_taken for entry in logged} == {'missing'}

    def test_check_returns_master_records(self):
        self.db_manager.upsert_product(ProductMasterRecord('A', 1, 1, 1, 'NO'))
        master = self.resolver.check([merged('A'), merged('A')])
        assert list(master) == ['A']

    def test_resolve_then_check_passes(self):
        with pytest.raises(MissingMasterDataError):
            self.resolver.check([merged('A')])

        self.resolver.resolve(ProductMasterRecord('A', 0.5, 10, 20, 'kg'), session_id='s1')
        master = self.resolver.check([merged('A')])

        assert master['A'].unit_of_measure == 'KG'

    def test_parsed_code_with_slash_resolves(self):
        text = "Qty Total Value\n3 EA AB/12-X1 CN 1.00 3.00 Bracket 7326.90.8688\nInvoice Line"
        items = InvoiceTextParser().parse(text)
        assert [item.product_code for item in items] == ['AB/12']

        with pytest.raises(MissingMasterDataError):
            self.resolver.check([merged('AB/12')])

        self.resolver.resolve(ProductMasterRecord('AB/12', 0.2, 4.0, 10, 'X'))
        assert list(self.resolver.check([merged('AB/12')])) == ['AB/12']

    def test_resolve_logs_added_then_updated(self):
        self.resolver.resolve(ProductMasterRecord('A', 1, 1, 1, 'NO'), session_id='s1')
        self.resolver.resolve(ProductMasterRecord('A', 2, 2, 2, 'NO'), session_id='s1')

        actions = [entry.action_taken for entry in self.db_manager.list_resolution_logs(product_code='A')]
        assert actions == ['updated', 'added']
        assert self.db_manager.get_product('A').unit_weight == 2

    def test_flag_degenerate(self):
        self.resolver.flag_degenerate(['A', 'B'], session_id='s1')
        entries = self.db_manager.list_resolution_logs(session_id='s1')
        assert {entry.action_taken for entry in entries} == {'flagged'}
        assert len(entries) == 2
