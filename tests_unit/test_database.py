"""
Tests for the product master store, configuration and caches.
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from database.database import DatabaseManager
from database.models import (
    ProductMasterRecord, ResolutionLogEntry, ValidationError, ProductNotFoundError
)


class TestProductMasterRecord:

    def test_unit_of_measure_is_upper_cased(self):
        record = ProductMasterRecord('40858', 0.25, 12.5, 48, ' kg ')
        assert record.unit_of_measure == 'KG'

    def test_degenerate_record(self):
        assert ProductMasterRecord('40858', 0.25, 12.5, 0, 'NO').is_degenerate()
        assert not ProductMasterRecord('40858', 0.25, 12.5, 1, 'NO').is_degenerate()

    @pytest.mark.parametrize('kwargs', [
        {'product_code': ''},
        {'product_code': 'bad code'},
        {'product_code': 'A', 'unit_weight': -1},
        {'product_code': 'A', 'carton_weight': 'heavy'},
        {'product_code': 'A', 'units_per_carton': -2},
        {'product_code': 'A', 'unit_of_measure': ' '},
    ])
    def test_invalid_records(self, kwargs):
        with pytest.raises(ValidationError):
            ProductMasterRecord(**kwargs)

    @pytest.mark.parametrize('code', ['AB/12', '10110#2', 'X+Y'])
    def test_codes_with_punctuation_are_accepted(self, code):
        assert ProductMasterRecord(code, 0.1, 1.0, 1, 'NO').product_code == code

    def test_dict_round_trip(self):
        record = ProductMasterRecord('210013-010', 0.1, 9.8, 24, 'DOZ', notes='mini')
        assert ProductMasterRecord.from_dict(record.to_dict()).to_dict() == record.to_dict()


class TestDatabaseManager:
    """Test DatabaseManager operations against a temporary SQLite file."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = Path(self.temp_dir) / "test.db"
        self.db_manager = DatabaseManager(str(self.db_path))

    def teardown_method(self):
        self.db_manager.close()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_upsert_creates_then_overwrites(self):
        _, created = self.db_manager.upsert_product(ProductMasterRecord('40858', 0.25, 12.5, 48, 'X'))
        assert created

        stored, created = self.db_manager.upsert_product(ProductMasterRecord('40858', 0.3, 13.0, 36, 'X'))
        assert not created
        assert stored.units_per_carton == 36

        products = self.db_manager.list_products()
        assert len(products) == 1
        assert products[0].carton_weight == 13.0

    def test_upsert_is_idempotent(self):
        record = ProductMasterRecord('40858', 0.25, 12.5, 48, 'X')
        self.db_manager.upsert_product(record)
        self.db_manager.upsert_product(record)

        assert len(self.db_manager.list_products()) == 1
        assert self.db_manager.get_product('40858').unit_weight == 0.25

    def test_lookup_omits_absent_codes(self):
        self.db_manager.upsert_product(ProductMasterRecord('A', 1, 2, 3, 'NO'))
        self.db_manager.upsert_product(ProductMasterRecord('B', 1, 2, 3, 'NO'))

        found = self.db_manager.lookup_products(['A', 'B', 'C', 'A'])
        assert set(found) == {'A', 'B'}
        assert self.db_manager.lookup_products([]) == {}

    def test_get_and_delete_missing_product(self):
        with pytest.raises(ProductNotFoundError):
            self.db_manager.get_product('NOPE')
        with pytest.raises(ProductNotFoundError):
            self.db_manager.delete_product('NOPE')

    def test_list_products_search(self):
        for code in ('210013-010', '210013-020', '40858'):
            self.db_manager.upsert_product(ProductMasterRecord(code, 1, 2, 3, 'NO'))

        assert len(self.db_manager.list_products(search='2100')) == 2
        assert len(self.db_manager.list_products(limit=1)) == 1

    def test_default_configuration(self):
        assert self.db_manager.get_config_value('output_filename') == 'SLI.xlsx'
        assert self.db_manager.get_config_value('aes_value_threshold') == 2500
        assert self.db_manager.get_config_value('mixed_unit_policy') == 'warn'

    def test_mixed_unit_policy_is_checked(self):
        self.db_manager.set_config_value('mixed_unit_policy', 'reject')
        assert self.db_manager.get_config_value('mixed_unit_policy') == 'reject'

        with pytest.raises(ValidationError):
            self.db_manager.set_config_value('mixed_unit_policy', 'ignore')

    def test_resolution_log(self):
        self.db_manager.create_resolution_log(
            ResolutionLogEntry(product_code='A', action_taken='missing', session_id='s1')
        )
        self.db_manager.create_resolution_log(
            ResolutionLogEntry(product_code='A', action_taken='added', session_id='s1')
        )

        entries = self.db_manager.list_resolution_logs(session_id='s1')
        assert [entry.action_taken for entry in entries] == ['added', 'missing']

    def test_invalid_resolution_action(self):
        with pytest.raises(ValidationError):
            ResolutionLogEntry(product_code='A', action_taken='ignored')

    def test_aggregation_cache_round_trip(self):
        assert self.db_manager.load_aggregation('s1') is None

        self.db_manager.save_aggregation('s1', '[1]')
        self.db_manager.save_aggregation('s1', '[2]')
        payload, _ = self.db_manager.load_aggregation('s1')
        assert payload == '[2]'

        assert self.db_manager.clear_aggregation('s1')
        assert not self.db_manager.clear_aggregation('s1')

    def test_csv_import_and_export(self):
        csv_path = Path(self.temp_dir) / "products.csv"
        csv_path.write_text(
            "product_code,unit_weight,carton_weight,units_per_carton,unit_of_measure,notes\n"
            "40858,0.25,12.5,48,x,\n"
            "210013-010,0,9.8,24,DOZ,mini\n"
            "bad code,1,1,1,NO,\n",
            encoding='utf-8'
        )

        summary = self.db_manager.import_products_from_csv(str(csv_path))
        assert summary['created'] == 2
        assert summary['failed'] == 1
        assert self.db_manager.get_product('40858').unit_of_measure == 'X'

        export_path = Path(self.temp_dir) / "out" / "export.csv"
        assert self.db_manager.export_products_to_csv(str(export_path)) == 2
        assert export_path.read_text(encoding='utf-8').startswith('product_code,unit_weight')

    def test_database_stats(self):
        self.db_manager.upsert_product(ProductMasterRecord('A', 1, 2, 0, 'NO'))
        stats = self.db_manager.get_database_stats()

        assert stats['total_products'] == 1
        assert stats['degenerate_products'] == 1
