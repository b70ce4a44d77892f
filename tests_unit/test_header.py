"""
Tests for SLI header data.
"""

import json
import shutil
import tempfile
from pathlib import Path

import pytest

from database.models import ValidationError
from document.header import HeaderData, collapse_lines, format_phone, load_header


class TestFormatPhone:

    @pytest.mark.parametrize('raw,expected', [
        ('5551234567', '(555) 123-4567'),
        ('555.123.4567', '(555) 123-4567'),
        ('+1 (555) 123-4567', '(555) 123-4567'),
        ('15551234567', '(555) 123-4567'),
        ('25551234567', '25551234567'),
        ('123-4567', '123-4567'),
        ('', ''),
    ])
    def test_formatting(self, raw, expected):
        assert format_phone(raw) == expected


class TestAddressLines:

    def test_collapse_lines(self):
        assert collapse_lines(['', 'Springfield, IL 62701'], 2) == ['Springfield, IL 62701', '']
        assert collapse_lines(['Suite 4', '', 'Springfield'], 3) == ['Suite 4', 'Springfield', '']

    def test_forwarder_without_second_line(self):
        header = HeaderData(forwarder_addr1='1 Main St', forwarder_addr3='ignored',
                            forwarder_city_state_zip='Miami, FL 33101')
        assert header.forwarder_lines() == ['1 Main St', 'Miami, FL 33101', '', '']

    def test_forwarder_without_third_line(self):
        header = HeaderData(forwarder_addr1='1 Main St', forwarder_addr2='Bldg 7',
                            forwarder_city_state_zip='Miami, FL 33101')
        assert header.forwarder_lines() == ['1 Main St', 'Bldg 7', 'Miami, FL 33101', '']

    def test_forwarder_full_address(self):
        header = HeaderData(forwarder_addr1='1 Main St', forwarder_addr2='Bldg 7',
                            forwarder_addr3='Dock 2', forwarder_city_state_zip='Miami, FL 33101')
        assert header.forwarder_lines() == ['1 Main St', 'Bldg 7', 'Dock 2', 'Miami, FL 33101']

    def test_consignee_lines(self):
        header = HeaderData(consignee_addr1='Av. Reforma 10', consignee_city_state_zip='CDMX 06600')
        assert header.consignee_lines() == ['Av. Reforma 10', 'CDMX 06600', '']

        header = HeaderData(consignee_addr1='Av. Reforma 10', consignee_addr2='Piso 3',
                            consignee_city_state_zip='CDMX 06600')
        assert header.consignee_lines() == ['Av. Reforma 10', 'Piso 3', 'CDMX 06600']


class TestHeaderData:

    def test_values_are_stripped(self):
        header = HeaderData(so_number=' 4521 ', shipper_phone=None)
        assert header.so_number == '4521'
        assert header.shipper_phone == ''

    def test_invalid_ship_mode(self):
        with pytest.raises(ValidationError):
            HeaderData(ship_mode='Rail')

    def test_from_dict_ignores_unknown_keys(self):
        header = HeaderData.from_dict({'so_number': '4521', 'unknown': 'x'})
        assert header.so_number == '4521'


class TestLoadHeader:

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_load(self):
        path = Path(self.temp_dir) / "header.json"
        path.write_text(json.dumps({'ship_mode': 'Ocean', 'shipper_name': 'Pat Doe'}), encoding='utf-8')

        header = load_header(path)
        assert header.ship_mode == 'Ocean'
        assert header.shipper_name == 'Pat Doe'

    def test_missing_file(self):
        with pytest.raises(ValidationError):
            load_header(Path(self.temp_dir) / "missing.json")

    def test_not_an_object(self):
        path = Path(self.temp_dir) / "header.json"
        path.write_text('["a"]', encoding='utf-8')
        with pytest.raises(ValidationError):
            load_header(path)

    def test_invalid_json(self):
        path = Path(self.temp_dir) / "header.json"
        path.write_text('{', encoding='utf-8')
        with pytest.raises(ValidationError):
            load_header(path)
