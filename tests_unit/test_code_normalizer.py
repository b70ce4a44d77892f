"""
Tests for product code normalization.
"""

import pytest

from processing.code_normalizer import normalize_product_code


class TestNormalizeProductCode:
    """Test the invoice code to master key mapping."""

    def test_heroclip_keeps_variant_segment(self):
        assert normalize_product_code('210013-010-M210013010') == '210013-010'

    def test_heroclip_with_two_segments(self):
        assert normalize_product_code('210099-020') == '210099-020'

    def test_other_families_keep_first_segment(self):
        assert normalize_product_code('40858-M40858') == '40858'
        assert normalize_product_code('10110-AA556') == '10110'

    def test_code_without_hyphen_is_unchanged(self):
        assert normalize_product_code('NOHYPHEN') == 'NOHYPHEN'
        assert normalize_product_code('2100') == '2100'

    def test_whitespace_is_trimmed(self):
        assert normalize_product_code('  40858-M40858 ') == '40858'
        assert normalize_product_code(' 10689 ') == '10689'

    @pytest.mark.parametrize('raw', ['', None])
    def test_empty_input(self, raw):
        assert normalize_product_code(raw) == ''

    def test_leading_hyphen(self):
        assert normalize_product_code('-ABC') == ''
