"""
Tests for merging line items across invoices and grouping them by
Schedule B code and origin.
"""

from decimal import Decimal

from processing.aggregator import (
    ItemAggregator, merge_line_items, group_merged_items, ordered_group_keys
)
from processing.models import LineItem, US_BUCKET, NON_US_BUCKET, UNKNOWN_SCHEDULE


def make_item(code='10689', quantity=1, origin='TW', unit_price='2.99', total_price=None,
              description='Widget', schedule='3926.90.9990'):
    unit = Decimal(unit_price)
    return LineItem(
        quantity=quantity,
        product_code=code,
        origin_country=origin,
        unit_price=unit,
        total_price=Decimal(total_price) if total_price is not None else unit * quantity,
        description=description,
        schedule_code=schedule
    )


class TestMergeLineItems:
    """Test cross-invoice merging."""

    def test_identical_products_are_summed(self):
        merged = merge_line_items([
            [make_item(quantity=12)],
            [make_item(quantity=8)],
        ])

        assert len(merged) == 1
        assert merged[0].quantity == 20
        assert merged[0].total_price == Decimal('59.80')
        assert merged[0].source_count == 2

    def test_any_key_difference_keeps_items_apart(self):
        merged = merge_line_items([[
            make_item(),
            make_item(origin='CN'),
            make_item(unit_price='3.49'),
            make_item(description='Widget XL'),
            make_item(schedule='3926.90.1000'),
        ]])
        assert len(merged) == 5

    def test_price_compared_at_four_decimals(self):
        merged = merge_line_items([[
            make_item(unit_price='2.99'),
            make_item(unit_price='2.990000'),
        ]])
        assert len(merged) == 1

    def test_first_seen_order(self):
        merged = merge_line_items([
            [make_item(code='B'), make_item(code='A')],
            [make_item(code='C'), make_item(code='A')],
        ])
        assert [item.product_code for item in merged] == ['B', 'A', 'C']

    def test_quantity_and_value_are_conserved(self):
        lists = [
            [make_item(code='A', quantity=3), make_item(code='B', quantity=5)],
            [make_item(code='A', quantity=7), make_item(code='C', quantity=1, origin='US')],
        ]
        merged = merge_line_items(lists)

        assert sum(item.quantity for item in merged) == 16
        assert sum(item.total_price for item in merged) == sum(
            item.total_price for items in lists for item in items
        )

    def test_empty_input(self):
        assert merge_line_items([]) == []
        assert merge_line_items([[], []]) == []


class TestGroupMergedItems:
    """Test schedule/origin bucketing."""

    def test_us_and_non_us_buckets(self):
        merged = merge_line_items([[
            make_item(code='A', origin='US'),
            make_item(code='B', origin='TW'),
            make_item(code='C', origin='CN'),
        ]])
        groups = group_merged_items(merged)

        assert set(groups) == {('3926.90.9990', US_BUCKET), ('3926.90.9990', NON_US_BUCKET)}
        assert [item.product_code for item in groups[('3926.90.9990', NON_US_BUCKET)]] == ['B', 'C']

    def test_missing_schedule_grouped_as_unknown(self):
        groups = group_merged_items(merge_line_items([[make_item(schedule='')]]))
        assert list(groups) == [(UNKNOWN_SCHEDULE, NON_US_BUCKET)]

    def test_every_item_lands_in_one_group(self):
        merged = merge_line_items([[
            make_item(code=str(n), origin='US' if n % 2 else 'MX', schedule=f"1000.00.000{n % 3}")
            for n in range(9)
        ]])
        groups = group_merged_items(merged)
        assert sum(len(items) for items in groups.values()) == len(merged)

    def test_document_order(self):
        groups = group_merged_items(merge_line_items([[
            make_item(code='A', origin='TW', schedule='9000.00.0000'),
            make_item(code='B', origin='US', schedule='8000.00.0000'),
            make_item(code='C', origin='TW', schedule='1000.00.0000'),
            make_item(code='D', origin='US', schedule='2000.00.0000'),
        ]]))

        assert ordered_group_keys(groups) == [
            ('2000.00.0000', US_BUCKET),
            ('8000.00.0000', US_BUCKET),
            ('1000.00.0000', NON_US_BUCKET),
            ('9000.00.0000', NON_US_BUCKET),
        ]


class TestItemAggregator:

    def test_aggregate_merges_then_groups(self):
        groups = ItemAggregator().aggregate([
            [make_item(quantity=2)],
            [make_item(quantity=3)],
        ])
        (items,) = groups.values()
        assert items[0].quantity == 5
