from __future__ import annotations

from decimal import Decimal

import pytest

from receipt_points.modules.extraction.extractor import (
    extract_items,
    is_likely_product,
    parse_amount,
)


def test_metadata_lines_are_never_items():
    assert extract_items("TOTAL 500.00") == []
    assert extract_items("CASH 1000.00\nCHANGE 500.00\nVAT 12.00") == []
    assert not is_likely_product("TOTAL 500.00")
    assert not is_likely_product("347.00")


def test_known_product_passes_metadata_screen():
    assert is_likely_product("BEAR BRAND FORT2400g")


def test_simple_name_price_line():
    [item] = extract_items("COFFEE MATE 89.50")
    assert item.name == "COFFEE MATE"
    assert item.quantity == Decimal("1")
    assert item.total_price == Decimal("89.50")
    assert item.unit_price == Decimal("89.50")
    assert item.source_pattern_id == "name_price"
    assert item.line_number == 1


def test_leading_quantity_splits_unit_price():
    [item] = extract_items("2 PEPSI 330ml 70.00")
    assert item.name == "PEPSI 330ml"
    assert item.quantity == Decimal("2")
    assert item.total_price == Decimal("70.00")
    assert item.unit_price == Decimal("35")


def test_quantity_at_unit_derives_total():
    [item] = extract_items("3 BANANA @12.50")
    assert item.quantity == Decimal("3")
    assert item.unit_price == Decimal("12.50")
    assert item.total_price == Decimal("37.50")


def test_quantity_line_updates_previous_item():
    [item] = extract_items("MILK POWDER 100.00\n2 @ 50.00")
    assert item.quantity == Decimal("2")
    assert item.unit_price == Decimal("50.00")
    assert item.total_price == Decimal("100.00")


def test_quantity_line_skips_past_unrelated_lines():
    [item] = extract_items("BREAD 25.00\nCASHIER: ANA\n7 @ 9.50")
    assert item.name == "BREAD"
    assert item.quantity == Decimal("1")
    assert item.total_price == Decimal("25.00")


def test_tax_flag_suffix_is_stripped():
    [item] = extract_items("LICEAL S 16.50T")
    assert item.total_price == Decimal("16.50")
    assert item.source_pattern_id == "name_suffix_price"


def test_void_line_cancels_earlier_item():
    assert extract_items("LICEAL S 16.50T\nLICEAL S -16.50V") == []


def test_known_product_takes_price_from_next_line():
    [item] = extract_items("BEAR BRAND FORT2400g\n347.00\nTOTAL 347.00")
    assert item.name == "Bear Brand Fortified"
    assert item.raw_name == "BEAR BRAND FORT2400g"
    assert item.specific_product == "Bear Brand Fortified"
    assert item.source_pattern_id == "specific-pattern"
    assert item.total_price == Decimal("347.00")


def test_negative_next_line_amount_is_not_borrowed():
    [item] = extract_items("BEAR BRAND FORT2400g\n-347.00")
    assert item.total_price == Decimal("0")


def test_unknown_name_without_price_is_dropped():
    assert extract_items("MAGIC SARAP") == []


def test_parse_amount():
    assert parse_amount("1,234.50") == Decimal("1234.50")
    assert parse_amount("16.50V") == Decimal("16.50")
    assert parse_amount("abc") is None
    assert parse_amount(None) is None


@pytest.mark.parametrize(
    "text",
    [
        "COFFEE MATE 170g 89.50",
        "DOVE SOAP ₱45.00",
        "2 PEPSI 330ml 70.00",
        "3 PEPSI 330ml 100.00",
        "PANDESAL @5.00 25.00",
        "3 BANANA @12.50",
        "1.25 CHICKEN BREAST @180.00",
        "BIOGESIC 4800012345678 45.00",
        "ALASKA 300ml 41.00",
        "BEAR BRAND FORT2400g 347.00V",
        "LICEAL SC10mL3 16.50T",
        "LICEAL S 16.50T",
        "SG A-FRSH 115gx3 54.00",
        "JJ F PCDYCH13.8g 99.75",
        "NIDO3+PRE-S1.6KG 1150.00",
        "BEAR BRAND FORT2400g\n347.00",
        "BREAD 25.00\n7 @ 9.50",
        "CHICKEN 100.00\n1.25 @ 180.00",
    ],
)
def test_quantity_times_unit_price_matches_total(text):
    items = extract_items(text)
    assert items
    for item in items:
        assert item.quantity > 0
        assert abs(item.quantity * item.unit_price - item.total_price) < Decimal("0.01")
