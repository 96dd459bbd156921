from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from receipt_points.modules.extraction.extractor import (
    extract_metadata,
    extract_totals,
    parse_receipt_text,
)
from receipt_points.modules.extraction.results import ReceiptMetadata


def test_mercury_drug_bear_brand_receipt():
    raw = "Mercury Drug\nBEAR B FORT24000\n  347.00\nTOTAL 347.00"
    result = parse_receipt_text(raw, confidence=72.5)

    assert "MERCURY DRUG" in result.corrected_text
    assert "BEAR BRAND FORT2400g" in result.corrected_text
    assert result.store_name == "MERCURY DRUG"
    assert result.store_detected

    [item] = result.items
    assert item.name == "Bear Brand Fortified"
    assert item.raw_name == "BEAR BRAND FORT2400g"
    assert item.total_price == Decimal("347.00")

    assert result.totals.total == Decimal("347.00")
    assert result.totals.subtotal == Decimal("347.00")
    assert result.totals.currency == "PHP"
    assert result.confidence == 72.5
    assert result.raw_text == raw


def test_missing_confidence_defaults():
    result = parse_receipt_text("COFFEE MATE 89.50")
    assert result.confidence == 85.0
    assert result.store_name == "Unknown Store"
    assert not result.store_detected


def test_zero_confidence_is_kept():
    assert parse_receipt_text("COFFEE MATE 89.50", confidence=0.0).confidence == 0.0


def test_empty_text_yields_empty_result():
    result = parse_receipt_text("")
    assert result.items == ()
    assert result.totals.total == Decimal("0")
    assert result.metadata == ReceiptMetadata()


def test_totals_prefer_total_line_and_subtotal_when_present():
    totals = extract_totals("SUBTOTAL 90.00\nTOTAL 100.00")
    assert totals.subtotal == Decimal("90.00")
    assert totals.total == Decimal("100.00")


def test_metadata_fields():
    meta = extract_metadata(
        "MERCURY DRUG\nRECEIPT NO: 000123\nDATE 01/15/2026\nCASHIER: Ana Cruz\nGCASH 500.00"
    )
    assert meta.receipt_number == "000123"
    assert meta.receipt_date == "01/15/2026"
    assert meta.cashier == "Ana Cruz"
    assert meta.payment_method == "gcash"
    assert meta.purchase_datetime() == datetime(2026, 1, 15)


def test_receipt_number_must_share_the_label_line():
    assert extract_metadata("RECEIPT\n12345\nTOTAL 10.00").receipt_number is None
    assert extract_metadata("RECEIPT NO: 00123").receipt_number == "00123"


def test_impossible_date_raises_on_parse():
    meta = ReceiptMetadata(receipt_date="2026-02-30")
    with pytest.raises(ValueError):
        meta.purchase_datetime()


def test_to_dict_is_json_friendly():
    data = parse_receipt_text("COFFEE MATE 89.50\nTOTAL 89.50").to_dict()
    assert data["items"][0]["total_price"] == "89.50"
    assert data["totals"]["total"] == "89.50"
