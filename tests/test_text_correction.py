from __future__ import annotations

import pytest

from receipt_points.modules.extraction.correction import (
    apply_rules,
    correct_product_name,
    correct_text,
)
from receipt_points.modules.extraction.patterns.corrections import rule


def test_correct_text_empty_input_returns_empty_string():
    assert correct_text("") == ""
    assert correct_text(None) == ""


def test_word_level_misreads_are_fixed():
    assert correct_text("CAST") == "CASH"
    assert correct_text("mercurv druq") == "MERCURY DRUG"


def test_rules_chain_within_a_group():
    rules = [rule(r"foo", "bar"), rule(r"bar", "baz")]
    assert apply_rules("foo", rules) == "baz"


def test_rule_rewrites_first_occurrence_unless_marked_every():
    assert apply_rules("druq druq", [rule(r"druq", "DRUG")]) == "DRUG druq"
    assert apply_rules("druq druq", [rule(r"druq", "DRUG", every=True)]) == "DRUG DRUG"


def test_volume_and_price_repairs():
    assert correct_text("BBRAND JR 2.dkg") == "BBRAND JR 2.4kg"
    assert correct_text("AMOUNT 1,234.50") == "AMOUNT 1234.50"
    assert correct_text("₱ 45.00") == "45.00"


def test_store_name_variants_become_canonical():
    assert "MERCURY DRUG" in correct_text("Mercury Drug\nBIOGESIC 45.00")
    assert "MERCURY DRUG" in correct_text("NERO DRUG")


def test_abbreviated_brand_is_expanded_in_two_layers():
    corrected = correct_text("Mercury Drug\nBEAR B FORT24000\n  347.00\nTOTAL 347.00")
    assert "MERCURY DRUG" in corrected
    assert "BEAR BRAND FORT2400g" in corrected


def test_known_product_garble_is_repaired():
    assert "NIDO3+PRE-S1.6KG" in correct_text("WIDO3HPRE-51 6KG 1150.00")


def test_correction_is_stable_on_already_clean_text():
    clean = "MERCURY DRUG\nBEAR BRAND FORT2400g"
    once = correct_text(clean)
    assert once == clean
    assert correct_text(once) == once


def test_correct_product_name():
    assert correct_product_name("BEAR B FORT24000") == "BEAR BRAND FORT2400g"
    assert correct_product_name("BBRAND JR 2.4kq") == "BBRAND JR 2.4kg"
    assert correct_product_name("") == ""


@pytest.mark.parametrize(
    "raw",
    [
        "Mercury Drug\nBEAR B FORT24000\n  347.00\nTOTAL 347.00",
        "SM HYPERMARKET\nPEPSI 330ml 35.00\nTOTAL 35.00",
        "PUREGOLD\nCOFFEE MATE 89.50\nCASH 100.00",
        "MERCURY DRUG\nBEAR BRAND FORT2400g\n347.00\nTOTAL 347.00",
    ],
)
def test_correction_is_idempotent_on_receipts(raw):
    once = correct_text(raw)
    assert correct_text(once) == once
