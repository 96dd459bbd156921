from __future__ import annotations

from receipt_points.modules.extraction.extractor import detect_store_name
from receipt_points.modules.extraction.patterns.stores import UNKNOWN_STORE, store_category


def test_specific_chain_pattern_wins():
    assert detect_store_name("SM HYPERMARKET\nPEPSI 330ml 35.00") == "SM HYPERMARKET"
    assert detect_store_name("SAVEMORE MARKET\nRICE 50.00") == "SAVEMORE MARKET"


def test_branch_name_is_kept_on_the_same_line():
    assert detect_store_name("MERCURY DRUG LUCBAN\nBIOGESIC 45.00") == "MERCURY DRUG LUCBAN"


def test_store_name_never_spans_lines():
    assert detect_store_name("MERCURY DRUG\nLUCBAN BRANCH") == "MERCURY DRUG"


def test_keyword_fallback_uses_display_name():
    assert detect_store_name("ROBINSON'S\n") == "ROBINSONS SUPERMARKET"


def test_unknown_store():
    assert detect_store_name("") == UNKNOWN_STORE
    assert detect_store_name("hello world\n12.00") == UNKNOWN_STORE


def test_store_category():
    assert store_category("Mercury Drug Lucban") == "pharmacy"
    assert store_category("Corner Bakery") is None
