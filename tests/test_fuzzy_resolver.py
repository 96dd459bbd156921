from __future__ import annotations

import uuid
from decimal import Decimal

import pytest

from receipt_points.modules.matching.resolver import (
    FALLBACK_SCORE,
    STORE_FIELDS,
    CatalogEntry,
    MatchTier,
    classify_tier,
    fallback_resolve,
    normalize_product_name,
    normalize_store_name,
    resolve,
    suggest,
)


def _entry(name: str, normalized: str, keywords=(), points="0") -> CatalogEntry:
    return CatalogEntry(
        id=uuid.uuid4(),
        name=name,
        normalized_name=normalized,
        keywords=tuple(keywords),
        points=Decimal(points),
    )


STORES = (
    _entry("SM HYPERMARKET", "sm hypermarket", ("sm", "hypermarket", "supermarket", "mall")),
    _entry("PUREGOLD", "puregold", ("puregold", "supermarket", "grocery")),
    _entry("MERCURY DRUG", "mercury drug", ("mercury", "drug", "pharmacy", "medicine")),
)


@pytest.mark.parametrize(
    ("score", "tier"),
    [
        (0.0, MatchTier.EXCELLENT),
        (0.10, MatchTier.EXCELLENT),
        (0.20, MatchTier.GOOD),
        (0.30, MatchTier.FAIR),
        (0.40, MatchTier.POOR),
        (0.41, MatchTier.LOW),
    ],
)
def test_tier_boundaries(score, tier):
    assert classify_tier(score) == tier


def test_normalization():
    assert normalize_product_name("BBRAND JR 2.4kg") == "bbrand jr 24kg"
    assert normalize_product_name("  Coca-Cola   1.5L ") == "cocacola 15l"
    assert normalize_store_name("Mercury Drug - Lucban") == "mercury drug"


def test_exact_store_name_is_excellent():
    match = resolve("SM HYPERMARKET", STORES, fields=STORE_FIELDS, normalize=normalize_store_name)
    assert match is not None
    assert match.entity.name == "SM HYPERMARKET"
    assert match.tier == MatchTier.EXCELLENT
    assert match.is_match
    assert not match.via_fallback


def test_branch_collapses_onto_chain():
    match = resolve(
        "MERCURY DRUG LUCBAN", STORES, fields=STORE_FIELDS, normalize=normalize_store_name
    )
    assert match is not None
    assert match.entity.name == "MERCURY DRUG"


def test_empty_catalog_or_candidate_returns_none():
    assert resolve("SM HYPERMARKET", ()) is None
    assert resolve("!!!", STORES) is None
    assert resolve("", STORES) is None


def test_unrelated_text_has_no_match():
    assert resolve("zzzz", STORES, fields=STORE_FIELDS, normalize=normalize_store_name) is None


def test_ties_keep_catalog_order():
    first = _entry("PEPSI 330ml", "pepsi 330ml")
    second = _entry("PEPSI 330ml", "pepsi 330ml")
    match = resolve("PEPSI 330ml", (first, second))
    assert match.entity.id == first.id
    # Repeated calls with a fresh catalog give the same answer.
    assert resolve("PEPSI 330ml", (first, second)).entity.id == first.id


def test_fallback_uses_containment_and_fixed_score():
    match = fallback_resolve("mercury branch", STORES, normalize=normalize_store_name)
    assert match is not None
    assert match.entity.name == "MERCURY DRUG"
    assert match.score == FALLBACK_SCORE
    assert match.tier == MatchTier.LOW
    assert match.via_fallback
    assert fallback_resolve("ab", STORES) is None


def test_suggest_is_ranked_and_limited():
    results = suggest("SM HYPERMARKET", STORES, fields=STORE_FIELDS, normalize=normalize_store_name)
    assert results[0].entity.name == "SM HYPERMARKET"
    assert [r.score for r in results] == sorted(r.score for r in results)
    assert len(suggest("SM HYPERMARKET", STORES, fields=STORE_FIELDS, limit=1)) == 1
    assert suggest("SM HYPERMARKET", STORES, limit=0) == []
