from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from receipt_points.modules.catalog.service import CatalogService, get_catalog_service
from receipt_points.modules.matching import service as matching
from receipt_points.modules.matching.resolver import MatchTier


class _BrokenSession:
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def scalars(self, _stmt):
        raise OperationalError("SELECT", {}, Exception("no such table"))


@pytest.fixture
def broken_catalog() -> CatalogService:
    return CatalogService(session_factory=_BrokenSession)


def test_unavailable_catalog_resolves_nothing(broken_catalog):
    assert matching.resolve_store("SM HYPERMARKET", catalog=broken_catalog) is None
    assert matching.resolve_product("PEPSI 330ml", catalog=broken_catalog) is None
    assert matching.store_suggestions("SM", catalog=broken_catalog) == []
    assert matching.product_suggestions("pepsi", catalog=broken_catalog) == []


def test_store_resolution_against_seeded_catalog(seeded):
    match = matching.resolve_store("SM HYPERMARKET")
    assert match.entity.name == "SM HYPERMARKET"
    assert match.tier == MatchTier.EXCELLENT
    assert matching.is_accepted(match)
    assert not matching.is_accepted(None)


def test_store_falls_back_to_containment_when_scoring_fails(seeded, monkeypatch):
    def _boom(*args, **kwargs):
        raise RuntimeError("scorer unavailable")

    monkeypatch.setattr(matching, "resolve", _boom)
    match = matching.resolve_store("Mercury Drug Lucban")
    assert match.entity.name == "MERCURY DRUG"
    assert match.via_fallback
    assert match.tier == MatchTier.LOW
    assert matching.is_accepted(match)


def test_product_falls_back_to_containment_when_scoring_fails(seeded, monkeypatch):
    def _boom(*args, **kwargs):
        raise RuntimeError("scorer unavailable")

    monkeypatch.setattr(matching, "resolve", _boom)
    match = matching.resolve_product("pampers diapers")
    assert match.entity.name == "Pampers Diapers M"
    assert match.via_fallback


def test_metadata_lines_are_never_products(seeded):
    assert matching.resolve_product("TOTAL 95.00") is None
    assert matching.resolve_product("123.45") is None


def test_empty_product_catalog_resolves_nothing(session):
    assert get_catalog_service().products() == ()
    assert matching.resolve_product("PEPSI 330ml") is None


def test_suggestions_are_ranked_and_limited(seeded):
    stores = matching.store_suggestions("SM HYPERMARKET", limit=1)
    assert [s.entity.name for s in stores] == ["SM HYPERMARKET"]

    products = matching.product_suggestions("pepsi", limit=3)
    assert products[0].entity.name == "Pepsi 330ml"
    assert len(products) <= 3
    assert [p.score for p in products] == sorted(p.score for p in products)
