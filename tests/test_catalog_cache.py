from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from receipt_points.core.cache import TimedCache
from receipt_points.modules.catalog.models import ProductStatus
from receipt_points.modules.catalog.service import (
    CatalogService,
    CatalogUnavailableError,
    create_product,
    create_store,
    deactivate_product,
    deactivate_store,
    delete_product,
)


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_timed_cache_reloads_after_ttl_and_invalidate():
    clock = _Clock()
    calls: list[int] = []

    def _load():
        calls.append(1)
        return len(calls)

    cache = TimedCache(_load, ttl_seconds=60, clock=clock)
    assert cache.get() == 1
    clock.now += 30
    assert cache.get() == 1
    clock.now += 31
    assert cache.get() == 2
    cache.invalidate()
    assert not cache.is_fresh()
    assert cache.get() == 3


def test_timed_cache_loader_error_keeps_previous_snapshot():
    clock = _Clock()
    state = {"fail": False}

    def _load():
        if state["fail"]:
            raise RuntimeError("down")
        return ("a",)

    cache = TimedCache(_load, ttl_seconds=10, clock=clock)
    assert cache.get() == ("a",)
    state["fail"] = True
    clock.now += 11
    with pytest.raises(RuntimeError):
        cache.get()
    assert cache.data == ("a",)


def test_catalog_lists_only_active_entries(session):
    catalog = CatalogService()
    sm = create_store(session, name="SM HYPERMARKET", keywords=["sm", "mall"], catalog=catalog)
    create_store(session, name="PUREGOLD", keywords=["puregold"], catalog=catalog)
    assert [s.name for s in catalog.stores()] == ["SM HYPERMARKET", "PUREGOLD"]

    deactivate_store(session, store=sm, catalog=catalog)
    assert [s.name for s in catalog.stores()] == ["PUREGOLD"]


def test_catalog_snapshot_is_reused_until_invalidated(session):
    catalog = CatalogService()
    pepsi = create_product(session, name="Pepsi 330ml", points=3, catalog=catalog)
    first = catalog.products()
    assert catalog.products() is first

    milo = create_product(
        session, name="Nestle Milo 200g", points=10, keywords=["Milo", " "], catalog=catalog
    )
    refreshed = catalog.products()
    assert refreshed is not first
    assert {p.name for p in refreshed} == {"Pepsi 330ml", "Nestle Milo 200g"}
    milo_entry = next(p for p in refreshed if p.name == "Nestle Milo 200g")
    assert milo_entry.keywords == ("milo",)
    assert milo_entry.points == Decimal("10")
    assert milo_entry.normalized_name == "nestle milo 200g"

    deleted = delete_product(session, product=milo, catalog=catalog)
    assert deleted.status == ProductStatus.DELETED
    assert [p.name for p in catalog.products()] == ["Pepsi 330ml"]

    deactivated = deactivate_product(session, product=pepsi, catalog=catalog)
    assert deactivated.status == ProductStatus.DEACTIVATED
    assert deactivated.date_deactivated is not None
    assert catalog.products() == ()


def test_catalog_wraps_database_errors():
    class _BrokenSession:
        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def scalars(self, _stmt):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

    catalog = CatalogService(session_factory=_BrokenSession)
    with pytest.raises(CatalogUnavailableError):
        catalog.stores()
    with pytest.raises(CatalogUnavailableError):
        catalog.products()


def test_seed_catalog_is_idempotent(seeded):
    from receipt_points.modules.catalog.service import get_catalog_service, seed_catalog

    seed_catalog(seeded)
    catalog = get_catalog_service()
    assert len(catalog.stores()) == 6
    assert len(catalog.products()) == 7


def test_bootstrap_seeds_catalog_when_enabled(monkeypatch):
    from receipt_points.bootstrap import bootstrap
    from receipt_points.core.config import settings
    from receipt_points.modules.catalog.service import get_catalog_service

    monkeypatch.setattr(settings, "seed_catalog", True)
    bootstrap()
    assert "MERCURY DRUG" in {s.name for s in get_catalog_service().stores()}
