from __future__ import annotations

import time
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from receipt_points.core.cache import TimedCache
from receipt_points.core.config import settings
from receipt_points.core.db import SessionLocal
from receipt_points.core.logging import get_logger, log_event, log_exception, monotonic_ms
from receipt_points.core.models import utcnow
from receipt_points.modules.catalog.models import (
    Brand,
    Product,
    ProductStatus,
    Store,
    StoreStatus,
    StoreType,
    VolumeUnit,
)
from receipt_points.modules.matching.resolver import (
    CatalogEntry,
    normalize_product_name,
    normalize_store_name,
)

logger = get_logger(__name__)


class CatalogUnavailableError(RuntimeError):
    pass


def _store_entry(store: Store) -> CatalogEntry:
    return CatalogEntry(
        id=store.id,
        name=store.name,
        normalized_name=store.normalized_name,
        keywords=tuple(store.keywords or ()),
        store_type=store.type.value if store.type else None,
    )


def _product_entry(product: Product) -> CatalogEntry:
    return CatalogEntry(
        id=product.id,
        name=product.name,
        normalized_name=product.normalized_name,
        keywords=tuple(product.keywords or ()),
        points=Decimal(product.points or 0),
        brand_name=product.brand.name if product.brand else None,
        volume=product.volume,
        volume_unit=product.volume_unit.value if product.volume_unit else None,
    )


class CatalogService:
    """Active stores and products, each cached for its own TTL.

    Callers get immutable ``CatalogEntry`` tuples. Writes made through this
    module call ``invalidate_cache``; other writers must call it themselves.
    """

    def __init__(
        self,
        *,
        session_factory: Callable[[], Session] = SessionLocal,
        store_ttl_seconds: float | None = None,
        product_ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session_factory = session_factory
        self._stores = TimedCache(
            self._load_stores,
            ttl_seconds=store_ttl_seconds or settings.store_cache_ttl_seconds,
            clock=clock,
        )
        self._products = TimedCache(
            self._load_products,
            ttl_seconds=product_ttl_seconds or settings.product_cache_ttl_seconds,
            clock=clock,
        )

    def stores(self) -> tuple[CatalogEntry, ...]:
        return self._stores.get()

    def products(self) -> tuple[CatalogEntry, ...]:
        return self._products.get()

    def invalidate_cache(self, kind: str | None = None) -> None:
        if kind in (None, "stores"):
            self._stores.invalidate()
        if kind in (None, "products"):
            self._products.invalidate()
        log_event(logger, "catalog.cache.invalidated", kind=kind or "all")

    def _load_stores(self) -> tuple[CatalogEntry, ...]:
        start = time.monotonic()
        try:
            with self._session_factory() as session:
                rows = session.scalars(
                    select(Store)
                    .where(Store.status == StoreStatus.ACTIVE)
                    .order_by(Store.created_at, Store.name)
                )
                entries = tuple(_store_entry(s) for s in rows)
        except SQLAlchemyError as exc:
            log_exception(logger, "catalog.stores.load_failure", duration_ms=monotonic_ms(start))
            raise CatalogUnavailableError("Store catalog could not be loaded") from exc
        log_event(
            logger,
            "catalog.stores.loaded",
            count=len(entries),
            duration_ms=monotonic_ms(start),
        )
        return entries

    def _load_products(self) -> tuple[CatalogEntry, ...]:
        start = time.monotonic()
        try:
            with self._session_factory() as session:
                rows = session.scalars(
                    select(Product)
                    .where(Product.status == ProductStatus.ACTIVE)
                    .order_by(Product.created_at, Product.name)
                )
                entries = tuple(_product_entry(p) for p in rows)
        except SQLAlchemyError as exc:
            log_exception(logger, "catalog.products.load_failure", duration_ms=monotonic_ms(start))
            raise CatalogUnavailableError("Product catalog could not be loaded") from exc
        log_event(
            logger,
            "catalog.products.loaded",
            count=len(entries),
            duration_ms=monotonic_ms(start),
        )
        return entries


_catalog: CatalogService | None = None


def get_catalog_service() -> CatalogService:
    global _catalog  # noqa: PLW0603
    if _catalog is None:
        _catalog = CatalogService()
    return _catalog


def _invalidate(catalog: CatalogService | None, kind: str) -> None:
    (catalog or get_catalog_service()).invalidate_cache(kind)


def create_brand(session: Session, *, name: str) -> Brand:
    brand = Brand(name=name.strip())
    session.add(brand)
    session.commit()
    session.refresh(brand)
    return brand


def create_store(
    session: Session,
    *,
    name: str,
    keywords: Iterable[str] = (),
    store_type: StoreType = StoreType.PHYSICAL,
    normalized_name: str | None = None,
    is_default: bool = False,
    catalog: CatalogService | None = None,
) -> Store:
    store = Store(
        name=name.strip(),
        normalized_name=normalized_name or normalize_store_name(name),
        keywords=[k.strip().lower() for k in keywords if k and k.strip()],
        type=store_type,
        status=StoreStatus.ACTIVE,
        is_default=is_default,
    )
    session.add(store)
    session.commit()
    session.refresh(store)
    _invalidate(catalog, "stores")
    return store


def create_product(
    session: Session,
    *,
    name: str,
    points: Decimal | int,
    brand_id: uuid.UUID | None = None,
    volume: Decimal | None = None,
    volume_unit: VolumeUnit | None = None,
    keywords: Iterable[str] = (),
    normalized_name: str | None = None,
    date_expiry: datetime | None = None,
    catalog: CatalogService | None = None,
) -> Product:
    product = Product(
        name=name.strip(),
        normalized_name=normalized_name or normalize_product_name(name),
        keywords=[k.strip().lower() for k in keywords if k and k.strip()],
        status=ProductStatus.ACTIVE,
        brand_id=brand_id,
        volume=volume,
        volume_unit=volume_unit,
        points=Decimal(points),
        date_expiry=date_expiry,
    )
    session.add(product)
    session.commit()
    session.refresh(product)
    _invalidate(catalog, "products")
    return product


def deactivate_store(
    session: Session, *, store: Store, catalog: CatalogService | None = None
) -> Store:
    store.status = StoreStatus.DEACTIVATED
    store.date_deactivated = utcnow()
    session.add(store)
    session.commit()
    session.refresh(store)
    _invalidate(catalog, "stores")
    return store


def _set_product_status(
    session: Session, *, product: Product, status: ProductStatus, catalog: CatalogService | None
) -> Product:
    product.status = status
    product.date_deactivated = utcnow()
    session.add(product)
    session.commit()
    session.refresh(product)
    _invalidate(catalog, "products")
    return product


def deactivate_product(
    session: Session, *, product: Product, catalog: CatalogService | None = None
) -> Product:
    return _set_product_status(
        session, product=product, status=ProductStatus.DEACTIVATED, catalog=catalog
    )


def delete_product(
    session: Session, *, product: Product, catalog: CatalogService | None = None
) -> Product:
    # Soft delete: ledger rows and receipts keep pointing at the product.
    return _set_product_status(session, product=product, status=ProductStatus.DELETED, catalog=catalog)


DEFAULT_BRANDS = ("Nestle", "Coca-Cola", "Pepsi", "Unilever", "Procter & Gamble")

DEFAULT_PRODUCTS = (
    # name, normalized_name, brand, volume, unit, points, keywords
    ("Nestle Milo 200g", "nestle milo 200g", "Nestle", "200", VolumeUnit.G, 10,
     ("milo", "chocolate", "drink", "powder")),
    ("Nestle Coffee Mate 170g", "nestle coffee mate 170g", "Nestle", "170", VolumeUnit.G, 8,
     ("coffee", "mate", "creamer", "powder")),
    ("Coca-Cola 1.5L", "coca cola 15l", "Coca-Cola", "1.5", VolumeUnit.L, 5,
     ("coke", "cola", "soda", "drink")),
    ("Pepsi 330ml", "pepsi 330ml", "Pepsi", "330", VolumeUnit.ML, 3,
     ("pepsi", "soda", "drink", "can")),
    ("Dove Soap 100g", "dove soap 100g", "Unilever", "100", VolumeUnit.G, 15,
     ("dove", "soap", "bath", "body")),
    ("Pampers Diapers M", "pampers diapers m", "Procter & Gamble", "1", VolumeUnit.PACK, 25,
     ("pampers", "diapers", "baby", "care")),
    ("BBRAND JR 2.4kg", "bbrand jr 24kg", "Nestle", "2.4", VolumeUnit.KG, 50,
     ("bbrand", "jr", "24kg", "milk", "powder")),
)  # fmt: skip

DEFAULT_STORES = (
    ("SM HYPERMARKET", "sm hypermarket", ("sm", "hypermarket", "supermarket", "mall")),
    ("ROBINSONS SUPERMARKET", "robinsons supermarket", ("robinsons", "supermarket", "mall")),
    ("PUREGOLD", "puregold", ("puregold", "supermarket", "grocery")),
    ("7-ELEVEN", "7 eleven", ("7-eleven", "convenience", "store")),
    ("SAVEMORE", "savemore", ("savemore", "supermarket", "grocery")),
    ("MERCURY DRUG", "mercury drug", ("mercury", "drug", "pharmacy", "medicine")),
)


def seed_catalog(session: Session, *, catalog: CatalogService | None = None) -> None:
    """Insert the default brands, products and stores that are not present yet."""
    brands: dict[str, Brand] = {}
    for name in DEFAULT_BRANDS:
        brand = session.scalar(select(Brand).where(Brand.name == name))
        brands[name] = brand or create_brand(session, name=name)

    for name, normalized, brand_name, volume, unit, points, keywords in DEFAULT_PRODUCTS:
        if session.scalar(select(Product).where(Product.name == name)):
            continue
        create_product(
            session,
            name=name,
            normalized_name=normalized,
            brand_id=brands[brand_name].id,
            volume=Decimal(volume),
            volume_unit=unit,
            points=points,
            keywords=keywords,
            catalog=catalog,
        )

    for name, normalized, keywords in DEFAULT_STORES:
        if session.scalar(select(Store).where(Store.name == name)):
            continue
        create_store(
            session,
            name=name,
            normalized_name=normalized,
            keywords=keywords,
            catalog=catalog,
        )

    log_event(logger, "catalog.seeded", brands=len(brands))
