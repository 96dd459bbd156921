from __future__ import annotations

import logging

from receipt_points.core.logging import get_logger, log_event, log_exception
from receipt_points.modules.catalog.service import (
    CatalogService,
    CatalogUnavailableError,
    get_catalog_service,
)
from receipt_points.modules.extraction.correction import correct_product_name
from receipt_points.modules.extraction.extractor import is_likely_product
from receipt_points.modules.extraction.results import ExtractedItem
from receipt_points.modules.matching.resolver import (
    PRODUCT_FIELDS,
    STORE_FIELDS,
    MatchResult,
    fallback_resolve,
    normalize_product_name,
    normalize_store_name,
    resolve,
    suggest,
)

logger = get_logger(__name__)


def is_accepted(match: MatchResult | None) -> bool:
    """Whether a match may award points or identify a store.

    ``low`` similarity is a non-match. Containment fallbacks carry a fixed
    score in the ``low`` band and are still accepted for stores.
    """
    if match is None:
        return False
    return match.is_match or match.via_fallback


def resolve_store(name: str, *, catalog: CatalogService | None = None) -> MatchResult | None:
    catalog = catalog or get_catalog_service()
    try:
        stores = catalog.stores()
    except CatalogUnavailableError:
        log_event(logger, "matching.store.catalog_unavailable", level=logging.WARNING, store_name=name)
        return None

    try:
        match = resolve(name, stores, fields=STORE_FIELDS, normalize=normalize_store_name)
    except Exception:
        log_exception(logger, "matching.store.fuzzy_failure", store_name=name)
        match = fallback_resolve(name, stores, normalize=normalize_store_name)

    log_event(
        logger,
        "matching.store.resolved" if match else "matching.store.unmatched",
        store_name=name,
        matched_store=match.entity.name if match else None,
        score=round(match.score, 4) if match else None,
        tier=match.tier.value if match else None,
        via_fallback=match.via_fallback if match else None,
    )
    return match


def resolve_product(
    item: ExtractedItem | str, *, catalog: CatalogService | None = None
) -> MatchResult | None:
    raw_name = item if isinstance(item, str) else item.name
    catalog = catalog or get_catalog_service()
    try:
        products = catalog.products()
    except CatalogUnavailableError:
        log_event(
            logger, "matching.product.catalog_unavailable", level=logging.WARNING, item_name=raw_name
        )
        return None

    if not products:
        return None
    if not is_likely_product(raw_name):
        log_event(logger, "matching.product.skipped", level=logging.DEBUG, item_name=raw_name)
        return None

    corrected = correct_product_name(raw_name)
    try:
        match = resolve(corrected, products, fields=PRODUCT_FIELDS, normalize=normalize_product_name)
    except Exception:
        log_exception(logger, "matching.product.fuzzy_failure", item_name=raw_name)
        match = fallback_resolve(corrected, products, normalize=normalize_product_name)

    log_event(
        logger,
        "matching.product.resolved" if match else "matching.product.unmatched",
        item_name=raw_name,
        corrected_name=corrected if corrected != raw_name else None,
        matched_product=match.entity.name if match else None,
        score=round(match.score, 4) if match else None,
        tier=match.tier.value if match else None,
    )
    return match


def store_suggestions(
    name: str, *, limit: int = 5, catalog: CatalogService | None = None
) -> list[MatchResult]:
    catalog = catalog or get_catalog_service()
    try:
        stores = catalog.stores()
    except CatalogUnavailableError:
        return []
    return suggest(name, stores, fields=STORE_FIELDS, normalize=normalize_store_name, limit=limit)


def product_suggestions(
    name: str, *, limit: int = 5, catalog: CatalogService | None = None
) -> list[MatchResult]:
    catalog = catalog or get_catalog_service()
    try:
        products = catalog.products()
    except CatalogUnavailableError:
        return []
    return suggest(
        name, products, fields=PRODUCT_FIELDS, normalize=normalize_product_name, limit=limit
    )
