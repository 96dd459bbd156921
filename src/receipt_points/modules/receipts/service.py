from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from receipt_points.core.config import settings
from receipt_points.core.logging import (
    get_logger,
    log_event,
    log_exception,
    monotonic_ms,
    reset_upload_context,
    set_upload_context,
)
from receipt_points.modules.catalog.service import (
    CatalogService,
    CatalogUnavailableError,
    get_catalog_service,
)
from receipt_points.modules.duplicates.service import (
    DuplicateVerdict,
    check_for_duplicate,
    generate_image_hash,
    generate_receipt_fingerprint,
)
from receipt_points.modules.extraction.extractor import parse_receipt_text
from receipt_points.modules.extraction.patterns.products import product_category
from receipt_points.modules.extraction.patterns.stores import store_category
from receipt_points.modules.extraction.results import ExtractedItem, ExtractionResult
from receipt_points.modules.identity.models import PointsStatus, User
from receipt_points.modules.matching.resolver import MatchResult, MatchTier
from receipt_points.modules.matching.service import is_accepted, resolve_product, resolve_store
from receipt_points.modules.ocr.service import OcrProvider, OcrResult, recognize_best
from receipt_points.modules.points.models import Transaction, TransactionSource
from receipt_points.modules.points.service import add_earned_transaction
from receipt_points.modules.receipts.models import Receipt, ReceiptFlagReason, ReceiptStatus

logger = get_logger(__name__)

ZERO = Decimal("0")


class DuplicateReceiptError(Exception):
    def __init__(self, verdict: DuplicateVerdict) -> None:
        super().__init__(verdict.reason)
        self.verdict = verdict


class ProcessingUnavailableError(RuntimeError):
    pass


@dataclass(frozen=True)
class MatchedItem:
    item: ExtractedItem
    match: MatchResult | None
    points: Decimal

    @property
    def matched(self) -> bool:
        return self.match is not None and self.match.tier != MatchTier.LOW

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.item.to_dict(),
            "product_id": str(self.match.entity.id) if self.matched else None,
            "product_name": self.match.entity.name if self.matched else None,
            "match_score": round(self.match.score, 4) if self.match else None,
            "match_tier": self.match.tier.value if self.match else None,
            "points": str(self.points),
            "category": product_category(self.item.name),
        }


@dataclass(frozen=True)
class ReceiptPreview:
    result: ExtractionResult
    store: MatchResult | None
    items: tuple[MatchedItem, ...]
    points: Decimal
    valid_amount: Decimal

    @property
    def store_matched(self) -> bool:
        return is_accepted(self.store)


@dataclass(frozen=True)
class UploadOutcome:
    receipt: Receipt
    preview: ReceiptPreview
    points_earned: Decimal
    transaction: Transaction | None
    balance: Decimal
    duplicate_check: DuplicateVerdict | None = None


def _ensure_catalog_available(catalog: CatalogService) -> None:
    failures = 0
    for load in (catalog.stores, catalog.products):
        try:
            load()
        except CatalogUnavailableError:
            failures += 1
    if failures == 2:
        raise ProcessingUnavailableError("Store and product catalogs are unavailable")


def _match_item(item: ExtractedItem, catalog: CatalogService) -> MatchedItem:
    match = resolve_product(item, catalog=catalog)
    # Low tier is a non-match, including containment fallbacks.
    if match is None or match.tier == MatchTier.LOW:
        return MatchedItem(item=item, match=match, points=ZERO)
    return MatchedItem(item=item, match=match, points=match.entity.points * item.quantity)


def preview_receipt(
    result: ExtractionResult, *, catalog: CatalogService | None = None
) -> ReceiptPreview:
    """Match store and items and compute the points the receipt would earn. Persists nothing."""
    catalog = catalog or get_catalog_service()
    _ensure_catalog_available(catalog)

    store = resolve_store(result.store_name, catalog=catalog) if result.store_detected else None
    items = tuple(_match_item(item, catalog) for item in result.items)
    matched = [m for m in items if m.matched]
    return ReceiptPreview(
        result=result,
        store=store,
        items=items,
        points=sum((m.points for m in matched), ZERO),
        valid_amount=sum((m.item.total_price for m in matched), ZERO),
    )


def _purchase_date(result: ExtractionResult) -> datetime:
    try:
        parsed = result.metadata.purchase_datetime()
    except ValueError:
        parsed = None
    return parsed.replace(tzinfo=UTC) if parsed else datetime.now(UTC)


def _can_earn(user: User) -> bool:
    if user.points_status == PointsStatus.ACTIVE:
        return True
    log_event(
        logger,
        "receipts.points.skipped",
        level=logging.WARNING,
        reason="points_account_inactive",
        points_status=user.points_status.value,
    )
    return False


def _build_receipt(
    *,
    user: User,
    preview: ReceiptPreview,
    image_hash: str | None,
    image_url: str | None,
    reference_id: str,
) -> Receipt:
    result = preview.result
    store_entity = preview.store.entity if preview.store_matched else None
    return Receipt(
        user_id=user.id,
        store_id=store_entity.id if store_entity else None,
        store_name=result.store_name,
        reference_id=reference_id,
        image_url=image_url,
        total_amount=result.totals.total,
        valid_amount=preview.valid_amount,
        date_purchase=_purchase_date(result),
        status=ReceiptStatus.VALID if store_entity else ReceiptStatus.FLAGGED,
        reason=None if store_entity else ReceiptFlagReason.STORE_NOT_FOUND,
        fingerprint=generate_receipt_fingerprint(result),
        image_hash=image_hash,
        receipt_number=result.metadata.receipt_number,
        ocr_data={
            **result.to_dict(),
            "matched_store": store_entity.name if store_entity else None,
            "store_category": store_category(result.store_name),
            "matched_items": [m.to_dict() for m in preview.items],
        },
    )


def ingest_extraction(
    session: Session,
    *,
    user: User,
    result: ExtractionResult,
    image_bytes: bytes | None = None,
    image_url: str | None = None,
    catalog: CatalogService | None = None,
) -> UploadOutcome:
    """Persist a parsed receipt and award its points.

    The receipt row, ledger entry and balance update are committed together.
    A frozen points account still gets its receipt stored, with no points.
    Raises ``DuplicateReceiptError`` when the purchase was already paid out.
    """
    reference_id = str(uuid.uuid4())
    token = set_upload_context(upload_id=reference_id, user_id=str(user.id))
    start = time.monotonic()
    try:
        image_hash = generate_image_hash(image_bytes) if image_bytes else None

        verdict: DuplicateVerdict | None = None
        if not settings.disable_duplicate_detection:
            verdict = check_for_duplicate(
                session, user_id=user.id, result=result, image_hash=image_hash
            )
            if verdict.is_duplicate:
                log_event(
                    logger,
                    "receipts.upload.duplicate",
                    level=logging.WARNING,
                    reason=verdict.reason,
                    detection_methods=list(verdict.detection_methods),
                )
                raise DuplicateReceiptError(verdict)

        preview = preview_receipt(result, catalog=catalog)
        receipt = _build_receipt(
            user=user,
            preview=preview,
            image_hash=image_hash,
            image_url=image_url,
            reference_id=reference_id,
        )

        txn: Transaction | None = None
        try:
            session.add(receipt)
            session.flush()
            if preview.points > 0 and preview.store_matched and _can_earn(user):
                txn = add_earned_transaction(
                    session,
                    user=user,
                    points=preview.points,
                    source=TransactionSource.RECEIPT,
                    receipt_id=receipt.id,
                    store_id=receipt.store_id,
                    purchase_amount=preview.valid_amount,
                )
            session.commit()
        except Exception:
            session.rollback()
            log_exception(logger, "receipts.upload.persist_failure", duration_ms=monotonic_ms(start))
            raise

        session.refresh(receipt)
        if txn is not None:
            session.refresh(txn)
        session.refresh(user)

        points_earned = txn.points if txn is not None else ZERO
        log_event(
            logger,
            "receipts.upload.finish",
            receipt_id=str(receipt.id),
            status=receipt.status.value,
            store_name=result.store_name,
            matched_store=preview.store.entity.name if preview.store_matched else None,
            item_count=len(preview.items),
            matched_item_count=sum(1 for m in preview.items if m.matched),
            points_earned=str(points_earned),
            duration_ms=monotonic_ms(start),
        )
        return UploadOutcome(
            receipt=receipt,
            preview=preview,
            points_earned=points_earned,
            transaction=txn,
            balance=Decimal(user.points_balance or 0),
            duplicate_check=verdict,
        )
    finally:
        reset_upload_context(token)


def process_ocr_result(
    session: Session,
    *,
    user: User,
    ocr: OcrResult,
    image_bytes: bytes | None = None,
    image_url: str | None = None,
    catalog: CatalogService | None = None,
) -> UploadOutcome:
    result = parse_receipt_text(
        ocr.text,
        confidence=ocr.confidence,
        processing_time_ms=ocr.processing_time_ms,
        ocr_variant=ocr.variant,
    )
    return ingest_extraction(
        session,
        user=user,
        result=result,
        image_bytes=image_bytes,
        image_url=image_url,
        catalog=catalog,
    )


def process_receipt_upload(
    session: Session,
    *,
    user: User,
    image_bytes: bytes,
    provider: OcrProvider,
    image_url: str | None = None,
    catalog: CatalogService | None = None,
) -> UploadOutcome:
    result = recognize_best(image_bytes, provider=provider)
    return ingest_extraction(
        session,
        user=user,
        result=result,
        image_bytes=image_bytes,
        image_url=image_url,
        catalog=catalog,
    )
