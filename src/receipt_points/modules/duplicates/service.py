from __future__ import annotations

import hashlib
import json
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from receipt_points.core.logging import get_logger, log_event, log_exception, monotonic_ms
from receipt_points.modules.extraction.results import ExtractionResult
from receipt_points.modules.points.service import has_earned_transaction
from receipt_points.modules.receipts.models import Receipt, ReceiptStatus

logger = get_logger(__name__)

METHOD_IMAGE_HASH = "image_hash"
METHOD_RECEIPT_NUMBER = "receipt_number"
METHOD_FINGERPRINT = "fingerprint"
METHOD_STORE_TOTAL_DATE = "store_total_date"

# (confidence when blocking, confidence when similar but not blocking)
METHOD_CONFIDENCE: dict[str, tuple[float, float]] = {
    METHOD_IMAGE_HASH: (0.99, 0.3),
    METHOD_RECEIPT_NUMBER: (0.98, 0.3),
    METHOD_FINGERPRINT: (0.95, 0.3),
    METHOD_STORE_TOTAL_DATE: (0.85, 0.25),
}

HIGH_CONFIDENCE = 0.8
MULTI_METHOD_COUNT = 3
TOTAL_TOLERANCE = Decimal("1")
DATE_TOLERANCE = timedelta(hours=24)

# Receipts in these states already count as a submitted purchase.
_COUNTED_STATUSES = (ReceiptStatus.VALID, ReceiptStatus.FLAGGED)


@dataclass(frozen=True)
class MethodCheck:
    method: str
    is_duplicate: bool = False
    confidence: float = 0.0
    existing_receipt: Receipt | None = None
    points_already_earned: bool = False
    reason: str | None = None


@dataclass(frozen=True)
class DuplicateVerdict:
    is_duplicate: bool
    confidence: float
    reason: str
    existing_receipt: Receipt | None = None
    points_already_earned: bool = False
    detection_methods: tuple[str, ...] = ()
    details: dict[str, Any] = field(default_factory=dict)
    checks: tuple[MethodCheck, ...] = ()


def generate_receipt_fingerprint(result: ExtractionResult) -> str:
    items = sorted(
        (
            {
                "name": item.name,
                "price": format(item.total_price, "f"),
                "quantity": format(item.quantity, "f"),
            }
            for item in result.items
        ),
        key=lambda i: (i["name"], i["price"], i["quantity"]),
    )
    payload = {
        "store": result.store_name or "",
        "total": format(result.totals.total or Decimal("0"), "f"),
        "date": result.metadata.receipt_date or "",
        "receiptNumber": result.metadata.receipt_number or "",
        "items": items,
    }
    encoded = json.dumps(payload, sort_keys=True, ensure_ascii=True)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def generate_image_hash(image_bytes: bytes) -> str:
    return hashlib.sha256(image_bytes).hexdigest()


def _counted_receipts(user_id: uuid.UUID):
    return select(Receipt).where(
        Receipt.user_id == user_id,
        Receipt.status.in_(_COUNTED_STATUSES),
    )


def _first(session: Session, stmt) -> Receipt | None:
    return session.scalars(stmt.order_by(Receipt.created_at).limit(1)).first()


def _verdict_for(
    session: Session, *, method: str, existing: Receipt | None, blocked_reason: str, retry_reason: str
) -> MethodCheck:
    if existing is None:
        return MethodCheck(method=method)
    points_earned = has_earned_transaction(session, receipt_id=existing.id)
    # Only a receipt that already paid out blocks; otherwise a failed first attempt may be retried.
    block_conf, similar_conf = METHOD_CONFIDENCE[method]
    return MethodCheck(
        method=method,
        is_duplicate=points_earned,
        confidence=block_conf if points_earned else similar_conf,
        existing_receipt=existing,
        points_already_earned=points_earned,
        reason=blocked_reason if points_earned else retry_reason,
    )


def check_by_image_hash(session: Session, *, user_id: uuid.UUID, image_hash: str) -> MethodCheck:
    if not image_hash:
        return MethodCheck(method=METHOD_IMAGE_HASH)
    existing = _first(session, _counted_receipts(user_id).where(Receipt.image_hash == image_hash))
    return _verdict_for(
        session,
        method=METHOD_IMAGE_HASH,
        existing=existing,
        blocked_reason="Exact image match with points already earned",
        retry_reason="Exact image match but no points earned - allowing retry",
    )


def check_by_receipt_number(
    session: Session, *, user_id: uuid.UUID, result: ExtractionResult
) -> MethodCheck:
    receipt_number = result.metadata.receipt_number
    store = result.store_name
    if not receipt_number or not store:
        return MethodCheck(method=METHOD_RECEIPT_NUMBER)
    existing = _first(
        session,
        _counted_receipts(user_id).where(
            Receipt.store_name.icontains(store, autoescape=True),
            Receipt.receipt_number == receipt_number,
        ),
    )
    return _verdict_for(
        session,
        method=METHOD_RECEIPT_NUMBER,
        existing=existing,
        blocked_reason="Exact receipt number match with points already earned",
        retry_reason="Exact receipt number match but no points earned - allowing retry",
    )


def check_by_fingerprint(
    session: Session, *, user_id: uuid.UUID, fingerprint: str
) -> MethodCheck:
    existing = _first(session, _counted_receipts(user_id).where(Receipt.fingerprint == fingerprint))
    return _verdict_for(
        session,
        method=METHOD_FINGERPRINT,
        existing=existing,
        blocked_reason="Duplicate receipt with points already earned",
        retry_reason="Similar receipt found but no points earned - allowing retry",
    )


def check_by_store_total_date(
    session: Session, *, user_id: uuid.UUID, result: ExtractionResult
) -> MethodCheck:
    store = result.store_name
    total = result.totals.total
    if not store or not total or not result.metadata.receipt_date:
        return MethodCheck(method=METHOD_STORE_TOTAL_DATE)

    # Raises ValueError for impossible dates; the caller reports that as "not duplicate".
    purchased = result.metadata.purchase_datetime().replace(tzinfo=UTC)
    existing = _first(
        session,
        _counted_receipts(user_id).where(
            Receipt.store_name.icontains(store, autoescape=True),
            Receipt.total_amount >= total - TOTAL_TOLERANCE,
            Receipt.total_amount <= total + TOTAL_TOLERANCE,
            Receipt.date_purchase >= purchased - DATE_TOLERANCE,
            Receipt.date_purchase <= purchased + DATE_TOLERANCE,
        ),
    )
    return _verdict_for(
        session,
        method=METHOD_STORE_TOTAL_DATE,
        existing=existing,
        blocked_reason="Duplicate receipt with points already earned",
        retry_reason="Similar receipt found but no points earned - allowing retry",
    )


def _run_check(session: Session, method: str, check: Callable[[], MethodCheck]) -> MethodCheck:
    start = time.monotonic()
    try:
        outcome = check()
    except Exception as exc:
        if isinstance(exc, SQLAlchemyError):
            session.rollback()
        log_exception(logger, "duplicates.method.failure", method=method, duration_ms=monotonic_ms(start))
        return MethodCheck(method=method)
    log_event(
        logger,
        "duplicates.method.finish",
        method=method,
        is_duplicate=outcome.is_duplicate,
        similar_found=outcome.existing_receipt is not None,
        confidence=outcome.confidence,
        duration_ms=monotonic_ms(start),
    )
    return outcome


def analyze_duplicate_checks(checks: list[MethodCheck]) -> DuplicateVerdict:
    triggered = [c for c in checks if c.is_duplicate]
    if not triggered:
        return DuplicateVerdict(
            is_duplicate=False,
            confidence=0.0,
            reason="No duplicates found",
            checks=tuple(checks),
        )

    high_confidence = [c for c in triggered if c.confidence >= HIGH_CONFIDENCE]
    low_confidence = [c for c in triggered if c.confidence < HIGH_CONFIDENCE]
    points_earned = any(c.points_already_earned for c in triggered)

    # Methods only trigger when points were earned, so the last two terms
    # never change the result today. They stay for stricter future gating.
    should_block = (
        points_earned
        or (bool(high_confidence) and points_earned)
        or (len(triggered) >= MULTI_METHOD_COUNT and points_earned)
    )

    confidence = sum(c.confidence for c in triggered) / len(triggered)
    most_confident = triggered[0]
    for c in triggered[1:]:
        if c.confidence > most_confident.confidence:
            most_confident = c

    if not should_block:
        reason = "Similar receipts found but allowing retry (no points earned)"
    elif points_earned:
        reason = f"Duplicate detected with points already earned ({len(triggered)} methods)"
    elif high_confidence:
        reason = f"High confidence duplicate detected ({len(high_confidence)} methods)"
    else:
        reason = f"Multiple duplicate detection methods ({len(triggered)} methods)"

    return DuplicateVerdict(
        is_duplicate=should_block,
        confidence=confidence,
        reason=reason,
        existing_receipt=most_confident.existing_receipt,
        points_already_earned=points_earned,
        detection_methods=tuple(c.method for c in triggered),
        details={
            "high_confidence_methods": [c.method for c in high_confidence],
            "low_confidence_methods": [c.method for c in low_confidence],
            "total_methods": len(triggered),
        },
        checks=tuple(checks),
    )


def check_for_duplicate(
    session: Session,
    *,
    user_id: uuid.UUID,
    result: ExtractionResult,
    image_hash: str | None = None,
) -> DuplicateVerdict:
    """Decide whether ``result`` repeats a purchase this user was already paid for.

    Image hash runs first and receipt number second; either one blocking ends
    the check early. Fingerprint and store/total/date proximity always run
    together. A method that errors counts as "not duplicate".
    """
    start = time.monotonic()
    checks: list[MethodCheck] = []

    if image_hash:
        check = _run_check(
            session,
            METHOD_IMAGE_HASH,
            lambda: check_by_image_hash(session, user_id=user_id, image_hash=image_hash),
        )
        checks.append(check)
        if check.is_duplicate and check.points_already_earned:
            return _finish(analyze_duplicate_checks(checks), start, early_exit=METHOD_IMAGE_HASH)

    if result.metadata.receipt_number:
        check = _run_check(
            session,
            METHOD_RECEIPT_NUMBER,
            lambda: check_by_receipt_number(session, user_id=user_id, result=result),
        )
        checks.append(check)
        if check.is_duplicate and check.points_already_earned:
            return _finish(analyze_duplicate_checks(checks), start, early_exit=METHOD_RECEIPT_NUMBER)

    fingerprint = generate_receipt_fingerprint(result)
    checks.append(
        _run_check(
            session,
            METHOD_FINGERPRINT,
            lambda: check_by_fingerprint(session, user_id=user_id, fingerprint=fingerprint),
        )
    )
    checks.append(
        _run_check(
            session,
            METHOD_STORE_TOTAL_DATE,
            lambda: check_by_store_total_date(session, user_id=user_id, result=result),
        )
    )
    return _finish(analyze_duplicate_checks(checks), start)


def _finish(verdict: DuplicateVerdict, start: float, *, early_exit: str | None = None) -> DuplicateVerdict:
    log_event(
        logger,
        "duplicates.check.finish",
        is_duplicate=verdict.is_duplicate,
        confidence=round(verdict.confidence, 4),
        detection_methods=list(verdict.detection_methods),
        methods_run=[c.method for c in verdict.checks],
        early_exit=early_exit,
        existing_receipt_id=str(verdict.existing_receipt.id) if verdict.existing_receipt else None,
        duration_ms=monotonic_ms(start),
    )
    return verdict
