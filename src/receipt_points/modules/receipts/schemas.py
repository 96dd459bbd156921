from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from receipt_points.modules.duplicates.service import DuplicateVerdict
from receipt_points.modules.receipts.models import ReceiptFlagReason, ReceiptStatus
from receipt_points.modules.receipts.service import MatchedItem, UploadOutcome


class ReceiptOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    store_id: uuid.UUID | None
    store_name: str
    reference_id: str
    image_url: str | None
    total_amount: Decimal
    valid_amount: Decimal
    date_purchase: datetime
    status: ReceiptStatus
    reason: ReceiptFlagReason | None
    receipt_number: str | None
    created_at: datetime


class MatchedItemOut(BaseModel):
    name: str
    raw_name: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    product_id: uuid.UUID | None = None
    product_name: str | None = None
    match_score: float | None = None
    match_tier: str | None = None
    points: Decimal

    @classmethod
    def from_matched(cls, matched: MatchedItem) -> MatchedItemOut:
        entity = matched.match.entity if matched.matched else None
        return cls(
            name=matched.item.name,
            raw_name=matched.item.raw_name,
            quantity=matched.item.quantity,
            unit_price=matched.item.unit_price,
            total_price=matched.item.total_price,
            product_id=entity.id if entity else None,
            product_name=entity.name if entity else None,
            match_score=matched.match.score if matched.match else None,
            match_tier=matched.match.tier.value if matched.match else None,
            points=matched.points,
        )


class DuplicateVerdictOut(BaseModel):
    is_duplicate: bool
    confidence: float
    reason: str
    existing_receipt_id: uuid.UUID | None = None
    points_already_earned: bool = False
    detection_methods: list[str] = []
    details: dict = {}

    @classmethod
    def from_verdict(cls, verdict: DuplicateVerdict) -> DuplicateVerdictOut:
        return cls(
            is_duplicate=verdict.is_duplicate,
            confidence=verdict.confidence,
            reason=verdict.reason,
            existing_receipt_id=verdict.existing_receipt.id if verdict.existing_receipt else None,
            points_already_earned=verdict.points_already_earned,
            detection_methods=list(verdict.detection_methods),
            details=dict(verdict.details),
        )


class UploadOutcomeOut(BaseModel):
    receipt: ReceiptOut
    store_matched: bool
    matched_store: str | None
    items: list[MatchedItemOut]
    points_earned: Decimal
    transaction_id: uuid.UUID | None
    balance: Decimal
    duplicate_check: DuplicateVerdictOut | None = None

    @classmethod
    def from_outcome(cls, outcome: UploadOutcome) -> UploadOutcomeOut:
        preview = outcome.preview
        return cls(
            receipt=ReceiptOut.model_validate(outcome.receipt),
            store_matched=preview.store_matched,
            matched_store=preview.store.entity.name if preview.store_matched else None,
            items=[MatchedItemOut.from_matched(m) for m in preview.items],
            points_earned=outcome.points_earned,
            transaction_id=outcome.transaction.id if outcome.transaction else None,
            balance=outcome.balance,
            duplicate_check=(
                DuplicateVerdictOut.from_verdict(outcome.duplicate_check)
                if outcome.duplicate_check is not None
                else None
            ),
        )
