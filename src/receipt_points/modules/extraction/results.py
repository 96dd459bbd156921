from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from receipt_points.modules.extraction.patterns.line_items import DATE_PATTERNS
from receipt_points.modules.extraction.patterns.stores import UNKNOWN_STORE

ZERO = Decimal("0")


@dataclass(frozen=True)
class ExtractedItem:
    name: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    source_pattern_id: str
    raw_name: str
    line_number: int
    specific_product: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "raw_name": self.raw_name,
            "quantity": str(self.quantity),
            "unit_price": str(self.unit_price),
            "total_price": str(self.total_price),
            "source_pattern_id": self.source_pattern_id,
            "line_number": self.line_number,
            "specific_product": self.specific_product,
        }


@dataclass(frozen=True)
class ReceiptTotals:
    subtotal: Decimal = ZERO
    tax: Decimal = ZERO
    total: Decimal = ZERO
    currency: str = "PHP"

    def to_dict(self) -> dict[str, Any]:
        return {
            "subtotal": str(self.subtotal),
            "tax": str(self.tax),
            "total": str(self.total),
            "currency": self.currency,
        }


@dataclass(frozen=True)
class ReceiptMetadata:
    # Kept exactly as printed; parse with purchase_datetime().
    receipt_date: str | None = None
    receipt_number: str | None = None
    cashier: str | None = None
    payment_method: str | None = None

    def purchase_datetime(self) -> datetime | None:
        """Parse ``receipt_date`` with the format of the pattern that found it.

        Raises ``ValueError`` when the printed date is not a real calendar date.
        """
        if not self.receipt_date:
            return None
        for pattern, fmt in DATE_PATTERNS:
            if pattern.fullmatch(self.receipt_date):
                return datetime.strptime(self.receipt_date, fmt)
        raise ValueError(f"Unrecognized receipt date: {self.receipt_date!r}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "receipt_date": self.receipt_date,
            "receipt_number": self.receipt_number,
            "cashier": self.cashier,
            "payment_method": self.payment_method,
        }


@dataclass(frozen=True)
class ExtractionResult:
    store_name: str
    items: tuple[ExtractedItem, ...]
    totals: ReceiptTotals
    metadata: ReceiptMetadata
    confidence: float
    processing_time_ms: int
    raw_text: str
    corrected_text: str = ""
    ocr_variant: str | None = None

    @property
    def store_detected(self) -> bool:
        return bool(self.store_name) and self.store_name != UNKNOWN_STORE

    def to_dict(self) -> dict[str, Any]:
        return {
            "store_name": self.store_name,
            "items": [item.to_dict() for item in self.items],
            "totals": self.totals.to_dict(),
            "metadata": self.metadata.to_dict(),
            "confidence": self.confidence,
            "processing_time_ms": self.processing_time_ms,
            "ocr_variant": self.ocr_variant,
        }
