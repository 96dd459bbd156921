from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from receipt_points.core.models import MONEY, Base, Timestamped, UUIDPrimaryKey


class ReceiptStatus(str, enum.Enum):
    VALID = "valid"
    INVALID = "invalid"
    FLAGGED = "flagged"


class ReceiptFlagReason(str, enum.Enum):
    STORE_NOT_FOUND = "STORE_NOT_FOUND"


class Receipt(UUIDPrimaryKey, Timestamped, Base):
    __tablename__ = "receipts_receipt"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("identity_user.id"), index=True
    )
    store_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("catalog_store.id"), nullable=True
    )
    store_name: Mapped[str] = mapped_column(String(200))
    reference_id: Mapped[str] = mapped_column(String(36), unique=True, index=True)
    image_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    valid_amount: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    date_purchase: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    status: Mapped[ReceiptStatus] = mapped_column(
        Enum(ReceiptStatus, native_enum=False), index=True
    )
    reason: Mapped[ReceiptFlagReason | None] = mapped_column(
        Enum(ReceiptFlagReason, native_enum=False), nullable=True
    )
    fingerprint: Mapped[str] = mapped_column(String(64), index=True)
    image_hash: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    receipt_number: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    ocr_data: Mapped[dict] = mapped_column(JSON, default=dict)

    store = relationship("Store")
