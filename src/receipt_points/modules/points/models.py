from __future__ import annotations

import enum
import uuid
from decimal import Decimal

from sqlalchemy import Enum, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from receipt_points.core.models import MONEY, Base, Timestamped, UUIDPrimaryKey


class TransactionAction(str, enum.Enum):
    PURCHASE = "purchase"
    EARNED = "earned"
    REDEEMED = "redeemed"
    EXPIRED = "expired"


class TransactionSource(str, enum.Enum):
    SYSTEM = "system"
    EVENT = "event"
    ACTIVITY = "activity"
    RECEIPT = "receipt"
    PRODUCT = "product"
    VOUCHER = "voucher"
    REWARD = "reward"


class Transaction(UUIDPrimaryKey, Timestamped, Base):
    """Append-only points ledger entry."""

    __tablename__ = "points_transaction"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("identity_user.id"), index=True
    )
    receipt_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("receipts_receipt.id"), nullable=True, index=True
    )
    store_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("catalog_store.id"), nullable=True
    )
    purchase_amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    points: Mapped[Decimal] = mapped_column(MONEY)
    action: Mapped[TransactionAction] = mapped_column(
        Enum(TransactionAction, native_enum=False), index=True
    )
    source: Mapped[TransactionSource] = mapped_column(Enum(TransactionSource, native_enum=False))

    user = relationship("User")
    receipt = relationship("Receipt")
