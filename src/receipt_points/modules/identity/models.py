from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from receipt_points.core.models import MONEY, Base, Timestamped, UUIDPrimaryKey


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class PointsStatus(str, enum.Enum):
    ACTIVE = "active"
    FROZEN = "frozen"


class User(UUIDPrimaryKey, Timestamped, Base):
    __tablename__ = "identity_user"

    username: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    email: Mapped[str | None] = mapped_column(String(320), unique=True, nullable=True)
    status: Mapped[UserStatus] = mapped_column(
        Enum(UserStatus, native_enum=False), default=UserStatus.ACTIVE
    )
    points_balance: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    points_total_earned: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    points_status: Mapped[PointsStatus] = mapped_column(
        Enum(PointsStatus, native_enum=False), default=PointsStatus.ACTIVE
    )
    last_date_earned: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_date_redeemed: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
