from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from receipt_points.core.models import Base, Timestamped, UUIDPrimaryKey


class StoreType(str, enum.Enum):
    PHYSICAL = "physical"
    ONLINE = "online"


class StoreStatus(str, enum.Enum):
    ACTIVE = "active"
    DEACTIVATED = "deactivated"


class ProductStatus(str, enum.Enum):
    ACTIVE = "active"
    DEACTIVATED = "deactivated"
    DELETED = "deleted"


class VolumeUnit(str, enum.Enum):
    G = "g"
    ML = "ml"
    KG = "kg"
    L = "l"
    PACK = "pack"


class Store(UUIDPrimaryKey, Timestamped, Base):
    __tablename__ = "catalog_store"

    name: Mapped[str] = mapped_column(String(200), unique=True)
    normalized_name: Mapped[str] = mapped_column(String(200), index=True)
    keywords: Mapped[list] = mapped_column(JSON, default=list)
    type: Mapped[StoreType] = mapped_column(
        Enum(StoreType, native_enum=False), default=StoreType.PHYSICAL
    )
    status: Mapped[StoreStatus] = mapped_column(
        Enum(StoreStatus, native_enum=False), default=StoreStatus.ACTIVE, index=True
    )
    date_deactivated: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)


class Brand(UUIDPrimaryKey, Timestamped, Base):
    __tablename__ = "catalog_brand"

    name: Mapped[str] = mapped_column(String(200), unique=True)


class Product(UUIDPrimaryKey, Timestamped, Base):
    __tablename__ = "catalog_product"

    name: Mapped[str] = mapped_column(String(200))
    normalized_name: Mapped[str] = mapped_column(String(200), index=True)
    keywords: Mapped[list] = mapped_column(JSON, default=list)
    status: Mapped[ProductStatus] = mapped_column(
        Enum(ProductStatus, native_enum=False), default=ProductStatus.ACTIVE, index=True
    )
    brand_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("catalog_brand.id"), nullable=True, index=True
    )
    volume: Mapped[Decimal | None] = mapped_column(Numeric(12, 3), nullable=True)
    volume_unit: Mapped[VolumeUnit | None] = mapped_column(
        Enum(VolumeUnit, native_enum=False), nullable=True
    )
    points: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    date_expiry: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    date_deactivated: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    brand = relationship("Brand")
