"""initial receipt points schema

Revision ID: 3b1e7c2a9d40
Revises:
Create Date: 2026-10-17

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b1e7c2a9d40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "identity_user",
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column(
            "status",
            sa.Enum("ACTIVE", "SUSPENDED", name="userstatus", native_enum=False),
            nullable=False,
        ),
        sa.Column("points_balance", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("points_total_earned", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column(
            "points_status",
            sa.Enum("ACTIVE", "FROZEN", name="pointsstatus", native_enum=False),
            nullable=False,
        ),
        sa.Column("last_date_earned", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_date_redeemed", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index(op.f("ix_identity_user_username"), "identity_user", ["username"], unique=True)
    op.create_index(op.f("ix_identity_user_created_at"), "identity_user", ["created_at"])

    op.create_table(
        "catalog_store",
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("normalized_name", sa.String(length=200), nullable=False),
        sa.Column("keywords", sa.JSON(), nullable=False),
        sa.Column(
            "type",
            sa.Enum("PHYSICAL", "ONLINE", name="storetype", native_enum=False),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum("ACTIVE", "DEACTIVATED", name="storestatus", native_enum=False),
            nullable=False,
        ),
        sa.Column("date_deactivated", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index(op.f("ix_catalog_store_normalized_name"), "catalog_store", ["normalized_name"])
    op.create_index(op.f("ix_catalog_store_status"), "catalog_store", ["status"])
    op.create_index(op.f("ix_catalog_store_created_at"), "catalog_store", ["created_at"])

    op.create_table(
        "catalog_brand",
        sa.Column("name", sa.String(length=200), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index(op.f("ix_catalog_brand_created_at"), "catalog_brand", ["created_at"])

    op.create_table(
        "catalog_product",
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("normalized_name", sa.String(length=200), nullable=False),
        sa.Column("keywords", sa.JSON(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("ACTIVE", "DEACTIVATED", "DELETED", name="productstatus", native_enum=False),
            nullable=False,
        ),
        sa.Column("brand_id", sa.Uuid(), nullable=True),
        sa.Column("volume", sa.Numeric(precision=12, scale=3), nullable=True),
        sa.Column(
            "volume_unit",
            sa.Enum("G", "ML", "KG", "L", "PACK", name="volumeunit", native_enum=False),
            nullable=True,
        ),
        sa.Column("points", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("date_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column("date_deactivated", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["brand_id"], ["catalog_brand.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_catalog_product_normalized_name"), "catalog_product", ["normalized_name"]
    )
    op.create_index(op.f("ix_catalog_product_status"), "catalog_product", ["status"])
    op.create_index(op.f("ix_catalog_product_brand_id"), "catalog_product", ["brand_id"])
    op.create_index(op.f("ix_catalog_product_created_at"), "catalog_product", ["created_at"])

    op.create_table(
        "receipts_receipt",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("store_id", sa.Uuid(), nullable=True),
        sa.Column("store_name", sa.String(length=200), nullable=False),
        sa.Column("reference_id", sa.String(length=36), nullable=False),
        sa.Column("image_url", sa.String(length=2000), nullable=True),
        sa.Column("total_amount", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("valid_amount", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("date_purchase", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "status",
            sa.Enum("VALID", "INVALID", "FLAGGED", name="receiptstatus", native_enum=False),
            nullable=False,
        ),
        sa.Column(
            "reason",
            sa.Enum("STORE_NOT_FOUND", name="receiptflagreason", native_enum=False),
            nullable=True,
        ),
        sa.Column("fingerprint", sa.String(length=64), nullable=False),
        sa.Column("image_hash", sa.String(length=64), nullable=True),
        sa.Column("receipt_number", sa.String(length=100), nullable=True),
        sa.Column("ocr_data", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["identity_user.id"]),
        sa.ForeignKeyConstraint(["store_id"], ["catalog_store.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    for column, unique in (
        ("user_id", False),
        ("reference_id", True),
        ("status", False),
        ("fingerprint", False),
        ("image_hash", False),
        ("receipt_number", False),
        ("created_at", False),
    ):
        op.create_index(
            op.f(f"ix_receipts_receipt_{column}"), "receipts_receipt", [column], unique=unique
        )

    op.create_table(
        "points_transaction",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("receipt_id", sa.Uuid(), nullable=True),
        sa.Column("store_id", sa.Uuid(), nullable=True),
        sa.Column("purchase_amount", sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column("points", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column(
            "action",
            sa.Enum(
                "PURCHASE",
                "EARNED",
                "REDEEMED",
                "EXPIRED",
                name="transactionaction",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column(
            "source",
            sa.Enum(
                "SYSTEM",
                "EVENT",
                "ACTIVITY",
                "RECEIPT",
                "PRODUCT",
                "VOUCHER",
                "REWARD",
                name="transactionsource",
                native_enum=False,
            ),
            nullable=False,
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["identity_user.id"]),
        sa.ForeignKeyConstraint(["receipt_id"], ["receipts_receipt.id"]),
        sa.ForeignKeyConstraint(["store_id"], ["catalog_store.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_points_transaction_user_id"), "points_transaction", ["user_id"])
    op.create_index(op.f("ix_points_transaction_receipt_id"), "points_transaction", ["receipt_id"])
    op.create_index(op.f("ix_points_transaction_action"), "points_transaction", ["action"])
    op.create_index(op.f("ix_points_transaction_created_at"), "points_transaction", ["created_at"])


def downgrade() -> None:
    op.drop_table("points_transaction")
    op.drop_table("receipts_receipt")
    op.drop_table("catalog_product")
    op.drop_table("catalog_brand")
    op.drop_table("catalog_store")
    op.drop_table("identity_user")
