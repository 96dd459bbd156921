from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from receipt_points.core.logging import get_logger, log_event
from receipt_points.core.models import utcnow
from receipt_points.modules.identity.models import PointsStatus, User
from receipt_points.modules.points.models import (
    Transaction,
    TransactionAction,
    TransactionSource,
)

logger = get_logger(__name__)


class PointsError(ValueError):
    pass


@dataclass(frozen=True)
class PointsSummary:
    balance: Decimal
    total_earned: Decimal
    total_redeemed: Decimal
    total_expired: Decimal
    last_date_earned: datetime | None
    last_date_redeemed: datetime | None


@dataclass(frozen=True)
class ActionStats:
    action: TransactionAction
    count: int
    points: Decimal


def has_earned_transaction(session: Session, *, receipt_id: uuid.UUID) -> bool:
    return (
        session.scalar(
            select(Transaction.id)
            .where(
                Transaction.receipt_id == receipt_id,
                Transaction.action == TransactionAction.EARNED,
            )
            .limit(1)
        )
        is not None
    )


def add_earned_transaction(
    session: Session,
    *,
    user: User,
    points: Decimal,
    source: TransactionSource = TransactionSource.RECEIPT,
    receipt_id: uuid.UUID | None = None,
    store_id: uuid.UUID | None = None,
    purchase_amount: Decimal | None = None,
) -> Transaction:
    """Stage a ledger entry and the matching balance update without committing.

    The caller commits both together, or rolls both back.
    """
    points = Decimal(points)
    if points <= 0:
        raise PointsError("Points to award must be positive")
    if user.points_status != PointsStatus.ACTIVE:
        raise PointsError("Points account is not active")

    txn = Transaction(
        user_id=user.id,
        receipt_id=receipt_id,
        store_id=store_id,
        purchase_amount=purchase_amount,
        points=points,
        action=TransactionAction.EARNED,
        source=source,
    )
    session.add(txn)
    user.points_balance = Decimal(user.points_balance or 0) + points
    user.points_total_earned = Decimal(user.points_total_earned or 0) + points
    user.last_date_earned = utcnow()
    session.add(user)
    return txn


def award_points(
    session: Session,
    *,
    user: User,
    points: Decimal,
    source: TransactionSource,
    receipt_id: uuid.UUID | None = None,
    store_id: uuid.UUID | None = None,
    purchase_amount: Decimal | None = None,
) -> Transaction:
    try:
        txn = add_earned_transaction(
            session,
            user=user,
            points=points,
            source=source,
            receipt_id=receipt_id,
            store_id=store_id,
            purchase_amount=purchase_amount,
        )
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(txn)
    log_event(
        logger,
        "points.earned",
        user_id=str(user.id),
        points=str(txn.points),
        source=source.value,
        receipt_id=str(receipt_id) if receipt_id else None,
    )
    return txn


def redeem_points(
    session: Session,
    *,
    user: User,
    points: Decimal,
    source: TransactionSource = TransactionSource.REWARD,
) -> Transaction:
    points = Decimal(points)
    if points <= 0:
        raise PointsError("Points to redeem must be positive")
    if Decimal(user.points_balance or 0) < points:
        raise PointsError("Insufficient points balance")

    txn = Transaction(
        user_id=user.id,
        points=points,
        action=TransactionAction.REDEEMED,
        source=source,
    )
    session.add(txn)
    user.points_balance = Decimal(user.points_balance) - points
    user.last_date_redeemed = utcnow()
    session.add(user)
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(txn)
    log_event(logger, "points.redeemed", user_id=str(user.id), points=str(points))
    return txn


def expire_points(session: Session, *, user: User, points: Decimal) -> Transaction:
    points = min(Decimal(points), Decimal(user.points_balance or 0))
    if points <= 0:
        raise PointsError("No points to expire")

    txn = Transaction(
        user_id=user.id,
        points=points,
        action=TransactionAction.EXPIRED,
        source=TransactionSource.SYSTEM,
    )
    session.add(txn)
    user.points_balance = Decimal(user.points_balance) - points
    session.add(user)
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise
    session.refresh(txn)
    log_event(logger, "points.expired", user_id=str(user.id), points=str(points))
    return txn


def _sum_points(session: Session, *, user_id: uuid.UUID, action: TransactionAction) -> Decimal:
    total = session.scalar(
        select(func.coalesce(func.sum(Transaction.points), 0)).where(
            Transaction.user_id == user_id, Transaction.action == action
        )
    )
    return Decimal(str(total or 0))


def user_points_summary(session: Session, *, user: User) -> PointsSummary:
    return PointsSummary(
        balance=Decimal(user.points_balance or 0),
        total_earned=Decimal(user.points_total_earned or 0),
        total_redeemed=_sum_points(session, user_id=user.id, action=TransactionAction.REDEEMED),
        total_expired=_sum_points(session, user_id=user.id, action=TransactionAction.EXPIRED),
        last_date_earned=user.last_date_earned,
        last_date_redeemed=user.last_date_redeemed,
    )


def transaction_stats(session: Session, *, user_id: uuid.UUID) -> list[ActionStats]:
    rows = session.execute(
        select(
            Transaction.action,
            func.count(Transaction.id),
            func.coalesce(func.sum(Transaction.points), 0),
        )
        .where(Transaction.user_id == user_id)
        .group_by(Transaction.action)
        .order_by(Transaction.action)
    )
    return [
        ActionStats(action=action, count=int(count), points=Decimal(str(points)))
        for action, count, points in rows
    ]


def list_transactions(
    session: Session, *, user_id: uuid.UUID, action: TransactionAction | None = None
) -> list[Transaction]:
    stmt = select(Transaction).where(Transaction.user_id == user_id)
    if action is not None:
        stmt = stmt.where(Transaction.action == action)
    return list(session.scalars(stmt.order_by(Transaction.created_at.desc())))
