from __future__ import annotations

from decimal import Decimal

import pytest

from receipt_points.modules.identity.models import PointsStatus
from receipt_points.modules.identity.service import create_user, find_user, get_user
from receipt_points.modules.points.models import TransactionAction, TransactionSource
from receipt_points.modules.points.service import (
    PointsError,
    award_points,
    expire_points,
    list_transactions,
    redeem_points,
    transaction_stats,
    user_points_summary,
)


@pytest.fixture
def user(session):
    return create_user(session, username=" juan ", email="Juan@Example.com")


def test_user_lookup(session, user):
    assert user.username == "juan"
    assert user.email == "juan@example.com"
    assert get_user(session, user_id=user.id).id == user.id
    assert find_user(session, username="juan").id == user.id
    assert find_user(session, username="nobody") is None


def test_award_and_redeem_update_balance(session, user):
    award_points(session, user=user, points=Decimal("50"), source=TransactionSource.RECEIPT)
    award_points(session, user=user, points=Decimal("25"), source=TransactionSource.EVENT)
    redeem_points(session, user=user, points=Decimal("30"))

    summary = user_points_summary(session, user=user)
    assert summary.balance == Decimal("45")
    assert summary.total_earned == Decimal("75")
    assert summary.total_redeemed == Decimal("30")
    assert summary.total_expired == Decimal("0")
    assert summary.last_date_earned is not None
    assert summary.last_date_redeemed is not None


def test_redeem_more_than_balance_fails(session, user):
    award_points(session, user=user, points=Decimal("10"), source=TransactionSource.RECEIPT)
    with pytest.raises(PointsError):
        redeem_points(session, user=user, points=Decimal("11"))
    session.refresh(user)
    assert user.points_balance == Decimal("10")


def test_non_positive_or_frozen_award_fails(session, user):
    with pytest.raises(PointsError):
        award_points(session, user=user, points=Decimal("0"), source=TransactionSource.RECEIPT)

    user.points_status = PointsStatus.FROZEN
    session.commit()
    with pytest.raises(PointsError):
        award_points(session, user=user, points=Decimal("5"), source=TransactionSource.RECEIPT)
    assert list_transactions(session, user_id=user.id) == []


def test_expire_caps_at_balance(session, user):
    award_points(session, user=user, points=Decimal("8"), source=TransactionSource.RECEIPT)
    txn = expire_points(session, user=user, points=Decimal("20"))
    assert txn.points == Decimal("8")
    session.refresh(user)
    assert user.points_balance == Decimal("0")
    with pytest.raises(PointsError):
        expire_points(session, user=user, points=Decimal("1"))


def test_transaction_stats_and_listing(session, user):
    award_points(session, user=user, points=Decimal("10"), source=TransactionSource.RECEIPT)
    award_points(session, user=user, points=Decimal("5"), source=TransactionSource.RECEIPT)
    redeem_points(session, user=user, points=Decimal("3"))

    stats = {s.action: s for s in transaction_stats(session, user_id=user.id)}
    assert stats[TransactionAction.EARNED].count == 2
    assert stats[TransactionAction.EARNED].points == Decimal("15")
    assert stats[TransactionAction.REDEEMED].count == 1

    earned = list_transactions(session, user_id=user.id, action=TransactionAction.EARNED)
    assert [t.points for t in earned] == [Decimal("5"), Decimal("10")]
