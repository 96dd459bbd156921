from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from receipt_points.modules.identity.models import User


def create_user(session: Session, *, username: str, email: str | None = None) -> User:
    user = User(username=username.strip(), email=email.lower().strip() if email else None)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def get_user(session: Session, *, user_id: uuid.UUID) -> User | None:
    return session.get(User, user_id)


def find_user(session: Session, *, username: str) -> User | None:
    return session.scalar(select(User).where(User.username == username.strip()))
