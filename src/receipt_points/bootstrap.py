from __future__ import annotations

from receipt_points.core.config import settings
from receipt_points.core.db import engine, session_scope
from receipt_points.core.models import Base
from receipt_points.modules.catalog.service import seed_catalog


def bootstrap() -> None:
    import receipt_points.models  # noqa: F401

    if settings.environment == "dev" and str(settings.database_url).startswith("sqlite"):
        Base.metadata.create_all(engine)

    if not settings.seed_catalog:
        return

    with session_scope() as session:
        seed_catalog(session)
