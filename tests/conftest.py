from __future__ import annotations

import os

import pytest

# Set env before any receipt_points imports (settings/engine are created at import time).
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///./.receipt_points_test.db")
os.environ.setdefault("DISABLE_DUPLICATE_DETECTION", "false")
os.environ["LOG_LEVEL"] = "INFO"


@pytest.fixture(autouse=True)
def _reset_db_and_catalog() -> None:
    import receipt_points.models  # noqa: F401
    from receipt_points.core.db import engine
    from receipt_points.core.models import Base
    from receipt_points.modules.catalog.service import get_catalog_service

    # Drop the cached catalog snapshot between tests
    get_catalog_service().invalidate_cache()

    # Reset DB schema
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)

    yield


@pytest.fixture
def session():
    from receipt_points.core.db import SessionLocal

    with SessionLocal() as s:
        yield s


@pytest.fixture
def seeded(session):
    from receipt_points.modules.catalog.service import seed_catalog

    seed_catalog(session)
    return session
