"""
Alembic model import hook.

Importing this module ensures all SQLAlchemy models are registered on Base.metadata.
"""

from __future__ import annotations

# Import User first - receipts and transactions reference it
from receipt_points.modules.identity.models import User  # noqa: F401

from receipt_points.modules.catalog.models import Brand, Product, Store  # noqa: F401
from receipt_points.modules.points.models import Transaction  # noqa: F401
from receipt_points.modules.receipts.models import Receipt  # noqa: F401
