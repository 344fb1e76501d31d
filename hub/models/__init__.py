"""
Community Hub
SQLAlchemy model registry.

All models share the single ``db`` instance created here; ``create_app``
imports every model module so ``db.create_all()`` and Alembic see them.
"""

from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow():
    """Timezone-aware UTC timestamp used as column default."""
    return datetime.now(timezone.utc)


def iso(value):
    """Serialise an optional datetime for ``to_dict`` payloads."""
    return value.isoformat() if value else None
