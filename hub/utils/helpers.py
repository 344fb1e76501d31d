"""Shared blueprint helpers.

get_or_404:          tuple-return lookup used by every blueprint
db_commit_or_error:  commit with uniform rollback / error response
parse_bool:          query-string and JSON flag parsing
"""
import logging

from sqlalchemy.exc import IntegrityError, OperationalError

from hub.models import db
from hub.utils.errors import E, api_error

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def get_or_404(model, pk, label=None):
    """Fetch a model instance by primary key or return a 404 error tuple.

    - Success: (obj, None)
    - Failure: (None, (response, 404))

        ticket, err = get_or_404(Ticket, ticket_id)
        if err:
            return err
    """
    label = label or model.__name__
    obj = db.session.get(model, pk)
    if not obj:
        return None, api_error(E.NOT_FOUND, f"{label} not found")
    return obj, None


def parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def db_commit_or_error():
    """Commit the current session, returning an error response on failure.

    Returns None on success, otherwise a ``(response, status)`` tuple:

        err = db_commit_or_error()
        if err:
            return err

    IntegrityError → 400 (duplicate / constraint violation)
    OperationalError and anything else → 500
    """
    try:
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit: %s", exc.orig)
        return api_error(E.VALIDATION_CONSTRAINT, "Duplicate or constraint violation")
    except OperationalError:
        db.session.rollback()
        logger.exception("Database operational error on commit")
        return api_error(E.DATABASE, "Database error")
    except Exception:
        db.session.rollback()
        logger.exception("Unexpected database error on commit")
        return api_error(E.DATABASE, "Database error")
