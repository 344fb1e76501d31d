"""
Health check blueprint.

    GET /health   status, feature flags and a database round-trip
"""

import logging
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from hub.middleware.features import feature_snapshot
from hub.models import db, utcnow
from hub.services import staff_service, timeclock_service

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health():
    checks = {}
    healthy = True

    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        checks["database"] = {"status": "ok", "latency_ms": round((time.perf_counter() - t0) * 1000, 1)}
    except SQLAlchemyError as exc:
        db.session.rollback()
        checks["database"] = {"status": "error", "detail": str(exc)[:200]}
        healthy = False
        logger.error("Health check: database failed: %s", exc)

    checks["timeclock"] = {"status": "configured" if timeclock_service.is_available() else "not_configured"}
    checks["staff"] = {"status": "configured" if staff_service.is_available() else "not_configured"}

    return jsonify({
        "status": "OK" if healthy else "degraded",
        "timestamp": utcnow().isoformat(),
        "testing": current_app.testing,
        "features": feature_snapshot(),
        "checks": checks,
    }), 200 if healthy else 503
