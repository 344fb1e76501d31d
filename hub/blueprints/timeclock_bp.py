"""
Timeclock blueprint: the caller's own time per department.

    GET /api/timeclock   → {"departments": [{department, totalMinutes, formattedTime}], "totalEntries"}
"""

from flask import Blueprint, g, jsonify

from hub.auth import require_auth
from hub.middleware.features import require_feature
from hub.services import timeclock_service
from hub.utils.errors import E, api_error

timeclock_bp = Blueprint("timeclock", __name__, url_prefix="/api/timeclock")


@timeclock_bp.route("", methods=["GET"])
@require_feature("ENABLE_TIMECLOCK")
@require_auth
def my_timeclock():
    if not timeclock_service.is_available():
        return api_error(E.UNAVAILABLE, "Timeclock database is not available")
    if not g.principal.discord_id:
        return api_error(E.VALIDATION_REQUIRED, "Discord ID not found")
    return jsonify(timeclock_service.department_totals(g.principal.discord_id))
