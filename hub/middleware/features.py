"""
Feature flags.

Flags are plain config booleans (ENABLE_DEPARTMENTS, ENABLE_ORGANIZATIONS,
ENABLE_TIMECLOCK, ENABLE_PLAYER_RECORD), read from the environment by
``hub.config``. A disabled feature answers 404 so the SPA treats it as absent.

Usage:
    @bp.route("")
    @require_feature("ENABLE_TIMECLOCK")
    def my_timeclock(): ...

    # open while either flag is on
    guard_blueprint(department_bp, "ENABLE_DEPARTMENTS", "ENABLE_ORGANIZATIONS")
"""

import functools
import logging

from flask import current_app

from hub.utils.errors import E, api_error

logger = logging.getLogger(__name__)

FEATURE_FLAGS = {
    "enableDepartments": "ENABLE_DEPARTMENTS",
    "enableOrganizations": "ENABLE_ORGANIZATIONS",
    "enableTimeclock": "ENABLE_TIMECLOCK",
    "enablePlayerRecord": "ENABLE_PLAYER_RECORD",
}


def is_enabled(flag: str) -> bool:
    return bool(current_app.config.get(flag, False))


def any_enabled(*flags: str) -> bool:
    return any(is_enabled(flag) for flag in flags)


def feature_snapshot() -> dict:
    """Flag values keyed the way the SPA expects them."""
    return {public: is_enabled(flag) for public, flag in FEATURE_FLAGS.items()}


def feature_unavailable():
    return api_error(E.FEATURE_DISABLED, "Feature not available")


def require_feature(flag: str):
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            if not is_enabled(flag):
                logger.debug("Feature %s disabled; rejecting %s", flag, f.__name__)
                return feature_unavailable()
            return f(*args, **kwargs)
        return decorated
    return decorator


def guard_blueprint(bp, *flags: str):
    """Reject every request to ``bp`` unless at least one of ``flags`` is on."""

    @bp.before_request
    def _feature_guard():
        if not any_enabled(*flags):
            return feature_unavailable()
        return None
