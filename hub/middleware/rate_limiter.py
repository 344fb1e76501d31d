"""
Rate limiting configuration.

The Limiter instance is created in hub/__init__.py with no default limits;
this module applies per-blueprint limits.

Usage:
    from hub.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

BLUEPRINT_LIMITS = {
    "auth": "30/minute",          # OAuth round-trips hit Discord
    "garage_api": "120/minute",   # game servers poll on spawn
    "garage": "60/minute",
    "tickets": "120/minute",
    "applications": "60/minute",
    "departments": "120/minute",
    "timeclock": "120/minute",
    "admin": "60/minute",
}


def init_rate_limits(app, limiter):
    """
    Apply per-remote-IP limits to API blueprints; health is exempt.

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for bp_name, limit in BLUEPRINT_LIMITS.items():
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(limit)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured: %s", ", ".join(f"{k}={v}" for k, v in BLUEPRINT_LIMITS.items()))
