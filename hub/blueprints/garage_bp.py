"""
Community Hub
Garage blueprints: tiers, codes, credits, subscriptions and vehicles.

Member endpoints (/api/garage):
    /tiers                              GET (public)
    /redeem                             POST
    /dashboard                          GET
    /vehicles                           POST
    /my-vehicles                        GET
    /vehicles/<uuid>/access             POST     (owner or can_edit_vehicles)
    /vehicles/<uuid>/access/<discord>   DELETE   (owner or can_edit_vehicles)

Manager endpoints (/api/garage, gated by role permission rows):
    /config, /permissions               GET, PUT          can_view_manager
    /tiers, /tiers/<id>                 POST, PUT, DELETE can_view_manager
    /statuses                           GET               can_view_manager
    /generate-codes                     POST              can_generate_codes
    /manage/vehicles                    GET               can_view_manager
    /manage/vehicles/<uuid>             PUT               can_edit_vehicles
                                        DELETE            can_delete_vehicles

External API (/api/garage/v1, X-API-Key):
    /vehicles/<uuid>                            GET
    /users/<discord_id>/vehicles                GET
    /vehicles/<uuid>/access/<discord_id>        GET
"""

import functools
import logging

from flask import Blueprint, g, jsonify, request

from hub.auth import require_api_key, require_auth
from hub.blueprints import paginate_query
from hub.models import iso
from hub.models.garage import GarageTier
from hub.models.user import User
from hub.services import access_service as access
from hub.services import garage_service
from hub.utils.errors import E, api_error
from hub.utils.helpers import db_commit_or_error, get_or_404

logger = logging.getLogger(__name__)

garage_bp = Blueprint("garage", __name__, url_prefix="/api/garage")
garage_api_bp = Blueprint("garage_api", __name__, url_prefix="/api/garage/v1")


def _permissions():
    return access.garage_permissions(g.principal, garage_service.permission_rows())


def require_garage_permission(flag):
    """Decorator: authenticated caller whose garage permissions include ``flag``."""
    def decorator(f):
        @functools.wraps(f)
        @require_auth
        def decorated(*args, **kwargs):
            if not getattr(_permissions(), flag):
                logger.warning("Garage permission %s denied: user=%s", flag, g.principal.id)
                return api_error(E.FORBIDDEN, "Insufficient permissions")
            return f(*args, **kwargs)
        return decorated
    return decorator


# ═══════════════════════════════════════════════════════════════════════════
#  MEMBER
# ═══════════════════════════════════════════════════════════════════════════

@garage_bp.route("/tiers", methods=["GET"])
def list_tiers():
    return jsonify([t.to_dict() for t in garage_service.list_tiers(active_only=True)])


@garage_bp.route("/redeem", methods=["POST"])
@require_auth
def redeem_code():
    code = (request.get_json(silent=True) or {}).get("code")
    result = garage_service.redeem_code(code, g.principal.id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result)


@garage_bp.route("/dashboard", methods=["GET"])
@require_auth
def dashboard():
    data = garage_service.dashboard(g.principal.id)
    data["permissions"] = _permissions().to_dict()
    return jsonify(data)


@garage_bp.route("/vehicles", methods=["POST"])
@require_auth
def submit_vehicle():
    vehicle = garage_service.submit_vehicle(g.principal.id, request.get_json(silent=True) or {})
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({
        "success": True,
        "vehicle_uuid": vehicle.vehicle_uuid,
        "message": "Vehicle submitted successfully",
    }), 201


@garage_bp.route("/my-vehicles", methods=["GET"])
@require_auth
def my_vehicles():
    return jsonify(garage_service.user_vehicles(g.principal.id))


def _can_manage_grants(vehicle):
    return vehicle.owner_id == g.principal.id or _permissions().can_edit_vehicles


@garage_bp.route("/vehicles/<string:vehicle_uuid>/access", methods=["POST"])
@require_auth
def grant_vehicle_access(vehicle_uuid):
    vehicle = garage_service.get_vehicle(vehicle_uuid)
    if not _can_manage_grants(vehicle):
        return api_error(E.FORBIDDEN, "Access denied")

    discord_id = (request.get_json(silent=True) or {}).get("discord_id")
    if not discord_id:
        return api_error(E.VALIDATION_REQUIRED, "Discord ID is required")
    garage_service.grant_access(vehicle, discord_id, g.principal.id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"success": True, "vehicle_uuid": vehicle.vehicle_uuid, "discord_id": str(discord_id)}), 201


@garage_bp.route("/vehicles/<string:vehicle_uuid>/access/<string:discord_id>", methods=["DELETE"])
@require_auth
def revoke_vehicle_access(vehicle_uuid, discord_id):
    vehicle = garage_service.get_vehicle(vehicle_uuid)
    if not _can_manage_grants(vehicle):
        return api_error(E.FORBIDDEN, "Access denied")

    garage_service.revoke_access(vehicle, discord_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"success": True})


# ═══════════════════════════════════════════════════════════════════════════
#  MANAGER
# ═══════════════════════════════════════════════════════════════════════════

@garage_bp.route("/config", methods=["GET"])
@require_garage_permission("can_view_manager")
def get_config():
    return jsonify(garage_service.get_config().to_dict())


@garage_bp.route("/config", methods=["PUT"])
@require_garage_permission("can_view_manager")
def update_config():
    config = garage_service.update_config(request.get_json(silent=True) or {})
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(config.to_dict())


@garage_bp.route("/permissions", methods=["GET"])
@require_garage_permission("can_view_manager")
def list_permissions():
    return jsonify([p.to_dict() for p in garage_service.permission_rows()])


@garage_bp.route("/permissions", methods=["PUT"])
@require_garage_permission("can_view_manager")
def update_permissions():
    data = request.get_json(silent=True) or {}
    row = garage_service.upsert_permission(data.get("role_id"), data.get("permissions"), data.get("role_name"))
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(row.to_dict())


@garage_bp.route("/tiers", methods=["POST"])
@require_garage_permission("can_view_manager")
def create_tier():
    tier = garage_service.create_tier(request.get_json(silent=True) or {})
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(tier.to_dict()), 201


@garage_bp.route("/tiers/<int:tier_id>", methods=["PUT"])
@require_garage_permission("can_view_manager")
def update_tier(tier_id):
    tier, err = get_or_404(GarageTier, tier_id, "Tier")
    if err:
        return err
    garage_service.update_tier(tier, request.get_json(silent=True) or {})
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(tier.to_dict())


@garage_bp.route("/tiers/<int:tier_id>", methods=["DELETE"])
@require_garage_permission("can_view_manager")
def delete_tier(tier_id):
    tier, err = get_or_404(GarageTier, tier_id, "Tier")
    if err:
        return err
    garage_service.deactivate_tier(tier)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"success": True})


@garage_bp.route("/statuses", methods=["GET"])
@require_garage_permission("can_view_manager")
def list_statuses():
    return jsonify([s.to_dict() for s in garage_service.list_statuses()])


@garage_bp.route("/generate-codes", methods=["POST"])
@require_garage_permission("can_generate_codes")
def generate_codes():
    codes = garage_service.generate_codes(request.get_json(silent=True) or {}, g.principal.id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({
        "success": True,
        "codes": [c.to_dict() for c in codes],
        "message": f"Generated {len(codes)} codes successfully",
    }), 201


@garage_bp.route("/manage/vehicles", methods=["GET"])
@require_garage_permission("can_view_manager")
def manage_list_vehicles():
    vehicles, pagination = paginate_query(garage_service.list_vehicles(request.args.get("status_id", type=int)))
    return jsonify({"vehicles": [v.to_dict() for v in vehicles], "pagination": pagination})


@garage_bp.route("/manage/vehicles/<string:vehicle_uuid>", methods=["PUT"])
@require_garage_permission("can_edit_vehicles")
def manage_update_vehicle(vehicle_uuid):
    vehicle = garage_service.get_vehicle(vehicle_uuid)
    garage_service.update_vehicle(vehicle, request.get_json(silent=True) or {})
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(vehicle.to_dict())


@garage_bp.route("/manage/vehicles/<string:vehicle_uuid>", methods=["DELETE"])
@require_garage_permission("can_delete_vehicles")
def manage_delete_vehicle(vehicle_uuid):
    vehicle = garage_service.get_vehicle(vehicle_uuid)
    garage_service.delete_vehicle(vehicle)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"success": True})


# ═══════════════════════════════════════════════════════════════════════════
#  EXTERNAL API
# ═══════════════════════════════════════════════════════════════════════════

@garage_api_bp.route("/vehicles/<string:vehicle_uuid>", methods=["GET"])
@require_api_key
def api_get_vehicle(vehicle_uuid):
    vehicle = garage_service.get_vehicle(vehicle_uuid)
    return jsonify({
        "vehicle_uuid": vehicle.vehicle_uuid,
        "name": vehicle.vehicle_name,
        "year": vehicle.vehicle_year,
        "make": vehicle.vehicle_make,
        "model": vehicle.vehicle_model,
        "is_shared": bool(vehicle.is_shared),
        "spawn_code": vehicle.spawn_code,
        "created_at": iso(vehicle.created_at),
        "owner_discord_id": vehicle.owner.discord_id if vehicle.owner else None,
        "owner_name": vehicle.owner.username if vehicle.owner else None,
        "status_name": vehicle.status.name if vehicle.status else None,
    })


@garage_api_bp.route("/users/<string:discord_id>/vehicles", methods=["GET"])
@require_api_key
def api_user_vehicles(discord_id):
    user = User.query.filter_by(discord_id=discord_id).first()
    if user is None:
        return api_error(E.NOT_FOUND, "User not found")
    return jsonify({
        "discord_id": discord_id,
        "vehicle_uuids": garage_service.user_vehicle_uuids(user.id),
    })


@garage_api_bp.route("/vehicles/<string:vehicle_uuid>/access/<string:discord_id>", methods=["GET"])
@require_api_key
def api_vehicle_access(vehicle_uuid, discord_id):
    user = User.query.filter_by(discord_id=discord_id).first()
    if user is None:
        return api_error(E.FORBIDDEN, "Access denied")
    vehicle = garage_service.get_vehicle(vehicle_uuid)

    allowed, reason = access.vehicle_access(
        user.id,
        vehicle,
        has_grant=garage_service.has_grant(vehicle.id, user.id),
        has_active_subscription=garage_service.has_active_subscription(user.id),
    )
    if not allowed:
        return jsonify({"access": False, "error": "Access denied"}), 403
    return jsonify({"access": True, "reason": reason})
