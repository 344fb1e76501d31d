"""
Garage service: subscriptions, credits, redeemable codes and vehicles.

Money-like state changes are single conditional UPDATE statements so that
concurrent requests cannot overspend or double-redeem:

    deduct_credits:  UPDATE garage_credits SET credits = credits - :n
                     WHERE user_id = :u AND credits >= :n
    redeem_code:     UPDATE garage_codes SET used_at = now, used_by = :u
                     WHERE id = :c AND used_at IS NULL

Success is reported only when exactly one row changed.
"""

import logging
import secrets
import uuid
from datetime import timedelta

from sqlalchemy import update

from hub.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from hub.models import db, utcnow
from hub.models.garage import (
    CODE_TYPES, CODE_VALID_DAYS, DEFAULT_VEHICLE_STATUSES, SUBSCRIPTION_DAYS,
    GarageCode, GarageConfig, GarageCredit, GarageRolePermission, GarageSubscription,
    GarageTier, Vehicle, VehicleAccess, VehicleImage, VehicleStatus,
)
from hub.models.user import User

logger = logging.getLogger(__name__)

MAX_CODES_PER_BATCH = 100
_PERMISSION_FLAGS = ("can_view_manager", "can_generate_codes", "can_delete_vehicles", "can_edit_vehicles")


def ensure_defaults():
    """Seed the config singleton and the vehicle review statuses."""
    if GarageConfig.query.first() is None:
        db.session.add(GarageConfig())
    if VehicleStatus.query.first() is None:
        for name, color, is_default, order in DEFAULT_VEHICLE_STATUSES:
            db.session.add(VehicleStatus(name=name, color=color, is_default=is_default, display_order=order))
    db.session.flush()


# ═══════════════════════════════════════════════════════════════════════════
#  CONFIG & PERMISSIONS
# ═══════════════════════════════════════════════════════════════════════════

def get_config():
    config = GarageConfig.query.first()
    if config is None:
        config = GarageConfig()
        db.session.add(config)
        db.session.flush()
    return config


def update_config(data):
    config = get_config()
    for key in ("vehicle_team_role_id", "general_contributor_role_id"):
        if key in data:
            setattr(config, key, str(data[key]).strip() if data[key] else None)
    for key in ("shared_vehicle_credits", "personal_vehicle_credits"):
        if key in data:
            try:
                value = int(data[key])
            except (TypeError, ValueError):
                raise ValidationError(f"{key} must be a whole number")
            if value < 0:
                raise ValidationError(f"{key} cannot be negative")
            setattr(config, key, value)
    db.session.flush()
    logger.info("Garage config updated: %s", config.to_dict())
    return config


def permission_rows():
    return GarageRolePermission.query.order_by(GarageRolePermission.role_id).all()


def upsert_permission(role_id, permissions, role_name=None):
    role_id = str(role_id or "").strip()
    if not role_id or not isinstance(permissions, dict):
        raise ValidationError("role_id and permissions are required")
    row = GarageRolePermission.query.filter_by(role_id=role_id).first()
    if row is None:
        row = GarageRolePermission(role_id=role_id)
        db.session.add(row)
    if role_name is not None:
        row.role_name = role_name
    for flag in _PERMISSION_FLAGS:
        setattr(row, flag, bool(permissions.get(flag, False)))
    db.session.flush()
    logger.info("Garage permissions for role %s: %s", role_id, row.to_dict())
    return row


# ═══════════════════════════════════════════════════════════════════════════
#  TIERS
# ═══════════════════════════════════════════════════════════════════════════

def list_tiers(active_only=True):
    q = GarageTier.query
    if active_only:
        q = q.filter(GarageTier.is_active.is_(True))
    return q.order_by(GarageTier.display_order, GarageTier.price_usd).all()


def _apply_tier(tier, data, partial=False):
    if not partial or "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Tier name is required")
        tier.name = name
    if "description" in data:
        tier.description = data.get("description") or ""
    try:
        if "price_usd" in data:
            tier.price_usd = float(data.get("price_usd") or 0)
        if "monthly_vouchers" in data:
            tier.monthly_vouchers = int(data.get("monthly_vouchers") or 0)
        if "display_order" in data:
            tier.display_order = int(data.get("display_order") or 0)
    except (TypeError, ValueError):
        raise ValidationError("price_usd, monthly_vouchers and display_order must be numbers")
    if "tier_role_id" in data:
        tier.tier_role_id = str(data["tier_role_id"]).strip() if data["tier_role_id"] else None
    if "stackable" in data:
        tier.stackable = bool(data.get("stackable"))
    if "is_active" in data:
        tier.is_active = bool(data.get("is_active"))


def create_tier(data):
    tier = GarageTier()
    _apply_tier(tier, data)
    db.session.add(tier)
    db.session.flush()
    logger.info("Garage tier created id=%s name=%s", tier.id, tier.name)
    return tier


def update_tier(tier, data):
    _apply_tier(tier, data, partial=True)
    db.session.flush()
    return tier


def deactivate_tier(tier):
    """Tiers are referenced by codes and subscriptions, so they are never hard-deleted."""
    tier.is_active = False
    db.session.flush()
    logger.info("Garage tier deactivated id=%s", tier.id)
    return tier


# ═══════════════════════════════════════════════════════════════════════════
#  CREDITS & SUBSCRIPTIONS
# ═══════════════════════════════════════════════════════════════════════════

def get_credits(user_id) -> int:
    row = GarageCredit.query.filter_by(user_id=user_id).first()
    return row.credits if row else 0


def add_credits(user_id, amount):
    if GarageCredit.query.filter_by(user_id=user_id).first() is None:
        db.session.add(GarageCredit(user_id=user_id, credits=0))
        db.session.flush()
    db.session.execute(
        update(GarageCredit)
        .where(GarageCredit.user_id == user_id)
        .values(credits=GarageCredit.credits + amount, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    logger.info("Credits +%s for user=%s", amount, user_id)


def deduct_credits(user_id, amount) -> bool:
    """Atomically spend ``amount`` credits; False when the balance is short."""
    result = db.session.execute(
        update(GarageCredit)
        .where(GarageCredit.user_id == user_id, GarageCredit.credits >= amount)
        .values(credits=GarageCredit.credits - amount, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.info("Credit deduction refused: user=%s amount=%s", user_id, amount)
        return False
    logger.info("Credits -%s for user=%s", amount, user_id)
    return True


def active_subscriptions(user_id):
    return (
        GarageSubscription.query
        .filter(
            GarageSubscription.user_id == user_id,
            GarageSubscription.is_active.is_(True),
            GarageSubscription.expires_at > utcnow(),
        )
        .order_by(GarageSubscription.expires_at.desc())
        .all()
    )


def has_active_subscription(user_id) -> bool:
    return len(active_subscriptions(user_id)) > 0


def dashboard(user_id):
    subscriptions = active_subscriptions(user_id)
    return {
        "subscriptions": [s.to_dict() for s in subscriptions],
        "credits": get_credits(user_id),
        "hasAccess": bool(subscriptions),
    }


# ═══════════════════════════════════════════════════════════════════════════
#  CODES
# ═══════════════════════════════════════════════════════════════════════════

def _new_code_string():
    return secrets.token_hex(16).upper()


def generate_codes(data, actor_id):
    code_type = data.get("type")
    if code_type not in CODE_TYPES:
        raise ValidationError("type must be 'subscription' or 'credit'")
    try:
        count = int(data.get("count") or 1)
    except (TypeError, ValueError):
        raise ValidationError("count must be a whole number")
    if not 1 <= count <= MAX_CODES_PER_BATCH:
        raise ValidationError(f"count must be between 1 and {MAX_CODES_PER_BATCH}")

    tier_id, credit_amount = None, None
    if code_type == "subscription":
        tier = db.session.get(GarageTier, data.get("tier_id")) if data.get("tier_id") else None
        if tier is None:
            raise ValidationError("A valid tier_id is required for subscription codes")
        tier_id = tier.id
    else:
        try:
            credit_amount = int(data.get("credit_amount") or 0)
        except (TypeError, ValueError):
            credit_amount = 0
        if credit_amount <= 0:
            raise ValidationError("credit_amount must be a positive number")

    expires_at = utcnow() + timedelta(days=CODE_VALID_DAYS)
    codes = []
    for _ in range(count):
        code = GarageCode(
            code_string=_new_code_string(),
            code_type=code_type,
            tier_id=tier_id,
            credit_amount=credit_amount,
            expires_at=expires_at,
            created_by=actor_id,
        )
        db.session.add(code)
        codes.append(code)
    db.session.flush()
    logger.info("Generated %d %s codes by=%s", count, code_type, actor_id)
    return codes


def redeem_code(code_string, user_id):
    code_string = (code_string or "").strip().upper()
    if not code_string:
        raise ValidationError("Code is required")

    now = utcnow()
    code = GarageCode.query.filter(
        GarageCode.code_string == code_string,
        GarageCode.used_at.is_(None),
        GarageCode.expires_at > now,
    ).first()
    if code is None:
        raise ValidationError("Invalid or expired code")

    claimed = db.session.execute(
        update(GarageCode)
        .where(GarageCode.id == code.id, GarageCode.used_at.is_(None))
        .values(used_at=now, used_by=user_id)
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:
        logger.warning("Code %s redeemed concurrently; rejecting user=%s", code.id, user_id)
        raise ValidationError("Invalid or expired code")

    if code.code_type == "subscription":
        tier = code.tier
        db.session.add(GarageSubscription(
            user_id=user_id,
            tier_id=code.tier_id,
            expires_at=now + timedelta(days=SUBSCRIPTION_DAYS),
            vouchers_remaining=tier.monthly_vouchers if tier else 0,
        ))
        db.session.flush()
        tier_name = tier.name if tier else None
        logger.info("Subscription code %s redeemed by user=%s tier=%s", code.id, user_id, tier_name)
        return {
            "success": True,
            "type": "subscription",
            "tier": tier_name,
            "message": f"Subscription activated: {tier_name}",
        }

    add_credits(user_id, code.credit_amount)
    db.session.flush()
    logger.info("Credit code %s redeemed by user=%s amount=%s", code.id, user_id, code.credit_amount)
    return {
        "success": True,
        "type": "credit",
        "amount": code.credit_amount,
        "message": f"{code.credit_amount} credits added to your account",
    }


# ═══════════════════════════════════════════════════════════════════════════
#  VEHICLES
# ═══════════════════════════════════════════════════════════════════════════

def get_vehicle(vehicle_uuid):
    vehicle = Vehicle.query.filter_by(vehicle_uuid=vehicle_uuid).first()
    if vehicle is None:
        raise NotFoundError("Vehicle", vehicle_uuid)
    return vehicle


def submit_vehicle(user_id, data):
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("Vehicle name is required")
    if not has_active_subscription(user_id):
        raise ForbiddenError("Active subscription required to submit vehicles")

    is_shared = bool(data.get("is_shared", False))
    config = get_config()
    cost = config.shared_vehicle_credits if is_shared else config.personal_vehicle_credits
    if not deduct_credits(user_id, cost):
        raise ValidationError("Insufficient credits")

    try:
        year = int(data["year"]) if data.get("year") else None
    except (TypeError, ValueError):
        raise ValidationError("year must be a number")

    default_status = VehicleStatus.query.filter_by(is_default=True).first()
    vehicle = Vehicle(
        vehicle_uuid=str(uuid.uuid4()),
        owner_id=user_id,
        vehicle_name=name,
        vehicle_year=year,
        vehicle_make=data.get("make"),
        vehicle_model=data.get("model"),
        is_shared=is_shared,
        is_paid=bool(data.get("is_paid", False)),
        purchase_proof_url=data.get("purchase_proof_url"),
        status_id=default_status.id if default_status else None,
    )
    db.session.add(vehicle)
    db.session.flush()
    for order, url in enumerate(data.get("images") or []):
        db.session.add(VehicleImage(vehicle_id=vehicle.id, image_url=url, display_order=order))
    db.session.flush()
    logger.info("Vehicle submitted uuid=%s owner=%s cost=%s", vehicle.vehicle_uuid, user_id, cost)
    return vehicle


def _granted_vehicle_ids(user_id):
    return db.session.query(VehicleAccess.vehicle_id).filter(VehicleAccess.user_id == user_id)


def user_vehicles(user_id):
    newest = (Vehicle.created_at.desc(), Vehicle.id.desc())
    owned = Vehicle.query.filter(Vehicle.owner_id == user_id).order_by(*newest).all()
    shared = Vehicle.query.filter(Vehicle.id.in_(_granted_vehicle_ids(user_id))).order_by(*newest).all()
    pool = []
    if has_active_subscription(user_id):
        pool = (
            Vehicle.query
            .filter(Vehicle.is_shared.is_(True), Vehicle.owner_id != user_id)
            .order_by(*newest)
            .all()
        )
    return {
        "owned": [v.to_dict() for v in owned],
        "shared": [v.to_dict() for v in shared],
        "subscription": [v.to_dict() for v in pool],
    }


def user_vehicle_uuids(user_id):
    """Every vehicle uuid the user may spawn, owned first, without duplicates."""
    data = user_vehicles(user_id)
    seen, uuids = set(), []
    for group in ("owned", "shared", "subscription"):
        for v in data[group]:
            if v["vehicle_uuid"] not in seen:
                seen.add(v["vehicle_uuid"])
                uuids.append(v["vehicle_uuid"])
    return uuids


def has_grant(vehicle_id, user_id) -> bool:
    return VehicleAccess.query.filter_by(vehicle_id=vehicle_id, user_id=user_id).first() is not None


def list_vehicles(status_id=None):
    q = Vehicle.query
    if status_id:
        q = q.filter(Vehicle.status_id == status_id)
    return q.order_by(Vehicle.created_at.desc(), Vehicle.id.desc())


def list_statuses():
    return VehicleStatus.query.order_by(VehicleStatus.display_order).all()


def update_vehicle(vehicle, data):
    if "status_id" in data:
        status = db.session.get(VehicleStatus, data.get("status_id")) if data.get("status_id") else None
        if status is None:
            raise ValidationError("Invalid status")
        vehicle.status_id = status.id
    for key in ("spawn_code", "admin_notes"):
        if key in data:
            setattr(vehicle, key, data.get(key) or None)
    if "for_sale" in data:
        vehicle.for_sale = bool(data.get("for_sale"))
    if "sale_price" in data:
        try:
            vehicle.sale_price = float(data["sale_price"]) if data.get("sale_price") is not None else None
        except (TypeError, ValueError):
            raise ValidationError("sale_price must be a number")
    db.session.flush()
    logger.info("Vehicle %s updated: %s", vehicle.vehicle_uuid, sorted(data.keys()))
    return vehicle


def delete_vehicle(vehicle):
    db.session.delete(vehicle)
    db.session.flush()
    logger.info("Vehicle %s deleted", vehicle.vehicle_uuid)


def grant_access(vehicle, discord_id, actor_id):
    user = User.query.filter_by(discord_id=str(discord_id or "")).first()
    if user is None:
        raise NotFoundError("User", discord_id)
    if user.id == vehicle.owner_id:
        raise ValidationError("Owner already has access")
    if has_grant(vehicle.id, user.id):
        raise ValidationError("User already has access")
    grant = VehicleAccess(vehicle_id=vehicle.id, user_id=user.id, granted_by=actor_id)
    db.session.add(grant)
    db.session.flush()
    logger.info("Vehicle %s access granted to user=%s by=%s", vehicle.vehicle_uuid, user.id, actor_id)
    return grant


def revoke_access(vehicle, discord_id):
    user = User.query.filter_by(discord_id=str(discord_id)).first()
    grant = None
    if user is not None:
        grant = VehicleAccess.query.filter_by(vehicle_id=vehicle.id, user_id=user.id).first()
    if grant is None:
        raise NotFoundError("Vehicle access", discord_id)
    db.session.delete(grant)
    db.session.flush()
    logger.info("Vehicle %s access revoked from user=%s", vehicle.vehicle_uuid, user.id)
