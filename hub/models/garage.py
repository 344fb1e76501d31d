"""
Community Hub
Garage models: vehicle submissions paid for with subscription credits.

Models:
    - GarageConfig: singleton row (role ids, credit costs)
    - GarageRolePermission: manager capabilities granted per Discord role
    - GarageTier: purchasable subscription tier
    - GarageCode: single-use redeemable code (subscription | credit)
    - GarageSubscription: 30-day subscription with monthly vouchers
    - GarageCredit: one credit balance per user
    - VehicleStatus: review workflow states (one default)
    - Vehicle / VehicleImage / VehicleAccess: submitted vehicles and grants
"""

from hub.models import db, iso, utcnow


CODE_TYPES = {"subscription", "credit"}
CODE_VALID_DAYS = 30
SUBSCRIPTION_DAYS = 30

DEFAULT_VEHICLE_STATUSES = (
    # name, color, is_default, display_order
    ("Pending Review", "#FFA500", True, 1),
    ("Under Review", "#3498DB", False, 2),
    ("Approved", "#2ECC71", False, 3),
    ("Rejected", "#E74C3C", False, 4),
    ("Needs Changes", "#F39C12", False, 5),
)


class GarageConfig(db.Model):
    __tablename__ = "garage_config"

    id = db.Column(db.Integer, primary_key=True)
    vehicle_team_role_id = db.Column(db.String(32), nullable=True)
    general_contributor_role_id = db.Column(db.String(32), nullable=True)
    shared_vehicle_credits = db.Column(db.Integer, default=1, nullable=False)
    personal_vehicle_credits = db.Column(db.Integer, default=2, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "vehicle_team_role_id": self.vehicle_team_role_id,
            "general_contributor_role_id": self.general_contributor_role_id,
            "shared_vehicle_credits": self.shared_vehicle_credits,
            "personal_vehicle_credits": self.personal_vehicle_credits,
        }


class GarageRolePermission(db.Model):
    __tablename__ = "garage_role_permissions"

    id = db.Column(db.Integer, primary_key=True)
    role_id = db.Column(db.String(32), unique=True, nullable=False)
    role_name = db.Column(db.String(100), nullable=True)
    can_view_manager = db.Column(db.Boolean, default=False, nullable=False)
    can_generate_codes = db.Column(db.Boolean, default=False, nullable=False)
    can_delete_vehicles = db.Column(db.Boolean, default=False, nullable=False)
    can_edit_vehicles = db.Column(db.Boolean, default=False, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "role_id": self.role_id,
            "role_name": self.role_name,
            "can_view_manager": bool(self.can_view_manager),
            "can_generate_codes": bool(self.can_generate_codes),
            "can_delete_vehicles": bool(self.can_delete_vehicles),
            "can_edit_vehicles": bool(self.can_edit_vehicles),
        }


class GarageTier(db.Model):
    __tablename__ = "garage_tiers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, default="")
    price_usd = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    monthly_vouchers = db.Column(db.Integer, nullable=False, default=0)
    tier_role_id = db.Column(db.String(32), nullable=True)
    stackable = db.Column(db.Boolean, default=False, nullable=False)
    display_order = db.Column(db.Integer, default=0, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price_usd": float(self.price_usd or 0),
            "monthly_vouchers": self.monthly_vouchers,
            "tier_role_id": self.tier_role_id,
            "stackable": bool(self.stackable),
            "display_order": self.display_order,
            "is_active": bool(self.is_active),
        }


class GarageCode(db.Model):
    __tablename__ = "garage_codes"

    id = db.Column(db.Integer, primary_key=True)
    code_string = db.Column(db.String(64), unique=True, nullable=False, index=True)
    code_type = db.Column(db.String(20), nullable=False)
    tier_id = db.Column(db.Integer, db.ForeignKey("garage_tiers.id", ondelete="SET NULL"), nullable=True)
    credit_amount = db.Column(db.Integer, nullable=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    used_at = db.Column(db.DateTime(timezone=True), nullable=True)
    used_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    tier = db.relationship("GarageTier")

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code_string,
            "type": self.code_type,
            "tier_id": self.tier_id,
            "credit_amount": self.credit_amount,
            "expires_at": iso(self.expires_at),
            "used_at": iso(self.used_at),
            "used_by": self.used_by,
        }


class GarageSubscription(db.Model):
    __tablename__ = "garage_subscriptions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    tier_id = db.Column(db.Integer, db.ForeignKey("garage_tiers.id", ondelete="SET NULL"), nullable=True)
    started_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    vouchers_remaining = db.Column(db.Integer, default=0, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    tier = db.relationship("GarageTier")

    def to_dict(self):
        return {
            "id": self.id,
            "tier_id": self.tier_id,
            "tier_name": self.tier.name if self.tier else None,
            "started_at": iso(self.started_at),
            "expires_at": iso(self.expires_at),
            "vouchers_remaining": self.vouchers_remaining,
            "is_active": bool(self.is_active),
        }


class GarageCredit(db.Model):
    __tablename__ = "garage_credits"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False,
    )
    credits = db.Column(db.Integer, default=0, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class VehicleStatus(db.Model):
    __tablename__ = "garage_vehicle_statuses"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False)
    color = db.Column(db.String(7), default="#808080")
    is_default = db.Column(db.Boolean, default=False, nullable=False)
    display_order = db.Column(db.Integer, default=0, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "is_default": bool(self.is_default),
            "display_order": self.display_order,
        }


class Vehicle(db.Model):
    __tablename__ = "garage_vehicles"

    id = db.Column(db.Integer, primary_key=True)
    vehicle_uuid = db.Column(db.String(36), unique=True, nullable=False, index=True)
    owner_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    vehicle_name = db.Column(db.String(255), nullable=False)
    vehicle_year = db.Column(db.Integer, nullable=True)
    vehicle_make = db.Column(db.String(100), nullable=True)
    vehicle_model = db.Column(db.String(100), nullable=True)
    is_shared = db.Column(db.Boolean, default=False, nullable=False)
    is_paid = db.Column(db.Boolean, default=False, nullable=False)
    purchase_proof_url = db.Column(db.String(500), nullable=True)
    spawn_code = db.Column(db.String(100), nullable=True)
    status_id = db.Column(
        db.Integer, db.ForeignKey("garage_vehicle_statuses.id", ondelete="SET NULL"), nullable=True,
    )
    admin_notes = db.Column(db.Text, nullable=True)
    for_sale = db.Column(db.Boolean, default=False, nullable=False)
    sale_price = db.Column(db.Numeric(10, 2), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    owner = db.relationship("User", lazy="joined")
    status = db.relationship("VehicleStatus", lazy="joined")
    images = db.relationship(
        "VehicleImage", backref="vehicle", cascade="all, delete-orphan",
        passive_deletes=True, order_by="VehicleImage.display_order",
    )
    grants = db.relationship(
        "VehicleAccess", backref="vehicle", cascade="all, delete-orphan", passive_deletes=True,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "vehicle_uuid": self.vehicle_uuid,
            "owner_id": self.owner_id,
            "owner_discord_id": self.owner.discord_id if self.owner else None,
            "owner_username": self.owner.username if self.owner else None,
            "vehicle_name": self.vehicle_name,
            "vehicle_year": self.vehicle_year,
            "vehicle_make": self.vehicle_make,
            "vehicle_model": self.vehicle_model,
            "is_shared": bool(self.is_shared),
            "is_paid": bool(self.is_paid),
            "purchase_proof_url": self.purchase_proof_url,
            "spawn_code": self.spawn_code,
            "status": self.status.to_dict() if self.status else None,
            "admin_notes": self.admin_notes,
            "for_sale": bool(self.for_sale),
            "sale_price": float(self.sale_price) if self.sale_price is not None else None,
            "images": [img.image_url for img in self.images],
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }


class VehicleImage(db.Model):
    __tablename__ = "garage_vehicle_images"

    id = db.Column(db.Integer, primary_key=True)
    vehicle_id = db.Column(
        db.Integer, db.ForeignKey("garage_vehicles.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    image_url = db.Column(db.String(500), nullable=False)
    display_order = db.Column(db.Integer, default=0, nullable=False)


class VehicleAccess(db.Model):
    __tablename__ = "garage_vehicle_access"
    __table_args__ = (
        db.UniqueConstraint("vehicle_id", "user_id", name="uq_vehicle_access"),
    )

    id = db.Column(db.Integer, primary_key=True)
    vehicle_id = db.Column(
        db.Integer, db.ForeignKey("garage_vehicles.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    granted_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    granted_at = db.Column(db.DateTime(timezone=True), default=utcnow)
