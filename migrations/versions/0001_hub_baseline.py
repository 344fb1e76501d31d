"""hub_baseline

Baseline schema for the community hub: identity, tickets, applications,
departments, settings and garage. The timeclock table lives in an external
database and is not managed here.

Revision ID: 0001_hub_baseline
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "0001_hub_baseline"
down_revision = None
branch_labels = None
depends_on = None


def _ts(name, nullable=True):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def _fk_user(name, ondelete="SET NULL", nullable=True):
    return sa.Column(name, sa.Integer(), sa.ForeignKey("users.id", ondelete=ondelete), nullable=nullable)


def upgrade():
    bind = op.get_bind()
    existing = set(sa_inspect(bind).get_table_names())

    # ── Identity ─────────────────────────────────────────────────────────
    if "users" not in existing:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("discord_id", sa.String(length=32), nullable=False),
            sa.Column("username", sa.String(length=100), nullable=False),
            sa.Column("discriminator", sa.String(length=10), nullable=True),
            sa.Column("avatar", sa.String(length=255), nullable=True),
            sa.Column("roles", sa.Text(), nullable=True),
            sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("is_hub_banned", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("hub_ban_reason", sa.Text(), nullable=True),
            _fk_user("hub_banned_by"),
            _ts("hub_banned_at"),
            _ts("created_at"),
            _ts("last_login"),
        )
        op.create_index("ix_users_discord_id", "users", ["discord_id"], unique=True)

    # ── Tickets ──────────────────────────────────────────────────────────
    if "categories" not in existing:
        op.create_table(
            "categories",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("color", sa.String(length=7), nullable=True),
            sa.Column("required_role_id", sa.String(length=32), nullable=True),
            sa.Column("is_restricted", sa.Boolean(), nullable=False, server_default=sa.false()),
            _fk_user("created_by"),
            _ts("created_at"),
        )

    if "tickets" not in existing:
        op.create_table(
            "tickets",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="open"),
            sa.Column("category_id", sa.Integer(),
                      sa.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True),
            _fk_user("owner_id", ondelete="CASCADE", nullable=False),
            _fk_user("assigned_to"),
            _fk_user("claimed_by"),
            _ts("created_at"),
            _ts("updated_at"),
            _ts("closed_at"),
        )
        op.create_index("ix_tickets_status", "tickets", ["status"])
        op.create_index("ix_tickets_category_id", "tickets", ["category_id"])
        op.create_index("ix_tickets_owner_id", "tickets", ["owner_id"])
        op.create_index("ix_tickets_created_at", "tickets", ["created_at"])

    if "ticket_participants" not in existing:
        op.create_table(
            "ticket_participants",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("ticket_id", sa.Integer(),
                      sa.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
            _fk_user("user_id", ondelete="CASCADE", nullable=False),
            _fk_user("added_by"),
            _ts("added_at"),
            sa.UniqueConstraint("ticket_id", "user_id", name="uq_ticket_participant"),
        )
        op.create_index("ix_ticket_participants_ticket_id", "ticket_participants", ["ticket_id"])

    for table, extra in (
        ("ticket_messages", [
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("is_staff_reply", sa.Boolean(), nullable=False, server_default=sa.false()),
        ]),
        ("ticket_logs", [
            sa.Column("action", sa.String(length=100), nullable=False),
            sa.Column("details", sa.Text(), nullable=True),
        ]),
    ):
        if table in existing:
            continue
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("ticket_id", sa.Integer(),
                      sa.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
            _fk_user("user_id", ondelete="CASCADE", nullable=False),
            *extra,
            _ts("created_at"),
        )
        op.create_index(f"ix_{table}_ticket_id", table, ["ticket_id"])

    # ── Applications ─────────────────────────────────────────────────────
    if "application_forms" not in existing:
        op.create_table(
            "application_forms",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("questions", sa.JSON(), nullable=False),
            sa.Column("admin_role_id", sa.String(length=32), nullable=True),
            sa.Column("moderator_role_id", sa.String(length=32), nullable=True),
            sa.Column("viewer_role_id", sa.String(length=32), nullable=True),
            sa.Column("accepted_roles", sa.JSON(), nullable=False),
            sa.Column("category", sa.String(length=100), nullable=True, server_default="General"),
            sa.Column("webhook_url", sa.String(length=500), nullable=True),
            sa.Column("webhook_role_id", sa.String(length=32), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            _fk_user("created_by"),
            _ts("created_at"),
            _ts("updated_at"),
        )

    if "application_submissions" not in existing:
        op.create_table(
            "application_submissions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("form_id", sa.Integer(),
                      sa.ForeignKey("application_forms.id", ondelete="CASCADE"), nullable=False),
            _fk_user("user_id", ondelete="CASCADE", nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("responses", sa.JSON(), nullable=False),
            sa.Column("admin_notes", sa.Text(), nullable=True),
            _ts("submitted_at"),
            _ts("reviewed_at"),
            _fk_user("reviewed_by"),
        )
        op.create_index("ix_application_submissions_form_id", "application_submissions", ["form_id"])
        op.create_index("ix_application_submissions_user_id", "application_submissions", ["user_id"])
        op.create_index("ix_application_submissions_status", "application_submissions", ["status"])

    # ── Departments ──────────────────────────────────────────────────────
    if "departments" not in existing:
        op.create_table(
            "departments",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("db_name", sa.String(length=100), nullable=False),
            sa.Column("callsign_prefix", sa.String(length=20), nullable=True),
            sa.Column("roster_view_id", sa.String(length=32), nullable=False),
            sa.Column("classification", sa.String(length=20), nullable=False, server_default="department"),
            sa.Column("disable_callsigns", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            _fk_user("created_by"),
            _ts("created_at"),
            _ts("updated_at"),
            sa.UniqueConstraint("db_name", name="uq_departments_db_name"),
        )

    if "department_roster" not in existing:
        op.create_table(
            "department_roster",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("department_id", sa.Integer(),
                      sa.ForeignKey("departments.id", ondelete="CASCADE"), nullable=False),
            sa.Column("discord_id", sa.String(length=32), nullable=False),
            sa.Column("callsign_number", sa.String(length=20), nullable=True),
            sa.Column("full_callsign", sa.String(length=50), nullable=True),
            _fk_user("added_by"),
            _ts("created_at"),
            _ts("updated_at"),
            sa.UniqueConstraint("department_id", "discord_id", name="uq_roster_member"),
        )
        op.create_index("ix_department_roster_department_id", "department_roster", ["department_id"])

    # ── Settings ─────────────────────────────────────────────────────────
    if "system_settings" not in existing:
        op.create_table(
            "system_settings",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("setting_key", sa.String(length=100), nullable=False, unique=True),
            sa.Column("setting_value", sa.Text(), nullable=True),
            _ts("updated_at"),
        )

    if "self_assignable_roles" not in existing:
        op.create_table(
            "self_assignable_roles",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("role_id", sa.String(length=32), nullable=False, unique=True),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("icon_url", sa.String(length=500), nullable=True),
            sa.Column("emoji", sa.String(length=50), nullable=True),
            sa.Column("can_add", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("can_remove", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            _fk_user("created_by"),
            _ts("created_at"),
            _ts("updated_at"),
        )

    # ── Garage ───────────────────────────────────────────────────────────
    if "garage_config" not in existing:
        op.create_table(
            "garage_config",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("vehicle_team_role_id", sa.String(length=32), nullable=True),
            sa.Column("general_contributor_role_id", sa.String(length=32), nullable=True),
            sa.Column("shared_vehicle_credits", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("personal_vehicle_credits", sa.Integer(), nullable=False, server_default="2"),
            _ts("updated_at"),
        )

    if "garage_role_permissions" not in existing:
        op.create_table(
            "garage_role_permissions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("role_id", sa.String(length=32), nullable=False, unique=True),
            sa.Column("role_name", sa.String(length=100), nullable=True),
            *[
                sa.Column(flag, sa.Boolean(), nullable=False, server_default=sa.false())
                for flag in ("can_view_manager", "can_generate_codes", "can_delete_vehicles", "can_edit_vehicles")
            ],
        )

    if "garage_tiers" not in existing:
        op.create_table(
            "garage_tiers",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("price_usd", sa.Numeric(10, 2), nullable=False, server_default="0"),
            sa.Column("monthly_vouchers", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("tier_role_id", sa.String(length=32), nullable=True),
            sa.Column("stackable", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            _ts("created_at"),
        )

    if "garage_codes" not in existing:
        op.create_table(
            "garage_codes",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("code_string", sa.String(length=64), nullable=False),
            sa.Column("code_type", sa.String(length=20), nullable=False),
            sa.Column("tier_id", sa.Integer(),
                      sa.ForeignKey("garage_tiers.id", ondelete="SET NULL"), nullable=True),
            sa.Column("credit_amount", sa.Integer(), nullable=True),
            _ts("expires_at", nullable=False),
            _ts("used_at"),
            _fk_user("used_by"),
            _fk_user("created_by"),
            _ts("created_at"),
        )
        op.create_index("ix_garage_codes_code_string", "garage_codes", ["code_string"], unique=True)

    if "garage_subscriptions" not in existing:
        op.create_table(
            "garage_subscriptions",
            sa.Column("id", sa.Integer(), primary_key=True),
            _fk_user("user_id", ondelete="CASCADE", nullable=False),
            sa.Column("tier_id", sa.Integer(),
                      sa.ForeignKey("garage_tiers.id", ondelete="SET NULL"), nullable=True),
            _ts("started_at"),
            _ts("expires_at", nullable=False),
            sa.Column("vouchers_remaining", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        )
        op.create_index("ix_garage_subscriptions_user_id", "garage_subscriptions", ["user_id"])

    if "garage_credits" not in existing:
        op.create_table(
            "garage_credits",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(),
                      sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
            sa.Column("credits", sa.Integer(), nullable=False, server_default="0"),
            _ts("updated_at"),
        )

    if "garage_vehicle_statuses" not in existing:
        op.create_table(
            "garage_vehicle_statuses",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(length=50), nullable=False, unique=True),
            sa.Column("color", sa.String(length=7), nullable=True),
            sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        )

    if "garage_vehicles" not in existing:
        op.create_table(
            "garage_vehicles",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("vehicle_uuid", sa.String(length=36), nullable=False),
            _fk_user("owner_id", ondelete="CASCADE", nullable=False),
            sa.Column("vehicle_name", sa.String(length=255), nullable=False),
            sa.Column("vehicle_year", sa.Integer(), nullable=True),
            sa.Column("vehicle_make", sa.String(length=100), nullable=True),
            sa.Column("vehicle_model", sa.String(length=100), nullable=True),
            sa.Column("is_shared", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("purchase_proof_url", sa.String(length=500), nullable=True),
            sa.Column("spawn_code", sa.String(length=100), nullable=True),
            sa.Column("status_id", sa.Integer(),
                      sa.ForeignKey("garage_vehicle_statuses.id", ondelete="SET NULL"), nullable=True),
            sa.Column("admin_notes", sa.Text(), nullable=True),
            sa.Column("for_sale", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("sale_price", sa.Numeric(10, 2), nullable=True),
            _ts("created_at"),
            _ts("updated_at"),
        )
        op.create_index("ix_garage_vehicles_vehicle_uuid", "garage_vehicles", ["vehicle_uuid"], unique=True)
        op.create_index("ix_garage_vehicles_owner_id", "garage_vehicles", ["owner_id"])

    if "garage_vehicle_images" not in existing:
        op.create_table(
            "garage_vehicle_images",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("vehicle_id", sa.Integer(),
                      sa.ForeignKey("garage_vehicles.id", ondelete="CASCADE"), nullable=False),
            sa.Column("image_url", sa.String(length=500), nullable=False),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        )
        op.create_index("ix_garage_vehicle_images_vehicle_id", "garage_vehicle_images", ["vehicle_id"])

    if "garage_vehicle_access" not in existing:
        op.create_table(
            "garage_vehicle_access",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("vehicle_id", sa.Integer(),
                      sa.ForeignKey("garage_vehicles.id", ondelete="CASCADE"), nullable=False),
            _fk_user("user_id", ondelete="CASCADE", nullable=False),
            _fk_user("granted_by"),
            _ts("granted_at"),
            sa.UniqueConstraint("vehicle_id", "user_id", name="uq_vehicle_access"),
        )
        op.create_index("ix_garage_vehicle_access_vehicle_id", "garage_vehicle_access", ["vehicle_id"])


def downgrade():
    for table in (
        "garage_vehicle_access", "garage_vehicle_images", "garage_vehicles",
        "garage_vehicle_statuses", "garage_credits", "garage_subscriptions",
        "garage_codes", "garage_tiers", "garage_role_permissions", "garage_config",
        "self_assignable_roles", "system_settings",
        "department_roster", "departments",
        "application_submissions", "application_forms",
        "ticket_logs", "ticket_messages", "ticket_participants", "tickets", "categories",
        "users",
    ):
        op.drop_table(table)
