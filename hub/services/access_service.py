"""
Access evaluator: the single place where the hub decides who may do what.

Every function here is pure. Inputs are a ``Principal`` plus resource rows the
caller already loaded (ORM instances or anything exposing the same
attributes); nothing is fetched, cached or written. Capabilities are
recomputed on every request and never persisted.

Decision rules:
    - system admins hold every capability
    - a null role id on a resource is never "held"
    - banned principals hold no capability at all; the authentication
      boundary rejects them first, this is the second line

Usage:
    from hub.services import access_service as access

    caps = access.ticket_access(g.principal, ticket, ticket.category, is_participant)
    if not caps.can_view:
        raise ForbiddenError()
"""

import logging
from dataclasses import asdict, dataclass

logger = logging.getLogger(__name__)


# ── Capability records ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class CategoryAccess:
    can_create_ticket: bool = False
    has_support_access: bool = False


@dataclass(frozen=True)
class TicketAccess:
    can_view: bool = False
    can_reply: bool = False
    can_close: bool = False
    can_change_status_forward: bool = False
    can_claim: bool = False
    can_unclaim: bool = False
    can_manage_participants: bool = False
    can_transfer: bool = False
    is_treated_as_staff: bool = False

    def can_set_status(self, status: str) -> bool:
        """Closing follows ``can_close``; every other target status is staff-only."""
        if status == "closed":
            return self.can_close
        return self.can_change_status_forward

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class ApplicationAccess:
    can_submit: bool = False
    can_review: bool = False
    can_administer: bool = False


@dataclass(frozen=True)
class GaragePermissions:
    can_view_manager: bool = False
    can_generate_codes: bool = False
    can_delete_vehicles: bool = False
    can_edit_vehicles: bool = False

    def to_dict(self):
        return asdict(self)


_GARAGE_FLAGS = ("can_view_manager", "can_generate_codes", "can_delete_vehicles", "can_edit_vehicles")


def _banned(principal, operation) -> bool:
    if principal.is_hub_banned:
        logger.warning("Access evaluation for banned principal %s (%s)", principal.id, operation)
        return True
    return False


# ── System ───────────────────────────────────────────────────────────────────

def can_manage_system(principal) -> bool:
    if _banned(principal, "manage_system"):
        return False
    return bool(principal.is_system_admin)


def can_manage_users(principal, management_role_id=None) -> bool:
    """Hub ban / user listing: admins or holders of the management role."""
    if _banned(principal, "manage_users"):
        return False
    return bool(principal.is_system_admin) or principal.holds(management_role_id)


# ── Categories & tickets ─────────────────────────────────────────────────────

def category_access(principal, category) -> CategoryAccess:
    """Creation is open unless the category is restricted; support needs the role.

    ``category`` may be None for tickets whose category was deleted; only
    admins keep support access to those.
    """
    if _banned(principal, "category"):
        return CategoryAccess()
    if principal.is_system_admin:
        return CategoryAccess(can_create_ticket=True, has_support_access=True)
    if category is None:
        return CategoryAccess()

    support = principal.holds(category.required_role_id)
    return CategoryAccess(
        can_create_ticket=(not category.is_restricted) or support,
        has_support_access=support,
    )


def ticket_access(principal, ticket, category, is_participant: bool) -> TicketAccess:
    if _banned(principal, "ticket"):
        return TicketAccess()

    admin = bool(principal.is_system_admin)
    support = category_access(principal, category).has_support_access
    owner = ticket.owner_id == principal.id
    assigned_or_claimed = principal.id in (ticket.assigned_to, ticket.claimed_by)

    staff = support or assigned_or_claimed or admin
    can_view = owner or bool(is_participant) or staff
    support_or_admin = support or admin

    return TicketAccess(
        can_view=can_view,
        can_reply=can_view,
        can_close=owner or staff,
        can_change_status_forward=staff,
        can_claim=support_or_admin,
        can_unclaim=support_or_admin,
        can_manage_participants=support_or_admin,
        can_transfer=support_or_admin,
        is_treated_as_staff=staff,
    )


def supported_category_ids(principal, categories) -> list:
    return [c.id for c in categories if category_access(principal, c).has_support_access]


# ── Applications ─────────────────────────────────────────────────────────────

def application_access(principal, form) -> ApplicationAccess:
    """Role tiers nest: administer ⊂ review ⊂ submit.

    Whether the form is active and whether a pending submission already
    exists are checked by the application service, not here.
    """
    if _banned(principal, "application"):
        return ApplicationAccess()

    administer = bool(principal.is_system_admin) or principal.holds(form.admin_role_id)
    review = administer or principal.holds(form.moderator_role_id)
    submit = review or principal.holds(form.viewer_role_id)
    return ApplicationAccess(can_submit=submit, can_review=review, can_administer=administer)


# ── Departments ──────────────────────────────────────────────────────────────

def department_access(principal, department) -> bool:
    """Viewing and editing a roster are the same capability."""
    if _banned(principal, "department"):
        return False
    return bool(principal.is_system_admin) or principal.holds(department.roster_view_id)


# ── Garage ───────────────────────────────────────────────────────────────────

def garage_permissions(principal, grants) -> GaragePermissions:
    """OR together the permission rows for every role the principal holds."""
    if _banned(principal, "garage"):
        return GaragePermissions()
    if principal.is_system_admin:
        return GaragePermissions(**{flag: True for flag in _GARAGE_FLAGS})

    merged = dict.fromkeys(_GARAGE_FLAGS, False)
    for grant in grants:
        if not principal.holds(grant.role_id):
            continue
        for flag in _GARAGE_FLAGS:
            merged[flag] = merged[flag] or bool(getattr(grant, flag))
    return GaragePermissions(**merged)


def vehicle_access(user_id, vehicle, *, has_grant: bool, has_active_subscription: bool):
    """Return ``(allowed, reason)`` for a user spawning ``vehicle``.

    Reasons, in precedence order: ``owner``, ``granted``, ``subscription``
    (shared vehicles only). Denials carry reason None.
    """
    if vehicle.owner_id == user_id:
        return True, "owner"
    if has_grant:
        return True, "granted"
    if vehicle.is_shared and has_active_subscription:
        return True, "subscription"
    return False, None
