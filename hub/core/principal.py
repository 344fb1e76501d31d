"""
Authenticated actor, as seen by every authorization decision.

Built once per request by ``hub.auth`` from the ``users`` row; immutable
afterwards so the role set cannot drift between checks.
"""

from dataclasses import dataclass, field

from hub.core.roles import decode_role_ids


@dataclass(frozen=True)
class Principal:
    id: int
    is_system_admin: bool = False
    role_ids: frozenset = field(default_factory=frozenset)
    is_hub_banned: bool = False
    discord_id: str | None = None
    username: str | None = None

    def holds(self, role_id) -> bool:
        """True when ``role_id`` is set and present in the role set."""
        if role_id is None or role_id == "":
            return False
        return str(role_id) in self.role_ids

    @classmethod
    def from_user(cls, user) -> "Principal":
        return cls(
            id=user.id,
            is_system_admin=bool(user.is_admin),
            role_ids=decode_role_ids(user.roles),
            is_hub_banned=bool(user.is_hub_banned),
            discord_id=user.discord_id,
            username=user.username,
        )
