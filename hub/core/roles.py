"""
Discord role list codec.

User rows keep their guild roles as JSON text: ``[{"id": "...", "name": "..."}]``.
The authentication boundary decodes that text exactly once per request into
a frozenset of role ids; nothing downstream re-parses it.

Decoding fails closed: unparsable text, a non-list payload, or entries
without a usable id contribute no roles.
"""

import json
import logging

logger = logging.getLogger(__name__)


def _role_id(entry) -> str | None:
    value = entry.get("id") if isinstance(entry, dict) else entry
    if value is None or isinstance(value, (bool, dict, list)):
        return None
    value = str(value).strip()
    return value or None


def _load(raw):
    if raw is None or raw == "":
        return []
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Undecodable role list, treating as empty")
            return []
    if not isinstance(raw, (list, tuple, set, frozenset)):
        logger.warning("Role list is %s, not a list; treating as empty", type(raw).__name__)
        return []
    return list(raw)


def decode_role_ids(raw) -> frozenset[str]:
    """Return the set of role ids held, or an empty set for malformed input."""
    ids = set()
    for entry in _load(raw):
        role_id = _role_id(entry)
        if role_id:
            ids.add(role_id)
    return frozenset(ids)


def decode_roles(raw) -> list[dict]:
    """Return ``[{"id", "name"}]`` for API payloads; malformed entries are dropped."""
    roles, seen = [], set()
    for entry in _load(raw):
        role_id = _role_id(entry)
        if not role_id or role_id in seen:
            continue
        seen.add(role_id)
        name = entry.get("name") if isinstance(entry, dict) else None
        roles.append({"id": role_id, "name": name or role_id})
    return roles


def encode_roles(roles) -> str:
    """Serialise role dicts or bare ids into the stored JSON text."""
    return json.dumps(decode_roles(list(roles or [])))
