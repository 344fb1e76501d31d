"""Role list codec: stored JSON text → role id set, failing closed."""

import json

from hub.core.principal import Principal
from hub.core.roles import decode_role_ids, decode_roles, encode_roles


class TestDecodeRoleIds:
    def test_dict_entries(self):
        raw = json.dumps([{"id": "1", "name": "Staff"}, {"id": "2", "name": "Police"}])
        assert decode_role_ids(raw) == frozenset({"1", "2"})

    def test_bare_ids_and_numbers(self):
        assert decode_role_ids('["5", 6]') == frozenset({"5", "6"})

    def test_malformed_json_is_empty(self):
        assert decode_role_ids("{not json") == frozenset()

    def test_non_list_payload_is_empty(self):
        assert decode_role_ids('{"id": "1"}') == frozenset()

    def test_none_and_blank(self):
        assert decode_role_ids(None) == frozenset()
        assert decode_role_ids("") == frozenset()

    def test_entries_without_id_are_dropped(self):
        raw = json.dumps([{"name": "nameless"}, {"id": ""}, {"id": None}, {"id": "7"}])
        assert decode_role_ids(raw) == frozenset({"7"})


class TestDecodeRoles:
    def test_name_falls_back_to_id(self):
        assert decode_roles('[{"id": "9"}]') == [{"id": "9", "name": "9"}]

    def test_duplicates_collapse(self):
        raw = json.dumps([{"id": "1", "name": "A"}, {"id": "1", "name": "B"}])
        assert decode_roles(raw) == [{"id": "1", "name": "A"}]


def test_encode_then_principal_holds():
    stored = encode_roles([{"id": "42", "name": "Support"}, "43"])

    class Row:
        id = 1
        is_admin = False
        roles = stored
        is_hub_banned = False
        discord_id = "d1"
        username = "u"

    principal = Principal.from_user(Row)
    assert principal.holds("42")
    assert principal.holds(43)
    assert not principal.holds("44")
    assert not principal.holds(None)
    assert not principal.holds("")
