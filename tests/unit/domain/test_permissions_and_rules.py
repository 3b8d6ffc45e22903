"""
Name: Permission Vocabulary and Rule Body Tests

Responsibilities:
  - Validate the bit layout (binary contract with persisted roles)
  - Validate mask decoding / encoding helpers
  - Validate structural parsing of contextual rule bodies
"""

import pytest

from caseflow.domain.entities import Role
from caseflow.domain.permissions import (
    ALL_PERMISSIONS,
    Action,
    PermissionBits,
    action_from_name,
    bit_for_action,
    decode_mask,
    encode_mask,
    has_bit,
    validate_mask,
)
from caseflow.domain.rules import (
    RuleBody,
    RuleBodyError,
    RuleCondition,
    RuleKind,
    parse_rule_body,
)

pytestmark = pytest.mark.unit


class TestPermissionBits:
    def test_bit_values_are_stable(self):
        assert [int(b) for b in PermissionBits] == [1, 2, 4, 8, 16, 32, 64, 128]
        assert ALL_PERMISSIONS == 255

    @pytest.mark.parametrize(
        "action, bit",
        [
            (Action.CREAR, PermissionBits.CREATE),
            (Action.EDITAR, PermissionBits.EDIT),
            (Action.ELIMINAR, PermissionBits.DELETE),
            (Action.VER, PermissionBits.VIEW),
            (Action.DERIVAR, PermissionBits.DERIVE),
            (Action.AUDITAR, PermissionBits.AUDIT),
            (Action.EXPORTAR, PermissionBits.EXPORT),
            (Action.ADMIN, PermissionBits.ADMIN),
        ],
    )
    def test_every_action_maps_to_one_bit(self, action, bit):
        assert bit_for_action(action) is bit

    def test_has_bit_requires_exact_bit(self):
        mask = PermissionBits.VIEW | PermissionBits.CREATE
        assert has_bit(mask, PermissionBits.VIEW)
        assert has_bit(mask, PermissionBits.CREATE)
        assert not has_bit(mask, PermissionBits.EDIT)

    def test_decode_mask_reports_each_flag(self):
        decoded = decode_mask(9)

        assert decoded["CREATE"] is True
        assert decoded["VIEW"] is True
        assert decoded["ADMIN"] is False
        assert len(decoded) == 8

    def test_encode_mask_combines_bits(self):
        assert encode_mask([PermissionBits.EDIT, PermissionBits.DERIVE]) == 18

    @pytest.mark.parametrize("mask", [-1, 256, True, "8"])
    def test_validate_mask_rejects_out_of_range(self, mask):
        with pytest.raises(ValueError):
            validate_mask(mask)

    def test_role_capabilities_and_admin_flag(self):
        from uuid import uuid4

        role = Role(id=uuid4(), name="Admin", permissions=0xFF)
        assert role.is_admin
        assert all(role.capabilities().values())

    @pytest.mark.parametrize(
        "raw, expected",
        [("ELIMINAR", Action.ELIMINAR), ("delete", Action.ELIMINAR), (" VIEW ", Action.VER)],
    )
    def test_action_from_name_accepts_action_and_bit_names(self, raw, expected):
        assert action_from_name(raw) is expected

    def test_action_from_name_unknown_is_none(self):
        assert action_from_name("BORRAR") is None


class TestParseRuleBody:
    def test_parses_spanish_keys(self):
        body = parse_rule_body(
            {"tipo": "PROPIEDAD", "condicion": "ES_CREADOR", "accion": "ELIMINAR"}
        )

        assert body == RuleBody(
            kind=RuleKind.PROPIEDAD,
            condition=RuleCondition.ES_CREADOR,
            action=Action.ELIMINAR,
        )

    def test_parses_json_string(self):
        body = parse_rule_body(
            '{"tipo": "AREA", "condicion": "MISMA_AREA", "accion": "EDITAR"}'
        )
        assert body.condition is RuleCondition.MISMA_AREA
        assert body.action is Action.EDITAR

    def test_accepts_english_keys_and_infers_kind(self):
        body = parse_rule_body({"condition": "es_creador", "action": "ver"})

        assert body.kind is RuleKind.PROPIEDAD
        assert body.action is Action.VER

    def test_to_dict_round_trips_through_parser(self):
        body = parse_rule_body({"condicion": "MISMA_AREA", "accion": "DERIVAR"})
        assert parse_rule_body(body.to_dict()) == body

    def test_accepts_bit_name_and_stores_action_name(self):
        body = parse_rule_body(
            {"tipo": "PROPIEDAD", "condicion": "ES_CREADOR", "accion": "DELETE"}
        )

        assert body.action is Action.ELIMINAR
        assert body.to_dict()["accion"] == "ELIMINAR"
        assert body == parse_rule_body({"condicion": "ES_CREADOR", "accion": "ELIMINAR"})

    @pytest.mark.parametrize(
        "raw",
        [
            {"condicion": "ES_CREADOR"},
            {"accion": "ELIMINAR"},
            {"condicion": "ES_JEFE", "accion": "ELIMINAR"},
            {"condicion": "ES_CREADOR", "accion": "BORRAR"},
            {"tipo": "AREA", "condicion": "ES_CREADOR", "accion": "ELIMINAR"},
            "not json",
            "[1, 2]",
        ],
    )
    def test_rejects_malformed_bodies(self, raw):
        with pytest.raises(RuleBodyError):
            parse_rule_body(raw)

    def test_substring_lookalikes_do_not_match(self):
        body = parse_rule_body({"condicion": "ES_CREADOR", "accion": "VER"})

        assert not body.matches(RuleCondition.ES_CREADOR, Action.ELIMINAR)
        assert not body.matches(RuleCondition.MISMA_AREA, Action.VER)
        assert body.matches(RuleCondition.ES_CREADOR, Action.VER)
