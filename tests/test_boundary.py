"""Tests for the byte-level boundary operations."""

import json

import pytest

from abe_policy.errors import PolicyError
from abe_policy.interfaces import boundary
from abe_policy.policy import Policy

AXES = [
    {"name": "Dept", "attributes": ["HR", "IT"], "hierarchical": False},
    {"name": "Level", "attributes": ["Low", "High"], "hierarchical": True},
]


@pytest.fixture
def policy_bytes():
    return boundary.new_policy(json.dumps(AXES).encode()).unwrap()


class TestBoundary:
    def test_new_policy(self, policy_bytes):
        policy = Policy.from_bytes(policy_bytes)
        assert policy.attribute_current_value("Level::High") == 4

    def test_new_policy_duplicate_axis(self):
        outcome = boundary.new_policy(json.dumps(AXES + AXES[:1]).encode())
        assert not outcome.ok
        assert outcome.error_kind == "DuplicateAxisName"
        assert outcome.error_code == 10
        assert "Dept" in outcome.message

    def test_add_axis_returns_new_bytes(self, policy_bytes):
        original = bytes(policy_bytes)
        outcome = boundary.add_axis(policy_bytes, b'{"name": "Country", "attributes": ["FR"]}')
        assert outcome.ok
        assert policy_bytes == original
        assert Policy.from_bytes(outcome.data).attribute_current_value("Country::FR") == 5

    def test_rotate(self, policy_bytes):
        outcome = boundary.rotate(policy_bytes, b'"Dept::HR"')
        rotated = Policy.from_bytes(outcome.unwrap())
        assert rotated.hybridization_hint("Dept::HR").codes == (1, 5)

    def test_rotate_list_in_progress(self, policy_bytes):
        once = boundary.rotate(policy_bytes, b'["Dept::HR"]').unwrap()
        outcome = boundary.rotate(once, b'["Dept::IT", "Dept::HR"]')
        assert outcome.error_kind == "RotationInProgress"

    def test_clear_and_hint(self, policy_bytes):
        rotated = boundary.rotate(policy_bytes, b'"Dept::HR"').unwrap()
        hints = json.loads(boundary.hybridization_hint(rotated, b'"Dept::HR"').unwrap())
        assert hints["Dept::HR"] == {"kind": "hybrid", "new_code": 5, "old_code": 1}
        cleared = boundary.clear_old_rotations(rotated, b'"Dept::HR"').unwrap()
        hints = json.loads(boundary.hybridization_hint(cleared, b'"Dept::HR"').unwrap())
        assert hints["Dept::HR"]["kind"] == "single_version"

    def test_attribute_combinations_from_ast(self, policy_bytes):
        ast = boundary.parse_access_policy("Dept::IT && Level::High").unwrap()
        outcome = boundary.attribute_combinations(policy_bytes, ast)
        assert json.loads(outcome.unwrap()) == [[2, 3], [2, 4]]

    def test_attribute_combinations_from_text(self, policy_bytes):
        outcome = boundary.attribute_combinations(policy_bytes, b"Level::High", follow_hierarchy=False)
        assert json.loads(outcome.unwrap()) == [[4]]

    def test_parse_error(self):
        outcome = boundary.parse_access_policy("(Dept::HR")
        assert outcome.error_kind == "ParseError"
        assert outcome.to_dict()["ok"] is False

    def test_invalid_policy(self):
        outcome = boundary.parse_access_policy(b"Dept::HR && Dept::IT")
        assert outcome.error_kind == "InvalidPolicy"

    def test_corrupt_policy_bytes(self):
        outcome = boundary.rotate(b"garbage", b'"Dept::HR"')
        assert outcome.error_kind == "SerializationError"
        assert outcome.error_code == 50

    def test_unwrap_raises(self):
        outcome = boundary.rotate(b"garbage", b'"Dept::HR"')
        with pytest.raises(PolicyError) as exc:
            outcome.unwrap()
        assert exc.value.code == 50

    @pytest.mark.parametrize("limit", [None, -2])
    def test_new_policy_rejects_rotation_limit(self, limit):
        outcome = boundary.new_policy(json.dumps(AXES).encode(), max_rotations=limit)
        assert outcome.error_kind == "InvalidPolicy"
        assert not outcome.ok

    def test_all_access_policy(self, policy_bytes):
        ast = boundary.parse_access_policy("*").unwrap()
        assert ast == b'"All"'
        outcome = boundary.attribute_combinations(policy_bytes, ast)
        assert json.loads(outcome.unwrap()) == [[]]
