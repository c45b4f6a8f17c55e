"""Tests for the policy aggregate."""

import json

import pytest

from abe_policy.attribute import Attribute
from abe_policy.errors import (
    DuplicateAxisName,
    InvalidPolicy,
    SerializationError,
    UnknownAttribute,
    UnknownAxis,
)
from abe_policy.policy import Policy, PolicyAxis


class TestPolicyAxes:
    def test_add_axis_allocates_codes(self, policy):
        assert policy.attribute_current_value("Dept::HR") == 1
        assert policy.attribute_current_value("Dept::IT") == 2
        assert policy.attribute_current_value(("Level", "Low")) == 3
        assert policy.attribute_current_value(Attribute("Level", "High")) == 4

    def test_duplicate_axis(self, policy):
        with pytest.raises(DuplicateAxisName) as exc:
            policy.add_axis(PolicyAxis.new("Dept", ["Sales"]))
        assert exc.value.axis == "Dept"
        assert len(policy.table) == 4

    def test_add_axis_from_dict(self, policy):
        policy.add_axis({"name": "Country", "attributes": ["FR", "ES"]})
        assert policy.attribute_current_value("Country::ES") == 6

    def test_attributes(self, policy):
        assert [str(a) for a in policy.attributes()] == [
            "Dept::HR", "Dept::IT", "Level::Low", "Level::High",
        ]

    def test_unknown_attribute(self, policy):
        with pytest.raises(UnknownAttribute):
            policy.attribute_current_value("Dept::Sales")

    def test_unknown_axis(self, policy):
        with pytest.raises(UnknownAxis):
            policy.axis("Country")

    def test_attributes_values(self, policy):
        assert policy.attributes_values(["Level::High", "Dept::HR"]) == [4, 1]

    def test_axis_max_rotations_override(self):
        policy = Policy([PolicyAxis.new("Dept", ["HR"], max_rotations=1)], max_rotations=10)
        assert policy.rotation_state("Dept::HR").max_rotations == 1

    def test_summary(self, policy):
        policy.rotate("Dept::IT")
        summary = policy.summary()
        assert summary["total_axes"] == 2
        assert summary["total_attributes"] == 4
        assert summary["issued_codes"] == 5
        assert summary["rotating"] == ["Dept::IT"]


class TestCodeUniqueness:
    def test_codes_never_reused(self, policy):
        policy.rotate("Dept::HR")
        policy.clear_old_rotations("Dept::HR")
        policy.rotate("Dept::HR")
        policy.rotate("Level::Low")
        policy.add_axis(PolicyAxis.new("Country", ["FR", "ES"]))
        codes = [code for _, code in policy.table.items()]
        triples = [triple for triple, _ in policy.table.items()]
        assert len(set(codes)) == len(codes)
        assert len(set(triples)) == len(triples)
        assert codes == list(range(1, policy.table.last_code + 1))

    def test_attribute_values_newest_first(self, policy):
        policy.rotate("Dept::HR")
        policy.clear_old_rotations("Dept::HR")
        policy.rotate("Dept::HR")
        assert policy.attribute_values("Dept::HR") == [6, 5, 1]
        assert policy.attribute_values("Dept::HR")[0] == policy.attribute_current_value("Dept::HR")


class TestSerialization:
    def test_bytes_roundtrip(self, policy):
        policy.rotate("Dept::IT")
        restored = Policy.from_bytes(policy.to_bytes())
        assert restored == policy
        assert restored.hybridization_hint("Dept::IT").is_hybrid
        assert restored.to_bytes() == policy.to_bytes()

    def test_roundtrip_keeps_allocating_after_counter(self, policy):
        policy.rotate("Dept::IT")
        restored = Policy.from_bytes(policy.to_bytes())
        restored.clear_old_rotations("Dept::IT")
        assert restored.rotate("Dept::IT") == 6

    def test_copy_is_independent(self, policy):
        snapshot = policy.copy()
        policy.rotate("Dept::HR")
        assert snapshot != policy
        assert snapshot.attribute_current_value("Dept::HR") == 1

    def test_corrupt_bytes(self):
        with pytest.raises(SerializationError):
            Policy.from_bytes(b"\x00not json")

    def test_version_mismatch(self, policy):
        data = policy.to_dict()
        data["format_version"] = 99
        with pytest.raises(SerializationError):
            Policy.from_bytes(json.dumps(data).encode())

    def test_missing_field(self, policy):
        data = policy.to_dict()
        del data["codes"]
        with pytest.raises(SerializationError):
            Policy.from_dict(data)

    def test_inconsistent_rotation_state(self, policy):
        data = policy.to_dict()
        data["rotations"][0]["version"] = 3
        with pytest.raises(SerializationError):
            Policy.from_dict(data)

    def test_yaml_declaration(self, policy):
        yaml_str = policy.to_yaml()
        assert "Level" in yaml_str
        restored = Policy.from_yaml(yaml_str)
        assert restored.axes() == policy.axes()
        assert restored.max_rotations == 3

    def test_yaml_load(self):
        policy = Policy.from_yaml(
            "max_rotations: 2\n"
            "axes:\n"
            "  - name: Security Level\n"
            "    hierarchical: true\n"
            "    attributes: [Protected, Top Secret]\n"
        )
        assert policy.axis("Security Level").hierarchical
        assert policy.attribute_current_value("Security Level::Top Secret") == 2

    def test_invalid_yaml(self):
        with pytest.raises(SerializationError):
            Policy.from_yaml("axes: [unclosed")

    def test_yaml_rotation_limit_not_a_number(self):
        with pytest.raises(SerializationError):
            Policy.from_yaml("max_rotations: lots\naxes: []\n")

    def test_duplicate_rotation_entry(self, policy):
        data = policy.to_dict()
        data["rotations"].append(dict(data["rotations"][0]))
        with pytest.raises(SerializationError):
            Policy.from_dict(data)

    def test_negative_rotation_limit_in_state(self, policy):
        data = policy.to_dict()
        data["rotations"][0]["max_rotations"] = -1
        with pytest.raises(SerializationError):
            Policy.from_dict(data)

    def test_stringly_hierarchical_flag(self, policy):
        data = policy.to_dict()
        data["axes"][1]["hierarchical"] = "false"
        with pytest.raises(SerializationError):
            Policy.from_dict(data)


class TestRotationLimitValidation:
    @pytest.mark.parametrize("limit", [None, -1, "100", 1.5, False])
    def test_rejected(self, limit):
        with pytest.raises(InvalidPolicy):
            Policy(max_rotations=limit)

    def test_zero_accepted(self):
        policy = Policy([PolicyAxis.new("Dept", ["HR"])], max_rotations=0)
        assert Policy.from_bytes(policy.to_bytes()) == policy
