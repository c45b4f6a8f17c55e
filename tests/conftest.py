"""Shared test fixtures for ABE-Policy."""

import pytest

from abe_policy.policy import Policy, PolicyAxis


@pytest.fixture
def dept_axis():
    return PolicyAxis.new("Dept", ["HR", "IT"])


@pytest.fixture
def level_axis():
    return PolicyAxis.new("Level", ["Low", "High"], is_hierarchical=True)


@pytest.fixture
def policy(dept_axis, level_axis):
    """Dept::HR=1, Dept::IT=2, Level::Low=3, Level::High=4."""
    return Policy([dept_axis, level_axis], max_rotations=3)


@pytest.fixture
def corporate_policy():
    return Policy([
        PolicyAxis.new("Security Level", ["Protected", "Confidential", "Top Secret"], True),
        PolicyAxis.new("Department", ["RnD", "HR", "MKG", "FIN"]),
        PolicyAxis.new("Country", ["France", "Spain", "Germany"]),
    ])
