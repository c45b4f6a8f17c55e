"""Tests for CLI."""

import pytest
from click.testing import CliRunner

from abe_policy.cli import cli
from abe_policy.policy import Policy

AXES_YAML = """\
max_rotations: 5
axes:
  - name: Dept
    attributes: [HR, IT]
  - name: Level
    hierarchical: true
    attributes: [Low, High]
"""


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def workspace(runner, tmp_path):
    axes = tmp_path / "axes.yaml"
    axes.write_text(AXES_YAML)
    policy_file = tmp_path / "policy.json"
    result = runner.invoke(cli, ["new", "--axes-file", str(axes), "-p", str(policy_file)])
    assert result.exit_code == 0, result.output
    return policy_file


class TestCLI:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "ABE-Policy" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_new_from_yaml(self, workspace):
        policy = Policy.from_bytes(workspace.read_bytes())
        assert policy.max_rotations == 5
        assert policy.attribute_current_value("Level::High") == 4

    def test_new_empty_env_max_rotations(self, runner, tmp_path):
        policy_file = tmp_path / "p.json"
        result = runner.invoke(cli, ["new", "-p", str(policy_file)],
                               env={"ABE_POLICY_MAX_ROTATIONS": "7"})
        assert result.exit_code == 0
        assert Policy.from_bytes(policy_file.read_bytes()).max_rotations == 7

    def test_add_axis(self, runner, workspace):
        result = runner.invoke(cli, ["add-axis", "Country", "FR", "ES", "-p", str(workspace)])
        assert result.exit_code == 0
        assert "Country::ES -> 6" in result.output

    def test_add_duplicate_axis(self, runner, workspace):
        result = runner.invoke(cli, ["add-axis", "Dept", "Ops", "-p", str(workspace)])
        assert result.exit_code == 1
        assert "DuplicateAxisName" in result.output

    def test_rotate_hint_clear(self, runner, workspace):
        result = runner.invoke(cli, ["rotate", "Dept::HR", "-p", str(workspace)])
        assert result.exit_code == 0
        assert "new code 5" in result.output

        result = runner.invoke(cli, ["hint", "Dept::HR", "-p", str(workspace)])
        assert "hybrid (old=1, new=5)" in result.output

        result = runner.invoke(cli, ["rotate", "Dept::HR", "-p", str(workspace)])
        assert result.exit_code == 1
        assert "RotationInProgress" in result.output

        result = runner.invoke(cli, ["clear-rotation", "Dept::HR", "-p", str(workspace)])
        assert "old code retired" in result.output
        result = runner.invoke(cli, ["hint", "Dept::HR", "-p", str(workspace)])
        assert "single version (5)" in result.output

    def test_combinations(self, runner, workspace):
        result = runner.invoke(cli, ["combinations", "Dept::IT && Level::High", "-p", str(workspace)])
        assert result.exit_code == 0
        assert "2 combination(s)" in result.output
        assert "[2, 3]" in result.output

    def test_combinations_names(self, runner, workspace):
        result = runner.invoke(cli, ["combinations", "Level::High", "--names",
                                     "--no-hierarchy", "-p", str(workspace)])
        assert "Level::High=4" in result.output
        assert "Level::Low" not in result.output

    def test_parse(self, runner):
        result = runner.invoke(cli, ["parse", "(Dept::HR || Dept::IT) && Level::Low"])
        assert result.exit_code == 0
        assert "(Dept::HR | Dept::IT) & Level::Low" in result.output
        assert '{"And":' in result.output

    def test_parse_error(self, runner):
        result = runner.invoke(cli, ["parse", "(Dept::HR"])
        assert result.exit_code == 1
        assert "ParseError" in result.output

    def test_show(self, runner, workspace):
        result = runner.invoke(cli, ["show", "-p", str(workspace)])
        assert result.exit_code == 0
        assert "Policy Summary" in result.output
        assert "hierarchical" in result.output

    def test_missing_policy_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["show", "-p", str(tmp_path / "none.json")])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_demo(self, runner):
        result = runner.invoke(cli, ["demo"])
        assert result.exit_code == 0
        assert "Demo complete" in result.output
