"""
ABE-Policy Command Line Interface.

Commands: new, add-axis, rotate, clear-rotation, hint, parse, combinations,
show, demo
"""

from __future__ import annotations

import functools
import json
import logging
from pathlib import Path

import click

from . import __version__
from .access import CombinationResolver, parse
from .errors import PolicyError
from .policy import Policy, PolicyAxis
from .policy.models import DEFAULT_MAX_ROTATIONS

logger = logging.getLogger(__name__)

policy_file_option = click.option(
    "--policy-file", "-p",
    default="policy.json",
    envvar="ABE_POLICY_FILE",
    show_default=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Serialized policy to read and rewrite",
)


def reports_errors(fn):
    """Turn policy errors into a clean CLI failure."""
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except PolicyError as exc:
            logger.debug("command failed", exc_info=True)
            raise click.ClickException(f"{exc.kind}: {exc.message}") from exc
    return wrapper


def load_policy(path: Path) -> Policy:
    if not path.exists():
        raise click.ClickException(f"policy file {path} not found; run 'abe-policy new' first")
    return Policy.from_bytes(path.read_bytes())


def save_policy(policy: Policy, path: Path) -> None:
    path.write_bytes(policy.to_bytes())


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """ABE-Policy: attribute-based encryption policy engine"""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@click.option("--axes-file", "axes_file", default=None, type=click.Path(exists=True, dir_okay=False),
              help="YAML axis declarations")
@click.option("--max-rotations", default=DEFAULT_MAX_ROTATIONS, envvar="ABE_POLICY_MAX_ROTATIONS",
              show_default=True, help="Rotations allowed per attribute")
@policy_file_option
@reports_errors
def new(axes_file: str | None, max_rotations: int, policy_file: Path):
    """Create a policy, optionally from a YAML declaration."""
    if axes_file:
        with open(axes_file) as f:
            policy = Policy.from_yaml(f.read())
        click.echo(f"[+] Loaded {len(policy.axes())} axes from {axes_file}")
    else:
        policy = Policy(max_rotations=max_rotations)
    save_policy(policy, policy_file)
    click.echo(f"[+] Policy written to {policy_file}")


@cli.command("add-axis")
@click.argument("name")
@click.argument("attributes", nargs=-1, required=True)
@click.option("--hierarchical", is_flag=True, help="Order attributes lowest rank first")
@policy_file_option
@reports_errors
def add_axis(name: str, attributes: tuple[str, ...], hierarchical: bool, policy_file: Path):
    """Declare a new axis NAME with its ATTRIBUTES."""
    policy = load_policy(policy_file)
    policy.add_axis(PolicyAxis.new(name, attributes, hierarchical))
    save_policy(policy, policy_file)
    for attribute in policy.axis(name).qualified():
        click.echo(f"  {attribute} -> {policy.attribute_current_value(attribute)}")


@cli.command()
@click.argument("attributes", nargs=-1, required=True)
@policy_file_option
@reports_errors
def rotate(attributes: tuple[str, ...], policy_file: Path):
    """Rotate ATTRIBUTES (Axis::Name) and open their hybridization window."""
    policy = load_policy(policy_file)
    codes = policy.rotate_many(attributes)
    save_policy(policy, policy_file)
    for attribute, code in zip(attributes, codes):
        click.echo(f"[+] {attribute} rotated, new code {code}")


@cli.command("clear-rotation")
@click.argument("attribute")
@policy_file_option
@reports_errors
def clear_rotation(attribute: str, policy_file: Path):
    """Close the hybridization window of ATTRIBUTE."""
    policy = load_policy(policy_file)
    if policy.clear_old_rotations(attribute):
        save_policy(policy, policy_file)
        click.echo(f"[+] {attribute}: old code retired")
    else:
        click.echo(f"[-] {attribute} is not rotating")


@cli.command()
@click.argument("attribute")
@policy_file_option
@reports_errors
def hint(attribute: str, policy_file: Path):
    """Show which codes new ciphertext for ATTRIBUTE must target."""
    policy = load_policy(policy_file)
    h = policy.hybridization_hint(attribute)
    if h.is_hybrid:
        click.echo(f"{attribute}: hybrid (old={h.old_code}, new={h.new_code})")
    else:
        click.echo(f"{attribute}: single version ({h.new_code})")


@cli.command("parse")
@click.argument("expression")
@reports_errors
def parse_cmd(expression: str):
    """Parse a boolean EXPRESSION into its canonical forms."""
    ap = parse(expression)
    click.echo(f"Text:       {ap.to_text()}")
    click.echo(f"AST:        {ap.to_bytes().decode('utf-8')}")
    click.echo(f"Attributes: {', '.join(str(a) for a in ap.attributes())}")


@cli.command()
@click.argument("expression")
@click.option("--no-hierarchy", is_flag=True, help="Do not expand hierarchical axes")
@click.option("--names", is_flag=True, help="Print attribute names next to codes")
@policy_file_option
@reports_errors
def combinations(expression: str, no_hierarchy: bool, names: bool, policy_file: Path):
    """List the attribute-code combinations satisfying EXPRESSION."""
    policy = load_policy(policy_file)
    resolver = CombinationResolver(policy, follow_hierarchy=not no_hierarchy)
    ap = parse(expression)
    combos = resolver.attribute_combinations(ap)
    for term in resolver.discarded:
        logger.debug("discarded unsatisfiable term over axes %s", sorted(term))
    click.echo(f"{len(combos)} combination(s) for {ap}")
    for combo in combos:
        codes = [policy.attribute_current_value(a) for a in combo]
        if names:
            click.echo("  " + ", ".join(f"{a}={c}" for a, c in zip(combo, codes)))
        else:
            click.echo(f"  {json.dumps(codes)}")


@cli.command()
@policy_file_option
@reports_errors
def show(policy_file: Path):
    """Summarize the policy and export its YAML declaration."""
    policy = load_policy(policy_file)
    summary = policy.summary()
    click.echo("--- Policy Summary ---")
    click.echo(f"Axes: {summary['total_axes']}, Attributes: {summary['total_attributes']}, "
               f"Codes issued: {summary['issued_codes']}")
    for axis in policy.axes():
        kind = "hierarchical" if axis.hierarchical else "flat"
        click.echo(f"\n  {axis.name} ({kind})")
        for attribute in axis.qualified():
            state = policy.rotation_state(attribute)
            flag = " [rotating]" if state.rotating else ""
            click.echo(f"    {attribute.name:20s} v{state.version} "
                       f"codes={policy.attribute_values(attribute)}{flag}")
    click.echo("\n--- YAML Declaration ---")
    click.echo(policy.to_yaml())


@cli.command()
@reports_errors
def demo():
    """Run a complete policy lifecycle in memory."""
    click.echo("=" * 60)
    click.echo("  ABE-Policy  -  Demo Scenario")
    click.echo("=" * 60)

    click.echo("\n[1/4] Declaring axes...")
    policy = Policy([
        PolicyAxis.new("Security Level", ["Protected", "Confidential", "Top Secret"], True),
        PolicyAxis.new("Department", ["RnD", "HR", "MKG", "FIN"]),
    ], max_rotations=10)
    for attribute in policy.attributes():
        click.echo(f"    {str(attribute):32s} -> {policy.attribute_current_value(attribute)}")

    click.echo("\n[2/4] Resolving an access policy...")
    ap = parse("Department::MKG && Security Level::Confidential")
    for combo in policy.to_attribute_combinations(ap):
        click.echo(f"    {list(combo)}")

    click.echo("\n[3/4] Rotating Department::MKG...")
    policy.rotate("Department::MKG")
    h = policy.hybridization_hint("Department::MKG")
    click.echo(f"    hint: {h.kind.value} old={h.old_code} new={h.new_code}")
    for combo in policy.to_attribute_combinations(ap):
        click.echo(f"    {list(combo)}")

    click.echo("\n[4/4] Closing the hybridization window...")
    policy.clear_old_rotations("Department::MKG")
    h = policy.hybridization_hint("Department::MKG")
    click.echo(f"    hint: {h.kind.value} codes={list(h.codes)}")
    old_code = policy.attribute_values("Department::MKG")[1]
    click.echo(f"    old code {old_code} still decodes to {policy.decode(old_code)}")

    click.echo("\n" + "=" * 60)
    click.echo("  Demo complete.")
    click.echo("=" * 60)


def main():
    cli()


if __name__ == "__main__":
    main()
