"""
iptkit CLI commands.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import dataclasses
import json
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from iptkit import __version__
from iptkit.adapters import get_adapter
from iptkit.client import Iptables
from iptkit.config import get_config
from iptkit.errors import CommandFailed
from iptkit.logging_config import configure_logging
from iptkit.models import Chain, Rule
from iptkit.parser import parse_dump, parse_rule, serialize_rule

console = Console()

# Rule text is passed through untouched, dashes included
RULE_ARGS = {"ignore_unknown_options": True}


@click.group()
@click.version_option(__version__, prog_name="iptkit")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--adapter", type=click.Choice(["cli", "fake"]), help="Command backend")
@click.option("--binary", help="iptables binary to run")
@click.option("--timeout", type=float, help="Command timeout in seconds")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also log to this rotating file")
@click.pass_context
def main(
    ctx: click.Context,
    debug: bool,
    adapter: str | None,
    binary: str | None,
    timeout: float | None,
    log_file: str | None,
):
    """Parse iptables rules and run iptables commands.

    Rules and ``iptables -S`` dumps are turned into structured chains
    and rules; list and check run against the configured backend.
    """
    try:
        config = dataclasses.replace(get_config())
    except ValueError as e:
        raise click.UsageError(f"Invalid configuration: {e}") from e

    configure_logging(debug=debug, log_file=log_file, level=config.log_level)

    if adapter:
        config.adapter = adapter
    if binary:
        config.binary = binary
    if timeout:
        config.timeout = timeout

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


def _client(ctx: click.Context) -> Iptables:
    return Iptables(get_adapter(ctx.obj["config"]))


@main.command("parse")
@click.argument("dump", type=click.File("r"), default="-")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def parse_cmd(dump, output_json: bool):
    """Parse an ``iptables --list-rules`` dump.

    DUMP is a file path, or - for stdin.
    """
    chains = parse_dump(dump.read())

    if output_json:
        click.echo(json.dumps([_chain_to_dict(c) for c in chains], indent=2))
        return

    _output_chains(chains)


@main.command("rule", context_settings=RULE_ARGS)
@click.argument("rule", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def rule_cmd(rule: tuple[str, ...], output_json: bool):
    """Parse a single rule specification.

    Example: iptkit rule -- ! --source 10.1.0.0/16 --jump DROP
    """
    parsed = parse_rule(list(rule))

    if output_json:
        click.echo(json.dumps(_rule_to_dict(parsed), indent=2))
        return

    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    for field_name, value in _rule_to_dict(parsed).items():
        if field_name == "rule" or value is None:
            continue
        table.add_row(field_name, _format_value(value))

    console.print(Panel(serialize_rule(parsed), title="Canonical rule"))
    console.print(table)


@main.command("list")
@click.argument("chain", required=False)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.option("--raw", is_flag=True, help="Print the --list-rules output unchanged")
@click.pass_context
def list_cmd(ctx: click.Context, chain: str | None, output_json: bool, raw: bool):
    """List all chains, or CHAIN, with their rules."""
    ipt = _client(ctx)

    try:
        if raw:
            click.echo(ipt.list_rules(chain), nl=False)
            return
        chains = [ipt.list_chain(chain)] if chain else ipt.list()
    except CommandFailed as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(e.status)

    if output_json:
        click.echo(json.dumps([_chain_to_dict(c) for c in chains], indent=2))
        return

    _output_chains(chains)


@main.command("check", context_settings=RULE_ARGS)
@click.argument("chain")
@click.argument("rule", nargs=-1, required=True, type=click.UNPROCESSED)
@click.pass_context
def check_cmd(ctx: click.Context, chain: str, rule: tuple[str, ...]):
    """Check whether RULE exists in CHAIN.

    Exits with 0 when the rule exists, 1 otherwise.
    """
    ipt = _client(ctx)

    if ipt.check(chain, list(rule)):
        console.print(f"[green]Rule exists in {chain}[/green]")
        return

    console.print(f"[yellow]Rule not found in {chain}[/yellow]")
    sys.exit(1)


# ==========================================================================
# Helper functions
# ==========================================================================

def _format_value(value) -> str:
    if isinstance(value, dict):
        prefix = "! " if value["negated"] else ""
        return f"{prefix}{value['value']}"
    return str(value)


def _rule_to_dict(rule: Rule) -> dict:
    """Convert a rule to a JSON-friendly dict."""
    def negatable(value):
        if value is None:
            return None
        return {"negated": value.negated, "value": value.value}

    return {
        "protocol": negatable(rule.protocol),
        "source": negatable(rule.source),
        "destination": negatable(rule.destination),
        "jump": rule.jump,
        "in_interface": negatable(rule.in_interface),
        "out_interface": negatable(rule.out_interface),
        "rule": serialize_rule(rule),
    }


def _chain_to_dict(chain: Chain) -> dict:
    return {
        "name": chain.name,
        "target": chain.target,
        "rules": [_rule_to_dict(r) for r in chain.rules],
    }


def _output_chains(chains: list[Chain]) -> None:
    """Output chains as tables."""
    if not chains:
        console.print("[dim]No chains found[/dim]")
        return

    for chain in chains:
        policy = chain.target or "-"
        console.print(f"[bold cyan]{chain.name}[/bold cyan] (policy {policy}, {chain.rule_count()} rules)")

        if not chain.rules:
            console.print()
            continue

        table = Table()
        table.add_column("#", style="dim")
        table.add_column("Protocol")
        table.add_column("Source")
        table.add_column("Destination")
        table.add_column("In")
        table.add_column("Out")
        table.add_column("Jump", style="green")
        table.add_column("Rule")

        for num, rule in enumerate(chain.rules, 1):
            table.add_row(
                str(num),
                str(rule.protocol) if rule.protocol else "all",
                str(rule.source) if rule.source else "any",
                str(rule.destination) if rule.destination else "any",
                str(rule.in_interface) if rule.in_interface else "-",
                str(rule.out_interface) if rule.out_interface else "-",
                rule.jump or "-",
                serialize_rule(rule),
            )

        console.print(table)
        console.print()
