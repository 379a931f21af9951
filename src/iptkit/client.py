"""
iptables client.

Wraps the iptables commands over an adapter, so the same code runs
against the host firewall (CliAdapter) or an in-memory one (FakeAdapter).

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging

from iptkit.adapters import Adapter, get_adapter
from iptkit.errors import CommandFailed, NoSuchChain
from iptkit.models import Chain
from iptkit.parser import RuleSpec, parse_dump, spec_to_args

logger = logging.getLogger(__name__)


class Iptables:
    """
    iptables command wrapper.

    Rules may be passed as text (``"-s 10.0.0.0/8 -j DROP"``), as an
    argument list or as a Rule.

    Usage:
        ipt = Iptables(FakeAdapter())
        ipt.append("FORWARD", "-s 10.0.0.0/8 -j DROP")
        ipt.check("FORWARD", "--source 10.0.0.0/8 --jump DROP")  # True
    """

    def __init__(self, adapter: Adapter | None = None):
        self.adapter = adapter or get_adapter()

    def _cmd(self, *args: str | int) -> str:
        return self.adapter.execute([str(arg) for arg in args])

    def append(self, chain: str, rule: RuleSpec) -> str:
        """Append a rule to the end of the selected chain."""
        return self._cmd("--append", chain, *spec_to_args(rule))

    def check(self, chain: str, rule: RuleSpec) -> bool:
        """Check whether a rule matching the specification exists in the chain."""
        try:
            self._cmd("--check", chain, *spec_to_args(rule))
        except CommandFailed as e:
            logger.debug(f"Check failed with status {e.status}: {e}")
            return False
        return True

    def delete(self, chain: str, rule: RuleSpec | int) -> str:
        """Delete a matching rule, or a rule number, from the selected chain."""
        if isinstance(rule, int):
            return self._cmd("--delete", chain, rule)
        return self._cmd("--delete", chain, *spec_to_args(rule))

    def insert(self, chain: str, rulenum: int, rule: RuleSpec) -> str:
        """Insert a rule so that it becomes rule number ``rulenum`` (1 is the head)."""
        return self._cmd("--insert", chain, rulenum, *spec_to_args(rule))

    def replace(self, chain: str, rulenum: int, rule: RuleSpec) -> str:
        """Replace rule number ``rulenum`` in the selected chain."""
        return self._cmd("--replace", chain, rulenum, *spec_to_args(rule))

    def list(self) -> list[Chain]:
        """List all chains including their rules."""
        return parse_dump(self._cmd("--list-rules"))

    def list_chain(self, chain: str) -> Chain:
        """List the selected chain including its rules."""
        chains = parse_dump(self._cmd("--list-rules", chain))
        if not chains:
            raise NoSuchChain(f"No chain/target/match by that name: {chain}")
        return chains[0]

    def list_rules(self, chain: str | None = None) -> str:
        """Get the raw ``--list-rules`` output."""
        if chain is None:
            return self._cmd("--list-rules")
        return self._cmd("--list-rules", chain)

    def flush(self, chain: str | None = None) -> str:
        """Delete all rules of the chain, or of every chain."""
        if chain is None:
            return self._cmd("--flush")
        return self._cmd("--flush", chain)

    def zero(self, chain: str | None = None, rulenum: int | None = None) -> str:
        """Zero the packet and byte counters of all chains, a chain or one rule."""
        args: list[str | int] = ["--zero"]
        if chain is not None:
            args.append(chain)
            if rulenum is not None:
                args.append(rulenum)
        return self._cmd(*args)

    def new_chain(self, chain: str) -> str:
        """Create a user-defined chain."""
        return self._cmd("--new-chain", chain)

    def delete_chain(self, chain: str | None = None) -> str:
        """Delete an empty user-defined chain, or all of them."""
        if chain is None:
            return self._cmd("--delete-chain")
        return self._cmd("--delete-chain", chain)

    def policy(self, chain: str, target: str) -> str:
        """Set the policy of a chain."""
        return self._cmd("--policy", chain, target)

    def rename_chain(self, old_name: str, new_name: str) -> str:
        """Rename a user-defined chain."""
        return self._cmd("--rename-chain", old_name, new_name)

    def clear(self) -> None:
        """Reset the firewall to accept-all with no rules."""
        self.adapter.clear()
