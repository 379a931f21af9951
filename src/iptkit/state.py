"""
Simulated iptables filter table.

Keeps chains and rules in memory and answers the same commands the
iptables binary does, with the same ordering and failures. Used by the
fake adapter to test code without touching the host firewall.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
import threading
import dataclasses

from iptkit.errors import (
    BuiltinChain,
    ChainAlreadyExists,
    ChainNotEmpty,
    InvalidRuleNumber,
    NoSuchChain,
    NoSuchRule,
)
from iptkit.models import BUILTIN_CHAINS, Chain, Rule
from iptkit.parser import (
    RuleSpec,
    apply_default_masks,
    canonical_order,
    parse_rule,
    serialize_chain,
    serialize_chains,
    spec_to_args,
)

logger = logging.getLogger(__name__)


def empty_table() -> dict[str, Chain]:
    """Get the built-in chains of an empty filter table."""
    return {name: Chain(name=name) for name in BUILTIN_CHAINS}


def ingest_rule(spec: RuleSpec) -> Rule:
    """Normalize a rule the way iptables does when it accepts it."""
    return parse_rule(canonical_order(apply_default_masks(spec_to_args(spec))))


class FirewallState:
    """In-memory filter table.

    Every operation runs under one lock. Mutations build a new chain
    mapping and swap it in, so a failed command leaves the table as it was.

    Usage:
        state = FirewallState()
        state.append("INPUT", "-s 10.0.0.0/8 -j DROP")
        print(state.list_all())
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._chains = empty_table()

    # ==========================================================================
    # Helpers (caller holds the lock)
    # ==========================================================================

    def _chain(self, name: str) -> Chain:
        chain = self._chains.get(name)
        if chain is None:
            raise NoSuchChain(f"No chain/target/match by that name: {name}")
        return chain

    def _commit(self, chain: Chain, old_name: str | None = None) -> None:
        """Replace one chain, keeping its position in the table."""
        old_name = old_name or chain.name
        chains = {}
        for name, current in self._chains.items():
            if name == old_name:
                chains[chain.name] = chain
            else:
                chains[name] = current
        self._chains = chains

    @staticmethod
    def _check_rulenum(chain: Chain, rulenum: int, upper: int) -> None:
        if not 1 <= rulenum <= upper:
            raise InvalidRuleNumber(
                f"Invalid rule number {rulenum} for chain {chain.name} "
                f"({chain.rule_count()} rules)"
            )

    # ==========================================================================
    # Rule commands
    # ==========================================================================

    def append(self, chain_name: str, rule: RuleSpec) -> Rule:
        """Append a rule to the end of a chain."""
        rule = ingest_rule(rule)
        with self._lock:
            chain = self._chain(chain_name)
            self._commit(dataclasses.replace(chain, rules=chain.rules + [rule]))
        logger.debug(f"Appended to {chain_name}: {rule.raw}")
        return rule

    def insert(self, chain_name: str, rulenum: int, rule: RuleSpec) -> Rule:
        """Insert a rule so that it becomes rule number ``rulenum`` (1-based)."""
        rule = ingest_rule(rule)
        with self._lock:
            chain = self._chain(chain_name)
            self._check_rulenum(chain, rulenum, chain.rule_count() + 1)
            rules = list(chain.rules)
            rules.insert(rulenum - 1, rule)
            self._commit(dataclasses.replace(chain, rules=rules))
        logger.debug(f"Inserted into {chain_name} at {rulenum}: {rule.raw}")
        return rule

    def replace(self, chain_name: str, rulenum: int, rule: RuleSpec) -> Rule:
        """Replace rule number ``rulenum`` (1-based) of a chain."""
        rule = ingest_rule(rule)
        with self._lock:
            chain = self._chain(chain_name)
            self._check_rulenum(chain, rulenum, chain.rule_count())
            rules = list(chain.rules)
            rules[rulenum - 1] = rule
            self._commit(dataclasses.replace(chain, rules=rules))
        logger.debug(f"Replaced rule {rulenum} of {chain_name}: {rule.raw}")
        return rule

    def delete(self, chain_name: str, rule: RuleSpec) -> Rule:
        """Delete the first rule equal to ``rule`` from a chain."""
        rule = ingest_rule(rule)
        with self._lock:
            chain = self._chain(chain_name)
            if rule not in chain.rules:
                raise NoSuchRule(
                    f"Bad rule (does a matching rule exist in {chain_name}?): {rule.raw}"
                )
            rules = list(chain.rules)
            rules.remove(rule)
            self._commit(dataclasses.replace(chain, rules=rules))
        logger.debug(f"Deleted from {chain_name}: {rule.raw}")
        return rule

    def delete_number(self, chain_name: str, rulenum: int) -> Rule:
        """Delete rule number ``rulenum`` (1-based) of a chain."""
        with self._lock:
            chain = self._chain(chain_name)
            self._check_rulenum(chain, rulenum, chain.rule_count())
            rules = list(chain.rules)
            rule = rules.pop(rulenum - 1)
            self._commit(dataclasses.replace(chain, rules=rules))
        logger.debug(f"Deleted rule {rulenum} of {chain_name}")
        return rule

    def check(self, chain_name: str, rule: RuleSpec) -> bool:
        """Check whether a rule equal to ``rule`` exists in a chain."""
        rule = ingest_rule(rule)
        with self._lock:
            chain = self._chains.get(chain_name)
            return chain is not None and rule in chain.rules

    # ==========================================================================
    # Chain commands
    # ==========================================================================

    def set_policy(self, chain_name: str, target: str) -> None:
        """Set the policy of a chain."""
        with self._lock:
            chain = self._chain(chain_name)
            self._commit(dataclasses.replace(chain, target=target))
        logger.debug(f"Policy of {chain_name} set to {target}")

    def new_chain(self, chain_name: str) -> None:
        """Create a user-defined chain."""
        with self._lock:
            if chain_name in self._chains:
                raise ChainAlreadyExists(f"Chain already exists: {chain_name}")
            chains = dict(self._chains)
            chains[chain_name] = Chain(name=chain_name, target=None)
            self._chains = chains
        logger.debug(f"Created chain {chain_name}")

    def delete_chain(self, chain_name: str | None = None) -> None:
        """Delete a user-defined chain, or all of them when no name is given.

        Chains must be empty.
        """
        with self._lock:
            if chain_name is None:
                doomed = [c for c in self._chains.values() if not c.builtin]
            else:
                chain = self._chain(chain_name)
                if chain.builtin:
                    raise BuiltinChain(f"Cannot delete built-in chain: {chain_name}")
                doomed = [chain]

            for chain in doomed:
                if chain.rules:
                    raise ChainNotEmpty(f"Chain is not empty: {chain.name}")

            names = {chain.name for chain in doomed}
            self._chains = {
                name: chain for name, chain in self._chains.items() if name not in names
            }
        logger.debug(f"Deleted chains: {', '.join(sorted(names)) or '-'}")

    def rename_chain(self, old_name: str, new_name: str) -> None:
        """Rename a user-defined chain, keeping its position."""
        with self._lock:
            chain = self._chain(old_name)
            if chain.builtin:
                raise BuiltinChain(f"Cannot rename built-in chain: {old_name}")
            if new_name in self._chains:
                raise ChainAlreadyExists(f"Chain already exists: {new_name}")
            self._commit(dataclasses.replace(chain, name=new_name), old_name=old_name)
        logger.debug(f"Renamed chain {old_name} to {new_name}")

    def flush(self, chain_name: str | None = None) -> None:
        """Delete all rules of a chain, or of every chain."""
        with self._lock:
            if chain_name is None:
                self._chains = {
                    name: dataclasses.replace(chain, rules=[]) for name, chain in self._chains.items()
                }
            else:
                chain = self._chain(chain_name)
                self._commit(dataclasses.replace(chain, rules=[]))
        logger.debug(f"Flushed {chain_name or 'all chains'}")

    def zero(self, chain_name: str | None = None, rulenum: int | None = None) -> None:
        """Zero packet and byte counters.

        Counters are not modelled, so this only validates its arguments.
        """
        with self._lock:
            if chain_name is None:
                return
            chain = self._chain(chain_name)
            if rulenum is not None:
                self._check_rulenum(chain, rulenum, chain.rule_count())

    # ==========================================================================
    # Listing
    # ==========================================================================

    def chains(self) -> list[Chain]:
        """Get copies of all chains in registration order."""
        with self._lock:
            return [dataclasses.replace(chain, rules=list(chain.rules)) for chain in self._chains.values()]

    def get_chain(self, chain_name: str) -> Chain:
        """Get a copy of one chain."""
        with self._lock:
            chain = self._chain(chain_name)
            return dataclasses.replace(chain, rules=list(chain.rules))

    def list_all(self) -> str:
        """Render the table like ``iptables -S``."""
        with self._lock:
            return serialize_chains(list(self._chains.values()))

    def list_chain(self, chain_name: str) -> str:
        """Render one chain like ``iptables -S <chain>``."""
        with self._lock:
            return serialize_chain(self._chain(chain_name))

    def reset(self) -> None:
        """Restore the empty built-in table."""
        with self._lock:
            self._chains = empty_table()
        logger.debug("Firewall state reset")

    clear = reset
