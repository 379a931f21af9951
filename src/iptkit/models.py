"""
iptables data models.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from dataclasses import dataclass, field
from typing import NamedTuple


BUILTIN_CHAINS = ("INPUT", "FORWARD", "OUTPUT")

DEFAULT_TARGET = "ACCEPT"


class Negatable(NamedTuple):
    """A match value that may carry a leading ``!``."""

    negated: bool
    value: str

    def __str__(self) -> str:
        prefix = "!" if self.negated else ""
        return f"{prefix}{self.value}"


@dataclass(frozen=True)
class Rule:
    """Single iptables rule.

    ``raw`` holds the canonical flag text the rule was parsed from. Flags
    outside the modelled subset (match extensions, counters, ...) only live
    there, but still take part in equality.
    """

    protocol: Negatable | None = None
    source: Negatable | None = None
    destination: Negatable | None = None
    match: str | None = None
    jump: str | None = None
    goto: str | None = None
    in_interface: Negatable | None = None
    out_interface: Negatable | None = None
    fragment: str | None = None
    set_counters: str | None = None
    raw: str | None = None

    def __str__(self) -> str:
        from iptkit.parser import serialize_rule

        return serialize_rule(self)


@dataclass
class Chain:
    """iptables chain with its policy and ordered rules.

    A ``target`` of ``None`` marks a user-defined chain without a policy.
    """

    name: str
    target: str | None = DEFAULT_TARGET
    rules: list[Rule] = field(default_factory=list)

    @property
    def builtin(self) -> bool:
        """Check if this is one of the built-in filter chains."""
        return self.name in BUILTIN_CHAINS

    def rule_count(self) -> int:
        """Get number of rules in chain."""
        return len(self.rules)
