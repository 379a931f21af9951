"""
iptkit - structured access to iptables rules

Parses iptables rule text and ``--list-rules`` dumps into structured
objects, and runs iptables commands through interchangeable adapters:
the real binary, or an in-memory firewall for tests.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

__version__ = "0.1.0"
__author__ = "DNS Science.io"
__copyright__ = "Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company"

from iptkit.models import Chain, Negatable, Rule
from iptkit.parser import parse_dump, parse_rule, serialize_chains, serialize_rule
from iptkit.state import FirewallState
from iptkit.adapters import Adapter, CliAdapter, FakeAdapter
from iptkit.client import Iptables

__all__ = [
    "Chain",
    "Negatable",
    "Rule",
    "parse_dump",
    "parse_rule",
    "serialize_chains",
    "serialize_rule",
    "FirewallState",
    "Adapter",
    "CliAdapter",
    "FakeAdapter",
    "Iptables",
]
