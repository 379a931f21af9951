"""
Adapter answering iptables commands from an in-memory table.

Use it in tests instead of CliAdapter. Each adapter owns a FirewallState
(or shares one passed in), so independent tests never see each other's
rules.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
import re
from typing import Callable, Sequence

from iptkit.adapters.base import Adapter
from iptkit.errors import CommandFailed, NoSuchRule, UnsupportedOperation
from iptkit.state import FirewallState

logger = logging.getLogger(__name__)

# Rule number, optionally signed
RULENUM = re.compile(r"[+-]?\d+")

# Short options -> long command names
COMMAND_ALIASES = {
    "-A": "--append",
    "-C": "--check",
    "-D": "--delete",
    "-I": "--insert",
    "-R": "--replace",
    "-S": "--list-rules",
    "-P": "--policy",
    "-N": "--new-chain",
    "-X": "--delete-chain",
    "-F": "--flush",
    "-Z": "--zero",
    "-E": "--rename-chain",
}


def _expect(args: list[str], *counts: int) -> None:
    if len(args) not in counts:
        raise UnsupportedOperation(f"Unexpected arguments: {' '.join(args) or '(none)'}")


def _is_rulenum(token: str) -> bool:
    return RULENUM.fullmatch(token) is not None


def _rulenum(token: str) -> int:
    if not _is_rulenum(token):
        raise UnsupportedOperation(f"Invalid rule number `{token}'")
    return int(token)


class FakeAdapter(Adapter):
    """Simulated iptables backend.

    Usage:
        adapter = FakeAdapter()
        adapter.execute(["--append", "INPUT", "-s", "10.0.0.0/8", "-j", "DROP"])
        adapter.execute(["--list-rules", "INPUT"])
    """

    def __init__(self, state: FirewallState | None = None):
        self.state = state if state is not None else FirewallState()
        self._handlers: dict[str, Callable[[list[str]], str]] = {
            "--append": self._append,
            "--check": self._check,
            "--delete": self._delete,
            "--insert": self._insert,
            "--replace": self._replace,
            "--list-rules": self._list_rules,
            "--policy": self._policy,
            "--new-chain": self._new_chain,
            "--delete-chain": self._delete_chain,
            "--flush": self._flush,
            "--zero": self._zero,
            "--rename-chain": self._rename_chain,
        }

    @property
    def name(self) -> str:
        return "fake"

    def execute(self, argv: Sequence[str]) -> str:
        argv = [str(arg) for arg in argv]
        logger.debug(f"Fake iptables: {' '.join(argv)}")

        if not argv:
            raise UnsupportedOperation("No command specified", argv=argv)

        command = COMMAND_ALIASES.get(argv[0], argv[0])
        handler = self._handlers.get(command)
        if handler is None:
            raise UnsupportedOperation(f"Command not supported: {argv[0]}", argv=argv)

        try:
            return handler(argv[1:])
        except CommandFailed as e:
            e.argv = argv
            raise

    def clear(self) -> None:
        self.state.reset()

    # ==========================================================================
    # Command handlers
    # ==========================================================================

    def _append(self, args: list[str]) -> str:
        if not args:
            raise UnsupportedOperation("--append requires a chain")
        self.state.append(args[0], args[1:])
        return ""

    def _check(self, args: list[str]) -> str:
        if not args:
            raise UnsupportedOperation("--check requires a chain")
        self.state.get_chain(args[0])
        if not self.state.check(args[0], args[1:]):
            raise NoSuchRule(f"Bad rule (does a matching rule exist in {args[0]}?)")
        return ""

    def _delete(self, args: list[str]) -> str:
        if not args:
            raise UnsupportedOperation("--delete requires a chain")
        chain, rest = args[0], args[1:]
        if len(rest) == 1 and _is_rulenum(rest[0]):
            self.state.delete_number(chain, int(rest[0]))
        else:
            self.state.delete(chain, rest)
        return ""

    def _insert(self, args: list[str]) -> str:
        if not args:
            raise UnsupportedOperation("--insert requires a chain")
        chain, rest = args[0], args[1:]
        rulenum = 1
        if rest and _is_rulenum(rest[0]):
            rulenum, rest = int(rest[0]), rest[1:]
        self.state.insert(chain, rulenum, rest)
        return ""

    def _replace(self, args: list[str]) -> str:
        if len(args) < 2:
            raise UnsupportedOperation("--replace requires a chain and a rule number")
        self.state.replace(args[0], _rulenum(args[1]), args[2:])
        return ""

    def _list_rules(self, args: list[str]) -> str:
        _expect(args, 0, 1)
        if args:
            return self.state.list_chain(args[0])
        return self.state.list_all()

    def _policy(self, args: list[str]) -> str:
        _expect(args, 2)
        self.state.set_policy(args[0], args[1])
        return ""

    def _new_chain(self, args: list[str]) -> str:
        _expect(args, 1)
        self.state.new_chain(args[0])
        return ""

    def _delete_chain(self, args: list[str]) -> str:
        _expect(args, 0, 1)
        self.state.delete_chain(args[0] if args else None)
        return ""

    def _flush(self, args: list[str]) -> str:
        _expect(args, 0, 1)
        self.state.flush(args[0] if args else None)
        return ""

    def _zero(self, args: list[str]) -> str:
        _expect(args, 0, 1, 2)
        chain = args[0] if args else None
        rulenum = _rulenum(args[1]) if len(args) == 2 else None
        self.state.zero(chain, rulenum)
        return ""

    def _rename_chain(self, args: list[str]) -> str:
        _expect(args, 2)
        self.state.rename_chain(args[0], args[1])
        return ""
