"""
Error types raised by adapters and the simulated firewall.

Every failure carries the exit status the iptables binary would have
returned, so callers can treat the real and simulated backends alike.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

# iptables exit statuses
STATUS_ERROR = 1
STATUS_BAD_COMMAND = 2
STATUS_NOT_EXECUTABLE = 127


class IptablesError(Exception):
    """Base exception for iptkit errors."""
    pass


class CommandFailed(IptablesError):
    """An iptables command finished with a non-zero exit status."""

    status = STATUS_ERROR

    def __init__(
        self,
        message: str = "",
        argv: list[str] | None = None,
        status: int | None = None,
        output: str = "",
    ):
        super().__init__(message or self.__doc__)
        self.argv = list(argv) if argv else []
        if status is not None:
            self.status = status
        self.output = output


class NoSuchChain(CommandFailed):
    """No chain/target/match by that name."""
    pass


class NoSuchRule(CommandFailed):
    """Bad rule (does a matching rule exist in that chain?)."""
    pass


class ChainAlreadyExists(CommandFailed):
    """Chain already exists."""
    pass


class ChainNotEmpty(CommandFailed):
    """Directory not empty."""
    pass


class InvalidRuleNumber(CommandFailed):
    """Index of insertion too big."""
    pass


class BuiltinChain(CommandFailed):
    """Operation not permitted on a built-in chain."""
    pass


class UnsupportedOperation(CommandFailed):
    """Command not supported by this backend."""

    status = STATUS_BAD_COMMAND


class CommandTimeout(CommandFailed):
    """Command did not finish before the timeout."""
    pass
