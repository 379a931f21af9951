"""
Base class for iptables command adapters.

An adapter runs one iptables command line and returns its output. The
real adapter invokes the binary; the fake one answers from memory.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from abc import ABC, abstractmethod
from typing import Sequence


class Adapter(ABC):
    """Abstract base class for command adapters."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the adapter name."""
        pass

    @abstractmethod
    def execute(self, argv: Sequence[str]) -> str:
        """Run an iptables command.

        Args:
            argv: Arguments, without the binary name

        Returns:
            Command output

        Raises:
            CommandFailed: The command exited with a non-zero status
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Reset the firewall to accept-all with no rules or user chains."""
        pass
