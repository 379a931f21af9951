"""
Adapter running the iptables binary.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
import subprocess
from typing import Sequence

from iptkit.adapters.base import Adapter
from iptkit.errors import STATUS_NOT_EXECUTABLE, CommandFailed, CommandTimeout
from iptkit.logging_config import track_error

logger = logging.getLogger(__name__)

# Commands restoring an accept-all filter table
CLEAR_COMMANDS = [
    ["--policy", "INPUT", "ACCEPT"],
    ["--policy", "FORWARD", "ACCEPT"],
    ["--policy", "OUTPUT", "ACCEPT"],
    ["--table", "nat", "--flush"],
    ["--table", "mangle", "--flush"],
    ["--flush"],
    ["--delete-chain"],
]


class CliAdapter(Adapter):
    """Runs commands through the iptables binary.

    A zero exit status returns stdout, anything else raises CommandFailed
    carrying the status and stderr.
    """

    def __init__(self, binary: str = "iptables", timeout: float = 30.0):
        self.binary = binary
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "cli"

    def execute(self, argv: Sequence[str]) -> str:
        cmd = [self.binary, *argv]
        logger.debug(f"Running: {subprocess.list2cmdline(cmd)}", extra={"argv": cmd})

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            track_error("timeout", f"{self.binary} did not finish in {self.timeout}s", argv=cmd)
            raise CommandTimeout(
                f"Timed out after {self.timeout}s", argv=argv
            ) from e
        except OSError as e:
            track_error("spawn_failed", f"Cannot execute {self.binary}", argv=cmd, exception=e)
            raise CommandFailed(
                f"Cannot execute {self.binary}: {e}", argv=argv, status=STATUS_NOT_EXECUTABLE
            ) from e

        if result.returncode != 0:
            logger.debug(f"{self.binary} exited with {result.returncode}: {result.stderr.strip()}")
            raise CommandFailed(
                result.stderr.strip() or f"{self.binary} exited with {result.returncode}",
                argv=argv,
                status=result.returncode,
                output=result.stderr,
            )

        return result.stdout

    def clear(self) -> None:
        for argv in CLEAR_COMMANDS:
            self.execute(argv)
