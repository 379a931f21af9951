"""
iptables command adapters.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from iptkit.adapters.base import Adapter
from iptkit.adapters.cli import CliAdapter
from iptkit.adapters.fake import FakeAdapter
from iptkit.config import IptkitConfig, get_config


def get_adapter(config: IptkitConfig | None = None) -> Adapter:
    """Build the adapter selected by the configuration."""
    config = config or get_config()
    if config.adapter == "fake":
        return FakeAdapter()
    return CliAdapter(binary=config.binary, timeout=config.timeout)


__all__ = [
    "Adapter",
    "CliAdapter",
    "FakeAdapter",
    "get_adapter",
]
