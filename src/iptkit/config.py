"""
Configuration management for iptkit.

Loads settings from environment variables or a .env file.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Check common locations for .env
ENV_LOCATIONS = [
    Path.home() / ".iptkit" / ".env",
    Path.home() / ".config" / "iptkit" / ".env",
    Path.cwd() / ".env",
]

ADAPTERS = ("cli", "fake")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_env_file() -> Path | None:
    """Load the first .env file found in the common locations."""
    for env_path in ENV_LOCATIONS:
        if env_path.exists():
            load_dotenv(env_path)
            return env_path
    return None


@dataclass
class IptkitConfig:
    """Runtime configuration."""

    # iptables binary used by the CLI adapter
    binary: str = "iptables"

    # Seconds before a command is abandoned
    timeout: float = 30.0

    # Adapter used when none is passed explicitly: cli or fake
    adapter: str = "cli"

    log_level: str = "INFO"

    def __post_init__(self):
        if self.adapter not in ADAPTERS:
            raise ValueError(f"Unknown adapter: {self.adapter} (expected one of {', '.join(ADAPTERS)})")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level} (expected one of {', '.join(LOG_LEVELS)})")

    @classmethod
    def from_env(cls) -> "IptkitConfig":
        """Load configuration from environment variables."""
        return cls(
            binary=os.getenv("IPTKIT_BINARY", "iptables"),
            timeout=float(os.getenv("IPTKIT_TIMEOUT", "30")),
            adapter=os.getenv("IPTKIT_ADAPTER", "cli").lower(),
            log_level=os.getenv("IPTKIT_LOG_LEVEL", "INFO").upper(),
        )


# Global config instance
_config: IptkitConfig | None = None


def get_config() -> IptkitConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        load_env_file()
        _config = IptkitConfig.from_env()
    return _config


def set_config(config: IptkitConfig | None) -> None:
    """Set the global configuration instance (None reloads on next access)."""
    global _config
    _config = config
