"""
Configuration management for the instance deleter.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional


@dataclass
class DeleterConfig:
    """Process-wide settings, resolved once when the deleter is built."""

    max_threads: int = 32
    drain_timeout: int = 600
    dns_domain_name: Optional[str] = "bosh"
    skip_drain: Optional[str] = None
    verbose: bool = False
    log_file: str = "instance-deleter.log"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DeleterConfig":
        """
        Create configuration from environment variables.

        Priority: Environment variables > Defaults

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            DeleterConfig instance

        Raises:
            ValueError: If a numeric variable is not an integer
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def get_int(key: str, default: int) -> int:
            raw = env.get(key, "").strip()
            if not raw:
                return default
            try:
                return int(raw)
            except ValueError:
                raise ValueError(f"{key} must be an integer, got '{raw}'")

        def get_bool(key: str, default: bool) -> bool:
            raw = env.get(key, "").strip().lower()
            if raw in ("true", "1", "yes"):
                return True
            if raw in ("false", "0", "no"):
                return False
            return default

        dns_domain_name = env.get("DELETER_DNS_DOMAIN_NAME", defaults.dns_domain_name)
        if dns_domain_name is not None and not dns_domain_name.strip():
            dns_domain_name = None

        return cls(
            max_threads=get_int("DELETER_MAX_THREADS", defaults.max_threads),
            drain_timeout=get_int("DELETER_DRAIN_TIMEOUT", defaults.drain_timeout),
            dns_domain_name=dns_domain_name,
            skip_drain=env.get("DELETER_SKIP_DRAIN") or None,
            verbose=get_bool("DELETER_VERBOSE", defaults.verbose),
            log_file=env.get("DELETER_LOG_FILE") or defaults.log_file,
        )
