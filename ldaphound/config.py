"""
ldapHound Configuration Module
==============================

Centralized configuration management for a collection run.

Design Decision:
- Configuration is a dataclass tree that can be passed through the pipeline
- Cache settings are separate from connection settings so a resumed run
  needs no LDAP configuration at all
- Timeouts bound connection establishment only; paged query rounds are not
  individually time-bounded
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class LDAPConfig:
    """Configuration for LDAP data collection.

    Attributes:
        use_ssl: Whether to use LDAPS (port 636) vs LDAP (port 389)
        port: Explicit port, auto-detected from use_ssl when None
        page_size: Page size for paged searches (below the 1000 MaxPageSize)
        timeout: Connection establishment timeout in seconds
        search_filter: Filter applied to every naming context
        sd_flags: Security descriptor control flags (owner + DACL)
    """
    use_ssl: bool = False
    port: Optional[int] = None  # Auto-detect based on use_ssl
    page_size: int = 999
    timeout: int = 30
    search_filter: str = "(objectClass=*)"
    sd_flags: int = 0x05

    def __post_init__(self):
        if self.port is None:
            self.port = 636 if self.use_ssl else 389


@dataclass
class CacheConfig:
    """Configuration for the disk-backed record store.

    Attributes:
        enabled: Stream records to disk instead of keeping them in memory
        resume: Replay an existing cache file instead of querying the network
        cache_dir: Root directory for per-domain cache files
        buffer_capacity: Records buffered in memory before a flush
        filename: Name of the record file inside the domain directory
    """
    enabled: bool = False
    resume: bool = False
    cache_dir: str = ".ldaphound-cache"
    buffer_capacity: int = 1000
    filename: str = "searched_objects.bin"

    def path_for(self, domain: str) -> Path:
        """Return the cache file path for a domain."""
        return Path(self.cache_dir) / domain.lower() / self.filename


@dataclass
class LdapHoundConfig:
    """Main configuration container.

    Usage:
        config = LdapHoundConfig()  # Uses all defaults
        config = LdapHoundConfig(cache=CacheConfig(enabled=True))
    """
    ldap: LDAPConfig = field(default_factory=LDAPConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)

    # Verbosity level for logging
    verbose: bool = True
    debug: bool = False


# Default global configuration instance
_default_config: Optional[LdapHoundConfig] = None


def get_config() -> LdapHoundConfig:
    """Get the global configuration instance."""
    global _default_config
    if _default_config is None:
        _default_config = LdapHoundConfig()
    return _default_config


def set_config(config: LdapHoundConfig) -> None:
    """Set the global configuration instance."""
    global _default_config
    _default_config = config
