"""Configuration management for the SSDP client."""

import json
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models.common import DEFAULT_SEARCH_TARGET, SSDP_PORT


class DiscoveryConfig(BaseModel): # Nested under Config (BaseSettings)
    """Configuration for SSDP discovery runs."""

    duration_seconds: float = Field(default=10.0, gt=0, le=300, description="How long a discovery session listens for replies. Also sent as the MX wait hint.")
    search_target: str = Field(default=DEFAULT_SEARCH_TARGET, min_length=1, description="SSDP search target (ST).")
    port: int = Field(default=SSDP_PORT, ge=1, le=65535, description="Multicast destination port.")

    interfaces: List[str] = Field(default_factory=list, description="Local addresses to search from (e.g., ['192.168.1.10', 'fe80::1%eth0']). If empty, the default interface is used.")
    use_all_interfaces: bool = Field(default=False, description="Search from every local address found on active interfaces when no explicit interfaces are given.")
    include_ipv6: bool = Field(default=False, description="Include IPv6 addresses when enumerating interfaces.")
    multicast_ttl: int = Field(default=2, ge=1, le=255, description="Multicast TTL / hop limit for the M-SEARCH.")

    allowed_networks: List[str] = Field(default_factory=list, description="List of allowed network ranges (CIDR format) for responding hosts. If empty, all are allowed.")


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="console", description="Log format ('console' or 'json')")


class Config(BaseSettings):
    """Main configuration. Loads from environment variables prefixed with SSDP_CLIENT_."""

    model_config = SettingsConfigDict(
        env_prefix='SSDP_CLIENT_',
        env_nested_delimiter='__', # e.g., SSDP_CLIENT_DISCOVERY__DURATION_SECONDS
        extra='ignore',
        env_file='.env',
        env_file_encoding='utf-8'
    )

    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, file_path: Path) -> "Config":
        """Create configuration strictly from a JSON file.
        Environment variables are not layered on top.
        """
        with open(file_path) as f:
            config_data = json.load(f)
        return cls.model_validate(config_data)
