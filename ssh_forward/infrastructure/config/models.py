"""
Configuration models and data structures.

This module defines the configuration models used throughout the application,
providing type safety and validation for configuration values.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from ...core.domain.models import PortMapping, ServerCredentials
from ...core.exceptions import ConfigurationError

DEFAULT_CONFIG_FILE = "cfg.toml"


def _normalize_key(key: Any) -> str:
    """Lower-case a key and drop separators so KeyPath, key_path and keypath match."""
    return str(key).lower().replace("_", "").replace("-", "")


def _pick(data: Dict[str, Any], aliases: Dict[str, str]) -> Dict[str, Any]:
    """Map raw keys onto dataclass field names, ignoring unknown keys."""
    result: Dict[str, Any] = {}
    for key, value in (data or {}).items():
        name = aliases.get(_normalize_key(key))
        if name is not None:
            result[name] = value
    return result


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Find a top-level section regardless of its spelling."""
    for key, value in (data or {}).items():
        if _normalize_key(key) == name:
            if not isinstance(value, dict):
                raise ConfigurationError(f"section '{key}' must be a table")
            return value
    return {}


@dataclass
class SSHConfig:
    """Upstream SSH server configuration."""
    address: str = ""
    user: str = ""
    password: str = ""
    key_path: str = ""
    passphrase: str = ""
    known_hosts: str = ""
    keepalive_interval: float = 0.0
    connect_timeout: float = 0.0

    _aliases = {
        "addr": "address",
        "address": "address",
        "host": "address",
        "user": "user",
        "username": "user",
        "password": "password",
        "keypath": "key_path",
        "key": "key_path",
        "privatekeypath": "key_path",
        "passphrase": "passphrase",
        "keypassphrase": "passphrase",
        "knownhosts": "known_hosts",
        "keepaliveinterval": "keepalive_interval",
        "connecttimeout": "connect_timeout",
    }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SSHConfig':
        return cls(**_pick(data, cls._aliases))

    def to_credentials(self) -> ServerCredentials:
        return ServerCredentials(
            address=self.address,
            username=self.user,
            password=self.password or None,
            key_path=self.key_path or None,
            passphrase=self.passphrase or None
        )


@dataclass
class ForwardingConfig:
    """Listener and relay settings shared by every session."""
    listen_host: str = ""
    max_connections: int = 0
    dial_timeout: float = 0.0
    buffer_size: int = 65536
    shutdown_timeout: float = 5.0
    isolate_failures: bool = True

    _aliases = {
        "listenhost": "listen_host",
        "maxconnections": "max_connections",
        "dialtimeout": "dial_timeout",
        "buffersize": "buffer_size",
        "shutdowntimeout": "shutdown_timeout",
        "isolatefailures": "isolate_failures",
    }

    def __post_init__(self) -> None:
        if self.max_connections < 0:
            raise ConfigurationError("max_connections must not be negative")
        if self.dial_timeout < 0:
            raise ConfigurationError("dial_timeout must not be negative")
        if self.buffer_size < 1:
            raise ConfigurationError("buffer_size must be positive")
        if self.shutdown_timeout < 0:
            raise ConfigurationError("shutdown_timeout must not be negative")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ForwardingConfig':
        return cls(**_pick(data, cls._aliases))


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    ssh_level: str = "WARNING"
    log_directory: str = "logs"
    max_file_size: str = "10 MB"
    backup_count: int = 5
    console_enabled: bool = True
    file_enabled: bool = False

    _aliases = {
        "level": "level",
        "sshlevel": "ssh_level",
        "logdirectory": "log_directory",
        "maxfilesize": "max_file_size",
        "backupcount": "backup_count",
        "consoleenabled": "console_enabled",
        "fileenabled": "file_enabled",
    }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LoggingConfig':
        return cls(**_pick(data, cls._aliases))


@dataclass
class ApplicationConfig:
    """Main application configuration."""

    ssh: SSHConfig = field(default_factory=SSHConfig)
    ports: Dict[str, str] = field(default_factory=dict)
    forwarding: ForwardingConfig = field(default_factory=ForwardingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    config_file_path: Optional[str] = None

    def port_mappings(self) -> List[PortMapping]:
        """
        Build the port mappings, validating every entry.

        Raises:
            ConfigurationError: If any entry is malformed
        """
        mappings = []
        for local, remote in self.ports.items():
            try:
                mappings.append(PortMapping.from_entry(
                    local, remote, self.forwarding.listen_host))
            except ConfigurationError as e:
                raise ConfigurationError(f"invalid port mapping '{local}' = '{remote}': {e}")
        return mappings

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "ssh": asdict(self.ssh),
            "ports": dict(self.ports),
            "forwarding": asdict(self.forwarding),
            "logging": asdict(self.logging),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ApplicationConfig':
        """Create configuration from dictionary."""
        ports = _section(data, "ports")

        return cls(
            ssh=SSHConfig.from_dict(_section(data, "ssh")),
            ports={str(k): str(v) for k, v in ports.items()},
            forwarding=ForwardingConfig.from_dict(_section(data, "forwarding")),
            logging=LoggingConfig.from_dict(_section(data, "logging")),
            config_file_path=data.get("config_file_path")
        )
