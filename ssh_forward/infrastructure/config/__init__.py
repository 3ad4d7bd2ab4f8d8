"""
Configuration loading and models for the forwarder.
"""

from .models import (
    ApplicationConfig,
    SSHConfig,
    ForwardingConfig,
    LoggingConfig,
    DEFAULT_CONFIG_FILE,
)
from .loader import ConfigLoader

__all__ = [
    "ApplicationConfig",
    "SSHConfig",
    "ForwardingConfig",
    "LoggingConfig",
    "DEFAULT_CONFIG_FILE",
    "ConfigLoader",
]
