"""
Client implementations for upstream transports.
"""

from .ssh import SSHClient, login

__all__ = [
    "SSHClient",
    "login",
]
