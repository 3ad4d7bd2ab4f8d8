"""
SSH client: authentication and channel opening over one shared connection.
"""

from .client import SSHClient, login, load_private_key, build_auth_methods

__all__ = [
    "SSHClient",
    "login",
    "load_private_key",
    "build_auth_methods",
]
