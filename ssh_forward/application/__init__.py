"""
Application layer: startup and shutdown orchestration.
"""

from .startup import ApplicationStartup

__all__ = [
    "ApplicationStartup",
]
