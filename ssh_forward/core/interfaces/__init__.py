"""
Core interfaces defining the contracts between the forwarding components.
"""

from .lifecycle import IStartable, IStoppable, IHealthCheckable
from .tunnel import ITunnelClient

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "ITunnelClient",
]
