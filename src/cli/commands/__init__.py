"""CLI command modules."""

from .context import context
from .identity import identity
from .onboard import onboard, status

__all__ = [
    "context",
    "identity",
    "onboard",
    "status",
]
