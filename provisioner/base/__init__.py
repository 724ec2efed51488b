"""
Provisioner CLI Base Command Classes

Abstract base classes for consistent command structure.
"""

from .base_command import BaseCommand
from .cluster_command import ClusterCommand

__all__ = [
    "BaseCommand",
    "ClusterCommand",
]
