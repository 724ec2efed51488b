"""
Provisioner Services

Business logic layer with clean service interfaces.
"""

from .cluster_store import ClusterStore
from .credential_service import CredentialDelegationManager
from .parameter_builder import ParameterBuilder
from .deployment_service import DeploymentOrchestrator
from .reconciler import StatusReconciler
from .cluster_service import ClusterService

__all__ = [
    "ClusterStore",
    "CredentialDelegationManager",
    "ParameterBuilder",
    "DeploymentOrchestrator",
    "StatusReconciler",
    "ClusterService",
]
