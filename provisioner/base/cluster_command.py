"""
Cluster Command Base Class

Base class for commands that act on clusters.
Provides automatic service initialization.
"""

from typing import Optional
from .base_command import BaseCommand
from provisioner.models.requests import DelegationRequest, parse_delegation
from provisioner.services import ClusterService


class ClusterCommand(BaseCommand):
    """
    Base class for cluster commands.

    Provides:
    - Lazy ClusterService wired from configuration
    - Cross-account option parsing
    """

    def __init__(
        self,
        verbose: bool = False,
        json_output: bool = False,
        config=None,
        service: Optional[ClusterService] = None,
    ):
        super().__init__(verbose=verbose, json_output=json_output, config=config)
        self.cluster_service = service

    def ensure_cluster_service(self, subject: str, command_name: str) -> ClusterService:
        """
        Ensure ClusterService is initialized.

        Args:
            subject: Log subject (cluster id, or "global")
            command_name: Command name for the log file

        Returns:
            ClusterService instance
        """
        if self.logger is None:
            self.init_logger(subject, command_name)
        if self.cluster_service is None:
            self.cluster_service = ClusterService.from_config(self.config, self.logger)
        return self.cluster_service

    @staticmethod
    def delegation_from_options(
        target_account: Optional[str],
        role_name: Optional[str],
        external_id: Optional[str],
    ) -> Optional[DelegationRequest]:
        """
        Build a delegation request from CLI options.

        Returns:
            DelegationRequest, or None when no target account was given

        Raises:
            ValidationError: If the options are incomplete or malformed
        """
        if not target_account:
            return None
        return parse_delegation(
            {
                "target_account_id": target_account,
                "role_name": role_name or "",
                "external_id": external_id,
            }
        )
