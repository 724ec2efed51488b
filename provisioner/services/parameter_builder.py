"""
Parameter Builder

Turns a cluster record, its subnets and caller overrides into the
parameter and tag set for one stack operation.
"""

import re
from typing import Dict, List, Optional

from provisioner.cidr_allocator import SubnetAllocation
from provisioner.config import ProvisionerConfig
from provisioner.constants import (
    STACK_CAPABILITIES,
    STACK_NAME_MAX_LENGTH,
    STACK_TIMEOUT_MINUTES,
)
from provisioner.exceptions import ValidationError
from provisioner.models.cluster import ClusterRecord
from provisioner.models.deployment import DeploymentParameters
from provisioner.models.requests import DeploymentOverrides

# arn:aws:cloudformation:<region>:<account>:stack/<name>/<uuid>
STACK_ARN_PATTERN = re.compile(r"^arn:[^:]+:cloudformation:[^:]*:[^:]*:stack/([^/]+)/.+$")


def sanitize_name(name: str) -> str:
    """Replace anything outside [A-Za-z0-9-] with '-' and collapse runs."""
    return re.sub(r"-+", "-", re.sub(r"[^A-Za-z0-9-]", "-", name))


class ParameterBuilder:
    """Builds DeploymentParameters for create and update calls."""

    def __init__(self, config: ProvisionerConfig):
        self.config = config

    def stack_name_for_create(self, cluster: ClusterRecord) -> str:
        """
        Stack name for a first deployment.

        Format: <prefix>-<sanitized cluster name>-<first 8 of cluster id>
        """
        name = (
            f"{self.config.stack_name_prefix}-{sanitize_name(cluster.name)}"
            f"-{cluster.cluster_id[:8]}"
        )
        name = re.sub(r"-+", "-", name)
        if len(name) > STACK_NAME_MAX_LENGTH or not re.match(r"^[A-Za-z]", name):
            raise ValidationError(
                "Cannot derive a valid stack name for cluster",
                context=f"Derived: {name!r}",
            )
        return name

    @staticmethod
    def stack_name_from_deployment_id(deployment_id: str) -> str:
        """
        Extract the stack name from a stored stack ARN.

        Raises:
            ValidationError: If the id is not a stack ARN
        """
        match = STACK_ARN_PATTERN.match(deployment_id or "")
        if not match:
            raise ValidationError(
                "Stored deployment id is not a stack ARN",
                context=f"Got: {deployment_id!r}",
            )
        return match.group(1)

    def default_parameters(
        self, cluster: ClusterRecord, subnets: SubnetAllocation
    ) -> List[Dict[str, str]]:
        values = [
            ("EnvironmentName", cluster.name),
            ("VpcCIDR", cluster.cidr),
            ("TemplateS3Bucket", self.config.template_bucket),
            ("TemplateS3KeyPrefix", self.config.template_key_prefix),
            ("ClusterName", cluster.name),
            ("ClusterType", cluster.type.display_name),
            ("ClusterEnvironment", cluster.environment),
        ]
        tiers = (
            ("PublicSubnet", subnets.public),
            ("PrivateAppSubnet", subnets.private_app),
            ("PrivateDBSubnet", subnets.private_db),
        )
        for prefix, cidrs in tiers:
            for index, cidr in enumerate(cidrs, start=1):
                values.append((f"{prefix}{index}CIDR", cidr))

        return [{"ParameterKey": key, "ParameterValue": value} for key, value in values]

    def default_tags(self, cluster: ClusterRecord) -> List[Dict[str, str]]:
        return [
            {"Key": "ClusterId", "Value": cluster.cluster_id},
            {"Key": "ClusterName", "Value": cluster.name},
            {"Key": "ClusterType", "Value": cluster.type.value},
            {"Key": "ManagedBy", "Value": self.config.managed_by},
        ]

    def build(
        self,
        cluster: ClusterRecord,
        subnets: SubnetAllocation,
        overrides: Optional[DeploymentOverrides],
        template_url: str,
        update: bool = False,
    ) -> DeploymentParameters:
        """
        Build the full parameter set.

        Overrides are appended after the defaults; duplicate keys are left
        for the engine to resolve.

        Args:
            cluster: Cluster being deployed
            subnets: Allocation derived from the cluster's CIDR
            overrides: Caller-supplied parameters and tags
            template_url: Resolved template URL
            update: Take the stack name from the stored deployment id

        Returns:
            DeploymentParameters

        Raises:
            ValidationError: If a stack name cannot be derived
        """
        overrides = overrides or DeploymentOverrides()

        if update:
            stack_name = self.stack_name_from_deployment_id(cluster.deployment_id)
        else:
            stack_name = self.stack_name_for_create(cluster)

        return DeploymentParameters(
            stack_name=stack_name,
            template_url=template_url,
            parameters=self.default_parameters(cluster, subnets)
            + overrides.parameter_dicts(),
            tags=self.default_tags(cluster) + overrides.tag_dicts(),
            capabilities=list(STACK_CAPABILITIES),
            timeout_in_minutes=STACK_TIMEOUT_MINUTES,
            enable_termination_protection=True,
        )
