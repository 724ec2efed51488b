"""Provisioner CLI - Cross-account role check"""

import click
from provisioner.base import ClusterCommand


class RolesValidateCommand(ClusterCommand):
    """Trial-assume a cross-account role with a minimum-length session."""

    def execute(self, target_account: str, role_name: str, external_id: str = None) -> None:
        """Execute roles:validate command."""
        service = self.ensure_cluster_service("global", "roles-validate")
        delegation = self.delegation_from_options(target_account, role_name, external_id)

        self.show_header(
            title="Validate Role",
            details={"Account": target_account, "Role": role_name},
        )

        self.logger.step(f"Assuming {role_name} in {target_account}")
        result = service.validate_delegation(delegation)

        if self.json_output:
            self.output_json(result.to_dict(), exit_code=0 if result.is_valid else 1)
            return

        if result.is_valid:
            self.print_success(f"Role {result.subject} can be assumed")
            return

        for error in result.errors:
            self.print_error(error)
        self.print_dim(f"Logs saved to: {self.logger.log_path}")
        raise SystemExit(1)


@click.command(name="roles:validate")
@click.option("--target-account", required=True, help="12-digit AWS account")
@click.option("--role-name", required=True, help="Role to assume in the target account")
@click.option("--external-id", help="External id required by the role's trust policy")
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
def roles_validate(target_account, role_name, external_id, verbose, json_output):
    """
    Check a cross-account role

    Checks the account allow-list and external id, then assumes the role for
    the shortest session STS allows. Nothing is deployed.
    """
    cmd = RolesValidateCommand(verbose=verbose, json_output=json_output)
    cmd.run(target_account=target_account, role_name=role_name, external_id=external_id)
