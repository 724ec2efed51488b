"""Provisioner CLI - Deploy and update commands"""

import click
from provisioner.base import ClusterCommand
from provisioner.models.requests import DeploymentOverrides
from provisioner.ui_components import status_markup


def cross_account_options(func):
    """Attach --target-account/--role-name/--external-id to a command."""
    func = click.option(
        "--external-id", help="External id required by the role's trust policy"
    )(func)
    func = click.option("--role-name", help="Role to assume in the target account")(func)
    func = click.option(
        "--target-account", help="12-digit AWS account to deploy into"
    )(func)
    return func


class DeployCommand(ClusterCommand):
    """Start a stack deployment for a cluster."""

    def __init__(self, update: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.update = update

    def execute(
        self,
        cluster_id: str,
        parameters: tuple = (),
        tags: tuple = (),
        target_account: str = None,
        role_name: str = None,
        external_id: str = None,
    ) -> None:
        """Execute deploy/update command."""
        command_name = "update" if self.update else "deploy"
        service = self.ensure_cluster_service(cluster_id, command_name)

        overrides = DeploymentOverrides.from_pairs(parameters, tags)
        delegation = self.delegation_from_options(target_account, role_name, external_id)

        details = {}
        if delegation:
            details["Target account"] = delegation.target_account_id
        self.show_header(
            title="Update Cluster" if self.update else "Deploy Cluster",
            cluster=cluster_id,
            details=details,
        )

        if self.update:
            outcome = service.update_deployment(cluster_id, overrides, delegation)
        else:
            outcome = service.initiate_deployment(cluster_id, overrides, delegation)

        if self.json_output:
            self.output_json(outcome.to_dict())
            return

        self.console.print()
        self.print_success(f"Stack {outcome.operation.value} started: {outcome.stack_name}")
        self.console.print(f"  Stack ID: [cyan]{outcome.deployment_id}[/cyan]")
        self.console.print(f"  Engine status: [cyan]{outcome.status}[/cyan]")
        self.console.print(f"  Cluster status: {status_markup(outcome.cluster_status)}")
        self.print_dim(f"\nCheck progress with: provisioner status {cluster_id}\n")


@click.command()
@click.argument("cluster_id")
@click.option(
    "--parameter",
    "-p",
    "parameters",
    multiple=True,
    help="Extra stack parameter KEY=VALUE (repeatable)",
)
@click.option("--tag", "-t", "tags", multiple=True, help="Extra stack tag KEY=VALUE (repeatable)")
@cross_account_options
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
def deploy(
    cluster_id, parameters, tags, target_account, role_name, external_id, verbose, json_output
):
    """
    Deploy a cluster

    Creates the cluster's stack, or updates it when one already exists.
    Rejected while a deployment is in progress.
    """
    cmd = DeployCommand(verbose=verbose, json_output=json_output)
    cmd.run(
        cluster_id=cluster_id,
        parameters=parameters,
        tags=tags,
        target_account=target_account,
        role_name=role_name,
        external_id=external_id,
    )


@click.command()
@click.argument("cluster_id")
@click.option(
    "--parameter",
    "-p",
    "parameters",
    multiple=True,
    help="Extra stack parameter KEY=VALUE (repeatable)",
)
@click.option("--tag", "-t", "tags", multiple=True, help="Extra stack tag KEY=VALUE (repeatable)")
@cross_account_options
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
def update(
    cluster_id, parameters, tags, target_account, role_name, external_id, verbose, json_output
):
    """
    Update a deployed cluster

    Re-applies the cluster's template to its existing stack.
    """
    cmd = DeployCommand(update=True, verbose=verbose, json_output=json_output)
    cmd.run(
        cluster_id=cluster_id,
        parameters=parameters,
        tags=tags,
        target_account=target_account,
        role_name=role_name,
        external_id=external_id,
    )
