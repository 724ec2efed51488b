"""Provisioner CLI - Status command"""

import click
from rich.table import Table
from provisioner.base import ClusterCommand
from provisioner.commands.deploy import cross_account_options
from provisioner.ui_components import status_markup


class StatusCommand(ClusterCommand):
    """Reconcile and show a cluster's deployment status."""

    def execute(
        self,
        cluster_id: str,
        events: bool = False,
        target_account: str = None,
        role_name: str = None,
        external_id: str = None,
    ) -> None:
        """Execute status command."""
        service = self.ensure_cluster_service(cluster_id, "status")
        delegation = self.delegation_from_options(target_account, role_name, external_id)

        snapshot = service.refresh_status(
            cluster_id, include_events=events, delegation=delegation
        )

        if self.json_output:
            self.output_json(snapshot.to_dict())
            return

        self.show_header(title="Cluster Status", cluster=cluster_id)

        self.console.print(f"  Status: {status_markup(snapshot.cluster_status.value)}")
        self.console.print(f"  Deployment: [cyan]{snapshot.deployment_status}[/cyan]")
        if snapshot.deployment_id:
            self.console.print(f"  Stack ID: [dim]{snapshot.deployment_id}[/dim]")
        if snapshot.deployed_at:
            self.console.print(f"  Deployed at: [dim]{snapshot.deployed_at.isoformat()}[/dim]")
        if snapshot.stack_missing:
            self.print_warning(snapshot.error)

        if snapshot.stack_outputs:
            outputs = Table(
                title="Stack Outputs",
                show_header=True,
                header_style="bold cyan",
                title_justify="left",
                padding=(0, 1),
            )
            outputs.add_column("Key", style="cyan", no_wrap=True)
            outputs.add_column("Value", style="white")
            for key in sorted(snapshot.stack_outputs):
                outputs.add_row(key, snapshot.stack_outputs[key])
            self.console.print()
            self.console.print(outputs)

        if snapshot.recent_events:
            table = Table(
                title="Recent Events",
                show_header=True,
                header_style="bold cyan",
                title_justify="left",
                padding=(0, 1),
            )
            table.add_column("Time", style="dim", no_wrap=True)
            table.add_column("Resource", style="cyan")
            table.add_column("Type", style="dim")
            table.add_column("Status")
            table.add_column("Reason", style="dim")
            for event in snapshot.recent_events:
                table.add_row(
                    event["timestamp"] or "-",
                    event["logical_resource_id"] or "-",
                    event["resource_type"] or "-",
                    event["resource_status"] or "-",
                    event["resource_status_reason"] or "",
                )
            self.console.print()
            self.console.print(table)

        self.console.print()


@click.command()
@click.argument("cluster_id")
@click.option("--events", is_flag=True, help="Include the 10 most recent stack events")
@cross_account_options
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
def status(cluster_id, events, target_account, role_name, external_id, verbose, json_output):
    """
    Show cluster deployment status

    Pulls the current stack status and outputs and folds them into the
    stored cluster record.
    """
    cmd = StatusCommand(verbose=verbose, json_output=json_output)
    cmd.run(
        cluster_id=cluster_id,
        events=events,
        target_account=target_account,
        role_name=role_name,
        external_id=external_id,
    )
