"""Provisioner CLI - Cluster commands (create, list, delete)"""

import click
from rich.table import Table
from provisioner.base import ClusterCommand
from provisioner.constants import CLUSTER_TYPES
from provisioner.ui_components import status_markup


class ClustersCreateCommand(ClusterCommand):
    """Register a new cluster."""

    def execute(
        self,
        name: str,
        cluster_type: str,
        environment: str,
        region: str,
        cidr: str,
    ) -> None:
        """Execute clusters:create command."""
        service = self.ensure_cluster_service("global", "clusters-create")

        self.show_header(
            title="Create Cluster",
            details={"Name": name, "Type": cluster_type, "CIDR": cidr},
        )

        self.logger.step("Validating network and registering cluster")
        cluster = service.create_cluster(name, cluster_type, environment, region, cidr)
        self.logger.success(f"Cluster {cluster.cluster_id} created")

        if self.json_output:
            self.output_json(cluster.to_dict())
            return

        self.console.print()
        self.print_success(f"Cluster '{cluster.name}' created: {cluster.cluster_id}")
        self.print_dim(f"Deploy with: provisioner deploy {cluster.cluster_id}")


class ClustersListCommand(ClusterCommand):
    """List clusters."""

    def execute(self, region: str = None, cluster_type: str = None) -> None:
        """Execute clusters:list command."""
        service = self.ensure_cluster_service("global", "clusters-list")
        clusters = service.list_clusters(region=region, cluster_type=cluster_type)

        if self.json_output:
            self.output_json(
                {
                    "clusters": [cluster.to_dict() for cluster in clusters],
                    "count": len(clusters),
                }
            )
            return

        self.show_header(title="Clusters", subtitle="Registered clusters")

        if not clusters:
            self.console.print("[yellow]No clusters found.[/yellow]")
            self.print_dim("Create one with: provisioner clusters:create\n")
            return

        table = Table(
            title="Clusters",
            show_header=True,
            header_style="bold cyan",
            title_justify="left",
            padding=(0, 1),
        )
        table.add_column("Cluster ID", style="white", no_wrap=True)
        table.add_column("Name", style="cyan")
        table.add_column("Type")
        table.add_column("Region", style="dim")
        table.add_column("CIDR", style="green")
        table.add_column("Status")
        table.add_column("Deployment", style="dim")

        for cluster in clusters:
            table.add_row(
                cluster.cluster_id,
                cluster.name,
                cluster.type.value,
                cluster.region,
                cluster.cidr,
                status_markup(cluster.status.value),
                cluster.deployment_status or "-",
            )

        self.console.print(table)
        self.console.print(f"\n[dim]Total clusters: {len(clusters)}[/dim]\n")


class ClustersDeleteCommand(ClusterCommand):
    """Delete a cluster that was never deployed."""

    def execute(self, cluster_id: str) -> None:
        """Execute clusters:delete command."""
        service = self.ensure_cluster_service(cluster_id, "clusters-delete")

        self.show_header(title="Delete Cluster", cluster=cluster_id)

        self.logger.step("Deleting cluster record")
        service.delete_cluster(cluster_id)
        self.logger.success("Cluster deleted")

        if self.json_output:
            self.output_json({"cluster_id": cluster_id, "deleted": True})
            return

        self.print_success(f"Cluster {cluster_id} deleted")


@click.command(name="clusters:create")
@click.option("--name", required=True, help="Cluster name")
@click.option(
    "--type",
    "cluster_type",
    type=click.Choice(CLUSTER_TYPES),
    default="dedicated",
    show_default=True,
    help="Tenancy model",
)
@click.option("--environment", "-e", required=True, help="Environment (e.g. production)")
@click.option("--region", "-r", required=True, help="AWS region")
@click.option("--cidr", required=True, help="Private VPC CIDR (e.g. 10.201.0.0/16)")
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
def clusters_create(name, cluster_type, environment, region, cidr, verbose, json_output):
    """
    Register a new cluster

    The CIDR must be private and must not overlap any cluster in the same region.
    """
    cmd = ClustersCreateCommand(verbose=verbose, json_output=json_output)
    cmd.run(
        name=name,
        cluster_type=cluster_type,
        environment=environment,
        region=region,
        cidr=cidr,
    )


@click.command(name="clusters:list")
@click.option("--region", "-r", help="Only clusters in this region")
@click.option("--type", "cluster_type", type=click.Choice(CLUSTER_TYPES), help="Only clusters of this type")
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
def clusters_list(region, cluster_type, verbose, json_output):
    """List registered clusters"""
    cmd = ClustersListCommand(verbose=verbose, json_output=json_output)
    cmd.run(region=region, cluster_type=cluster_type)


@click.command(name="clusters:delete")
@click.argument("cluster_id")
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
def clusters_delete(cluster_id, verbose, json_output):
    """
    Delete a cluster

    Only clusters that were never deployed (In-Active) can be deleted.
    """
    cmd = ClustersDeleteCommand(verbose=verbose, json_output=json_output)
    cmd.run(cluster_id=cluster_id)
