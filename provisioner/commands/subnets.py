"""Provisioner CLI - Subnets command (preview subnet allocation)"""

import click
from rich.table import Table
from provisioner.base import BaseCommand
from provisioner.cidr_allocator import allocate_subnets, cidr_info


class SubnetsCommand(BaseCommand):
    """Show the subnets a VPC CIDR would be split into."""

    def execute(self, cidr: str) -> None:
        """Execute subnets command."""
        allocation = allocate_subnets(cidr)
        info = cidr_info(allocation.vpc_cidr)

        if self.json_output:
            self.output_json(
                {
                    "vpc_cidr": allocation.vpc_cidr,
                    "subnets": allocation.to_dict(),
                    "host_count": info.host_count,
                }
            )
            return

        self.show_header(
            title="Subnet Allocation",
            subtitle="Three tiers across three availability zones",
            details={"VPC CIDR": allocation.vpc_cidr},
        )

        table = Table(
            title="Subnet Allocation",
            show_header=True,
            header_style="bold cyan",
            title_justify="left",
            padding=(0, 1),
        )
        table.add_column("Tier", style="white", no_wrap=True)
        table.add_column("AZ1", style="green")
        table.add_column("AZ2", style="green")
        table.add_column("AZ3", style="green")

        table.add_row("public", *allocation.public)
        table.add_row("private app", *allocation.private_app)
        table.add_row("private db", *allocation.private_db)

        self.console.print(table)
        self.console.print(
            f"\n[dim]Range: {info.network} - {info.broadcast} "
            f"({info.host_count} usable hosts)[/dim]\n"
        )


@click.command()
@click.argument("cidr")
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
def subnets(cidr, verbose, json_output):
    """
    Preview subnet allocation for a VPC CIDR

    Shows the public, private app and private db subnets the CIDR is split into.
    """
    cmd = SubnetsCommand(verbose=verbose, json_output=json_output)
    cmd.run(cidr=cidr)
