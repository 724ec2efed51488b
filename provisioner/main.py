#!/usr/bin/env python3
"""Provisioner CLI - Main entry point"""

import sys

from rich.console import Console

import rich_click as click

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.USE_MARKDOWN = False
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.MAX_WIDTH = 100

click.rich_click.STYLE_COMMAND = "bold cyan"
click.rich_click.STYLE_OPTION = "bold magenta"
click.rich_click.STYLE_SWITCH = "bold green"
click.rich_click.STYLE_ARGUMENT = "bold yellow"
click.rich_click.STYLE_HEADER_TEXT = "bold cyan"
click.rich_click.STYLE_USAGE = "bold yellow"
click.rich_click.STYLE_USAGE_COMMAND = "bold cyan"
click.rich_click.STYLE_HELPTEXT_FIRST_LINE = "bold white"
click.rich_click.STYLE_HELPTEXT = ""
click.rich_click.STYLE_METAVAR = "bold yellow"
click.rich_click.STYLE_REQUIRED_SHORT = "bold red"
click.rich_click.STYLE_REQUIRED_LONG = "bold red"
click.rich_click.STYLE_OPTION_DEFAULT = "dim cyan"
click.rich_click.STYLE_OPTIONS_PANEL_BORDER = "cyan"
click.rich_click.STYLE_COMMANDS_PANEL_BORDER = "cyan"

from provisioner.commands.clusters import (  # noqa: E402
    clusters_create,
    clusters_list,
    clusters_delete,
)
from provisioner.commands.deploy import deploy, update  # noqa: E402
from provisioner.commands.roles import roles_validate  # noqa: E402
from provisioner.commands.status import status  # noqa: E402
from provisioner.commands.subnets import subnets  # noqa: E402

console = Console()


@click.group()
@click.version_option(version="1.0.0")
def cli() -> None:
    """
    Provisioner - Cluster network provisioning on CloudFormation.

    \b
    Quick Start:
      provisioner subnets 10.201.0.0/16                 # Preview subnets
      provisioner clusters:create --name core \\
          -e production -r us-east-1 --cidr 10.201.0.0/16
      provisioner deploy <cluster-id>                   # Create the stack
      provisioner status <cluster-id>                   # Reconcile status

    \b
    Cross-account:
      provisioner roles:validate --target-account 123456789012 \\
          --role-name ControlPlaneDeploy --external-id <id>
      provisioner deploy <cluster-id> --target-account 123456789012 \\
          --role-name ControlPlaneDeploy --external-id <id>
    """
    pass


cli.add_command(clusters_create)
cli.add_command(clusters_list)
cli.add_command(clusters_delete)
cli.add_command(deploy)
cli.add_command(update)
cli.add_command(status)
cli.add_command(subnets)
cli.add_command(roles_validate)


def main():
    """Console script entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n\n[yellow]⚠️  Operation cancelled by user[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
