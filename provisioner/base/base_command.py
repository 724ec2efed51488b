"""
Base Command Class

Abstract base for all provisioner CLI commands.
Provides common functionality and structure.
"""

from abc import ABC, abstractmethod
from typing import Optional, Any, Dict
import json
from rich.console import Console
from provisioner.config import ProvisionerConfig, load_config
from provisioner.exceptions import ProvisionerError
from provisioner.logger import DeployLogger
from provisioner.ui_components import show_header


class BaseCommand(ABC):
    """
    Abstract base command class.

    Provides:
    - Configuration loading
    - Logger initialization
    - Header display
    - Error handling with error kind and correlation id
    - JSON output support
    """

    def __init__(
        self,
        verbose: bool = False,
        json_output: bool = False,
        config: Optional[ProvisionerConfig] = None,
    ):
        self.verbose = verbose
        self.json_output = json_output
        self.console = Console()
        self._config = config
        self.logger: Optional[DeployLogger] = None

    @property
    def config(self) -> ProvisionerConfig:
        """Configuration, loaded from the environment on first use."""
        if self._config is None:
            self._config = load_config()
        return self._config

    def init_logger(self, subject: str, command_name: str) -> DeployLogger:
        """
        Initialize command logger.

        In JSON mode the logger still writes its file (audit trail) but
        stays off the console.

        Args:
            subject: Cluster name or id (use "global" for non-cluster commands)
            command_name: Command name

        Returns:
            DeployLogger instance
        """
        self.logger = DeployLogger(
            subject,
            command_name,
            verbose=self.verbose,
            logs_dir=self.config.logs_path,
            quiet=self.json_output,
        )
        return self.logger

    def output_json(self, data: Dict[str, Any], exit_code: int = 0) -> None:
        """
        Output data as JSON and exit.

        Args:
            data: Data to output as JSON
            exit_code: Exit code (0 for success, non-zero for error)
        """
        print(json.dumps(data, indent=2, default=str))
        if exit_code != 0:
            raise SystemExit(exit_code)

    def show_header(
        self,
        title: str,
        subtitle: Optional[str] = None,
        cluster: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Show command header (skip in JSON or verbose mode)."""
        if not self.verbose and not self.json_output:
            show_header(
                title=title,
                subtitle=subtitle,
                cluster=cluster,
                details=details,
                console=self.console,
            )

    def print_success(self, message: str) -> None:
        """Print success message (skip in JSON mode)."""
        if not self.json_output:
            self.console.print(f"[green]✓ {message}[/green]")

    def print_error(self, message: str) -> None:
        """Print error message (skip in JSON mode)."""
        if not self.json_output:
            self.console.print(f"[red]✗ {message}[/red]")

    def print_warning(self, message: str) -> None:
        """Print warning message (skip in JSON mode)."""
        if not self.json_output:
            self.console.print(f"[yellow]⚠ {message}[/yellow]")

    def print_dim(self, message: str) -> None:
        """Print dim message (skip in JSON mode)."""
        if not self.json_output:
            self.console.print(f"[dim]{message}[/dim]")

    def handle_error(self, error: ProvisionerError) -> None:
        """
        Report a provisioner error and exit non-zero.

        The caller sees kind, message and correlation id; the context
        (which may carry raw remote error text) only goes to the log.
        """
        if self.logger:
            self.logger.log_error(error.message, context=error.context)

        if self.json_output:
            self.output_json(error.to_dict(), exit_code=1)
            return

        self.console.print(
            f"\n[bold red]✗ {error.kind.value}:[/bold red] {error.message}"
        )
        if error.correlation_id:
            self.console.print(f"[dim]Correlation id: {error.correlation_id}[/dim]")
        if self.logger:
            self.console.print(f"[dim]Logs saved to:[/dim] {self.logger.log_path}")
        self.console.print()
        raise SystemExit(1)

    @abstractmethod
    def execute(self, **kwargs) -> None:
        """
        Execute command logic.

        Must be implemented by subclasses.
        """
        pass

    def run(self, **kwargs) -> None:
        """
        Run command with error handling.

        Args:
            **kwargs: Command arguments
        """
        try:
            self.execute(**kwargs)
        except KeyboardInterrupt:
            self.console.print("\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            if self.logger:
                self.console.print(
                    f"\n[dim]Logs saved to:[/dim] {self.logger.log_path}\n"
                )
            raise SystemExit(130)
        except SystemExit:
            raise
        except ProvisionerError as e:
            self.handle_error(e)
        finally:
            if self.logger:
                self.logger.close()
