"""
Logging system for the provisioner
Provides real-time logging to files with clean console output
"""

import re
from pathlib import Path
from datetime import datetime
from typing import Any, Optional, TextIO
from rich.console import Console

console = Console()

ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


class DeployLogger:
    """
    Manages logging for provisioning operations
    - Writes all output to log files in real-time
    - Shows clean progress UI in console (unless verbose)
    - Captures errors with context
    - Records audit entries for credential delegation and state transitions
    """

    def __init__(
        self,
        subject: str,
        operation: str,
        verbose: bool = False,
        logs_dir: Optional[Path] = None,
        quiet: bool = False,
    ):
        """
        Initialize logger

        Args:
            subject: What the operation acts on (cluster name, or 'global')
            operation: Operation name (e.g., 'deploy', 'status', 'create')
            verbose: If True, show all output in console
            logs_dir: Root directory for log files (defaults to ./logs)
            quiet: If True, never write to console (JSON output mode)
        """
        self.subject = subject
        self.operation = operation
        self.verbose = verbose
        self.quiet = quiet
        self.log_file: Optional[TextIO] = None
        self.log_path: Optional[Path] = None
        self.current_step = ""
        self.has_errors = False

        # Structure: logs/{subject}/{date}/{time}_{operation}.log
        now = datetime.now()
        date_str = now.strftime("%Y-%m-%d")
        time_str = now.strftime("%H-%M-%S")

        root = Path(logs_dir) if logs_dir else Path.cwd() / "logs"
        subject_logs_dir = root / _safe_name(subject) / date_str
        subject_logs_dir.mkdir(parents=True, exist_ok=True)

        log_filename = f"{time_str}_{_safe_name(operation)}.log"
        self.log_path = subject_logs_dir / log_filename

        # Line buffered for real-time tailing
        self.log_file = open(self.log_path, "a", buffering=1)

        self._write_log_header()

    def _write_log_header(self):
        """Write log file header"""
        header = f"""
{"=" * 80}
Provisioner Operation Log
{"=" * 80}
Subject: {self.subject}
Operation: {self.operation}
Started: {datetime.now().isoformat()}
{"=" * 80}

"""
        self.log_file.write(header)
        self.log_file.flush()

    def _print(self, message: str):
        if not self.quiet:
            console.print(message)

    def log(self, message: str, level: str = "INFO"):
        """
        Log a message to file and optionally console

        Args:
            message: Message to log
            level: Log level (INFO, WARNING, ERROR, DEBUG)
        """
        timestamp = datetime.now().strftime("%H:%M:%S")
        log_line = f"[{timestamp}] [{level}] {ANSI_ESCAPE.sub('', message)}\n"

        if self.log_file:
            self.log_file.write(log_line)
            self.log_file.flush()

        if self.verbose:
            if level == "ERROR":
                self._print(f"[red]{message}[/red]")
            elif level == "WARNING":
                self._print(f"[yellow]{message}[/yellow]")
            elif level == "DEBUG":
                self._print(f"[dim]{message}[/dim]")
            else:
                self._print(message)

    def audit(self, event: str, **fields: Any):
        """
        Write an audit entry.

        Audit entries always reach the log file regardless of verbosity.
        Fields are rendered as sorted key=value pairs so they can be grepped.

        Args:
            event: Audit event name (e.g., 'delegation.assumed')
            **fields: Identity, target and correlation data
        """
        rendered = " ".join(
            f"{key}={_render_value(value)}" for key, value in sorted(fields.items())
        )
        self.log(f"AUDIT {event} {rendered}".rstrip(), "AUDIT")

    def log_error(self, error: str, context: Optional[str] = None):
        """
        Log an error with context

        Args:
            error: Error message
            context: Additional context (e.g., remote call that failed)
        """
        self.has_errors = True

        error_block = f"""
{"!" * 80}
ERROR OCCURRED
{"!" * 80}
{error}
"""
        if context:
            error_block += f"\nContext: {context}\n"

        error_block += f"{'!' * 80}\n\n"

        if self.log_file:
            self.log_file.write(error_block)
            self.log_file.flush()

        if not self.verbose:
            self._print("")

        self._print(f"[bold red]✗ {error}[/bold red]")
        if context:
            self._print(f"  [color(208)]{context}[/color(208)]")

    def step(self, step_name: str):
        """
        Start a new step

        Args:
            step_name: Name of the step
        """
        if self.current_step and not self.verbose:
            self._print("")

        self.current_step = step_name
        self.log(f"Step: {step_name}", "INFO")

        if not self.verbose:
            self._print(f"[color(214)]▶[/color(214)] [white]{step_name}[/white]")

    def success(self, message: str):
        """Log a success message"""
        self.log(message, "INFO")

        if not self.verbose:
            self._print(f"  [dim]✓ {message}[/dim]")

    def warning(self, message: str):
        """Log a warning message"""
        self.log(message, "WARNING")

        if not self.verbose:
            self._print(f"  [yellow]⚠[/yellow] [dim]{message}[/dim]")

    def close(self):
        """Close log file"""
        if self.log_file:
            footer = f"""
{"=" * 80}
Completed: {datetime.now().isoformat()}
Status: {"FAILED" if self.has_errors else "SUCCESS"}
{"=" * 80}
"""
            self.log_file.write(footer)
            self.log_file.close()
            self.log_file = None

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, _exc_tb):
        """Context manager exit"""
        if exc_type is not None and exc_type != SystemExit:
            self.log_error(
                str(exc_val) if exc_val else "Operation failed",
                context=f"{exc_type.__name__}",
            )
        self.close()
        return False


def _safe_name(value: str) -> str:
    """Make a value usable as a path segment."""
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "-", value).strip("-")
    return cleaned or "unnamed"


def _render_value(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, datetime):
        return value.isoformat()
    text = str(value)
    if " " in text:
        return f'"{text}"'
    return text
