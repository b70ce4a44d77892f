"""
Custom exception classes for the CLI interface.

This module defines CLI-specific exceptions that provide clear error messages
and appropriate exit codes for different error conditions. They derive from
click.ClickException so click prints the message and exits with the code.
"""

from typing import Iterable

import click


class CLIError(click.ClickException):
    """Base exception for CLI-related errors."""

    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


class ValidationError(CLIError):
    """Raised when user input validation fails."""

    def __init__(self, message: str):
        super().__init__(f"Validation Error: {message}", exit_code=2)


class ConfigurationError(CLIError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str):
        super().__init__(f"Configuration Error: {message}", exit_code=5)


class ProcessingError(CLIError):
    """Raised when invoice processing or document generation fails."""

    def __init__(self, message: str):
        super().__init__(f"Processing Error: {message}", exit_code=6)


class DatabaseConnectionError(CLIError):
    """Raised when database connection fails."""

    def __init__(self, message: str = "Failed to connect to database"):
        super().__init__(f"Database Error: {message}", exit_code=7)


class MissingMasterDataExit(CLIError):
    """Raised when a build stops on product codes without master data."""

    def __init__(self, codes: Iterable[str]):
        self.codes = sorted(codes)
        super().__init__(
            f"Master data missing for: {', '.join(self.codes)}. "
            f"Add them with 'sli products add' and run 'sli build' again.",
            exit_code=8
        )


class UserCancelledError(CLIError):
    """Raised when user cancels an operation."""

    def __init__(self, message: str = "Operation cancelled by user"):
        super().__init__(message, exit_code=130)  # Standard SIGINT exit code
