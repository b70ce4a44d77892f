"""
CLI Context module for the SLI Builder.

This module provides the shared context and decorators used across CLI commands,
preventing circular imports between cli.main and command modules.
"""

import os
import click
from database.database import DatabaseManager
from database.models import DatabaseError
from processing.pipeline import SLIPipeline
from cli.exceptions import DatabaseConnectionError


DB_ENV_VAR = 'SLI_BUILDER_DB'
DEFAULT_DB_PATH = 'sli_builder.db'


class CLIContext:
    """Context object to share state between CLI commands."""

    def __init__(self):
        self.verbose = False
        self.quiet = False
        # Check for environment variable first, then use default
        self.database_path = os.environ.get(DB_ENV_VAR, DEFAULT_DB_PATH)
        self.db_manager = None

    def get_db_manager(self) -> DatabaseManager:
        """Get or create database manager instance."""
        if self.db_manager is None:
            try:
                self.db_manager = DatabaseManager(self.database_path)
            except DatabaseError as e:
                raise DatabaseConnectionError(f"{self.database_path}: {e}")
        return self.db_manager

    def get_pipeline(self) -> SLIPipeline:
        """Pipeline bound to this context's database."""
        return SLIPipeline(self.get_db_manager())


# Pass context between commands
pass_context = click.make_pass_decorator(CLIContext, ensure=True)
