"""
CLI command modules for the SLI Builder.

This package contains the command implementations organized by functional area:
- sli_commands: parse, build, generate and reset of an SLI run
- product_commands: Product master data management
- config_commands: Configuration management
- utils_commands: Carton calculator, template, status and version
"""

from . import (
    sli_commands,
    product_commands,
    config_commands,
    utils_commands
)

__all__ = [
    'sli_commands',
    'product_commands',
    'config_commands',
    'utils_commands'
]
