"""
CLI package for the SLI Builder.

This package provides the ``sli`` command-line interface: invoice parsing,
SLI generation, product master maintenance and configuration.
"""

from .version import __version__
