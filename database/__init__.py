"""
Database package for the SLI Builder.

This package provides database management functionality including:
- DatabaseManager for the product master store, configuration and caches
- Model classes for data structures
"""

from .database import DatabaseManager
from .models import ProductMasterRecord, Configuration, ResolutionLogEntry, DEFAULT_CONFIG
from .models import ValidationError, DatabaseError, ProductNotFoundError, ConfigurationError

__all__ = [
    'DatabaseManager',
    'ProductMasterRecord',
    'Configuration',
    'ResolutionLogEntry',
    'DEFAULT_CONFIG',
    'ValidationError',
    'DatabaseError',
    'ProductNotFoundError',
    'ConfigurationError'
]
