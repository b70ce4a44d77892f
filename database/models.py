"""
Data models and validation classes for the SLI Builder.

This module defines the data structures and validation logic for all database entities
including product master records, configuration settings and resolution log entries.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Literal, Any, Dict, Union
import re
import json


class ValidationError(Exception):
    """Raised when data validation fails."""
    pass


class DatabaseError(Exception):
    """Base exception for database-related errors."""
    pass


class ProductNotFoundError(DatabaseError):
    """Raised when a requested product is not found."""
    pass


class ConfigurationError(DatabaseError):
    """Raised when configuration operations fail."""
    pass


def validate_product_code(product_code) -> None:
    """
    Check a master-data key.

    Any whitespace-free token an invoice line can carry is a valid key.

    Raises:
        ValidationError: If the code is empty or contains whitespace
    """
    if not product_code or not isinstance(product_code, str):
        raise ValidationError("Product code must be a non-empty string")
    if not re.match(r'^\S+$', product_code):
        raise ValidationError("Product code cannot contain whitespace")


@dataclass
class ProductMasterRecord:
    """
    Per-product reference data needed to turn invoice quantities into weights.

    Attributes:
        product_code: Normalized product code (lookup key)
        unit_weight: Weight of a single unit (lb for kg/x products, kg otherwise)
        carton_weight: Weight of a full master carton in pounds
        units_per_carton: Number of units in a master carton
        unit_of_measure: Unit of measure as entered (stored upper-case)
        notes: Free-form notes about the record
        created_date: When the record was added
        last_updated: When the record was last modified
    """
    product_code: str
    unit_weight: float = 0.0
    carton_weight: float = 0.0
    units_per_carton: int = 0
    unit_of_measure: str = 'NO'
    notes: Optional[str] = None
    created_date: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    def __post_init__(self):
        """Normalize and validate record data after initialization."""
        if isinstance(self.product_code, str):
            self.product_code = self.product_code.strip()
        self.unit_of_measure = (self.unit_of_measure or '').strip().upper()
        self.validate()

    def validate(self) -> None:
        """
        Validate record data according to business rules.

        A zero carton quantity is accepted here so that existing bad data can
        still be loaded and flagged; see is_degenerate().

        Raises:
            ValidationError: If validation fails
        """
        validate_product_code(self.product_code)

        for field_name in ('unit_weight', 'carton_weight'):
            value = getattr(self, field_name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                try:
                    value = float(value)
                except (TypeError, ValueError):
                    raise ValidationError(f"{field_name} must be a number")
            value = float(value)
            if value < 0:
                raise ValidationError(f"{field_name} cannot be negative")
            setattr(self, field_name, value)

        try:
            self.units_per_carton = int(self.units_per_carton)
        except (TypeError, ValueError):
            raise ValidationError("units_per_carton must be a whole number")
        if self.units_per_carton < 0:
            raise ValidationError("units_per_carton cannot be negative")

        if not self.unit_of_measure:
            raise ValidationError("Unit of measure is required")

    def is_degenerate(self) -> bool:
        """True when the record cannot be used for carton (gross weight) math."""
        return self.units_per_carton <= 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert record to dictionary for database and CSV operations."""
        return {
            'product_code': self.product_code,
            'unit_weight': self.unit_weight,
            'carton_weight': self.carton_weight,
            'units_per_carton': self.units_per_carton,
            'unit_of_measure': self.unit_of_measure,
            'notes': self.notes,
            'created_date': self.created_date.isoformat() if self.created_date else None,
            'last_updated': self.last_updated.isoformat() if self.last_updated else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProductMasterRecord':
        """Create a record from a dictionary (database row or CSV row)."""
        created_date = None
        if data.get('created_date'):
            created_date = datetime.fromisoformat(data['created_date'])

        last_updated = None
        if data.get('last_updated'):
            last_updated = datetime.fromisoformat(data['last_updated'])

        return cls(
            product_code=data['product_code'],
            unit_weight=float(data.get('unit_weight') or 0),
            carton_weight=float(data.get('carton_weight') or 0),
            units_per_carton=int(float(data.get('units_per_carton') or 0)),
            unit_of_measure=data.get('unit_of_measure') or 'NO',
            notes=data.get('notes') or None,
            created_date=created_date,
            last_updated=last_updated
        )


@dataclass
class Configuration:
    """
    Represents a configuration setting.

    Attributes:
        key: Configuration setting name (primary key)
        value: Configuration value stored as text
        data_type: Type hint for value parsing ('string', 'number', 'boolean', 'json')
        description: Human-readable description of the setting
        category: Grouping for related settings
        created_date: When the setting was first created
        last_updated: When the setting was last modified
    """
    key: str
    value: str
    data_type: Literal['string', 'number', 'boolean', 'json'] = 'string'
    description: Optional[str] = None
    category: str = 'general'
    created_date: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    def __post_init__(self):
        """Validate configuration data after initialization."""
        self.validate()

    def validate(self) -> None:
        """
        Validate configuration data according to business rules.

        Raises:
            ValidationError: If validation fails
        """
        if not self.key or not isinstance(self.key, str) or not self.key.strip():
            raise ValidationError("Configuration key must be a non-empty string")

        if not isinstance(self.value, str):
            raise ValidationError("Configuration value must be a string")

        if self.data_type not in ('string', 'number', 'boolean', 'json'):
            raise ValidationError("Data type must be one of: string, number, boolean, json")

        # Empty values are allowed while a setting is being constructed
        if self.value:
            try:
                self.get_typed_value()
            except (ValueError, json.JSONDecodeError) as e:
                raise ValidationError(f"Value '{self.value}' is not valid for data type '{self.data_type}': {e}")

    def get_typed_value(self) -> Union[str, float, bool, Dict, list]:
        """
        Get the configuration value converted to its proper type.

        Raises:
            ValueError: If value cannot be converted to the specified type
        """
        if self.data_type == 'string':
            return self.value
        elif self.data_type == 'number':
            return float(self.value)
        elif self.data_type == 'boolean':
            if self.value.lower() in ('true', '1', 'yes', 'on'):
                return True
            elif self.value.lower() in ('false', '0', 'no', 'off'):
                return False
            raise ValueError(f"Cannot convert '{self.value}' to boolean")
        elif self.data_type == 'json':
            return json.loads(self.value)
        raise ValueError(f"Unknown data type: {self.data_type}")

    def set_typed_value(self, value: Union[str, float, bool, Dict, list]) -> None:
        """Set the configuration value from a typed value."""
        if self.data_type == 'string':
            self.value = str(value)
        elif self.data_type == 'number':
            self.value = str(float(value))
        elif self.data_type == 'boolean':
            if isinstance(value, str):
                if value.lower() in ('true', '1', 'yes', 'on'):
                    self.value = 'true'
                elif value.lower() in ('false', '0', 'no', 'off'):
                    self.value = 'false'
                else:
                    raise ValueError(f"Cannot convert string '{value}' to boolean")
            else:
                self.value = 'true' if bool(value) else 'false'
        elif self.data_type == 'json':
            self.value = json.dumps(value)
        else:
            raise ValueError(f"Unknown data type: {self.data_type}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for database operations."""
        return {
            'key': self.key,
            'value': self.value,
            'data_type': self.data_type,
            'description': self.description,
            'category': self.category,
            'created_date': self.created_date.isoformat() if self.created_date else None,
            'last_updated': self.last_updated.isoformat() if self.last_updated else None
        }


RESOLUTION_ACTIONS = ('missing', 'added', 'updated', 'flagged')


@dataclass
class ResolutionLogEntry:
    """
    Audit trail entry for the manual master-data resolution loop.

    Attributes:
        product_code: Product code concerned
        action_taken: 'missing', 'added', 'updated' or 'flagged'
        id: Auto-incrementing primary key
        session_id: Aggregation session the entry belongs to
        notes: Additional context
        logged_at: When the entry was written
    """
    product_code: str
    action_taken: Literal['missing', 'added', 'updated', 'flagged']
    id: Optional[int] = None
    session_id: Optional[str] = None
    notes: Optional[str] = None
    logged_at: Optional[datetime] = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if not self.product_code or not isinstance(self.product_code, str):
            raise ValidationError("Product code must be a non-empty string")
        if self.action_taken not in RESOLUTION_ACTIONS:
            raise ValidationError(f"Action taken must be one of: {', '.join(RESOLUTION_ACTIONS)}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'product_code': self.product_code,
            'action_taken': self.action_taken,
            'session_id': self.session_id,
            'notes': self.notes,
            'logged_at': self.logged_at.isoformat() if self.logged_at else None
        }


# Default configuration values
DEFAULT_CONFIG = {
    'template_path': Configuration(
        key='template_path',
        value='',
        data_type='string',
        description='Path to the SLI template workbook (empty uses the built-in template)',
        category='document'
    ),
    'output_filename': Configuration(
        key='output_filename',
        value='SLI.xlsx',
        data_type='string',
        description='File name of the generated SLI document',
        category='document'
    ),
    'aes_value_threshold': Configuration(
        key='aes_value_threshold',
        value='2500',
        data_type='number',
        description='Commodity value above which AES filing is required',
        category='document'
    ),
    'mixed_unit_policy': Configuration(
        key='mixed_unit_policy',
        value='warn',
        data_type='string',
        description='How to treat groups mixing unit families: warn or reject',
        category='aggregation'
    ),
    'cache_retention_hours': Configuration(
        key='cache_retention_hours',
        value='24',
        data_type='number',
        description='Hours a cached aggregation stays valid',
        category='aggregation'
    ),
    'database_version': Configuration(
        key='database_version',
        value='1.0',
        data_type='string',
        description='Current database schema version',
        category='system'
    )
}
