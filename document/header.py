"""
Header and footer data of an SLI document.

HeaderData carries everything the operator supplies besides the invoices:
forwarder and consignee addresses, order and shipment metadata and the
shipper's contact details. It is loaded from a JSON file or collected by the
interactive wizard.
"""

import json
import re
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Dict, Any, List, Union

from database.models import ValidationError


SHIP_MODES = ('Air', 'Ocean')


def format_phone(raw: str) -> str:
    """
    Format a US phone number as ``(###) ###-####``.

    Ten digits, or eleven starting with the country code 1, are formatted;
    anything else is returned unchanged.
    """
    raw = raw or ''
    digits = re.sub(r'\D+', '', raw)
    if len(digits) == 11 and digits.startswith('1'):
        digits = digits[1:]
    elif len(digits) != 10:
        return raw
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


def collapse_lines(lines: List[str], slots: int) -> List[str]:
    """
    Pack non-blank address lines upward into ``slots`` cells.

    The last line (city/state/zip) always follows the last non-blank line
    before it; unused cells become empty strings.
    """
    packed = [line for line in lines[:-1] if line] + [lines[-1]]
    return packed + [''] * (slots - len(packed))


@dataclass
class HeaderData:
    """Operator-supplied fields of one SLI."""
    forwarder_name: str = ''
    forwarder_addr1: str = ''
    forwarder_addr2: str = ''
    forwarder_addr3: str = ''
    forwarder_city_state_zip: str = ''
    consignee_name: str = ''
    consignee_addr1: str = ''
    consignee_addr2: str = ''
    consignee_city_state_zip: str = ''
    so_number: str = ''
    destination_country: str = ''
    hazardous: str = ''
    ship_mode: str = ''
    ship_payment_type: str = ''
    shipper_email: str = ''
    shipper_name: str = ''
    shipper_phone: str = ''

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            setattr(self, f.name, '' if value is None else str(value).strip())
        self.validate()

    def validate(self) -> None:
        if self.ship_mode and self.ship_mode not in SHIP_MODES:
            raise ValidationError(f"Ship mode must be one of: {', '.join(SHIP_MODES)}")

    def forwarder_lines(self) -> List[str]:
        """Values of J4..J7: addr1 stays put, blank addr2/addr3 collapse upward."""
        if not self.forwarder_addr2:
            return [self.forwarder_addr1, self.forwarder_city_state_zip, '', '']
        return [self.forwarder_addr1] + collapse_lines(
            [self.forwarder_addr2, self.forwarder_addr3, self.forwarder_city_state_zip], 3
        )

    def consignee_lines(self) -> List[str]:
        """Values of A12..A14."""
        return [self.consignee_addr1] + collapse_lines(
            [self.consignee_addr2, self.consignee_city_state_zip], 2
        )

    @property
    def formatted_phone(self) -> str:
        return format_phone(self.shipper_phone)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HeaderData':
        """Build from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


def load_header(path: Union[str, Path]) -> HeaderData:
    """
    Load header data from a JSON file.

    Raises:
        ValidationError: If the file is missing, not JSON or not an object
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except OSError as e:
        raise ValidationError(f"Cannot read header file {path}: {e}")
    except json.JSONDecodeError as e:
        raise ValidationError(f"Header file {path} is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise ValidationError(f"Header file {path} must contain a JSON object")
    return HeaderData.from_dict(data)
