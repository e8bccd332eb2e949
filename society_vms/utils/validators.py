"""
Input validation helpers shared by the backend services and the client core.
"""

import re
from typing import Iterator, Optional

from society_vms.utils.exceptions import ValidationError

PHONE_RE = re.compile(r"^\d{10}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

DEFAULT_PURPOSE = "Other"

# visitor_requests column widths
VISITOR_FIELD_LIMITS = {
    "visitor_name": ("Visitor name", 255),
    "visitor_phone": ("Visitor phone", 15),
    "vehicle_type": ("Vehicle type", 20),
    "vehicle_number": ("Vehicle number", 20),
    "guard_id": ("Guard id", 50),
}
EMAIL_MAX_LENGTH = 255


def validate_phone(phone: Optional[str]) -> str:
    phone = (phone or "").strip()
    if not PHONE_RE.match(phone):
        raise ValidationError("Please enter a valid 10-digit phone number")
    return phone


def validate_email(email: Optional[str]) -> str:
    email = (email or "").strip()
    if len(email) > EMAIL_MAX_LENGTH or not EMAIL_RE.match(email):
        raise ValidationError("Please enter a valid email address")
    return email


def normalize_flat_code(code: Optional[str]) -> str:
    """'  b203 ' -> 'B203'. Raises ValidationError when empty."""
    code = (code or "").strip().upper()
    if not code:
        raise ValidationError("Flat is required")
    return code


def require_visitor_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Visitor name is required")
    return name


def check_visitor_field_lengths(fields: dict) -> dict:
    """Raises ValidationError for any value wider than its column. Returns fields unchanged."""
    for key, (label, max_length) in VISITOR_FIELD_LIMITS.items():
        value = fields.get(key)
        if value and len(value) > max_length:
            raise ValidationError(f"{label} must be at most {max_length} characters")
    return fields


def require_photo(photo_url: Optional[str]) -> str:
    if not photo_url:
        raise ValidationError("Please take a visitor photo")
    return photo_url


def purpose_or_default(purpose: Optional[str]) -> str:
    purpose = (purpose or "").strip()
    return purpose or DEFAULT_PURPOSE


def iter_flat_layout(wings, floors: int, units_per_floor: int) -> Iterator[tuple[str, int]]:
    """
    Yields (wing, flat_number) in seed order: wing, then floor, then unit.
    Floor 2 unit 3 is flat_number 203.
    """
    for wing in wings:
        for floor in range(1, floors + 1):
            for unit in range(1, units_per_floor + 1):
                yield wing, floor * 100 + unit
