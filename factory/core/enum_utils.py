"""
Enum Utilities for VARCHAR-based Status Fields

• Database: VARCHAR(50) - NOT database ENUM types
• SQLAlchemy: String(50) with Mapped[str]
• Pydantic: Python Enum for API validation
• All enum values stored in UPPERCASE

INPUT (API Request):
    Pydantic Enum → .value → String → Database
    Example: ProductionStage.CUTTING → "CUTTING" → VARCHAR

OUTPUT (API Response):
    Database → String → Return directly
"""

from enum import Enum
from typing import Any, Optional, TypeVar, Type


T = TypeVar('T', bound=Enum)


def get_enum_value(value: Any) -> Optional[str]:
    """
    Safely get string value from an enum or string.

    Examples:
        >>> get_enum_value(ProductionStage.CUTTING)
        'CUTTING'
        >>> get_enum_value("CUTTING")
        'CUTTING'
        >>> get_enum_value(None)
        None
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


def to_enum(value: Any, enum_class: Type[T]) -> Optional[T]:
    """
    Convert a string value to an enum instance, None if not a member.

    Examples:
        >>> to_enum("PACKING", ProductionStage)
        ProductionStage.PACKING
        >>> to_enum("INVALID", ProductionStage)
        None
    """
    if value is None:
        return None
    if isinstance(value, enum_class):
        return value
    try:
        return enum_class(value)
    except (ValueError, KeyError):
        return None


def is_status(db_value: Optional[str], enum_value: Enum) -> bool:
    """
    Compare a database string with an enum value.

    Examples:
        >>> is_status(batch.status, BatchStatus.PENDING)
        True
    """
    if db_value is None:
        return False
    return db_value == enum_value.value


def status_in(db_value: Optional[str], *enum_values: Enum) -> bool:
    """Check if database value matches any of the given enums."""
    if db_value is None:
        return False
    return db_value in {e.value for e in enum_values}
