"""Database-agnostic type definitions for SQLAlchemy models.

This module provides type definitions that work with both SQLite and PostgreSQL.
"""
from enum import Enum
from typing import Optional, Type

from sqlalchemy import String
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import mapped_column

# UUID type that works with both databases
# (stored natively on PostgreSQL, as 32-char hex on SQLite)
UUIDType = PG_UUID


def enum_column(enum_class: Type[Enum], default: Optional[Enum] = None, **kwargs):
    """
    VARCHAR(50) column holding the upper-case value of `enum_class`.

    Enum-like fields are stored as plain strings, never as database ENUM
    types; the allowed values are recorded in the column comment.
    """
    kwargs.setdefault("nullable", False)
    return mapped_column(
        String(50),
        default=default.value if default is not None else None,
        comment=", ".join(member.value for member in enum_class),
        **kwargs,
    )
