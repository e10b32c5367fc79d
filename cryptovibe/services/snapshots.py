"""
Snapshot helpers for audit entries.

A snapshot is a partial key/value capture of a row, stored as
JSON. Values are normalized so that they survive the JSON column
and compare equal to what the row holds after a reload. Decimals
are stored as plain decimal strings, never floats.
"""

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import inspect


def decimal_string(value: Decimal) -> str:
    """Canonical text of a Decimal, independent of the column scale."""
    return format(value.normalize(), "f")


def jsonable(value: Any) -> Any:
    """Convert a column value into a JSON-compatible value."""
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, Decimal):
        return decimal_string(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, dict):
        return {k: jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    return value


def snapshot(data: dict[str, Any] | None) -> dict[str, Any] | None:
    if data is None:
        return None
    return {key: jsonable(value) for key, value in data.items()}


def row_snapshot(row, fields: list[str] | None = None) -> dict[str, Any]:
    """
    Capture column values of an ORM row.

    With no field list this is a full row image (every column except
    the primary key), which is what delete paths record so the row
    can be re-created later.
    """
    mapper = inspect(row).mapper
    primary = {c.key for c in mapper.primary_key}
    if fields is None:
        fields = [
            attr.key for attr in mapper.column_attrs
            if attr.key not in primary
        ]
    return {field: jsonable(getattr(row, field)) for field in fields}
