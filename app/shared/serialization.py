"""Helpers for moving between camelCase API payloads and snake_case ORM columns"""

import re
from datetime import date, datetime

from sqlalchemy import inspect

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def camel_to_snake(name: str) -> str:
    """onCampusCapacity -> on_campus_capacity, youthCountMaleU18 -> youth_count_male_u18"""
    return _CAMEL_BOUNDARY.sub(r"_\1", name).lower()


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_snake_updates(data: dict) -> dict:
    return {camel_to_snake(key): value for key, value in data.items()}


def row_to_camel_dict(row, exclude: tuple = ()) -> dict:
    """Serialize every column of an ORM row with camelCase keys"""
    if row is None:
        return None
    result = {}
    for column in inspect(row).mapper.column_attrs:
        if column.key in exclude:
            continue
        value = getattr(row, column.key)
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        result[snake_to_camel(column.key)] = value
    return result
