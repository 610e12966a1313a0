"""Utility functions for handling enum/string values safely."""
from enum import Enum


def enum_to_str(v):
    """
    Safely convert enum or string value to string.

    Columns such as AttendanceRecord.status are stored as plain strings while
    request models carry enums; this accepts either.

    Examples:
        >>> enum_to_str(AttendanceStatus.HALF_DAY)
        'half-day'
        >>> enum_to_str('present')
        'present'
        >>> enum_to_str(None)
        None
    """
    if v is None:
        return None
    if isinstance(v, Enum):
        return v.value
    return str(v)
