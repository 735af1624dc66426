"""
Conversion of model objects into JSON-serializable structures.
"""

import dataclasses
from datetime import datetime
from enum import Enum
from typing import Any, Optional

import numpy as np


def make_json_safe(obj: Any) -> Any:
    """
    Convert objects to JSON-serializable format.
    
    Args:
        obj: Object to convert
        
    Returns:
        JSON-serializable version of the object
    """
    if isinstance(obj, datetime):
        return obj.isoformat()
    elif isinstance(obj, Enum):
        return obj.value
    elif isinstance(obj, np.generic):
        return obj.item()
    elif dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            field.name: make_json_safe(getattr(obj, field.name))
            for field in dataclasses.fields(obj)
        }
    elif isinstance(obj, dict):
        return {key: make_json_safe(value) for key, value in obj.items()}
    elif isinstance(obj, (list, tuple, set)):
        return [make_json_safe(item) for item in obj]
    else:
        return obj


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, passing datetimes and None through."""
    if value is None or isinstance(value, datetime):
        return value
    # Trailing Z is the UTC designator
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)
