"""Shared utilities."""

import uuid
from typing import Any, Dict
from pydantic import BaseModel


def generate_node_id(node_type: str) -> str:
    return f"{node_type}-{uuid.uuid4().hex[:12]}"


def as_record(obj: Any) -> Dict[str, Any]:
    """Returns a plain dict view of a model or mapping; anything else becomes {}"""
    if isinstance(obj, BaseModel):
        return obj.model_dump(by_alias=True, mode="json")
    if isinstance(obj, dict):
        return obj
    return {}


def pick(record: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """First non-None value among keys (camelCase and snake_case spellings)"""
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return default
