"""Classifies node parameters as static, dynamic or empty."""

from enum import Enum
from typing import Any, Dict, Optional
from shared.constants import DYNAMIC_REFERENCE_PREFIX, DYNAMIC_REFERENCE_SUFFIX
from shared.utils import as_record, pick


class ParameterState(str, Enum):
    STATIC = "static"
    DYNAMIC = "dynamic"
    EMPTY = "empty"


def is_dynamic_value(value: Any) -> bool:
    """Wire values are references iff they are strings starting with '${'"""
    return isinstance(value, str) and value.startswith(DYNAMIC_REFERENCE_PREFIX)


def _is_blank(value: Any) -> bool:
    return not value or str(value).strip() == ""


def dynamic_path_of(param: Dict[str, Any]) -> Optional[str]:
    return pick(param, "dynamicPath", "dynamic_path")


def is_dynamic(param: Dict[str, Any]) -> bool:
    return param.get("mode") == "dynamic"


def is_unconfigured(param: Any) -> bool:
    param = as_record(param)
    if is_dynamic(param):
        return _is_blank(dynamic_path_of(param))
    return _is_blank(param.get("value"))


def parameter_state(param: Any) -> ParameterState:
    param = as_record(param)
    if is_unconfigured(param):
        return ParameterState.EMPTY
    if is_dynamic(param):
        return ParameterState.DYNAMIC
    return ParameterState.STATIC


def unwrap_reference(path: str) -> str:
    """'${n1.body}' -> 'n1.body'; paths without the marker are returned as is"""
    if path.startswith(DYNAMIC_REFERENCE_PREFIX):
        path = path[len(DYNAMIC_REFERENCE_PREFIX):]
        if path.endswith(DYNAMIC_REFERENCE_SUFFIX):
            path = path[:-len(DYNAMIC_REFERENCE_SUFFIX)]
    return path


def referenced_node_id(path: str) -> str:
    """Node id a dynamic path points at: everything before the first '.'"""
    return path.split(".", 1)[0]
