"""Conversion between backend node records and builder workflow nodes."""

from typing import Any, Dict, List, Optional, Sequence
from shared.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_NODE_TIMEOUT_SECONDS,
    PARAM_TO_SCHEMA_TYPE,
    SCHEMA_TO_PARAM_TYPE,
)
from shared.types import NodeType, Parameter, ParameterMode, ParameterType, WorkflowNode
from shared.utils import as_record
from services.api.domain.resolver import is_dynamic_value, referenced_node_id, unwrap_reference


def schema_type_to_param_type(schema_type: Any) -> ParameterType:
    if not isinstance(schema_type, str):
        return ParameterType.TEXT
    return ParameterType(SCHEMA_TO_PARAM_TYPE.get(schema_type.lower(), "text"))


def param_type_to_schema_type(param_type: Any) -> str:
    if isinstance(param_type, ParameterType):
        param_type = param_type.value
    return PARAM_TO_SCHEMA_TYPE.get(param_type, "string")


def _input_schema(script_schema: Any) -> Dict[str, Any]:
    """Accepts a script content record ({input_schema: ...}) or a bare input schema"""
    schema = as_record(script_schema)
    if "input_schema" in schema:
        schema = schema.get("input_schema")
    return schema if isinstance(schema, dict) else {}


def _text(value: Any, default: Optional[str] = "") -> Optional[str]:
    if value is None:
        return default
    return value if isinstance(value, str) else str(value)


def _current_value(input_params: Dict[str, Any], key: str) -> Any:
    entry = input_params.get(key)
    if isinstance(entry, dict):
        return entry.get("value")
    return entry


def to_workflow_node(api_node: Any, script_schema: Any = None) -> WorkflowNode:
    """Builds a builder node from a backend node record and the script's input schema.

    A parameter's value is the node's current input value, else the schema
    default, else empty. Values that are strings starting with ``${`` are
    dynamic references and land in ``dynamic_path`` unchanged.
    """
    record = as_record(api_node)
    input_params = record.get("input_params")
    if not isinstance(input_params, dict):
        input_params = {}

    parameters: List[Parameter] = []
    for key, field in _input_schema(script_schema).items():
        field = field if isinstance(field, dict) else {}

        value = _current_value(input_params, key)
        if value is None:
            value = field.get("default")
        if value is None:
            value = ""

        dynamic = is_dynamic_value(value)
        parameters.append(Parameter(
            id=str(key),
            label=_text(field.get("description")) or str(key),
            type=schema_type_to_param_type(field.get("type")),
            required=bool(field.get("required", False)),
            mode=ParameterMode.DYNAMIC if dynamic else ParameterMode.STATIC,
            value=value,
            dynamic_path=value if dynamic else None,
            placeholder=_text(field.get("placeholder")),
        ))

    api_node_id = record.get("id")
    return WorkflowNode(
        id=str(api_node_id or ""),
        type=NodeType.ACTION,
        title=_text(record.get("name")),
        category=_text(record.get("description"), None),
        parameters=parameters,
        api_node_id=None if api_node_id is None else str(api_node_id),
        script_id=_text(record.get("script_id"), None),
        custom_script_id=_text(record.get("custom_script_id"), None),
    )


def to_api_node(
    workflow_node: Any,
    workflow_id: str,
    script_id: Optional[str] = None,
    custom_script_id: Optional[str] = None
) -> Dict[str, Any]:
    """Partial backend node record for a builder node.

    Every input param is sent as required; the builder's required flag is
    not part of the payload the backend currently accepts.
    """
    node = as_record(workflow_node)
    params = node.get("parameters")

    input_params: Dict[str, Any] = {}
    for param in params if isinstance(params, list) else []:
        param = as_record(param)
        dynamic_path = param.get("dynamicPath") or param.get("dynamic_path")
        if param.get("mode") == "dynamic" and dynamic_path:
            value = dynamic_path
        else:
            value = param.get("value")
        input_params[param.get("id")] = {
            "type": param_type_to_schema_type(param.get("type")),
            "value": value,
            "required": True,
        }

    api_node = {
        "name": node.get("title"),
        "description": node.get("category"),
        "workflow_id": workflow_id,
        "script_id": script_id,
        "custom_script_id": custom_script_id,
        "input_params": input_params,
        "output_params": {},
        "max_retries": DEFAULT_MAX_RETRIES,
        "timeout_seconds": DEFAULT_NODE_TIMEOUT_SECONDS,
    }
    return {k: v for k, v in api_node.items() if v is not None}


def remap_references(input_params: Dict[str, Any], id_map: Dict[str, str]) -> Dict[str, Any]:
    """Copy of input_params with values pointing at a node in id_map rewritten to the mapped id.

    Only the segment before the first '.' is replaced; a '${...}' marker is kept.
    """
    remapped: Dict[str, Any] = {}
    for key, entry in input_params.items():
        if isinstance(entry, dict) and isinstance(entry.get("value"), str):
            entry = dict(entry, value=_remap_path(entry["value"], id_map))
        remapped[key] = entry
    return remapped


def _remap_path(path: str, id_map: Dict[str, str]) -> str:
    inner = unwrap_reference(path)
    node_id = referenced_node_id(inner)
    if node_id not in id_map:
        return path
    rewritten = id_map[node_id] + inner[len(node_id):]
    if inner != path:
        return path.replace(inner, rewritten, 1)
    return rewritten


def to_api_edges(nodes: Sequence[Any]) -> List[Dict[str, str]]:
    """Edge records implied by sequence order and by branch / loop body lists.

    Nodes claimed by a branch or loop body are chained under their container;
    the remaining top-level nodes are chained in sequence order.
    """
    records = [as_record(node) for node in nodes]
    edges: List[Dict[str, str]] = []
    claimed = set()

    for record in records:
        for children in _child_lists(record):
            claimed.update(children)

    top_level = [r.get("id") for r in records if r.get("id") not in claimed]
    for source, target in zip(top_level, top_level[1:]):
        edges.append({"from_node_id": source, "to_node_id": target})

    for record in records:
        for children in _child_lists(record):
            chain = [record.get("id")] + children
            for source, target in zip(chain, chain[1:]):
                edges.append({"from_node_id": source, "to_node_id": target})

    return edges


def _child_lists(record: Dict[str, Any]) -> List[List[str]]:
    lists = []
    branches = record.get("branches")
    if record.get("type") == "conditional" and isinstance(branches, dict):
        for key in ("true", "false"):
            if isinstance(branches.get(key), list) and branches[key]:
                lists.append(list(branches[key]))
    loop_body = record.get("loopBody") or record.get("loop_body")
    if record.get("type") == "loop" and isinstance(loop_body, list) and loop_body:
        lists.append(list(loop_body))
    return lists
