"""Workflow graph validation: structural rules, parameter completeness and reference ordering."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from shared.constants import (
    CONDITION_PARAM_ID,
    ITERATION_ARRAY_PARAM_ID,
    OPTIONAL_PARAM_WARNING_LIMIT,
    WORKFLOW_ISSUE_NODE_ID,
)
from shared.types import Issue, Severity, ValidationResult
from shared.utils import as_record, pick
from services.api.domain.resolver import (
    dynamic_path_of,
    is_dynamic,
    is_unconfigured,
    referenced_node_id,
)


def validate_workflow(nodes: Sequence[Any]) -> ValidationResult:
    """Checks a snapshot of the builder graph.

    Never raises: missing or malformed fields count as unconfigured. Errors
    block a save/publish, warnings are advisory only.
    """
    errors: List[Issue] = []
    warnings: List[Issue] = []

    if not nodes:
        errors.append(Issue(
            node_id=WORKFLOW_ISSUE_NODE_ID,
            node_name="Workflow",
            severity=Severity.ERROR,
            message="Workflow must have at least one node",
        ))
        return ValidationResult(is_valid=False, errors=errors, warnings=warnings)

    records = [as_record(node) for node in nodes]

    first = records[0]
    if first.get("type") != "trigger":
        errors.append(_issue(first, Severity.ERROR, "Workflow must start with a trigger node",
                             node_name="First Node"))

    positions: Dict[str, int] = {}
    for index, record in enumerate(records):
        positions.setdefault(_node_id(record), index)
    branch_parents = _branch_parents(records)

    for index, node in enumerate(records):
        params = _parameters(node)

        for param in params:
            if param.get("required") and is_unconfigured(param):
                errors.append(_issue(node, Severity.ERROR,
                                     f'Required parameter "{_label(param)}" is not configured',
                                     param.get("id")))

        for param in params:
            if not is_dynamic(param) or not dynamic_path_of(param):
                continue
            ref_id = referenced_node_id(str(dynamic_path_of(param)))
            ref_index = positions.get(ref_id)
            if ref_index is None:
                errors.append(_issue(node, Severity.ERROR,
                                     f'Parameter "{_label(param)}" references non-existent node: {ref_id}',
                                     param.get("id")))
            elif ref_index >= index:
                errors.append(_issue(node, Severity.ERROR,
                                     f'Parameter "{_label(param)}" references a node that comes after this node',
                                     param.get("id")))
            elif _on_opposite_branches(_node_id(node), ref_id, branch_parents):
                warnings.append(_issue(node, Severity.WARNING,
                                       f'Parameter "{_label(param)}" references a node on a different conditional branch',
                                       param.get("id")))

        node_type = node.get("type")

        if node_type == "conditional":
            condition = _find_param(params, CONDITION_PARAM_ID)
            if not condition or not condition.get("value"):
                errors.append(_issue(node, Severity.ERROR,
                                     "Conditional node must have a condition configured",
                                     CONDITION_PARAM_ID))
            if _branches_empty(node.get("branches")):
                warnings.append(_issue(node, Severity.WARNING, "Conditional node has no branches"))

        if node_type == "loop":
            iteration = _find_param(params, ITERATION_ARRAY_PARAM_ID)
            if not iteration or (not iteration.get("value") and not dynamic_path_of(iteration)):
                errors.append(_issue(node, Severity.ERROR,
                                     "Loop node must have an iteration array configured",
                                     ITERATION_ARRAY_PARAM_ID))

        # Nodes with many empty optional parameters are treated as intentionally left at defaults
        empty_optional = [p for p in params if not p.get("required") and is_unconfigured(p)]
        if 0 < len(empty_optional) < OPTIONAL_PARAM_WARNING_LIMIT:
            for param in empty_optional:
                warnings.append(_issue(node, Severity.WARNING,
                                       f'Optional parameter "{_label(param)}" is not configured',
                                       param.get("id")))

    result = ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
    logging.debug("Workflow validated", extra={
        "node_count": len(records),
        "error_count": len(errors),
        "warning_count": len(warnings),
    })
    return result


def get_validation_summary(result: ValidationResult) -> str:
    if result.is_valid and not result.warnings:
        return "Workflow validation passed with no issues"

    parts = []
    if result.errors:
        count = len(result.errors)
        parts.append(f"{count} error{'s' if count > 1 else ''}")
    if result.warnings:
        count = len(result.warnings)
        parts.append(f"{count} warning{'s' if count > 1 else ''}")

    return f"Validation found {' and '.join(parts)}"


def _node_id(node: Dict[str, Any]) -> str:
    node_id = node.get("id")
    return "" if node_id is None else str(node_id)


def _label(param: Dict[str, Any]) -> str:
    return str(pick(param, "label", "id", default=""))


def _parameters(node: Dict[str, Any]) -> List[Dict[str, Any]]:
    params = node.get("parameters")
    if not isinstance(params, list):
        return []
    return [as_record(p) for p in params]


def _find_param(params: List[Dict[str, Any]], param_id: str) -> Optional[Dict[str, Any]]:
    for param in params:
        if param.get("id") == param_id:
            return param
    return None


def _issue(node: Dict[str, Any], severity: Severity, message: str, field: Any = None,
           node_name: Optional[str] = None) -> Issue:
    title = node.get("title")
    return Issue(
        node_id=_node_id(node),
        node_name=node_name if title is None or title == "" else str(title),
        severity=severity,
        message=message,
        field=None if field is None else str(field),
    )


def _branches_empty(branches: Any) -> bool:
    if not branches:
        return True
    if isinstance(branches, dict):
        return not any(branches.get(key) for key in ("true", "false"))
    return False


def _branch_parents(records: List[Dict[str, Any]]) -> Dict[str, Tuple[str, str]]:
    """child id -> (conditional id, branch key) for every branch membership"""
    parents: Dict[str, Tuple[str, str]] = {}
    for record in records:
        branches = record.get("branches")
        if record.get("type") != "conditional" or not isinstance(branches, dict):
            continue
        for key in ("true", "false"):
            children = branches.get(key)
            if not isinstance(children, list):
                continue
            for child_id in children:
                parents.setdefault(str(child_id), (_node_id(record), key))
    return parents


def _branch_lineage(node_id: str, parents: Dict[str, Tuple[str, str]]) -> Dict[str, str]:
    lineage: Dict[str, str] = {}
    current = node_id
    while current in parents:
        conditional_id, key = parents[current]
        if conditional_id in lineage:
            break
        lineage[conditional_id] = key
        current = conditional_id
    return lineage


def _on_opposite_branches(node_id: str, ref_id: str, parents: Dict[str, Tuple[str, str]]) -> bool:
    own = _branch_lineage(node_id, parents)
    referenced = _branch_lineage(ref_id, parents)
    return any(referenced.get(cond_id, key) != key for cond_id, key in own.items())
