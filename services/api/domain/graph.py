"""In-memory workflow graph edited by the builder.

Edits are unconstrained: dangling or forward references may exist at any
point and only surface when the graph is validated.
"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple
from pydantic import ValidationError
from shared.exceptions import InvalidStructureError, NodeNotFoundError
from shared.types import Branches, NodeType, Parameter, ParameterMode, ValidationResult, WorkflowNode
from shared.utils import generate_node_id
from services.api.domain.mapper import to_workflow_node
from services.api.domain.resolver import referenced_node_id, unwrap_reference
from services.api.domain.validation import validate_workflow

BRANCH_KEYS = ("true", "false")


class WorkflowGraph:

    def __init__(self, nodes: Optional[Iterable[WorkflowNode]] = None, workflow_id: str = ""):
        self.workflow_id = workflow_id
        self.nodes: List[WorkflowNode] = list(nodes or [])

    @classmethod
    def from_wire(cls, nodes: List[Dict[str, Any]], workflow_id: str = "") -> "WorkflowGraph":
        return cls([WorkflowNode.model_validate(node) for node in nodes], workflow_id=workflow_id)

    @classmethod
    def from_backend(
        cls,
        graph_record: Any,
        script_schemas: Optional[Dict[str, Any]] = None,
        workflow_id: str = ""
    ) -> "WorkflowGraph":
        """Builds the graph from a persisted {nodes, edges} record.

        Nodes are ordered so every edge source precedes its target (input
        order breaks ties) and mapped with the schema of their script.
        """
        record = graph_record if isinstance(graph_record, dict) else {}
        api_nodes = [n for n in _as_list(record.get("nodes")) if isinstance(n, dict)]
        edges = [e for e in _as_list(record.get("edges")) if isinstance(e, dict)]
        schemas = script_schemas or {}

        nodes = []
        for api_node in _edge_order(api_nodes, edges):
            script_id = api_node.get("script_id")
            schema = schemas.get(script_id) if isinstance(script_id, str) else None
            nodes.append(to_workflow_node(api_node, schema))
        logging.debug("Graph loaded", extra={"workflow_id": workflow_id, "node_count": len(nodes)})
        return cls(nodes, workflow_id=workflow_id)

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[WorkflowNode]:
        return iter(self.nodes)

    def index_of(self, node_id: str) -> int:
        for index, node in enumerate(self.nodes):
            if node.id == node_id:
                return index
        raise NodeNotFoundError(f"Node '{node_id}' not found", workflow_id=self.workflow_id, node_id=node_id)

    def get_node(self, node_id: str) -> WorkflowNode:
        return self.nodes[self.index_of(node_id)]

    def add_node(
        self,
        node_type: NodeType,
        title: str,
        parameters: Optional[List[Parameter]] = None,
        index: Optional[int] = None
    ) -> WorkflowNode:
        node_type = NodeType(node_type)
        node = WorkflowNode(
            id=generate_node_id(node_type.value),
            type=node_type,
            title=title,
            parameters=list(parameters or []),
            branches=Branches() if node_type == NodeType.CONDITIONAL else None,
            loop_body=[] if node_type == NodeType.LOOP else None,
        )
        if index is None:
            self.nodes.append(node)
        else:
            self.nodes.insert(index, node)

        logging.debug("Node added", extra={"workflow_id": self.workflow_id, "node_id": node.id})
        return node

    def remove_node(self, node_id: str) -> WorkflowNode:
        """Removes the node and detaches it from branches and loop bodies.

        Dynamic references pointing at it are left in place; callers clean
        them up with scrub_references().
        """
        node = self.nodes.pop(self.index_of(node_id))
        for other in self.nodes:
            if other.branches is not None:
                for key in BRANCH_KEYS:
                    children = getattr(other.branches, key)
                    setattr(other.branches, key, [c for c in children if c != node_id])
            if other.loop_body is not None:
                other.loop_body = [c for c in other.loop_body if c != node_id]

        logging.debug("Node removed", extra={"workflow_id": self.workflow_id, "node_id": node_id})
        return node

    def scrub_references(self, node_id: str) -> List[Tuple[str, str]]:
        """Clears dynamic paths pointing at node_id; returns (owner id, parameter id) pairs touched"""
        touched = []
        for node in self.nodes:
            for param in node.parameters:
                if param.dynamic_path and referenced_node_id(unwrap_reference(param.dynamic_path)) == node_id:
                    param.dynamic_path = None
                    touched.append((node.id, param.id))
        return touched

    def update_node(self, node_id: str, **fields) -> WorkflowNode:
        """Replaces the node with a revalidated copy carrying the new field values.

        Changing the type resets branches and loop body to what the new type
        holds unless they are passed explicitly.
        """
        index = self.index_of(node_id)
        for name in fields:
            if name == "id" or name not in WorkflowNode.model_fields:
                raise InvalidStructureError(f"Cannot update field '{name}' of node '{node_id}'",
                                            workflow_id=self.workflow_id)

        current = self.nodes[index]
        data = current.model_dump()
        data.update(fields)
        if "type" in fields:
            try:
                node_type = NodeType(fields["type"])
            except ValueError:
                raise InvalidStructureError(f"Unknown node type {fields['type']!r}", workflow_id=self.workflow_id)
            data["type"] = node_type
            if node_type != current.type and "branches" not in fields:
                data["branches"] = Branches() if node_type == NodeType.CONDITIONAL else None
            if node_type != current.type and "loop_body" not in fields:
                data["loop_body"] = [] if node_type == NodeType.LOOP else None

        try:
            node = WorkflowNode.model_validate(data)
        except ValidationError as e:
            raise InvalidStructureError(f"Invalid update for node '{node_id}': {e}",
                                        workflow_id=self.workflow_id, node_id=node_id)

        self.nodes[index] = node
        return node

    def update_parameter(self, node_id: str, param_id: str, **fields) -> Parameter:
        node = self.get_node(node_id)
        param = node.get_parameter(param_id)
        if param is None:
            raise NodeNotFoundError(f"Parameter '{param_id}' not found on node '{node_id}'",
                                    workflow_id=self.workflow_id, node_id=node_id)
        for name, value in fields.items():
            if name not in Parameter.model_fields:
                raise InvalidStructureError(f"Cannot update field '{name}' of parameter '{param_id}'",
                                            workflow_id=self.workflow_id)
            setattr(param, name, value)
        if "dynamic_path" in fields and "mode" not in fields:
            param.mode = ParameterMode.DYNAMIC if param.dynamic_path else ParameterMode.STATIC
        return param

    def attach_child(self, parent_id: str, child_id: str, branch: Optional[str] = None) -> None:
        parent = self.get_node(parent_id)
        self.get_node(child_id)
        children = self._child_list(parent, branch)
        if child_id not in children:
            children.append(child_id)

    def detach_child(self, parent_id: str, child_id: str, branch: Optional[str] = None) -> None:
        parent = self.get_node(parent_id)
        children = self._child_list(parent, branch)
        if child_id in children:
            children.remove(child_id)

    def move_node(self, node_id: str, new_index: int) -> None:
        node = self.nodes.pop(self.index_of(node_id))
        self.nodes.insert(max(0, min(new_index, len(self.nodes))), node)

    def snapshot(self) -> List[Dict[str, Any]]:
        return [node.to_wire() for node in self.nodes]

    def validate(self) -> ValidationResult:
        return validate_workflow(self.nodes)

    def _child_list(self, parent: WorkflowNode, branch: Optional[str]) -> List[str]:
        if parent.type == NodeType.CONDITIONAL:
            if branch not in BRANCH_KEYS:
                raise InvalidStructureError(
                    f"Conditional node '{parent.id}' needs branch 'true' or 'false', got {branch!r}",
                    workflow_id=self.workflow_id
                )
            if parent.branches is None:
                parent.branches = Branches()
            return getattr(parent.branches, branch)

        if parent.type == NodeType.LOOP:
            if branch is not None:
                raise InvalidStructureError(f"Loop node '{parent.id}' has no branches",
                                            workflow_id=self.workflow_id)
            if parent.loop_body is None:
                parent.loop_body = []
            return parent.loop_body

        raise InvalidStructureError(
            f"Node '{parent.id}' of type {NodeType(parent.type).value} cannot have children",
            workflow_id=self.workflow_id
        )


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _edge_order(api_nodes: List[Dict[str, Any]], edges: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    ids = [str(n.get("id")) for n in api_nodes]
    incoming = {node_id: 0 for node_id in ids}
    targets: Dict[str, List[str]] = {node_id: [] for node_id in ids}
    for edge in edges:
        source, target = str(edge.get("from_node_id")), str(edge.get("to_node_id"))
        if source in targets and target in incoming and source != target:
            targets[source].append(target)
            incoming[target] += 1

    ordered: List[str] = []
    ready = [node_id for node_id in ids if incoming[node_id] == 0]
    while ready:
        node_id = ready.pop(0)
        ordered.append(node_id)
        for target in targets[node_id]:
            incoming[target] -= 1
            if incoming[target] == 0:
                ready.append(target)
        ready.sort(key=ids.index)

    # Cycles keep their input order after the acyclic part
    ordered += [node_id for node_id in ids if node_id not in ordered]
    by_id = {}
    for node_id, node in zip(ids, api_nodes):
        by_id.setdefault(node_id, node)
    return [by_id[node_id] for node_id in dict.fromkeys(ordered)]
