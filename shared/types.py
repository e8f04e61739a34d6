"""Shared types for the workflow graph and validation results."""

from enum import Enum
from typing import Dict, List, Any, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class NodeType(str, Enum):
    TRIGGER = "trigger"
    ACTION = "action"
    CONDITIONAL = "conditional"
    LOOP = "loop"


class ParameterMode(str, Enum):
    STATIC = "static"
    DYNAMIC = "dynamic"


class ParameterType(str, Enum):
    TEXT = "text"
    DROPDOWN = "dropdown"
    NUMBER = "number"
    TOGGLE = "toggle"
    TEXTAREA = "textarea"
    CREDENTIAL = "credential"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class BuilderModel(BaseModel):
    """Builder-side records travel as camelCase JSON"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class Parameter(BuilderModel):
    id: str
    label: str = ""
    type: ParameterType = ParameterType.TEXT
    required: bool = False
    mode: ParameterMode = ParameterMode.STATIC
    value: Any = ""
    dynamic_path: Optional[str] = None
    placeholder: Optional[str] = None
    options: Optional[List[str]] = None


class Branches(BuilderModel):
    true: List[str] = Field(default_factory=list)
    false: List[str] = Field(default_factory=list)


class WorkflowNode(BuilderModel):
    id: str
    type: NodeType = NodeType.ACTION
    title: str = ""
    parameters: List[Parameter] = Field(default_factory=list)
    branches: Optional[Branches] = None
    loop_body: Optional[List[str]] = None
    category: Optional[str] = None
    api_node_id: Optional[str] = None
    script_id: Optional[str] = None
    custom_script_id: Optional[str] = None

    @model_validator(mode="after")
    def check_structural_fields(self) -> "WorkflowNode":
        if self.branches is not None and self.type != NodeType.CONDITIONAL:
            raise ValueError(f"Only conditional nodes may carry branches (node '{self.id}' is {self.type.value})")
        if self.loop_body is not None and self.type != NodeType.LOOP:
            raise ValueError(f"Only loop nodes may carry a loop body (node '{self.id}' is {self.type.value})")
        return self

    def get_parameter(self, param_id: str) -> Optional[Parameter]:
        for param in self.parameters:
            if param.id == param_id:
                return param
        return None


class Issue(BuilderModel):
    node_id: str
    node_name: Optional[str] = None
    severity: Severity
    message: str
    field: Optional[str] = None


class ValidationResult(BuilderModel):
    is_valid: bool
    errors: List[Issue] = Field(default_factory=list)
    warnings: List[Issue] = Field(default_factory=list)

