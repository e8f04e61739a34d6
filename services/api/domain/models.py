"""API request/response models."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any
from shared.types import ValidationResult, WorkflowNode


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ValidateWorkflowRequest(RequestModel):
    """Builder graph snapshot; nodes stay loosely typed so malformed drafts still validate"""
    nodes: List[Dict[str, Any]] = Field(default_factory=list)


class ValidateWorkflowResponse(ValidationResult):
    summary: str


class FromApiNodeRequest(RequestModel):
    node: Dict[str, Any]
    script_schema: Optional[Dict[str, Any]] = None


class ToApiNodeRequest(RequestModel):
    node: WorkflowNode
    workflow_id: str
    script_id: Optional[str] = None
    custom_script_id: Optional[str] = None


class PublishWorkflowRequest(RequestModel):
    nodes: List[WorkflowNode]


class PublishWorkflowResponse(RequestModel):
    workflow_id: str
    nodes: List[Dict[str, Any]]
    edges: List[Dict[str, Any]]
    warnings: List[Dict[str, Any]] = Field(default_factory=list)


class LoadWorkflowResponse(RequestModel):
    workflow_id: str
    nodes: List[Dict[str, Any]]
    validation: ValidateWorkflowResponse
