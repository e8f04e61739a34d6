"""Structured exception hierarchy for the workflow graph core."""

from typing import Optional, Dict, Any
from pydantic import BaseModel, Field


class ApiErrorBody(BaseModel):
    """Error envelope returned by the backend REST API"""
    status: str = "error"
    code: int
    message: Optional[str] = None
    trace_id: str = Field(default="", alias="traceId")
    timestamp: Optional[str] = None
    error_message: str = ""
    error_code: str = ""

    model_config = {"populate_by_name": True}

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class WorkflowError(Exception):
    """Base exception for workflow errors"""

    def __init__(self, message: str, workflow_id: str = "", **context):
        self.message = message
        self.workflow_id = workflow_id
        self.context = context
        super().__init__(message)


class GraphError(WorkflowError):
    pass


class NodeNotFoundError(GraphError):
    pass


class InvalidStructureError(GraphError):
    pass


class BackendAPIError(WorkflowError):
    """Raised when the backend answers with a non-2xx status or an error envelope"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: str = "",
        trace_id: str = "",
        **context
    ):
        self.status_code = status_code
        self.error_code = error_code
        self.trace_id = trace_id
        super().__init__(message, **context)

    @classmethod
    def from_body(cls, body: ApiErrorBody) -> "BackendAPIError":
        return cls(
            body.error_message or body.message or f"Backend request failed with code {body.code}",
            status_code=body.code,
            error_code=body.error_code,
            trace_id=body.trace_id,
        )
