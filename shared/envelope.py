"""Response envelope shared with the backend REST API.

Every backend response is wrapped as::

    {"status": "success", "code": 200, "message": null,
     "traceId": "...", "timestamp": "...", "data": {...}}

Errors replace ``data`` with ``error_message`` / ``error_code``.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field
from shared.exceptions import ApiErrorBody, BackendAPIError
from shared.logging_config import get_correlation_id


class ApiEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "success"
    code: int = 200
    message: Optional[str] = None
    trace_id: str = Field(default="", alias="traceId")
    timestamp: str = ""
    data: Any = None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def success_envelope(data: Any, code: int = 200, message: Optional[str] = None) -> Dict[str, Any]:
    return ApiEnvelope(
        code=code,
        message=message,
        trace_id=get_correlation_id(),
        timestamp=_now(),
        data=data,
    ).model_dump(by_alias=True, mode="json")


def error_envelope(code: int, error_message: str, error_code: str) -> Dict[str, Any]:
    return ApiErrorBody(
        code=code,
        trace_id=get_correlation_id(),
        timestamp=_now(),
        error_message=error_message,
        error_code=error_code,
    ).to_dict()


def unwrap(payload: Any) -> Any:
    """Returns the data of a success envelope, raising BackendAPIError for error envelopes"""
    if not isinstance(payload, dict):
        raise BackendAPIError("Backend returned a non-object response")

    if payload.get("status") == "error":
        body = ApiErrorBody.model_validate({**payload, "code": payload.get("code") or 500})
        raise BackendAPIError.from_body(body)

    return ApiEnvelope.model_validate(payload).data
