"""API service exposing workflow graph validation and mapping."""

import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from services.api.routes.workflow import router as workflow_router
from services.api.middleware import CorrelationIdMiddleware
from shared.envelope import error_envelope
from shared.exceptions import BackendAPIError
from shared.logging_config import setup_logging

setup_logging("api")

app = FastAPI(title="Workflow Graph API", version="1.0.0")
app.add_middleware(CorrelationIdMiddleware)

app.include_router(workflow_router, tags=["Workflows"])


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.status_code, str(exc.detail), f"HTTP_{exc.status_code}")
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    code = 422
    content = error_envelope(code, "Request body is invalid", "REQUEST_INVALID")
    content["details"] = [
        {"loc": list(error.get("loc", [])), "msg": error.get("msg", "")} for error in exc.errors()
    ]
    return JSONResponse(status_code=code, content=content)


@app.exception_handler(BackendAPIError)
async def backend_error_handler(request: Request, exc: BackendAPIError):
    logging.error("Backend call failed", extra={
        "path": request.url.path,
        "backend_status_code": exc.status_code,
        "backend_trace_id": exc.trace_id
    })
    code = status.HTTP_502_BAD_GATEWAY
    return JSONResponse(status_code=code, content=error_envelope(code, exc.message, exc.error_code or "BACKEND_ERROR"))


@app.get("/")
async def root():
    return {"service": "api", "status": "running"}


@app.get("/health")
async def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8080)
