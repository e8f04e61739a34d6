"""Workflow API routes."""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, status
from fastapi.responses import JSONResponse
from services.api.domain.graph import WorkflowGraph
from services.api.domain.mapper import to_api_edges, to_api_node, to_workflow_node
from services.api.domain.models import (
    FromApiNodeRequest,
    LoadWorkflowResponse,
    PublishWorkflowRequest,
    PublishWorkflowResponse,
    ToApiNodeRequest,
    ValidateWorkflowRequest,
    ValidateWorkflowResponse
)
from services.api.domain.validation import get_validation_summary, validate_workflow
from services.api.infra.backend_client import BackendClient
from shared.envelope import error_envelope, success_envelope


router = APIRouter()


def get_backend_client(authorization: Optional[str] = Header(None)) -> BackendClient:
    """Backend client acting with the caller's bearer token"""
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[len("bearer "):].strip()
    return BackendClient(access_token=token)


@router.post("/workflow/validate")
async def validate(request: ValidateWorkflowRequest):
    result = validate_workflow(request.nodes)
    response = ValidateWorkflowResponse(
        is_valid=result.is_valid,
        errors=result.errors,
        warnings=result.warnings,
        summary=get_validation_summary(result)
    )
    return success_envelope(response.model_dump(by_alias=True, mode="json"))


@router.post("/workflow/nodes/from-api")
async def node_from_api(request: FromApiNodeRequest):
    node = to_workflow_node(request.node, request.script_schema)
    return success_envelope(node.to_wire())


@router.post("/workflow/nodes/to-api")
async def node_to_api(request: ToApiNodeRequest):
    api_node = to_api_node(request.node, request.workflow_id, request.script_id, request.custom_script_id)
    return success_envelope(api_node)


@router.get("/workspaces/{workspace_id}/workflows/{workflow_id}")
def load_workflow(
    workspace_id: str,
    workflow_id: str,
    client: BackendClient = Depends(get_backend_client)
):
    """Persisted workflow mapped into builder nodes, with its validation result"""
    graph_record = client.get_workflow_graph(workspace_id, workflow_id) or {}
    api_nodes = graph_record.get("nodes") if isinstance(graph_record, dict) else None

    script_schemas = {}
    for api_node in api_nodes if isinstance(api_nodes, list) else []:
        script_id = api_node.get("script_id") if isinstance(api_node, dict) else None
        if isinstance(script_id, str) and script_id and script_id not in script_schemas:
            script_schemas[script_id] = client.get_script_content(script_id)

    graph = WorkflowGraph.from_backend(graph_record, script_schemas, workflow_id=workflow_id)
    result = graph.validate()
    response = LoadWorkflowResponse(
        workflow_id=workflow_id,
        nodes=graph.snapshot(),
        validation=ValidateWorkflowResponse(
            is_valid=result.is_valid,
            errors=result.errors,
            warnings=result.warnings,
            summary=get_validation_summary(result)
        )
    )
    return success_envelope(response.model_dump(by_alias=True, mode="json"))


@router.post("/workspaces/{workspace_id}/workflows/{workflow_id}/publish",
             status_code=status.HTTP_201_CREATED)
def publish_workflow(
    workspace_id: str,
    workflow_id: str,
    request: PublishWorkflowRequest,
    client: BackendClient = Depends(get_backend_client)
):
    graph = WorkflowGraph(request.nodes, workflow_id=workflow_id)
    result = graph.validate()

    if not result.is_valid:
        logging.info("Publish rejected by validation", extra={
            "workflow_id": workflow_id,
            "error_count": len(result.errors)
        })
        content = error_envelope(status.HTTP_400_BAD_REQUEST, get_validation_summary(result), "WORKFLOW_INVALID")
        content["data"] = result.model_dump(by_alias=True, mode="json")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)

    api_nodes = []
    for node in graph:
        api_node = to_api_node(node, workflow_id, node.script_id, node.custom_script_id)
        api_node["builder_id"] = node.id
        api_nodes.append(api_node)

    created = client.publish_nodes(workspace_id, workflow_id, api_nodes, to_api_edges(graph.nodes))

    response = PublishWorkflowResponse(
        workflow_id=workflow_id,
        nodes=created["nodes"],
        edges=created["edges"],
        warnings=[w.model_dump(by_alias=True, mode="json") for w in result.warnings]
    )
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=success_envelope(response.model_dump(by_alias=True, mode="json"), code=status.HTTP_201_CREATED)
    )
