"""
HTTP client for the backend workflow REST API.
"""

import logging
import os
from typing import Any, Dict, List, Optional
import requests
from requests.exceptions import RequestException
from shared.constants import DEFAULT_BACKEND_TIMEOUT_SECONDS, DEFAULT_BACKEND_URL
from shared.envelope import unwrap
from shared.exceptions import BackendAPIError
from shared.logging_config import get_correlation_id
from services.api.domain.mapper import remap_references


class BackendClient:
    """Thin wrapper over the backend's workspace/workflow endpoints"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None
    ):
        self.base_url = (base_url or os.getenv("BACKEND_API_URL", DEFAULT_BACKEND_URL)).rstrip("/")
        self.timeout = timeout or float(os.getenv("BACKEND_TIMEOUT_SECONDS", DEFAULT_BACKEND_TIMEOUT_SECONDS))
        self.access_token = access_token
        self.session = session or requests.Session()

    def _workflow_url(self, workspace_id: str, workflow_id: str) -> str:
        return f"{self.base_url}/frontend/workspaces/{workspace_id}/workflows/{workflow_id}"

    def _request(self, method: str, url: str, body: Optional[Dict[str, Any]] = None) -> Any:
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        correlation_id = get_correlation_id()
        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id

        try:
            response = self.session.request(method, url, headers=headers, json=body, timeout=self.timeout)
        except RequestException as e:
            logging.error("Backend request failed", extra={"method": method, "url": url, "error": str(e)})
            raise BackendAPIError(f"Backend request failed: {str(e)}", url=url)

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.ok:
            message = None
            if isinstance(payload, dict):
                message = payload.get("error_message") or payload.get("message") or payload.get("error")
            logging.warning("Backend returned an error", extra={
                "method": method,
                "url": url,
                "status_code": response.status_code
            })
            raise BackendAPIError(
                message or f"{response.status_code} {response.reason}",
                status_code=response.status_code,
                error_code=payload.get("error_code", "") if isinstance(payload, dict) else "",
                trace_id=payload.get("traceId", "") if isinstance(payload, dict) else "",
                url=url
            )

        return unwrap(payload)

    def get_workflow_graph(self, workspace_id: str, workflow_id: str) -> Dict[str, Any]:
        return self._request("GET", f"{self._workflow_url(workspace_id, workflow_id)}/graph")

    def get_script_content(self, script_id: str) -> Dict[str, Any]:
        return self._request("GET", f"{self.base_url}/scripts/{script_id}/content")

    def add_node(self, workspace_id: str, workflow_id: str, api_node: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", f"{self._workflow_url(workspace_id, workflow_id)}/nodes", api_node)

    def add_edge(self, workspace_id: str, workflow_id: str, from_node_id: str, to_node_id: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            f"{self._workflow_url(workspace_id, workflow_id)}/edges",
            {"from_node_id": from_node_id, "to_node_id": to_node_id}
        )

    def update_node_input_params(
        self,
        workspace_id: str,
        workflow_id: str,
        node_id: str,
        input_params: Dict[str, Any]
    ) -> Dict[str, Any]:
        return self._request(
            "PUT",
            f"{self._workflow_url(workspace_id, workflow_id)}/nodes/{node_id}/input-params",
            {"input_params": input_params}
        )

    def delete_node(self, workspace_id: str, workflow_id: str, node_id: str) -> Any:
        return self._request("DELETE", f"{self._workflow_url(workspace_id, workflow_id)}/nodes/{node_id}")

    def publish_nodes(
        self,
        workspace_id: str,
        workflow_id: str,
        api_nodes: List[Dict[str, Any]],
        edges: List[Dict[str, str]]
    ) -> Dict[str, List[Dict[str, Any]]]:
        """Creates nodes, then edges, rewritten to the backend-assigned node ids.

        api_nodes carry the builder id under "builder_id"; it is stripped
        before sending. Nodes are sent in order, so input params referencing
        an earlier node are rewritten to its new id. If any call fails, the
        nodes created so far are deleted and the error is re-raised.
        """
        created_nodes: List[Dict[str, Any]] = []
        id_map: Dict[str, str] = {}
        try:
            for api_node in api_nodes:
                payload = {k: v for k, v in api_node.items() if k != "builder_id"}
                if isinstance(payload.get("input_params"), dict):
                    payload["input_params"] = remap_references(payload["input_params"], id_map)
                created = self.add_node(workspace_id, workflow_id, payload) or {}
                created_nodes.append(created)
                builder_id = api_node.get("builder_id")
                if builder_id is not None and created.get("id") is not None:
                    id_map[builder_id] = str(created["id"])

            created_edges = []
            for edge in edges:
                created_edges.append(self.add_edge(
                    workspace_id,
                    workflow_id,
                    id_map.get(edge["from_node_id"], edge["from_node_id"]),
                    id_map.get(edge["to_node_id"], edge["to_node_id"])
                ))
        except BackendAPIError:
            self._rollback(workspace_id, workflow_id, created_nodes)
            raise

        logging.info("Workflow graph persisted", extra={
            "workflow_id": workflow_id,
            "node_count": len(created_nodes),
            "edge_count": len(created_edges)
        })
        return {"nodes": created_nodes, "edges": created_edges}

    def _rollback(self, workspace_id: str, workflow_id: str, created_nodes: List[Dict[str, Any]]) -> None:
        for created in reversed(created_nodes):
            node_id = created.get("id")
            if node_id is None:
                continue
            try:
                self.delete_node(workspace_id, workflow_id, node_id)
            except BackendAPIError as e:
                logging.error("Failed to delete node during rollback", extra={
                    "workflow_id": workflow_id,
                    "node_id": node_id,
                    "error": str(e)
                })
        logging.warning("Workflow publish rolled back", extra={
            "workflow_id": workflow_id,
            "node_count": len(created_nodes)
        })
