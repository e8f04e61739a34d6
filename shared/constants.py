"""Centralized constants"""

# Node record defaults sent to the backend
DEFAULT_MAX_RETRIES = 3
DEFAULT_NODE_TIMEOUT_SECONDS = 300  # 5 minutes

# Backend client
DEFAULT_BACKEND_URL = "http://localhost:8000"
DEFAULT_BACKEND_TIMEOUT_SECONDS = 30

# Dynamic references are wire values starting with this marker
DYNAMIC_REFERENCE_PREFIX = "${"
DYNAMIC_REFERENCE_SUFFIX = "}"

# Nodes with this many unconfigured optional parameters or more are not warned about
OPTIONAL_PARAM_WARNING_LIMIT = 3

# Well-known parameter ids
CONDITION_PARAM_ID = "condition"
ITERATION_ARRAY_PARAM_ID = "iteration_array"

# Pseudo node id for workflow-level issues
WORKFLOW_ISSUE_NODE_ID = "workflow"

# Schema type -> builder parameter type
SCHEMA_TO_PARAM_TYPE = {
    "string": "text",
    "str": "text",
    "integer": "number",
    "int": "number",
    "number": "number",
    "float": "number",
    "boolean": "toggle",
    "bool": "toggle",
    "array": "textarea",
    "list": "textarea",
    "object": "textarea",
    "dict": "textarea",
}

# Builder parameter type -> schema type
PARAM_TO_SCHEMA_TYPE = {
    "text": "string",
    "textarea": "string",
    "number": "integer",
    "toggle": "boolean",
    "dropdown": "string",
    "credential": "string",
}
