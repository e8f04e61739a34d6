"""
Unit tests for API record <-> builder node mapping.
"""

from services.api.domain.mapper import (
    param_type_to_schema_type,
    schema_type_to_param_type,
    to_api_edges,
    remap_references,
    to_api_node,
    to_workflow_node
)
from shared.types import Branches, NodeType, Parameter, ParameterMode, ParameterType, WorkflowNode


def api_node(input_params=None):
    return {
        "id": "node-123",
        "name": "Send Email",
        "description": "email",
        "workflow_id": "wf-1",
        "script_id": "script-9",
        "custom_script_id": None,
        "input_params": input_params or {},
        "output_params": {},
        "max_retries": 3,
        "timeout_seconds": 300,
        "created_at": "2024-01-01T00:00:00Z"
    }


SCHEMA = {
    "input_schema": {
        "to": {"type": "string", "required": True, "description": "Recipient"},
        "count": {"type": "integer", "required": False, "default": 1},
        "ratio": {"type": "float"},
        "enabled": {"type": "boolean", "default": True},
        "tags": {"type": "array"},
        "meta": {"type": "object"},
        "mystery": {"type": "uuid"}
    },
    "output_schema": {}
}


def test_schema_type_table():
    assert schema_type_to_param_type("string") == ParameterType.TEXT
    assert schema_type_to_param_type("STR") == ParameterType.TEXT
    assert schema_type_to_param_type("integer") == ParameterType.NUMBER
    assert schema_type_to_param_type("number") == ParameterType.NUMBER
    assert schema_type_to_param_type("float") == ParameterType.NUMBER
    assert schema_type_to_param_type("boolean") == ParameterType.TOGGLE
    assert schema_type_to_param_type("array") == ParameterType.TEXTAREA
    assert schema_type_to_param_type("object") == ParameterType.TEXTAREA
    assert schema_type_to_param_type("uuid") == ParameterType.TEXT
    assert schema_type_to_param_type(None) == ParameterType.TEXT


def test_param_type_table():
    assert param_type_to_schema_type("text") == "string"
    assert param_type_to_schema_type("textarea") == "string"
    assert param_type_to_schema_type(ParameterType.NUMBER) == "integer"
    assert param_type_to_schema_type("toggle") == "boolean"
    assert param_type_to_schema_type("dropdown") == "string"
    assert param_type_to_schema_type("credential") == "string"
    assert param_type_to_schema_type("unknown") == "string"


def test_to_workflow_node_basic_fields():
    node = to_workflow_node(api_node(), SCHEMA)

    assert node.id == "node-123"
    assert node.type == NodeType.ACTION
    assert node.title == "Send Email"
    assert node.api_node_id == "node-123"
    assert node.script_id == "script-9"
    assert [p.id for p in node.parameters] == ["to", "count", "ratio", "enabled", "tags", "meta", "mystery"]


def test_to_workflow_node_values_and_defaults():
    node = to_workflow_node(api_node({"to": {"value": "a@b.c"}}), SCHEMA)

    to = node.get_parameter("to")
    assert to.value == "a@b.c"
    assert to.label == "Recipient"
    assert to.required is True
    assert to.mode == ParameterMode.STATIC

    assert node.get_parameter("count").value == 1
    assert node.get_parameter("count").label == "count"
    assert node.get_parameter("enabled").value is True
    assert node.get_parameter("ratio").value == ""


def test_to_workflow_node_keeps_falsy_input_values():
    node = to_workflow_node(api_node({"enabled": {"value": False}, "count": {"value": 0}}), SCHEMA)

    assert node.get_parameter("enabled").value is False
    assert node.get_parameter("count").value == 0


def test_to_workflow_node_detects_dynamic_values():
    node = to_workflow_node(api_node({"to": {"value": "${trigger.email}"}, "tags": {"value": "$notdynamic"}}), SCHEMA)

    to = node.get_parameter("to")
    assert to.mode == ParameterMode.DYNAMIC
    assert to.dynamic_path == "${trigger.email}"

    tags = node.get_parameter("tags")
    assert tags.mode == ParameterMode.STATIC
    assert tags.dynamic_path is None


def test_to_workflow_node_accepts_bare_input_schema():
    node = to_workflow_node(api_node(), SCHEMA["input_schema"])

    assert len(node.parameters) == 7


def test_to_workflow_node_without_schema():
    node = to_workflow_node(api_node({"to": {"value": "x"}}))

    assert node.parameters == []


def test_to_workflow_node_malformed_schema():
    assert to_workflow_node(api_node(), {"input_schema": "broken"}).parameters == []
    assert to_workflow_node({}, None).id == ""


def test_to_workflow_node_coerces_non_string_fields():
    record = {"id": 7, "name": 7, "description": 3.5, "script_id": 12, "custom_script_id": False}
    schema = {"input_schema": {"x": {"type": "string", "description": 42, "placeholder": ["a"]}}}

    node = to_workflow_node(record, schema)

    assert node.id == "7"
    assert node.title == "7"
    assert node.category == "3.5"
    assert node.script_id == "12"
    assert node.custom_script_id == "False"
    assert node.parameters[0].label == "42"
    assert node.parameters[0].placeholder == "['a']"


def test_to_workflow_node_null_name_and_description():
    node = to_workflow_node({"id": "n", "name": None, "description": None},
                            {"x": {"description": None, "placeholder": None}})

    assert node.title == ""
    assert node.category is None
    assert node.parameters[0].label == "x"
    assert node.parameters[0].placeholder == ""


def test_to_api_node_defaults():
    node = WorkflowNode(
        id="a1",
        title="Send Email",
        category="email",
        parameters=[
            Parameter(id="to", type=ParameterType.TEXT, value="a@b.c", required=False),
            Parameter(id="count", type=ParameterType.NUMBER, value=3),
            Parameter(id="body", mode=ParameterMode.DYNAMIC, dynamic_path="fetch.body", value="ignored")
        ]
    )

    record = to_api_node(node, "wf-1", script_id="script-9")

    assert record["name"] == "Send Email"
    assert record["description"] == "email"
    assert record["workflow_id"] == "wf-1"
    assert record["script_id"] == "script-9"
    assert "custom_script_id" not in record
    assert record["output_params"] == {}
    assert record["max_retries"] == 3
    assert record["timeout_seconds"] == 300
    assert record["input_params"] == {
        "to": {"type": "string", "value": "a@b.c", "required": True},
        "count": {"type": "integer", "value": 3, "required": True},
        "body": {"type": "string", "value": "fetch.body", "required": True}
    }


def test_to_api_node_dynamic_without_path_sends_value():
    node = {"id": "a", "title": "A", "parameters": [{"id": "x", "mode": "dynamic", "value": "kept"}]}

    record = to_api_node(node, "wf-1")

    assert record["input_params"]["x"]["value"] == "kept"


def test_round_trip_preserves_effective_values():
    """Loading a record and saving it back keeps every value and reference"""
    inputs = {
        "to": {"value": "${trigger.email}"},
        "count": {"value": 5},
        "ratio": {"value": 0.5},
        "enabled": {"value": False},
        "tags": {"value": "[\"a\", \"b\"]"},
        "meta": {"value": "${fetch.meta}"},
        "mystery": {"value": "abc"}
    }

    record = to_api_node(to_workflow_node(api_node(inputs), SCHEMA), "wf-1")

    for key, entry in inputs.items():
        assert record["input_params"][key]["value"] == entry["value"]


def test_to_api_edges_linear():
    nodes = [{"id": "t", "type": "trigger"}, {"id": "a", "type": "action"}, {"id": "b", "type": "action"}]

    assert to_api_edges(nodes) == [
        {"from_node_id": "t", "to_node_id": "a"},
        {"from_node_id": "a", "to_node_id": "b"}
    ]


def test_to_api_edges_with_branches_and_loop():
    nodes = [
        WorkflowNode(id="t", type=NodeType.TRIGGER),
        WorkflowNode(id="c", type=NodeType.CONDITIONAL, branches=Branches(true=["y1", "y2"], false=["n1"])),
        WorkflowNode(id="y1"),
        WorkflowNode(id="y2"),
        WorkflowNode(id="n1"),
        WorkflowNode(id="l", type=NodeType.LOOP, loop_body=["body"]),
        WorkflowNode(id="body")
    ]

    edges = to_api_edges(nodes)

    assert edges == [
        {"from_node_id": "t", "to_node_id": "c"},
        {"from_node_id": "c", "to_node_id": "l"},
        {"from_node_id": "c", "to_node_id": "y1"},
        {"from_node_id": "y1", "to_node_id": "y2"},
        {"from_node_id": "c", "to_node_id": "n1"},
        {"from_node_id": "l", "to_node_id": "body"}
    ]


def test_remap_references():
    input_params = {
        "to": {"type": "string", "value": "trig.email", "required": True},
        "meta": {"type": "object", "value": "${trig.meta}", "required": True},
        "subject": {"type": "string", "value": "Hello", "required": True},
        "other": {"type": "string", "value": "fetch.body", "required": True},
        "count": {"type": "number", "value": 3, "required": True}
    }

    remapped = remap_references(input_params, {"trig": "srv-1"})

    assert remapped["to"]["value"] == "srv-1.email"
    assert remapped["meta"]["value"] == "${srv-1.meta}"
    assert remapped["subject"]["value"] == "Hello"
    assert remapped["other"]["value"] == "fetch.body"
    assert remapped["count"]["value"] == 3
    assert input_params["to"]["value"] == "trig.email"
