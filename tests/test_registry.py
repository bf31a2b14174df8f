import pytest
from pydantic import BaseModel, Field

from zypin_mcp.errors import ToolRegistrationError
from zypin_mcp.models import CreateTemplateInput, FillFormInput, NoArguments, ScreenshotInput
from zypin_mcp.registry import Tool, ToolRegistry, schema_from_model


def _noop(args):
    return None


def test_schema_for_no_arguments():
    assert schema_from_model(NoArguments) == {"type": "object", "properties": {}, "required": []}


def test_schema_uses_aliases_and_required():
    schema = schema_from_model(CreateTemplateInput)
    assert set(schema["properties"]) == {"projectName", "template", "workingDirectory"}
    assert sorted(schema["required"]) == ["projectName", "template", "workingDirectory"]
    assert schema["properties"]["projectName"] == {"type": "string", "description": "Project name"}


def test_schema_optional_and_mapping_fields():
    screenshot = schema_from_model(ScreenshotInput)
    assert screenshot["required"] == []
    assert screenshot["properties"]["filename"]["type"] == "string"
    assert screenshot["properties"]["full_page"]["type"] == "boolean"

    fill = schema_from_model(FillFormInput)
    assert fill["properties"]["fields"]["type"] == "object"
    assert fill["properties"]["fields"]["additionalProperties"] == {"type": "string"}


def test_registration_order_and_lookup():
    registry = ToolRegistry([
        Tool("b", "second letter", NoArguments, _noop),
        Tool("a", "first letter", NoArguments, _noop),
    ])
    assert registry.names() == ["b", "a"]
    assert registry.get("a").description == "first letter"
    assert registry.get("missing") is None
    assert "b" in registry
    assert len(registry) == 2


def test_duplicate_name_rejected():
    registry = ToolRegistry([Tool("click", "Click", NoArguments, _noop)])
    with pytest.raises(ToolRegistrationError, match="Duplicate tool name: click"):
        registry.register(Tool("click", "Click again", NoArguments, _noop))


def test_required_must_be_declared():
    class Args(BaseModel):
        selector: str = Field(description="selector")

    schema = {"type": "object", "properties": {}, "required": ["selector"]}
    with pytest.raises(ToolRegistrationError, match="undeclared properties: selector"):
        ToolRegistry([Tool("bad", "Bad schema", Args, _noop, input_schema=schema)])


def test_describe_omits_handler():
    entry = Tool("noop", "Does nothing", NoArguments, _noop).describe()
    assert set(entry) == {"name", "description", "inputSchema"}
