"""Tool descriptors and the registry that holds them."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Type

from pydantic import BaseModel

from zypin_mcp.errors import ToolRegistrationError


_SCHEMA_KEYS = ("type", "description", "additionalProperties", "items")


def _property_schema(prop: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce a pydantic property schema to ``{type, description}``.

    Optional fields are rendered with their non-null type.
    """
    if "type" not in prop and "anyOf" in prop:
        for option in prop["anyOf"]:
            if option.get("type") != "null":
                prop = {**option, "description": prop.get("description")}
                break
    result = {key: prop[key] for key in _SCHEMA_KEYS if prop.get(key) is not None}
    result.setdefault("description", "")
    return result


def schema_from_model(model: Type[BaseModel]) -> Dict[str, Any]:
    """Build the object schema advertised to clients for ``model``."""
    raw = model.model_json_schema(by_alias=True)
    properties = {
        name: _property_schema(prop) for name, prop in raw.get("properties", {}).items()
    }
    return {
        "type": "object",
        "properties": properties,
        "required": list(raw.get("required", [])),
    }


@dataclass(frozen=True)
class Tool:
    """A named operation: its input model, advertised schema and handler."""

    name: str
    description: str
    input_model: Type[BaseModel]
    handler: Callable[[Any], Any]
    category: Optional[str] = None
    input_schema: Dict[str, Any] = field(default=None)

    def __post_init__(self):
        if self.input_schema is None:
            object.__setattr__(self, "input_schema", schema_from_model(self.input_model))

    def describe(self) -> Dict[str, Any]:
        """Public listing entry; never includes the handler."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


class ToolRegistry:
    """Tools in registration order, looked up by exact name."""

    def __init__(self, tools: Optional[List[Tool]] = None):
        self._tools: Dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool) -> Tool:
        if not tool.name:
            raise ToolRegistrationError("Tool name must not be empty")
        if tool.name in self._tools:
            raise ToolRegistrationError(f"Duplicate tool name: {tool.name}")
        properties = tool.input_schema.get("properties", {})
        missing = [name for name in tool.input_schema.get("required", []) if name not in properties]
        if missing:
            raise ToolRegistrationError(
                f"Tool {tool.name} requires undeclared properties: {', '.join(missing)}"
            )
        self._tools[tool.name] = tool
        return tool

    def extend(self, tools: List[Tool]) -> None:
        for tool in tools:
            self.register(tool)

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)
