"""Routes tool calls to handlers and wraps every outcome in a CallEnvelope."""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from zypin_mcp.errors import InvalidArgumentsError, UnknownToolError
from zypin_mcp.models import CallEnvelope
from zypin_mcp.registry import ToolRegistry


logger = logging.getLogger(__name__)


@dataclass
class CallOutcome:
    """Envelope for one call plus the transport-level error flag.

    ``is_error`` is only set when the handler raised (or never ran); a tool
    that reports ``success=False`` on its own leaves it unset.
    """

    envelope: CallEnvelope
    is_error: bool = False

    def to_payload(self) -> Dict[str, Any]:
        return self.envelope.to_payload()


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(item) for item in err["loc"]) or "arguments"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)


class Dispatcher:
    """Lists registered tools and executes them by name."""

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    def list_tools(self) -> List[Dict[str, Any]]:
        return [tool.describe() for tool in self.registry]

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> CallOutcome:
        """Run tool ``name``; never raises."""
        try:
            result = await self._invoke(name, arguments or {})
        except Exception as exc:
            logger.warning("Tool %s failed: %s", name, exc)
            logger.debug("Tool %s failure details", name, exc_info=True)
            return CallOutcome(CallEnvelope.failure(str(exc) or type(exc).__name__), is_error=True)

        if isinstance(result, CallEnvelope):
            return CallOutcome(result)
        return CallOutcome(CallEnvelope.ok(data=result))

    async def _invoke(self, name: str, arguments: Dict[str, Any]) -> Any:
        tool = self.registry.get(name)
        if tool is None:
            raise UnknownToolError(name)

        try:
            params = tool.input_model.model_validate(arguments)
        except ValidationError as exc:
            raise InvalidArgumentsError(name, _describe_validation_error(exc)) from exc

        logger.debug("Calling tool %s", name)
        result = tool.handler(params)
        if inspect.isawaitable(result):
            result = await result
        return result
