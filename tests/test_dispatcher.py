import pytest
from pydantic import BaseModel, Field

from zypin_mcp.dispatcher import Dispatcher
from zypin_mcp.models import CallEnvelope, NoArguments
from zypin_mcp.registry import Tool, ToolRegistry


class EchoInput(BaseModel):
    message: str = Field(description="Text to echo")


def _make_dispatcher(calls=None):
    calls = [] if calls is None else calls

    async def echo(args: EchoInput):
        calls.append(args.message)
        return CallEnvelope.ok("echoed", {"message": args.message})

    def plain(args: NoArguments):
        return {"answer": 42}

    async def boom(args: NoArguments):
        raise Exception("boom")

    async def soft(args: NoArguments):
        return CallEnvelope.soft_failure("Directory not found: /nowhere")

    registry = ToolRegistry([
        Tool("echo", "Echo a message", EchoInput, echo),
        Tool("plain", "Returns a bare value", NoArguments, plain),
        Tool("boom", "Always fails", NoArguments, boom),
        Tool("soft", "Reports its own failure", NoArguments, soft),
    ])
    return Dispatcher(registry)


def test_list_tools_is_stable_and_hides_handlers():
    dispatcher = _make_dispatcher()
    first = dispatcher.list_tools()
    second = dispatcher.list_tools()

    assert first == second
    assert [entry["name"] for entry in first] == ["echo", "plain", "boom", "soft"]
    for entry in first:
        assert set(entry) == {"name", "description", "inputSchema"}
    assert first[0]["inputSchema"]["required"] == ["message"]


@pytest.mark.asyncio
async def test_unknown_tool():
    outcome = await _make_dispatcher().call_tool("nonexistent", {})

    assert outcome.is_error is True
    assert outcome.to_payload()["success"] is False
    assert "nonexistent" in outcome.to_payload()["error"]


@pytest.mark.asyncio
async def test_success_envelope_passes_through():
    outcome = await _make_dispatcher().call_tool("echo", {"message": "hi"})

    assert outcome.is_error is False
    assert outcome.to_payload() == {"success": True, "message": "echoed", "data": {"message": "hi"}}


@pytest.mark.asyncio
async def test_sync_handler_value_is_wrapped_as_data():
    outcome = await _make_dispatcher().call_tool("plain", None)

    assert outcome.to_payload() == {"success": True, "data": {"answer": 42}}


@pytest.mark.asyncio
async def test_handler_exception_becomes_failure_envelope():
    outcome = await _make_dispatcher().call_tool("boom", {})

    assert outcome.is_error is True
    assert outcome.to_payload() == {"success": False, "error": "boom"}


@pytest.mark.asyncio
async def test_soft_failure_is_not_a_transport_error():
    outcome = await _make_dispatcher().call_tool("soft", {})

    assert outcome.is_error is False
    assert outcome.to_payload() == {"success": False, "message": "Directory not found: /nowhere"}


@pytest.mark.asyncio
async def test_missing_required_argument_skips_handler():
    calls = []
    outcome = await _make_dispatcher(calls).call_tool("echo", {})

    assert outcome.is_error is True
    error = outcome.to_payload()["error"]
    assert error.startswith("Invalid arguments for echo")
    assert "message" in error
    assert calls == []


@pytest.mark.asyncio
async def test_wrong_argument_type_rejected():
    outcome = await _make_dispatcher().call_tool("echo", {"message": ["not", "a", "string"]})

    assert outcome.is_error is True
    assert "Invalid arguments for echo" in outcome.to_payload()["error"]


def test_envelope_rejects_data_with_error():
    with pytest.raises(ValueError):
        CallEnvelope(success=False, data={"x": 1}, error="nope")
    with pytest.raises(ValueError):
        CallEnvelope(success=True, error="nope")


def test_failed_envelope_rejects_data():
    with pytest.raises(ValueError):
        CallEnvelope(success=False, message="Directory not found: /nowhere", data={"x": 1})
    assert CallEnvelope.soft_failure("Directory not found: /nowhere").data is None
