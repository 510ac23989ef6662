"""Tests for the tools registry."""

import pytest
from pydantic import BaseModel

from toolloop.models.messages import ToolCallRequest
from toolloop.tools import ToolDefinition, ToolError, ToolsRegistry


class EchoInput(BaseModel):
    text: str


async def echo(params: EchoInput, store):
    return {"echo": params.text}


async def refuse(params: EchoInput, store):
    raise ToolError("Not allowed")


async def crash(params: EchoInput, store):
    raise RuntimeError("kaboom")


async def soft_fail(params: EchoInput, store):
    return {"success": False, "error": "Quota exceeded"}


def tool(name, handler):
    return ToolDefinition(name=name, description=f"{name} tool", input_schema_class=EchoInput, handler=handler)


@pytest.fixture
def registry():
    """Create registry with a handful of test tools."""
    return ToolsRegistry(
        store="the-store",
        tools=[tool("echo", echo), tool("refuse", refuse), tool("crash", crash), tool("soft_fail", soft_fail)],
    )


class TestToolsRegistry:
    """Tests for tool registration and execution outcomes."""

    def test_tool_specs_in_registration_order(self, registry):
        """Test the specs advertised to the model."""
        specs = registry.get_tool_specs()
        assert [s.name for s in specs] == ["echo", "refuse", "crash", "soft_fail"]
        assert specs[0].input_schema["properties"]["text"]["type"] == "string"
        assert registry.has_tool("echo")
        assert not registry.has_tool("missing")

    @pytest.mark.asyncio
    async def test_successful_execution(self, registry):
        """Test a handler result wrapped as success."""
        call = ToolCallRequest(id="1", name="echo", arguments={"text": "hi"})
        result = await registry.execute(call)
        assert result.success
        assert result.result == {"echo": "hi"}
        assert result.call == call

    @pytest.mark.asyncio
    async def test_handler_receives_store(self):
        """Test that the store is passed to handlers."""
        seen = []

        async def capture(params, store):
            seen.append(store)
            return None

        registry = ToolsRegistry(store="db", tools=[tool("capture", capture)])
        await registry.execute(ToolCallRequest(id="1", name="capture", arguments={"text": "x"}))
        assert seen == ["db"]

    @pytest.mark.asyncio
    async def test_unknown_tool(self, registry):
        """Test that unknown tools fail without raising."""
        result = await registry.execute(ToolCallRequest(id="1", name="nope", arguments={}))
        assert not result.success
        assert result.error == "Unknown tool: nope"

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, registry):
        """Test that argument validation errors become failed results."""
        result = await registry.execute(ToolCallRequest(id="1", name="echo", arguments={}))
        assert not result.success
        assert result.error.startswith("Invalid arguments for echo: text:")

    @pytest.mark.asyncio
    async def test_tool_error(self, registry):
        """Test that ToolError messages are passed through."""
        result = await registry.execute(ToolCallRequest(id="1", name="refuse", arguments={"text": "x"}))
        assert not result.success
        assert result.error == "Not allowed"

    @pytest.mark.asyncio
    async def test_unexpected_exception(self, registry):
        """Test that unexpected handler exceptions are contained."""
        result = await registry.execute(ToolCallRequest(id="1", name="crash", arguments={"text": "x"}))
        assert not result.success
        assert result.error == "Tool crash failed: kaboom"

    @pytest.mark.asyncio
    async def test_payload_reporting_failure(self, registry):
        """Test that a payload with success=False is treated as a failure."""
        result = await registry.execute(ToolCallRequest(id="1", name="soft_fail", arguments={"text": "x"}))
        assert not result.success
        assert result.error == "Quota exceeded"
