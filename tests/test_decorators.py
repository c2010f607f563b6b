"""
Tests for tool decorators
"""

from typing import Annotated

from docker_mcp_server.tools.decorators import tool, type_to_json_schema, unwrap_optional


def test_basic_tool_decorator():
    """Test basic tool decorator functionality"""

    @tool(description="Test tool")
    def test_func(x: int, y: str = "default") -> str:
        """Test function"""
        return f"{x}: {y}"

    assert hasattr(test_func, "_mcp_tool_metadata")

    metadata = test_func._mcp_tool_metadata
    assert metadata["name"] == "test_func"
    assert metadata["description"] == "Test tool"
    assert metadata["async"] is False

    schema = metadata["inputSchema"]
    assert schema["type"] == "object"
    assert schema["properties"]["x"]["type"] == "integer"
    assert schema["properties"]["y"] == {"type": "string", "default": "default"}
    assert schema["required"] == ["x"]


def test_tool_decorator_with_custom_name():
    """Test tool decorator with custom name"""

    @tool(name="custom_name", description="Custom tool")
    def original_name(value: str) -> str:
        return value.upper()

    metadata = original_name._mcp_tool_metadata
    assert metadata["name"] == "custom_name"
    assert metadata["description"] == "Custom tool"


def test_tool_decorator_uses_docstring():
    """Test that decorator uses function docstring if no description provided"""

    @tool()
    def documented_func() -> str:
        """This is from the docstring"""
        return "test"

    assert documented_func._mcp_tool_metadata["description"] == "This is from the docstring"


def test_tool_decorator_async_function():
    @tool()
    async def async_tool(container_id: str) -> dict:
        return {}

    assert async_tool._mcp_tool_metadata["async"] is True


def test_tool_decorator_annotated_descriptions():
    """Test Annotated metadata becomes the parameter description"""

    @tool()
    async def start(
        container_id: Annotated[str, "Container ID or name"],
        timeout: Annotated[int, "Seconds to wait"] = 10,
        labels: Annotated[list[str] | None, "Label filters"] = None,
    ) -> dict:
        return {}

    props = start._mcp_tool_metadata["inputSchema"]["properties"]
    assert props["container_id"] == {"type": "string", "description": "Container ID or name"}
    assert props["timeout"] == {"type": "integer", "description": "Seconds to wait", "default": 10}
    assert props["labels"] == {"type": "array", "items": {"type": "string"}, "description": "Label filters"}
    assert start._mcp_tool_metadata["inputSchema"]["required"] == ["container_id"]


def test_tool_decorator_type_hints():
    """Test various type hint conversions"""

    @tool()
    def type_test(
        string_param: str,
        int_param: int,
        float_param: float,
        bool_param: bool,
        list_param: list,
        dict_param: dict,
    ) -> str:
        return "test"

    props = type_test._mcp_tool_metadata["inputSchema"]["properties"]

    assert props["string_param"]["type"] == "string"
    assert props["int_param"]["type"] == "integer"
    assert props["float_param"]["type"] == "number"
    assert props["bool_param"]["type"] == "boolean"
    assert props["list_param"]["type"] == "array"
    assert props["dict_param"]["type"] == "object"


def test_tool_decorator_no_params():
    """Test tool with no parameters"""

    @tool()
    def no_params() -> str:
        return "no params"

    schema = no_params._mcp_tool_metadata["inputSchema"]
    assert schema["properties"] == {}
    assert "required" not in schema


def test_tool_function_still_callable():
    """Test that decorated function is still callable"""

    @tool()
    def callable_test(x: int, y: int = 5) -> int:
        return x + y

    assert callable_test(10, 15) == 25
    assert callable_test(10) == 15


def test_unwrap_optional():
    assert unwrap_optional(int | None) is int
    assert unwrap_optional(str) is str
    assert unwrap_optional(int | str) == int | str


def test_type_to_json_schema_optional_float():
    assert type_to_json_schema(float | None) == {"type": "number"}
