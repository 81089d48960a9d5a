"""Tool registry and the bundled tools."""

from stateless_mcp.tools.echo import ECHO_TOOL, EchoInput, EchoOutput
from stateless_mcp.tools.registry import ToolDescriptor, ToolHandler, ToolRegistry
from stateless_mcp.tools.weather import WeatherInput, WeatherLookup, make_weather_tool

__all__ = [
    "ECHO_TOOL",
    "EchoInput",
    "EchoOutput",
    "ToolDescriptor",
    "ToolHandler",
    "ToolRegistry",
    "WeatherInput",
    "WeatherLookup",
    "make_weather_tool",
]
