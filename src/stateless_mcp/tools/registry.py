"""ToolRegistry — name-keyed tool descriptors with schema-validated invocation.

The registry is filled during startup and frozen before the server accepts
requests.  After :meth:`ToolRegistry.freeze` it is a read-only mapping and
safe for unsynchronized concurrent reads.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ValidationError

from stateless_mcp.protocol.errors import (
    DuplicateToolError,
    InternalError,
    InvalidParamsError,
    RegistryFrozenError,
    ToolNotFoundError,
)
from stateless_mcp.protocol.models import CallToolResult, ToolDefinition
from stateless_mcp.utils.telemetry import ATTR_TOOL_IS_ERROR, ATTR_TOOL_NAME, get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

ToolHandler = Callable[[Any], CallToolResult | Awaitable[CallToolResult]]


@dataclass(frozen=True)
class ToolDescriptor:
    """A registered tool: its schemas and the handler that runs it.

    ``handler`` receives an instance of ``input_model`` and returns a
    :class:`CallToolResult`, either directly or as an awaitable.
    """

    name: str
    description: str
    input_model: type[BaseModel]
    handler: ToolHandler
    title: str | None = None
    output_model: type[BaseModel] | None = None

    def definition(self) -> ToolDefinition:
        """The discovery form of this tool, with JSON Schemas generated from the models."""
        return ToolDefinition(
            name=self.name,
            title=self.title,
            description=self.description,
            input_schema=self.input_model.model_json_schema(),
            output_schema=self.output_model.model_json_schema() if self.output_model else None,
        )


class ToolRegistry:
    """Maps tool names to descriptors and invokes them.

    Usage::

        registry = ToolRegistry()
        registry.register(ECHO_TOOL)
        registry.freeze()

        result = await registry.invoke("echo", {"message": "hi"})
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDescriptor] = {}
        self._view: Mapping[str, ToolDescriptor] = MappingProxyType(self._tools)
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def tools(self) -> Mapping[str, ToolDescriptor]:
        """Read-only view of the registered descriptors."""
        return self._view

    def register(self, descriptor: ToolDescriptor) -> None:
        """Add *descriptor* under its name (startup only)."""
        if self._frozen:
            raise RegistryFrozenError(descriptor.name)
        if descriptor.name in self._tools:
            raise DuplicateToolError(descriptor.name)
        self._tools[descriptor.name] = descriptor
        logger.debug("Registered tool %s", descriptor.name)

    def freeze(self) -> None:
        """End the registration phase. Idempotent."""
        self._frozen = True

    def get(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name)

    def list_tools(self) -> list[ToolDefinition]:
        """Tool definitions in registration order."""
        return [descriptor.definition() for descriptor in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def invoke(self, name: str, raw_params: Any) -> CallToolResult:
        """Validate *raw_params* and run the named tool.

        Raises :class:`ToolNotFoundError` for unknown names and
        :class:`InvalidParamsError` for arguments (or structured output) that
        fail validation.  Exceptions raised by the handler are returned as an
        error result instead of propagating.
        """
        descriptor = self._tools.get(name)
        if descriptor is None:
            raise ToolNotFoundError(name)

        with _tracer.start_as_current_span("mcp.tool.invoke") as span:
            span.set_attribute(ATTR_TOOL_NAME, name)
            arguments = _validate_arguments(descriptor, raw_params)

            try:
                outcome = descriptor.handler(arguments)
                if inspect.isawaitable(outcome):
                    outcome = await outcome
            except Exception as exc:
                logger.warning("Tool %s failed: %s", name, exc, exc_info=True)
                span.set_attribute(ATTR_TOOL_IS_ERROR, True)
                return CallToolResult.from_error(str(exc) or exc.__class__.__name__)

            if not isinstance(outcome, CallToolResult):
                msg = f"Tool {name} returned {type(outcome).__name__}, expected CallToolResult"
                raise InternalError(msg)

            span.set_attribute(ATTR_TOOL_IS_ERROR, outcome.is_error)
            if descriptor.output_model is not None and not outcome.is_error:
                _validate_output(descriptor, outcome)
            return outcome


def _validate_arguments(descriptor: ToolDescriptor, raw_params: Any) -> BaseModel:
    if raw_params is None:
        raw_params = {}
    if not isinstance(raw_params, dict):
        msg = f"Invalid arguments for tool {descriptor.name}: expected an object"
        raise InvalidParamsError(msg)
    try:
        return descriptor.input_model.model_validate(raw_params)
    except ValidationError as exc:
        problems = _field_problems(exc)
        detail = "; ".join(f"{p['field']}: {p['message']}" for p in problems)
        msg = f"Invalid arguments for tool {descriptor.name}: {detail}"
        raise InvalidParamsError(msg, data=problems) from exc


def _validate_output(descriptor: ToolDescriptor, result: CallToolResult) -> None:
    assert descriptor.output_model is not None
    if result.structured_content is None:
        msg = (
            f"Output validation error: tool {descriptor.name} has an output schema "
            "but did not return structured content"
        )
        raise InvalidParamsError(msg)
    try:
        descriptor.output_model.model_validate(result.structured_content)
    except ValidationError as exc:
        problems = _field_problems(exc)
        detail = "; ".join(f"{p['field']}: {p['message']}" for p in problems)
        msg = f"Output validation error: invalid structured content for tool {descriptor.name}: {detail}"
        raise InvalidParamsError(msg, data=problems) from exc


def _field_problems(exc: ValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors into ``{"field": "a.b", "message": ...}`` entries."""
    problems: list[dict[str, str]] = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "(root)"
        problems.append({"field": field, "message": error["msg"]})
    return problems
