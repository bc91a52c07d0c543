"""
Tool metadata, schemas, and argument validation.
"""

from __future__ import annotations

import difflib
import inspect
import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..exceptions import ExecutionFailedError, InvalidArgumentsError
from ..types import JsonSchema, JsonValue, ToolDefinition

ParamMetadata = Dict[str, Any]

SUPPORTED_TYPES = (str, int, float, bool, list, dict)


def _python_type_to_json(param_type: type) -> str:
    """Map a Python type to a JSON schema type string."""
    type_map = {
        str: "string",
        int: "integer",
        float: "number",
        bool: "boolean",
        list: "array",
        dict: "object",
    }
    return type_map.get(param_type, "string")


@dataclass
class ToolParameter:
    """
    Schema definition for a single tool parameter.

    Attributes:
        name: Parameter name (should match the function parameter name).
        param_type: Python type (str, int, float, bool, list, dict).
        description: Human-readable description explaining what the parameter does.
        required: Whether this parameter must be provided (default: True).
        enum: Optional list of allowed string values for enumerated parameters.

    Example:
        >>> param = ToolParameter(
        ...     name="units",
        ...     param_type=str,
        ...     description="Temperature units",
        ...     required=False,
        ...     enum=["celsius", "fahrenheit"]
        ... )
    """

    name: str
    param_type: type
    description: str
    required: bool = True
    enum: Optional[List[str]] = None

    def to_schema(self) -> JsonSchema:
        """Convert parameter definition to JSON Schema format."""
        schema: JsonSchema = {
            "type": _python_type_to_json(self.param_type),
            "description": self.description,
        }
        if self.enum:
            schema["enum"] = self.enum
        return schema


class Tool:
    """
    A named handler the model may call, plus the schema it is advertised with.

    The tool's arguments arrive as an untyped JSON payload. invoke() checks the
    payload against the declared parameters, calls the function, and
    serializes its return value to a JSON string.

    Attributes:
        name: Unique identifier for the tool.
        description: Human-readable description of what the tool does (used by the model).
        parameters: List of ToolParameter objects defining expected inputs.
        function: The underlying Python function to execute.
        injected_kwargs: Additional kwargs passed to the function but hidden from the model.
    """

    def __init__(
        self,
        name: str,
        description: str,
        parameters: List[ToolParameter],
        function: Callable[..., Any],
        *,
        injected_kwargs: Optional[Dict[str, Any]] = None,
    ):
        self.name = name
        self.description = description
        self.parameters = parameters
        self.function = function
        self.injected_kwargs = injected_kwargs or {}

        self._validate_tool_definition()

    def _validate_tool_definition(self) -> None:
        """
        Validate the tool definition at registration time.

        Raises:
            ValueError: If the tool definition is invalid.
        """
        if not self.name or not self.name.strip():
            raise ValueError("Tool name cannot be empty")

        if not self.description or not self.description.strip():
            raise ValueError(f"Tool '{self.name}' needs a description")

        param_names = [p.name for p in self.parameters]
        duplicates = sorted({name for name in param_names if param_names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Tool '{self.name}' has duplicate parameter(s): {', '.join(duplicates)}")

        for param in self.parameters:
            if param.param_type not in SUPPORTED_TYPES:
                type_list = ", ".join(t.__name__ for t in SUPPORTED_TYPES)
                raise ValueError(
                    f"Tool '{self.name}' parameter '{param.name}' has unsupported type "
                    f"{param.param_type!r}; use one of: {type_list}"
                )

        try:
            sig = inspect.signature(self.function)
        except (ValueError, TypeError):
            # Built-ins and some C callables have no inspectable signature
            return

        accepts_kwargs = any(p.kind is inspect.Parameter.VAR_KEYWORD for p in sig.parameters.values())
        for param in self.parameters:
            if param.name not in sig.parameters and not accepts_kwargs:
                raise ValueError(
                    f"Tool '{self.name}' parameter '{param.name}' not found in function signature"
                )

    def schema(self) -> JsonSchema:
        """Return the JSON schema of this tool's parameters."""
        return {
            "type": "object",
            "properties": {param.name: param.to_schema() for param in self.parameters},
            "required": [param.name for param in self.parameters if param.required],
        }

    def definition(self) -> ToolDefinition:
        """Return the provider-agnostic definition used by Chat.with_tools()."""
        return ToolDefinition(name=self.name, description=self.description, parameters=self.schema())

    def _validate_single(self, param: ToolParameter, value: Any) -> Optional[str]:
        """Validate a single parameter, returning an error message if invalid."""
        if value is None:
            return f"Parameter '{param.name}' is None"

        # bool is a subclass of int; JSON true must not pass as a number
        if param.param_type is not bool and isinstance(value, bool):
            return f"Parameter '{param.name}' must be of type {param.param_type.__name__}, got bool"

        if param.param_type is float:
            if not isinstance(value, (float, int)):
                return f"Parameter '{param.name}' must be a number"
            return None

        if not isinstance(value, param.param_type):
            return (
                f"Parameter '{param.name}' must be of type {param.param_type.__name__}, "
                f"got {type(value).__name__}"
            )
        if param.enum and value not in param.enum:
            return f"Parameter '{param.name}' must be one of {', '.join(param.enum)}, got {value!r}"
        return None

    def validate(self, arguments: JsonValue) -> Dict[str, Any]:
        """
        Check an argument payload against this tool's parameters.

        Returns:
            The arguments as a keyword dictionary.

        Raises:
            InvalidArgumentsError: If the payload does not fit the parameters.
        """
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise InvalidArgumentsError(
                f"Tool '{self.name}' expects an object of arguments, got {type(arguments).__name__}"
            )

        expected = {p.name for p in self.parameters}
        extra = set(arguments) - expected
        if extra:
            hints = []
            for name in sorted(extra):
                matches = difflib.get_close_matches(name, expected, n=1, cutoff=0.6)
                if matches:
                    hints.append(f"'{name}' (did you mean '{matches[0]}'?)")
                else:
                    hints.append(f"'{name}'")
            raise InvalidArgumentsError(
                f"Tool '{self.name}' got unexpected argument(s): {', '.join(hints)}"
            )

        for param in self.parameters:
            if param.name not in arguments:
                if param.required:
                    raise InvalidArgumentsError(
                        f"Tool '{self.name}' is missing required argument '{param.name}'"
                    )
                continue
            error = self._validate_single(param, arguments[param.name])
            if error:
                raise InvalidArgumentsError(f"Tool '{self.name}': {error}")

        return dict(arguments)

    def invoke(self, arguments: JsonValue) -> str:
        """
        Validate `arguments`, run the function, and return its JSON-serialized result.

        Raises:
            InvalidArgumentsError: If the arguments do not fit the parameters.
            ExecutionFailedError: If the function raises, or returns a value
                that cannot be serialized to JSON.
        """
        call_args = self.validate(arguments)
        call_args.update(self.injected_kwargs)

        try:
            result = self.function(**call_args)
        except ExecutionFailedError:
            raise
        except Exception as exc:
            raise ExecutionFailedError(
                f"Tool '{self.name}' failed: {type(exc).__name__}: {exc}"
            ) from exc

        try:
            return json.dumps(result, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise ExecutionFailedError(
                f"Tool '{self.name}' returned a value that is not JSON serializable: {exc}"
            ) from exc

    def __repr__(self) -> str:
        return f"Tool(name={self.name!r}, parameters={[p.name for p in self.parameters]!r})"


__all__ = ["Tool", "ToolParameter", "ParamMetadata"]
