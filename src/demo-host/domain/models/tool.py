"""Tool model describing a capability the agent can call."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class ToolParameter:
    """Represents a named input field of a tool."""

    name: str
    type: str
    description: str
    required: bool = True
    items_type: Optional[str] = None

    def to_schema(self) -> dict[str, Any]:
        """Convert to a JSON Schema property."""
        schema: dict[str, Any] = {
            "type": self.type,
            "description": self.description,
        }
        if self.type == "array":
            schema["items"] = {"type": self.items_type or "string"}
        return schema

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result = {
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "required": self.required,
        }
        if self.items_type is not None:
            result["items_type"] = self.items_type
        return result


@dataclass(frozen=True)
class ToolDefinition:
    """
    Represents a tool advertised to the model.

    The input schema is derived from the parameters so that the model and the
    invoker always agree on which fields exist and which are required.
    """

    name: str
    description: str
    parameters: tuple[ToolParameter, ...] = field(default_factory=tuple)

    @property
    def required_fields(self) -> list[str]:
        return [p.name for p in self.parameters if p.required]

    def to_input_schema(self) -> dict[str, Any]:
        """Build the JSON Schema object for the tool input."""
        return {
            "type": "object",
            "properties": {p.name: p.to_schema() for p in self.parameters},
            "required": self.required_fields,
        }

    def to_anthropic_format(self) -> dict[str, Any]:
        """Convert to the Messages API tool format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.to_input_schema(),
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": [p.to_dict() for p in self.parameters],
        }
