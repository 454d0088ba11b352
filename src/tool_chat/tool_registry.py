"""
Registry of tool declarations offered to the model.

Tools are declared, not executed: each call is answered with a fixed
acknowledgement that asks the model to write the content itself.
"""

import logging
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

from .events import ToolInvocation, ToolResultBlock

logger = logging.getLogger(__name__)

ACKNOWLEDGEMENT_TEMPLATE = (
    "Tool executed successfully. Please now generate the actual {subject} "
    "based on the user's request. Write the complete, formatted content."
)


class ToolDeclaration(NamedTuple):
    """A tool as declared to the model."""

    name: str
    description: str
    input_schema: Dict[str, Any]
    # What the acknowledgement asks the model to produce
    subject: Optional[str] = None


def declaration_to_tool_schema(declaration: ToolDeclaration) -> Dict[str, Any]:
    """
    Convert a tool declaration to the OpenAI Responses API function schema.

    Args:
        declaration: The declared tool

    Returns:
        OpenAI tool schema dictionary
    """
    return {
        "type": "function",
        "name": declaration.name,
        "description": declaration.description,
        "parameters": declaration.input_schema,
    }


class ToolRegistry:
    """Registry for managing tool declarations and their schemas."""

    def __init__(self, declarations: Iterable[ToolDeclaration] = ()):
        self.tools: Dict[str, ToolDeclaration] = {}  # name -> declaration
        for declaration in declarations:
            self.register(declaration)

    def register(self, declaration: ToolDeclaration) -> None:
        """Register a tool declaration, replacing any tool with the same name."""
        self.tools[declaration.name] = declaration

    def get_schemas(self, enabled_names: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
        """Get provider schemas, restricted to ``enabled_names`` when given.

        Order follows registration order, not ``enabled_names``.
        """
        if enabled_names is None:
            selected = self.tools.values()
        else:
            enabled = set(enabled_names)
            unknown = enabled - self.tools.keys()
            if unknown:
                logger.warning(f"Ignoring unknown enabled tools: {sorted(unknown)}")
            selected = [d for d in self.tools.values() if d.name in enabled]
        return [declaration_to_tool_schema(d) for d in selected]

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self.tools

    def acknowledgement(self, name: str) -> str:
        """Return the canned result text for a call to ``name``."""
        declaration = self.tools.get(name)
        subject = declaration.subject if declaration and declaration.subject else None
        if subject is None:
            subject = name.replace("_", " ")
        return ACKNOWLEDGEMENT_TEMPLATE.format(subject=subject)

    def tool_result(self, invocation: ToolInvocation) -> ToolResultBlock:
        """
        Build the tool_result block answering a finalized invocation.

        Args:
            invocation: The tool call the model made

        Returns:
            A tool_result content block referencing the invocation id
        """
        if not self.has_tool(invocation.name):
            logger.warning(f"Model called undeclared tool: {invocation.name}")
        return ToolResultBlock(
            tool_use_id=invocation.id, content=self.acknowledgement(invocation.name)
        )

    def __len__(self) -> int:
        """Get number of registered tools."""
        return len(self.tools)
