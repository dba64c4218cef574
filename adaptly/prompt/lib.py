"""PromptBuilder for layout requests.

Constructs the prompt sent to the text-generation backend: the rules the
backend must follow, the component catalogue, the current layout, the free
space and the user's goal, followed by the expected response format.
"""

import json
from dataclasses import dataclass

from adaptly.schema import ComponentSchema, export_llm_schema
from adaptly.state import Capacity, UIState


@dataclass
class PromptConfig:
    """Configuration for prompt building.

    Attributes:
        include_schema: Whether to include the component catalogue.
        include_current_elements: Whether to list the elements on screen.
        max_current_elements: Max elements listed in the current layout.
        indent: JSON indentation of the catalogue (None for compact).
    """

    include_schema: bool = True
    include_current_elements: bool = True
    max_current_elements: int = 20
    indent: int | None = 2


@dataclass
class PromptContext:
    """Context for a generated prompt.

    Tracks what was included in the prompt for debugging/analysis.

    Attributes:
        goal: Original user goal.
        schema_included: Whether the catalogue was included.
        component_count: Number of element types offered.
        element_count: Number of elements currently on screen.
        total_tokens_estimate: Rough token count estimate.
    """

    goal: str
    schema_included: bool = False
    component_count: int = 0
    element_count: int = 0
    total_tokens_estimate: int = 0


RULES = """You generate COMPLETE dashboard layouts from a user's description.
Your layout replaces all existing content.

Rules:
1. Only use element types listed in the component catalogue.
2. Give every element a unique "id".
3. Provide every required argument with a realistic, non-placeholder value.
4. Respect each argument's declared type and allowed values.
5. Keep arguments simple: text, numbers, booleans, lists. No callbacks, no styling.
6. Arrange elements in a balanced grid within the available space."""

RESPONSE_FORMAT = """Respond with a single JSON object:

```json
{
  "elements": [
    {
      "id": "unique-id",
      "type": "ComponentName",
      "props": {"title": "Key Metric", "value": "$45,231"},
      "position": {"x": 0, "y": 0, "w": 2, "h": 1},
      "visible": true
    }
  ],
  "layout": {"type": "grid", "spacing": 6, "columns": 6},
  "rationale": "Short explanation of the layout decisions"
}
```"""


@dataclass(frozen=True)
class LayoutPrompt:
    """A layout request split by role.

    Attributes:
        system: Rules and reply contract, identical for every request.
        user: Catalogue, current layout, free space and goal.
    """

    system: str
    user: str

    @property
    def text(self) -> str:
        """Both parts as one prompt, for backends without a system role."""
        return f"{self.system}\n\n{self.user}"


class PromptBuilder:
    """Builds layout-request prompts.

    Example:
        >>> builder = PromptBuilder()
        >>> request = builder.build_request(
        ...     "show revenue metrics", state, schema, Capacity(6, 6)
        ... )
        >>> backend.generate(request.user, system_prompt=request.system)
    """

    def __init__(self, config: PromptConfig | None = None):
        self._config = config or PromptConfig()

    @property
    def config(self) -> PromptConfig:
        return self._config

    @property
    def system_prompt(self) -> str:
        return f"{RULES}\n\n{RESPONSE_FORMAT}"

    def build(
        self,
        goal: str,
        state: UIState,
        schema: ComponentSchema,
        capacity: Capacity,
    ) -> str:
        """Build a complete prompt for a layout request.

        Args:
            goal: User's natural language description.
            state: Current UI-State.
            schema: Component catalogue the backend may use.
            capacity: Free space in grid tracks.

        Returns:
            Formatted prompt, system part first.
        """
        return self.build_request(goal, state, schema, capacity).text

    def build_request(
        self,
        goal: str,
        state: UIState,
        schema: ComponentSchema,
        capacity: Capacity,
    ) -> LayoutPrompt:
        """Build the system and user parts of a layout request."""
        request, _ = self.build_with_context(goal, state, schema, capacity)
        return request

    def build_with_context(
        self,
        goal: str,
        state: UIState,
        schema: ComponentSchema,
        capacity: Capacity,
    ) -> tuple[LayoutPrompt, PromptContext]:
        """Build the request and return context metadata.

        Returns:
            Tuple of (LayoutPrompt, PromptContext).
        """
        context = PromptContext(
            goal=goal,
            component_count=len(schema),
            element_count=len(state.elements),
        )
        parts: list[str] = []

        if self._config.include_schema:
            parts.append(self._format_schema(schema))
            context.schema_included = True

        parts.append(self._format_state(state))
        parts.append(self._format_capacity(capacity))
        parts.append(self._format_goal(goal))

        request = LayoutPrompt(system=self.system_prompt, user="\n\n".join(parts))
        context.total_tokens_estimate = len(request.text) // 4  # Rough estimate
        return request, context

    def _format_schema(self, schema: ComponentSchema) -> str:
        exported = export_llm_schema(schema)
        body = json.dumps(exported["components"], indent=self._config.indent)
        return f"""## Component Catalogue

Available element types: {", ".join(schema.names)}

{body}"""

    def _format_state(self, state: UIState) -> str:
        summary = state.summary()
        lines = [
            "## Current Layout",
            "",
            f"- Elements: {summary['elementCount']} ({summary['visibleCount']} visible)",
            f"- Arrangement: {summary['arrangementMode']}",
            f"- Grid columns: {summary['trackCount']}",
            f"- Spacing: {summary['spacing']}",
        ]
        if self._config.include_current_elements and state.elements:
            shown = state.elements[: self._config.max_current_elements]
            for element in shown:
                p = element.placement
                lines.append(
                    f"  - {element.id} ({element.type}) at {p.x},{p.y} size {p.w}x{p.h}"
                )
            hidden = len(state.elements) - len(shown)
            if hidden > 0:
                lines.append(f"  - ... and {hidden} more")
        return "\n".join(lines)

    def _format_capacity(self, capacity: Capacity) -> str:
        return f"## Available Space\n\n{capacity.width}x{capacity.height} grid tracks"

    def _format_goal(self, goal: str) -> str:
        return f'## User Request\n\n"{goal}"'


__all__ = [
    "LayoutPrompt",
    "PromptBuilder",
    "PromptConfig",
    "PromptContext",
]
