"""Prompt building module for layout requests.

Provides PromptBuilder for constructing prompts that embed the goal,
component catalogue, current layout and available space.
"""

from adaptly.prompt.lib import LayoutPrompt, PromptBuilder, PromptConfig, PromptContext

__all__ = [
    "LayoutPrompt",
    "PromptBuilder",
    "PromptConfig",
    "PromptContext",
]
