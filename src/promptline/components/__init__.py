"""TUI components."""

from promptline.components.prompt_input import PromptInput, PromptInputTheme

__all__ = [
    "PromptInput",
    "PromptInputTheme",
]
