"""promptline: multi-line prompt editing for terminal UIs."""

# Offset scanning
from promptline.boundaries import (
    line_end,
    line_start,
    next_word_boundary,
    prev_word_boundary,
)

# Key classification
from promptline.classifier import (
    RULES,
    EditContext,
    Intent,
    IntentKind,
    KeyAction,
    KeyRule,
    classify,
    interpret,
    is_alt_modifier,
)

# Components (re-exported from components package)
from promptline.components import PromptInput, PromptInputTheme

# Configuration
from promptline.config import PromptInputOptions, load_options

# Value and cursor operations
from promptline.controller import (
    StickyColumn,
    TextValue,
    delete_range,
    insert_at,
    move_cursor,
    vertical_move,
)

# Keyboard and mouse input decoding
from promptline.keys import KeyEvent, MouseEvent, parse_key_event, parse_mouse_event

# Visual layout
from promptline.layout import (
    TAB_WIDTH,
    Viewport,
    ViewportMetrics,
    click_to_offset,
    compute_line_starts,
    offset_at_column,
    offset_at_point,
    render_column,
    render_to_original,
    scroll_to_cursor,
    viewport_metrics,
    visual_line_bounds,
    visual_line_index,
)

# Cursor presentation
from promptline.render import (
    CURSOR_CHAR,
    CursorBlink,
    CursorSegments,
    compute_segments,
    cursor_on_char,
)

# Input buffering
from promptline.stdin_buffer import StdinBuffer

# Terminal interface and implementations
from promptline.terminal import ProcessTerminal, Terminal

__all__ = [
    # Offset scanning
    "line_end",
    "line_start",
    "next_word_boundary",
    "prev_word_boundary",
    # Key classification
    "RULES",
    "EditContext",
    "Intent",
    "IntentKind",
    "KeyAction",
    "KeyRule",
    "classify",
    "interpret",
    "is_alt_modifier",
    # Components
    "PromptInput",
    "PromptInputTheme",
    # Configuration
    "PromptInputOptions",
    "load_options",
    # Value and cursor operations
    "StickyColumn",
    "TextValue",
    "delete_range",
    "insert_at",
    "move_cursor",
    "vertical_move",
    # Input decoding
    "KeyEvent",
    "MouseEvent",
    "parse_key_event",
    "parse_mouse_event",
    # Visual layout
    "TAB_WIDTH",
    "Viewport",
    "ViewportMetrics",
    "click_to_offset",
    "compute_line_starts",
    "offset_at_column",
    "offset_at_point",
    "render_column",
    "render_to_original",
    "scroll_to_cursor",
    "viewport_metrics",
    "visual_line_bounds",
    "visual_line_index",
    # Cursor presentation
    "CURSOR_CHAR",
    "CursorBlink",
    "CursorSegments",
    "compute_segments",
    "cursor_on_char",
    # Input buffering
    "StdinBuffer",
    # Terminal
    "ProcessTerminal",
    "Terminal",
]
