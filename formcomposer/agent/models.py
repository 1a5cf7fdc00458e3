"""Agent models, enums, and constants."""
from enum import Enum


# Timeouts
FIELD_LOOKUP_TIMEOUT_MS: int = 2000
SCROLL_SETTLE_MS: int = 100
PROGRESS_REMOVE_DELAY_S: float = 3.0
TOAST_DURATION_MS: int = 3000

# Hint generation
HINT_MAX_TOKENS: int = 50
HINT_TEMPERATURE: float = 0.7

# Value generation
GENERATION_TEMPERATURE: float = 0.7
GENERATION_MAX_TOKENS: int = 4096

# Form analysis
ANALYSIS_TEMPERATURE: float = 0.3
ANALYSIS_MAX_TOKENS: int = 8192

MAX_PROGRESS_VALUE_LENGTH: int = 50


class InteractionMode(Enum):
    """Page interaction mode. At most one non-idle mode is active."""
    IDLE = "idle"
    ELEMENT_SELECTION = "element_selection"
    POINTER_DETECTION = "pointer_detection"
    GHOST_WRITER = "ghost_writer"


class FieldStatus(Enum):
    """Per-field progress within one fill pass."""
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    ERROR = "error"
    SKIPPED = "skipped"


class ToastType(Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"


CHECKABLE_TYPES: frozenset[str] = frozenset({"checkbox", "radio"})
TRUE_VALUE: str = "true"
