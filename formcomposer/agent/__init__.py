"""Form-filling agent: modes, data generation, filling and the session bridge."""
from .models import FieldStatus, InteractionMode, ToastType
from .themes import Theme, parse_theme

__all__ = [
    "FieldStatus",
    "InteractionMode",
    "ToastType",
    "Theme",
    "parse_theme",
]
