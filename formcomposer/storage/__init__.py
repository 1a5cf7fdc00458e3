"""Persistence for settings, navigation history and generations."""
from .generations import (
    GeneratedField,
    Generation,
    GenerationClient,
    GenerationStore,
)
from .navigation import NavigationHistory, NavigationHistoryStore, get_base_url
from .settings import Settings, SettingsStore, get_api_key

__all__ = [
    "GeneratedField",
    "Generation",
    "GenerationClient",
    "GenerationStore",
    "NavigationHistory",
    "NavigationHistoryStore",
    "get_base_url",
    "Settings",
    "SettingsStore",
    "get_api_key",
]
