"""Core utilities: configuration, logging and errors."""
from .config import AppConfig, ApiConfig, BrowserConfig, LoggingConfig, StorageConfig
from .errors import (
    ComposerError,
    ConfigurationError,
    LLMError,
    LLMResponseError,
    LLMTimeoutError,
    SessionError,
)
from .logging import setup_logging

__all__ = [
    "AppConfig",
    "ApiConfig",
    "BrowserConfig",
    "LoggingConfig",
    "StorageConfig",
    "ComposerError",
    "ConfigurationError",
    "LLMError",
    "LLMResponseError",
    "LLMTimeoutError",
    "SessionError",
    "setup_logging",
]
