"""Browser automation: persistent contexts, page wrapper and page commands."""
from .commands import HostFunction, PageChannel, PageCommand, PageCommandError
from .context import BrowserLauncher, session_dir_for
from .page import Page

__all__ = [
    "BrowserLauncher",
    "HostFunction",
    "Page",
    "PageChannel",
    "PageCommand",
    "PageCommandError",
    "session_dir_for",
]
