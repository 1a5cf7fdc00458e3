"""Navigation history: base URL -> most recently visited URLs."""
import json
import logging
from pathlib import Path
from threading import Lock
from typing import Optional
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

MAX_HISTORY_ENTRIES: int = 5
DEFAULT_HISTORY_PATH = Path(".composer/navigation-history.json")


def get_base_url(url: str) -> str:
    """Return scheme://host[:port] for a URL, or the input if it has no host."""
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return url
    return f"{parts.scheme}://{parts.netloc}"


class NavigationHistoryStore:
    """File-backed JSON store for the navigation history map."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path or DEFAULT_HISTORY_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, list[str]]:
        """Load the history map. Unreadable files yield an empty map."""
        if not self._path.exists():
            return {}

        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load navigation history: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed navigation history in {self._path}")
            return {}

        return {
            base_url: [u for u in urls if isinstance(u, str)]
            for base_url, urls in data.items()
            if isinstance(urls, list)
        }

    def save(self, history: dict[str, list[str]]) -> None:
        """Write the whole history map to disk."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(history, f, indent=2)


class NavigationHistory:
    """In-memory navigation history, persisted through a store on every change."""

    def __init__(self, store: NavigationHistoryStore) -> None:
        self._store = store
        self._lock = Lock()
        self._history = store.load()

    def add(self, base_url: str, url: str) -> list[str]:
        """Record a visit, moving an existing URL to the front.

        Args:
            base_url: Grouping key (scheme + host).
            url: Visited URL.

        Returns:
            The updated history list for ``base_url``.
        """
        with self._lock:
            entries = [u for u in self._history.get(base_url, []) if u != url]
            entries.insert(0, url)
            del entries[MAX_HISTORY_ENTRIES:]
            self._history[base_url] = entries
            snapshot = {k: list(v) for k, v in self._history.items()}

        try:
            self._store.save(snapshot)
        except OSError as e:
            logger.error(f"Failed to save navigation history: {e}")

        logger.debug(f"Navigation history for {base_url}: {len(entries)} entries")
        return list(entries)

    def get(self, base_url: str) -> list[str]:
        """Get the visited URLs for a base URL, most recent first."""
        with self._lock:
            return list(self._history.get(base_url, []))
