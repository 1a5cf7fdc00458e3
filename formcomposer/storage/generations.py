"""Generation records and their persistence."""
import json
import logging
import secrets
import time
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Literal, Optional

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

MAX_GENERATIONS_PER_SITE: int = 50
DEFAULT_GENERATIONS_PATH = Path(".composer/generations.json")

GenerationStatus = Literal["success", "error", "warning"]


class GeneratedField(BaseModel):
    """One filled field as recorded in a generation."""

    label: str
    type: str
    value: str
    status: GenerationStatus


class Generation(BaseModel):
    """Immutable record of one extract-and-fill cycle."""

    model_config = ConfigDict(frozen=True)

    id: str
    url: str
    createdAt: str
    screenshotBefore: Optional[str] = None
    screenshotAfter: Optional[str] = None
    resourceDescription: Optional[str] = None
    fields: list[GeneratedField]


def new_generation_id() -> str:
    """Build an id of the form ``<epoch ms>-<random suffix>``."""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(5)}"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class GenerationClient:
    """Sends generations to the control-plane API. Failures never propagate."""

    def __init__(self, api_url: str, timeout: float = 30.0) -> None:
        self._endpoint = f"{api_url.rstrip('/')}/generations"
        self._timeout = timeout

    async def save(self, base_url: str, generation: Generation) -> bool:
        """POST a generation for a base URL.

        Returns:
            True if the API accepted it.
        """
        payload = {"baseUrl": base_url, "generation": generation.model_dump()}

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._endpoint, json=payload)
            if response.is_success:
                logger.info(f"Generation {generation.id} saved for {base_url}")
                return True
            logger.error(
                f"Generation save failed with status {response.status_code}: "
                f"{response.text}"
            )
        except httpx.ConnectError:
            logger.warning(f"Generation API not available at {self._endpoint}, skipping save")
        except httpx.TimeoutException:
            logger.warning("Generation API timed out, skipping save")
        except Exception as e:
            logger.error(f"Unexpected error while saving generation: {e}")
        return False


class GenerationStore:
    """Local JSON store keeping the newest generations per base URL."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path or DEFAULT_GENERATIONS_PATH
        self._lock = Lock()

    def _read(self) -> dict[str, list[dict]]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load generations: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, list)}

    def save(self, base_url: str, generation: Generation) -> None:
        """Prepend a generation, keeping at most MAX_GENERATIONS_PER_SITE."""
        with self._lock:
            data = self._read()
            entries = data.get(base_url, [])
            entries.insert(0, generation.model_dump())
            data[base_url] = entries[:MAX_GENERATIONS_PER_SITE]

            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)

    def load(self, base_url: str) -> list[Generation]:
        """Get generations for a base URL, newest first."""
        with self._lock:
            raw = self._read().get(base_url, [])

        generations: list[Generation] = []
        for index, entry in enumerate(raw):
            try:
                generations.append(Generation(**entry))
            except (ValidationError, TypeError) as e:
                logger.warning(f"Skipping malformed generation {index} for {base_url}: {e}")
        return generations
