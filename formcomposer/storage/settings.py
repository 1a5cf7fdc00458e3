"""User settings persisted as JSON, merged over defaults."""
import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError

from ..core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path("~/.composer/settings.json")
API_KEY_ENV_VARS: dict[str, str] = {"anthropic": "ANTHROPIC_API_KEY"}

# Always appended after the (overridable) filler prompt
SYSTEM_PROMPT_PART = """Theme: {theme}

Form Fields:
{fields}"""

DEFAULT_FILLER_PROMPT = """You are generating fake form data based on a theme. Generate realistic, theme-appropriate values for each form field.

Requirements:
1. Generate appropriate values for each field based on its type and label
2. Values should be consistent with the theme: {theme}
3. For required fields, ensure values are provided
4. For email fields, generate valid email addresses
5. For date fields, use YYYY-MM-DD format
6. For phone/tel fields, use standard phone number formats
7. For text fields, generate realistic names, addresses, etc. based on the theme
8. For select fields, choose an appropriate option value
9. For checkbox/radio, use "true" or "false" as strings

Return your response as a JSON object with two keys:
- "values": an object where keys are the field selectors and values are the generated data strings
- "resourceDescription": one sentence describing the persona the data belongs to

Important: Return ONLY valid JSON, no markdown, no explanations, just the JSON object."""

DEFAULT_GHOST_WRITER_PROMPT = """Generate a single realistic example value for the form field described below.
The value must fit the theme: {theme}.
Use the field label, type and placeholder to decide what kind of value is expected.
Return only the value, without quotes or explanations."""


class AIModelSettings(BaseModel):
    provider: str = "anthropic"
    model: str = "claude-sonnet-4-20250514"
    apiKey: str = ""


class ScraperSettings(BaseModel):
    timeout: int = 30000
    retries: int = 3
    optimization: bool = True


class FillerSettings(BaseModel):
    prompt: str = DEFAULT_FILLER_PROMPT
    timeout: int = 30000


class GhostWriterSettings(BaseModel):
    prompt: str = DEFAULT_GHOST_WRITER_PROMPT


class Settings(BaseModel):
    """Engine settings as stored in settings.json (timeouts in ms)."""

    aiModel: AIModelSettings = AIModelSettings()
    scraper: ScraperSettings = ScraperSettings()
    filler: FillerSettings = FillerSettings()
    ghostWriter: GhostWriterSettings = GhostWriterSettings()


class SettingsStore:
    """Loads and saves Settings from a JSON file."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = (path or DEFAULT_SETTINGS_PATH).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Settings:
        """Load settings, merging each stored section over the defaults.

        Returns:
            Settings; defaults when the file is missing or unreadable.
        """
        if not self._path.exists():
            return Settings()

        try:
            with open(self._path, encoding="utf-8") as f:
                stored = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load settings from {self._path}: {e}")
            return Settings()

        if not isinstance(stored, dict):
            return Settings()

        merged = Settings().model_dump()
        for section, values in stored.items():
            if section in merged and isinstance(values, dict):
                merged[section].update(values)

        try:
            return Settings(**merged)
        except ValidationError as e:
            logger.error(f"Invalid settings in {self._path}, using defaults: {e}")
            return Settings()

    def save(self, settings: Settings) -> None:
        """Persist settings to disk."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(settings.model_dump(), f, indent=2)


def get_api_key(settings: Settings) -> str:
    """Resolve the LLM API key from settings, then the environment.

    Raises:
        ConfigurationError: If no key is configured.
    """
    if settings.aiModel.apiKey:
        return settings.aiModel.apiKey

    provider = settings.aiModel.provider.lower()
    env_var = API_KEY_ENV_VARS.get(provider)
    if env_var is None:
        raise ConfigurationError(f"Unsupported AI provider: {settings.aiModel.provider}")

    key = os.environ.get(env_var, "")
    if not key:
        raise ConfigurationError(
            f"API key not configured. Set aiModel.apiKey in settings or {env_var}."
        )
    return key
