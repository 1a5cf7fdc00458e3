"""Time-bounded Claude client returning text or parsed JSON."""
import asyncio
import json
import logging
import re
from typing import Any, Optional

from anthropic import AsyncAnthropic

from ..core.errors import LLMError, LLMResponseError, LLMTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MAX_TOKENS: int = 4096
# Language tag on the opening fence line, e.g. json, JSON, javascript
_FENCE_LANGUAGE = re.compile(r"^[A-Za-z][\w+-]*(?=[ \t]*(?:\n|[\[{]))")


def strip_code_fences(content: str) -> str:
    """Remove a surrounding markdown code fence, with or without a language tag."""
    text = content.strip()
    if "```" not in text:
        return text

    text = text.split("```")[1]
    text = _FENCE_LANGUAGE.sub("", text, count=1)
    return text.strip()


def parse_json_response(content: str) -> dict[str, Any]:
    """Parse an LLM answer as a JSON object.

    Raises:
        LLMResponseError: If the content is not a JSON object.
    """
    text = strip_code_fences(content)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise LLMResponseError(f"Response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise LLMResponseError(f"Expected a JSON object, got {type(data).__name__}")
    return data


class LLMClient:
    """Claude Messages API wrapper. Every call is bounded by a timeout."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        client: Optional[AsyncAnthropic] = None,
    ) -> None:
        self.model = model
        self._client = client or AsyncAnthropic(api_key=api_key)

    async def complete(
        self,
        system: str,
        user: str,
        temperature: float = 0.7,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = 30.0,
    ) -> str:
        """Send one user message and return the text answer.

        Args:
            system: System prompt.
            user: User message.
            temperature: Sampling temperature.
            max_tokens: Answer length ceiling.
            timeout: Seconds before the call is abandoned.

        Raises:
            LLMTimeoutError: If no answer arrived within ``timeout``.
            LLMResponseError: If the answer has no text content.
            LLMError: For any other API failure.
        """
        logger.debug(f"LLM request ({self.model}): {len(user)} chars, timeout {timeout:.1f}s")

        try:
            response = await asyncio.wait_for(
                self._client.messages.create(
                    model=self.model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    system=system,
                    messages=[{"role": "user", "content": user}],
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise LLMTimeoutError(timeout) from e
        except Exception as e:
            raise LLMError(f"LLM request failed: {e}") from e

        texts = [block.text for block in response.content if getattr(block, "type", "") == "text"]
        content = "".join(texts).strip()
        if not content:
            raise LLMResponseError("Empty response from LLM")

        logger.debug(f"LLM response: {content[:500]}")
        return content

    async def complete_json(
        self,
        system: str,
        user: str,
        temperature: float = 0.7,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = 30.0,
    ) -> dict[str, Any]:
        """Like complete(), but parse the answer as a JSON object."""
        content = await self.complete(system, user, temperature, max_tokens, timeout)
        return parse_json_response(content)
