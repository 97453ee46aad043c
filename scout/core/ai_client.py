import asyncio
import logging
from typing import Optional

import aiohttp

from scout.core.config import settings
from scout.core.errors import ExtractionError, RateLimitError, TransientAIError

logger = logging.getLogger(__name__)


class CompletionClient:
    """OpenAI-compatible chat completions over aiohttp (OpenRouter by default)."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key or settings.llm_api_key
        self.api_base = (api_base or settings.llm_api_base).rstrip("/")
        self.model = model or settings.llm_model
        self.timeout = timeout or settings.llm_timeout_seconds

        if not self.api_key:
            logger.warning("LLM_API_KEY not set. Extraction calls will fail closed.")

    async def generate(
        self,
        prompt: str,
        system_prompt: str = "You are a precise data extraction assistant. Reply with JSON only.",
        temperature: float = 0.1,
        max_tokens: int = 1500,
    ) -> str:
        """
        Send one completion request and return the message content.

        Raises RateLimitError on 429, TransientAIError on timeouts and 5xx,
        ExtractionError on anything else.
        """
        if not self.api_key:
            raise ExtractionError("LLM API key is not configured")

        url = f"{self.api_base}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(url, headers=headers, json=payload) as response:
                    if response.status == 429:
                        raise RateLimitError("LLM API rate limited (429)")
                    if response.status >= 500:
                        raise TransientAIError(f"LLM API server error {response.status}")
                    if response.status != 200:
                        error_text = await response.text()
                        logger.error(f"LLM API Error {response.status}: {error_text[:300]}")
                        raise ExtractionError(f"LLM API failed: {response.status}")

                    data = await response.json()
        except asyncio.TimeoutError as e:
            raise TransientAIError("LLM API request timed out") from e
        except aiohttp.ClientError as e:
            raise TransientAIError(f"LLM API connection error: {e}") from e
        except ValueError as e:
            raise ExtractionError(f"LLM API returned a non-JSON body: {e}") from e

        try:
            return data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise ExtractionError(f"Unexpected LLM response shape: {e}") from e
