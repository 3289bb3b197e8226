# smart_food_store/services/llm_client.py
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from smart_food_store.core.errors import AIProviderUnavailable

log = logging.getLogger("services.llm_client")


class TextGenerator(ABC):
    """
    Single request/response text generation. No streaming, no conversation state.
    Every failure surfaces as AIProviderUnavailable.
    """

    @abstractmethod
    async def generate(self, prompt: str, timeout: float) -> str:
        raise NotImplementedError


class GeminiTextGenerator(TextGenerator):
    """
    Client for the Gemini `models/{model}:generateContent` REST endpoint.

    - api_base like "https://generativelanguage.googleapis.com/v1"
    - model like "gemini-2.5-flash"
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        api_base: str = "https://generativelanguage.googleapis.com/v1",
        temperature: float = 0.7,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.api_base = api_base.rstrip("/")
        self.temperature = temperature
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.api_key) and self.api_key != "your-gemini-api-key-here"

    async def generate(self, prompt: str, timeout: float) -> str:
        if not self.configured:
            raise AIProviderUnavailable("AI provider not configured. Set GEMINI_API_KEY.")

        url = f"{self.api_base}/models/{self.model}:generateContent"
        payload: Dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": self.temperature},
        }

        try:
            if self._client is not None:
                resp = await self._client.post(url, params={"key": self.api_key}, json=payload, timeout=timeout)
            else:
                async with httpx.AsyncClient() as client:
                    resp = await client.post(url, params={"key": self.api_key}, json=payload, timeout=timeout)
        except httpx.TimeoutException as e:
            log.warning("Gemini timeout after %.1fs", timeout)
            raise AIProviderUnavailable("AI provider timed out") from e
        except httpx.HTTPError as e:
            log.warning("Gemini transport error: %s", e.__class__.__name__)
            raise AIProviderUnavailable("Error contacting AI provider") from e

        try:
            data: Dict[str, Any] = resp.json()
        except ValueError as e:
            raise AIProviderUnavailable(f"AI provider returned non-JSON body (status {resp.status_code})") from e

        err = data.get("error") if isinstance(data, dict) else None
        if resp.status_code >= 300 or err:
            code = (err or {}).get("code", resp.status_code) if isinstance(err, dict) else resp.status_code
            log.warning("Gemini error status=%s code=%s", resp.status_code, code)
            raise AIProviderUnavailable(f"AI provider returned an error (code {code})")

        try:
            return str(data["candidates"][0]["content"]["parts"][0]["text"])
        except (KeyError, IndexError, TypeError) as e:
            raise AIProviderUnavailable("Empty response from AI provider") from e
