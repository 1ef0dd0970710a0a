"""Text-generation backends."""

from __future__ import annotations

from typing import Protocol

import httpx

from repo_rover.errors import GenerationError


class TextGenerator(Protocol):
    async def generate(self, prompt: str) -> str: ...


class GeminiGenerator:
    """Client for the Generative Language ``generateContent`` endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str | None,
        model_name: str = "gemini-2.5-flash",
        api_url: str = "https://generativelanguage.googleapis.com/v1beta",
    ) -> None:
        self.client = client
        self.api_key = api_key
        self.model_name = model_name
        self.api_url = api_url.rstrip("/")

    async def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise GenerationError("Gemini API key is not configured")
        try:
            response = await self.client.post(
                f"{self.api_url}/models/{self.model_name}:generateContent",
                params={"key": self.api_key},
                json={"contents": [{"role": "user", "parts": [{"text": prompt}]}]},
            )
        except httpx.HTTPError as exc:
            raise GenerationError(f"Generation request failed: {exc}") from exc
        if response.is_error:
            raise GenerationError(f"Generation request failed with status {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise GenerationError("Generation response was not JSON") from exc
        candidates = payload.get("candidates") or []
        if not candidates:
            raise GenerationError("Generation response carried no candidates")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts).strip()
        if not text:
            raise GenerationError("Generation response carried no text")
        return text


__all__ = ["TextGenerator", "GeminiGenerator"]
