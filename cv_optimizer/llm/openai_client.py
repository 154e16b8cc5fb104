# File: cv_optimizer/llm/openai_client.py
import logging
from typing import Optional

import httpx

from cv_optimizer.core.config import settings
from cv_optimizer.core.errors import SuggestionGenerationError

logger = logging.getLogger(__name__)


class OpenAIClient:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, base_url: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        if not self.api_key:
            raise SuggestionGenerationError("OPENAI_API_KEY not configured. Please add it to your .env file.")

        self.base_url = f"{(base_url or settings.OPENAI_BASE_URL).rstrip('/')}/chat/completions"
        self.headers = {
            "authorization": f"Bearer {self.api_key}",
            "content-type": "application/json",
        }
        self.model = model or settings.OPENAI_MODEL
        logger.info(f"[LLM] Initialized OpenAIClient with model: {self.model}")

    async def _send_request(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 4000,
        json_mode: bool = True,
    ) -> str:
        """Send a chat completion request and return the message content."""
        logger.info(f"[LLM] Sending request to OpenAI API with model: {self.model}")
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(self.base_url, headers=self.headers, json=payload, timeout=120.0)
        except httpx.HTTPError as e:
            logger.error(f"[LLM] Error in OpenAI API request: {e}")
            raise SuggestionGenerationError(f"OpenAI API request failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"[LLM] API request failed with status code {response.status_code}: {response.text}")
            raise SuggestionGenerationError(f"OpenAI API request failed with status code {response.status_code}")

        result = response.json()
        choices = result.get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content") or ""
        if not content:
            raise SuggestionGenerationError("No response from OpenAI")
        logger.info(f"[LLM] Received response ({len(content)} chars)")
        return content
