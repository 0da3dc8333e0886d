# infrastructure/llm_services.py
"""Generation providers: OpenAI chat completions and a local Ollama server."""
import asyncio
import logging
from typing import Optional

import requests
from openai import AsyncOpenAI

from config import settings
from core.domain import GenerationFailure
from core.interfaces import ILLMService

logger = logging.getLogger(settings.LOGGER_NAME)


class OpenAILLMService(ILLMService):
    """Chat completions through the official async client."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4",
        timeout: int = settings.REQUEST_TIMEOUT,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        self._client = client or AsyncOpenAI(api_key=api_key, timeout=timeout)

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 500,
    ) -> str:
        try:
            logger.info(f"[LLM] Sending prompt to OpenAI model '{self.model}'...")
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            logger.error(f"[LLM] OpenAI request failed: {e}")
            raise GenerationFailure(f"OpenAI request failed: {e}") from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


class OllamaLLMService(ILLMService):
    """A local LLM API (Ollama `/api/generate`), called off the event loop."""

    def __init__(self, base_url: str, model: str, timeout: int = settings.REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 500,
    ) -> str:
        return await asyncio.to_thread(
            self._generate, system_prompt, user_prompt, temperature, max_tokens
        )

    def _generate(self, system_prompt: str, user_prompt: str, temperature: float, max_tokens: int) -> str:
        try:
            logger.info(f"[LLM] Sending prompt to LLM model '{self.model}'...")
            response = requests.post(
                f"{self.base_url}/api/generate",
                json={
                    "model": self.model,
                    "system": system_prompt,
                    "prompt": user_prompt,
                    "stream": False,
                    "options": {"temperature": temperature, "num_predict": max_tokens},
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            result = response.json()
        except requests.exceptions.Timeout as e:
            logger.error(f"[LLM] Request timed out after {self.timeout} seconds.")
            raise GenerationFailure("LLM request timed out") from e
        except requests.exceptions.ConnectionError as e:
            logger.error(f"[LLM] Cannot connect to LLM at {self.base_url}. Is the service running?")
            raise GenerationFailure("Cannot connect to LLM service") from e
        except requests.exceptions.HTTPError as e:
            logger.error(f"[LLM] Service returned an error: {e.response.status_code} {e.response.text}")
            raise GenerationFailure(f"LLM error: {e.response.status_code}") from e
        except Exception as e:
            logger.error(f"[LLM] Unexpected error: {e}", exc_info=True)
            raise GenerationFailure(str(e)) from e

        return (result.get("response") or "").strip()
