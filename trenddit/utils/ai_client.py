"""
Text completion boundary.

Every AI call in the engine goes through ``CompletionService.complete``. The
provider behind it is interchangeable; the default is Gemini. Callers must
tolerate prose, truncated or otherwise non-JSON output and fall back.
"""

import json
import logging
import os
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

from google import genai
from google.genai import types
from pydantic import BaseModel, Field

from .retry import async_retry


logger = logging.getLogger(__name__)

JSON_BLOCK_PATTERN = re.compile(r"\{[\s\S]*\}|\[[\s\S]*\]")


class CompletionError(RuntimeError):
    """Raised when the completion provider cannot produce text."""


class CompletionOptions(BaseModel):
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2000, gt=0)
    json_mode: bool = False

    # Number of web searches the provider may run; 0 disables search
    search_budget: int = Field(default=0, ge=0)


class CompletionService(ABC):
    """Abstract text completion service."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        options: Optional[CompletionOptions] = None,
    ) -> str:
        """
        Generate a completion.

        Args:
            system_prompt: Role and output rules for the model
            user_prompt: The task
            options: Sampling and output options

        Returns:
            Raw response text (JSON when requested, but never guaranteed)
        """
        pass


class GeminiCompletionService(CompletionService):
    """
    Gemini-backed completion service.
    Uses GEMINI_API_KEY or GOOGLE_API_KEY when no key is passed in.
    """

    def __init__(
        self,
        model: str = "gemini-2.0-flash",
        api_key: Optional[str] = None,
        max_retries: int = 2,
        retry_base_delay: float = 1.0,
    ):
        self.model = model
        self.api_key = api_key
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self._client: Optional[genai.Client] = None

    @classmethod
    def from_settings(cls, settings) -> "GeminiCompletionService":
        return cls(
            model=settings.gemini_model,
            api_key=settings.gemini_api_key,
            max_retries=settings.ai_max_retries,
            retry_base_delay=settings.ai_retry_base_delay,
        )

    @property
    def client(self) -> genai.Client:
        """Lazy load the Gemini client."""
        if self._client is None:
            api_key = self.api_key or os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
            if not api_key:
                raise CompletionError("Gemini API key not set (GOOGLE_API_KEY or GEMINI_API_KEY)")
            self._client = genai.Client(api_key=api_key)
        return self._client

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        options: Optional[CompletionOptions] = None,
    ) -> str:
        options = options or CompletionOptions()
        generate = async_retry(
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
        )(self._generate)
        return await generate(system_prompt, user_prompt, options)

    async def _generate(
        self,
        system_prompt: str,
        user_prompt: str,
        options: CompletionOptions,
    ) -> str:
        """Single generation call."""
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=user_prompt,
            config=self._build_config(system_prompt, options),
        )

        text = response.text
        if not text:
            raise CompletionError("Empty response from Gemini")
        return text

    def _build_config(self, system_prompt: str, options: CompletionOptions) -> types.GenerateContentConfig:
        config = {
            "system_instruction": system_prompt,
            "temperature": options.temperature,
            "max_output_tokens": options.max_tokens,
        }

        if options.search_budget > 0:
            # Grounded search cannot be combined with a JSON MIME type
            config["tools"] = [types.Tool(google_search=types.GoogleSearch())]
        elif options.json_mode:
            config["response_mime_type"] = "application/json"

        return types.GenerateContentConfig(**config)


def parse_json_response(text: Optional[str]) -> Optional[Any]:
    """
    Parse JSON out of a model response.

    Handles markdown code fences and prose around the payload. Returns None
    when nothing parses.
    """
    if not text:
        return None

    cleaned = text.strip()

    # Handle markdown code blocks
    if "```json" in cleaned:
        cleaned = cleaned.split("```json")[1].split("```")[0]
    elif "```" in cleaned:
        cleaned = cleaned.split("```")[1].split("```")[0]

    try:
        return json.loads(cleaned.strip())
    except json.JSONDecodeError:
        pass

    match = JSON_BLOCK_PATTERN.search(cleaned)
    if match:
        try:
            return json.loads(match.group(0))
        except json.JSONDecodeError as e:
            logger.debug(f"Failed to parse JSON block: {e}")

    logger.warning("Model response was not valid JSON")
    return None


def parse_json_object(text: Optional[str]) -> Optional[dict]:
    """Like parse_json_response, but only accepts a JSON object."""
    parsed = parse_json_response(text)
    return parsed if isinstance(parsed, dict) else None
