"""LLM service for Anthropic Claude (text extraction and vision OCR)."""

import logging
import re
from dataclasses import dataclass, field
from typing import Any

import anthropic

from recipe_importer.config import get_settings
from recipe_importer.errors import ExtractionFailure

logger = logging.getLogger(__name__)

CODE_FENCE_PATTERN = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL | re.IGNORECASE)


@dataclass
class TokenUsage:
    """Input/output token counts reported by the model API."""

    input_tokens: int = 0
    output_tokens: int = 0

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
        )


@dataclass
class LLMResult:
    """Text returned by one model call."""

    text: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    model: str = ""


def strip_code_fence(text: str) -> str:
    """Remove an optional markdown code fence around a JSON payload."""
    text = text.strip()
    match = CODE_FENCE_PATTERN.search(text)
    if match:
        return match.group(1).strip()
    return text


class LLMService:
    """Service for calling Claude. Calls are never retried."""

    def __init__(self, client: anthropic.AsyncAnthropic | None = None) -> None:
        self.settings = get_settings()
        self.text_model = self.settings.extraction_model
        self.vision_model = self.settings.vision_model
        self._client = client

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            if not self.settings.anthropic_api_key:
                raise ExtractionFailure("Anthropic API not configured")
            self._client = anthropic.AsyncAnthropic(
                api_key=self.settings.anthropic_api_key,
                max_retries=0,
            )
        return self._client

    async def generate(
        self,
        content: str | list[dict[str, Any]],
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 8192,
        timeout: float = 120.0,
    ) -> LLMResult:
        """Send one user message and return the text of the reply.

        Raises:
            ExtractionFailure: On any API, timeout or connection error.
        """
        model = model or self.text_model
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": content}],
            "timeout": timeout,
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            message = await self.client.messages.create(**kwargs)
        except anthropic.APITimeoutError as e:
            logger.error(f"Claude call timed out after {timeout}s")
            raise ExtractionFailure("Recipe extraction timed out") from e
        except anthropic.APIStatusError as e:
            logger.error(f"Anthropic API error {e.status_code}: {e.message}")
            raise ExtractionFailure(f"Anthropic API error: {e.status_code}") from e
        except anthropic.APIError as e:
            logger.error(f"Error calling Anthropic API: {e}")
            raise ExtractionFailure("Recipe extraction service unavailable") from e

        text = "".join(block.text for block in message.content if getattr(block, "type", None) == "text")
        usage = TokenUsage(
            input_tokens=getattr(message.usage, "input_tokens", 0) or 0,
            output_tokens=getattr(message.usage, "output_tokens", 0) or 0,
        )
        logger.info(f"{model} used {usage.input_tokens} input, {usage.output_tokens} output tokens")
        return LLMResult(text=text, usage=usage, model=model)
