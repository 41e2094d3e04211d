"""Shared Gemini client pool and text generation."""

from __future__ import annotations

import logging
import os
from typing import Any

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from .config import get_config
from .errors import ConfigurationError, EmptyResponseError, ProviderError
from .retry import with_retry

logger = logging.getLogger(__name__)


class GeminiClient:
    """Process-wide Gemini client pool (one client per API key)."""

    _clients: dict[str, genai.Client] = {}

    @classmethod
    def get(cls, api_key: str | None = None) -> genai.Client:
        """Return (or create) the shared client for *api_key*.

        Raises:
            ConfigurationError: If no API key is configured.
        """
        key = api_key or get_config().gemini_api_key or os.getenv("GEMINI_API_KEY", "")
        if not key:
            raise ConfigurationError("No Gemini API key: set GEMINI_API_KEY or pass api_key explicitly")
        if key not in cls._clients:
            cls._clients[key] = genai.Client(api_key=key)
            logger.info("Created Gemini client (key …%s)", key[-4:])
        return cls._clients[key]

    @classmethod
    async def generate(
        cls,
        contents: Any,
        *,
        model: str | None = None,
        temperature: float | None = None,
        system_instruction: str | None = None,
        **kwargs: Any,
    ) -> str:
        """Generate text via Gemini.

        Transient failures (408, 429, 5xx, timeouts) are retried with backoff by
        :func:`~manimbot_mcp.retry.with_retry` before surfacing.

        Args:
            contents: Prompt contents.
            model: Override model ID (defaults to config's model).
            temperature: Override temperature (defaults to config's temperature).
            system_instruction: System-level instruction prepended to the prompt.
            **kwargs: Forwarded to the underlying generate_content call.

        Returns:
            The joined text of the first candidate's non-thought parts.

        Raises:
            ConfigurationError: No API key.
            ProviderError: The remote call failed.
            EmptyResponseError: The response carried no text part.
        """
        cfg = get_config()
        resolved_model = model or cfg.model

        config = types.GenerateContentConfig(
            temperature=temperature if temperature is not None else cfg.temperature,
        )
        if system_instruction:
            config.system_instruction = system_instruction

        client = cls.get()
        try:
            response = await with_retry(
                lambda: client.aio.models.generate_content(
                    model=resolved_model,
                    contents=contents,
                    config=config,
                    **kwargs,
                )
            )
        except genai_errors.APIError as exc:
            raise ProviderError(f"Gemini request failed: {exc}", status_code=exc.code) from exc
        except Exception as exc:
            raise ProviderError(f"Gemini request failed: {exc}") from exc

        candidates = response.candidates or []
        content = candidates[0].content if candidates else None
        parts = (content.parts if content is not None else None) or []
        text_parts = [p.text for p in parts if p.text and not getattr(p, "thought", False)]
        if not text_parts:
            raise EmptyResponseError(f"Gemini returned no content parts (model={resolved_model})")
        return "\n".join(text_parts)

    @classmethod
    async def close_all(cls) -> int:
        """Shut down all shared clients. Returns count closed."""
        count = 0
        for key, client in list(cls._clients.items()):
            try:
                await client.aio.aclose()
            except Exception:
                logger.debug("Async close failed for client …%s", key[-4:], exc_info=True)
            try:
                client.close()
            except Exception:
                logger.debug("Close failed for client …%s", key[-4:], exc_info=True)
            count += 1
        cls._clients.clear()
        logger.info("Closed %d Gemini client(s)", count)
        return count
