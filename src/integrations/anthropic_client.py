"""
Anthropic Messages Client
=========================

Thin asynchronous wrapper around the Anthropic Messages API.
Supports a single non-streaming multimodal call (inline base64 image + text
instruction) and returns the reply text.
"""

import logging
import os
from typing import Any, Dict, Optional

import aiohttp

from src.core import config
from src.utils.logger import log_api_call


class AnthropicAPIError(Exception):
    """Raised when the Messages endpoint answers with a non-2xx status or cannot be reached."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class AnthropicClient:
    """
    Client wrapper for the Anthropic Messages API.

    Attributes:
        api_key (str): API key. Empty when requests go through an
            authenticating proxy.
        base_url (str): Base URL (``{base_url}/v1/messages`` is called).
        model (str): Model identifier sent with every request.
        max_tokens (int): Token budget for the reply.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = config.ANTHROPIC_BASE_URL,
        model: str = config.ANALYSIS_MODEL,
        max_tokens: int = config.ANALYSIS_MAX_TOKENS,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize the client.

        Args:
            api_key: API key. If None, looks for the ANTHROPIC_API_KEY env var.
            base_url: Base URL for the API.
            model: Model identifier.
            max_tokens: Maximum tokens in the reply.
            session: Optional externally owned aiohttp session (not closed here).
        """
        self.api_key = api_key if api_key is not None else os.environ.get("ANTHROPIC_API_KEY", "")
        self.base_url = base_url.rstrip('/')
        self.model = model
        self.max_tokens = max_tokens
        self.logger = logging.getLogger(__name__)
        self._session = session
        self._owns_session = session is None

    def is_available(self) -> bool:
        """True when a key is configured or the base URL points somewhere other than the public API."""
        return bool(self.api_key) or self.base_url != config.ANTHROPIC_BASE_URL

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "anthropic-version": config.ANTHROPIC_VERSION,
        }
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None))
            self._owns_session = True
        return self._session

    async def close(self):
        """Close the HTTP session if this client created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    def build_payload(self, prompt: str, base64_image: str, media_type: str) -> Dict[str, Any]:
        """Request body: one user message with the image block first, then the instruction."""
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": media_type,
                                "data": base64_image,
                            },
                        },
                        {"type": "text", "text": prompt},
                    ],
                }
            ],
        }

    @log_api_call(api_name="Anthropic")
    async def messages_with_image(self, prompt: str, base64_image: str, media_type: str) -> str:
        """Send a prompt with an inline image and return the first text block of the reply.

        Args:
            prompt: The instruction text.
            base64_image: Image bytes, already base64 encoded.
            media_type: MIME type of the image (e.g. "image/png").

        Returns:
            str: The reply text, or "{}" when the reply carries no text block.

        Raises:
            AnthropicAPIError: non-2xx status, undecodable body or network failure.
        """
        url = f"{self.base_url}/v1/messages"
        payload = self.build_payload(prompt, base64_image, media_type)
        session = await self._get_session()

        try:
            async with session.post(url, json=payload, headers=self._headers()) as resp:
                if resp.status < 200 or resp.status >= 300:
                    error_text = await resp.text()
                    raise AnthropicAPIError(
                        f"Bilderkennung fehlgeschlagen: {error_text}", status=resp.status
                    )
                data = await resp.json(content_type=None)
        except aiohttp.ClientError as e:
            self.logger.error(f"Error calling Anthropic Messages API: {e}")
            raise AnthropicAPIError(f"Error calling Anthropic Messages API: {e}") from e
        except ValueError as e:
            raise AnthropicAPIError(f"Invalid JSON from Anthropic Messages API: {e}") from e

        content = data.get("content") if isinstance(data, dict) else None
        if content and isinstance(content[0], dict):
            return content[0].get("text") or "{}"
        return "{}"

    def __repr__(self) -> str:
        return f"<AnthropicClient base_url={self.base_url} model={self.model} has_api_key={bool(self.api_key)}>"
