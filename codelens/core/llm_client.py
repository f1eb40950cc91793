"""
LLM client for OpenAI-compatible chat completion APIs (DeepSeek, vLLM, etc.)

One request per call. Failures of any kind surface as CompletionError so the
orchestrator can substitute its fallback reply.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from codelens.core.exceptions import CompletionError

logger = logging.getLogger(__name__)


class LLMClient:
    """Minimal chat completion client."""

    def __init__(
        self,
        base_url: str,
        model_name: str,
        api_key: str,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        timeout: float = 120.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize LLM client.

        Args:
            base_url: Base URL for API (e.g., https://api.deepseek.com/v1)
            model_name: Model name to use
            api_key: Bearer token for the API
            max_tokens: Max tokens to generate
            temperature: Sampling temperature
            timeout: Request timeout in seconds
            client: Optional shared httpx client (tests inject a MockTransport here)
        """
        self.base_url = base_url.rstrip('/')
        self.model_name = model_name
        self.api_key = api_key
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self._client = client

        logger.info(f"[LLM] Initialized client: {self.base_url} / {model_name}")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def complete(self, messages: List[Dict[str, str]]) -> str:
        """Send the transcript and return the assistant's reply text.

        Args:
            messages: List of message dicts with 'role' and 'content'

        Returns:
            Reply content

        Raises:
            CompletionError: On transport errors, non-2xx status or malformed body
        """
        url = f"{self.base_url}/chat/completions"
        payload = {
            "model": self.model_name,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

        try:
            response = await self._get_client().post(url, json=payload, headers=self._headers())
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            logger.error(f"[LLM] Request timed out after {self.timeout}s")
            raise CompletionError("completion request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"[LLM] HTTP error: {e.response.status_code}")
            logger.error(f"[LLM] Response: {e.response.text}")
            raise CompletionError(f"completion service returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"[LLM] Transport error: {e}")
            raise CompletionError(f"completion request failed: {e}") from e
        except ValueError as e:
            logger.error(f"[LLM] Response is not valid JSON: {e}")
            raise CompletionError("completion response is not valid JSON") from e

        return self.extract_content(data)

    def extract_content(self, response: Any) -> str:
        """Extract the reply text from an API response.

        Args:
            response: Decoded API response

        Returns:
            Content of the first choice's message
        """
        try:
            content = response["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"[LLM] Failed to extract message: {e}")
            logger.error(f"[LLM] Response: {response}")
            raise CompletionError(f"Invalid API response format: {e}") from e

        if not isinstance(content, str):
            raise CompletionError("Invalid API response format: content is not a string")
        return content

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
