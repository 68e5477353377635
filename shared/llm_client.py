"""OpenRouter-compatible chat-completions client."""
import logging
import os
from typing import Any, Dict, Optional

import httpx

from shared.errors import LLMTransportError

logger = logging.getLogger(__name__)

LLM_TIMEOUT_SECONDS = 60.0


class OpenRouterClient:
    """Posts chat-completion payloads to an OpenAI-style `/chat/completions` endpoint.

    No retry at this layer: a failed call is a failed cycle.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = LLM_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        base = base_url or os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1/")
        if not base.endswith("/"):
            base += "/"
        self.base_url = base
        self.api_key = api_key if api_key is not None else os.getenv("OPENROUTER_API_KEY", "")
        self.model = model or os.getenv("LLM_MODEL", "")
        self.timeout = timeout
        self._transport = transport

    @property
    def completions_url(self) -> str:
        return f"{self.base_url}chat/completions"

    def _get_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-Title": "polymarket-updown-agent",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def chat(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send one completion request and return the decoded body.

        Raises LLMTransportError on network failure, non-200 status or a
        body that is not a JSON object.
        """
        body = dict(payload)
        body.setdefault("model", self.model)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.completions_url,
                    json=body,
                    headers=self._get_headers(),
                )
        except httpx.HTTPError as e:
            logger.error(f"LLM request failed: {e}", extra={"model": body["model"]})
            raise LLMTransportError(f"LLM request failed: {e}") from e

        if resp.status_code != 200:
            error_text = resp.text[:500]
            logger.error(
                "LLM API error",
                extra={"status": resp.status_code, "body": error_text},
            )
            raise LLMTransportError(
                f"LLM API error: {resp.status_code} - {error_text}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise LLMTransportError(f"LLM API returned non-JSON body: {e}") from e
        if not isinstance(data, dict):
            raise LLMTransportError("LLM API returned a non-object body")
        return data
