import logging
from typing import Dict, List, Optional

import httpx

from .config import DEFAULT_GROQ_API_URL, DEFAULT_GROQ_MODEL
from .groq_monitor import QuotaMonitor, quota_monitor

logger = logging.getLogger(__name__)


class GroqError(RuntimeError):
    """The Groq API did not return a usable completion."""


class GroqClient:
    """Minimal async client for Groq's OpenAI-compatible chat completions endpoint.

    Pass ``http_client`` to share a connection pool or to plug in a mock
    transport; otherwise a short-lived ``httpx.AsyncClient`` is opened per call.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_GROQ_MODEL,
        api_url: str = DEFAULT_GROQ_API_URL,
        timeout: float = 8.0,
        http_client: Optional[httpx.AsyncClient] = None,
        monitor: Optional[QuotaMonitor] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.api_url = api_url
        self.timeout = timeout
        self.http_client = http_client
        self.monitor = monitor or quota_monitor

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def build_body(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 800,
        json_mode: bool = False,
    ) -> Dict:
        body = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}
        return body

    async def _post(self, client: httpx.AsyncClient, body: Dict) -> httpx.Response:
        return await client.post(self.api_url, headers=self._headers(), json=body)

    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 800,
        json_mode: bool = False,
    ) -> str:
        """Return the stripped text of the first choice.

        Raises:
            GroqError: missing API key, exhausted quota, HTTP failure or an
                empty/malformed completion.
        """
        if not self.api_key:
            raise GroqError("GROQ_API_KEY not set")
        if self.monitor.is_exhausted():
            raise GroqError("Groq request quota exhausted until reset")

        body = self.build_body(messages, temperature=temperature, max_tokens=max_tokens, json_mode=json_mode)
        try:
            if self.http_client is not None:
                response = await self._post(self.http_client, body)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await self._post(client, body)
        except httpx.HTTPError as e:
            raise GroqError(f"Groq request failed: {e}") from e

        self.monitor.update_quota(response.headers)
        warning = self.monitor.get_quota_warning()
        if warning:
            logger.warning(f"Quota warning: {warning['message']}")

        if response.status_code >= 400:
            logger.error(f"Groq API error: {response.status_code} {response.text[:300]}")
            raise GroqError(f"Groq API returned HTTP {response.status_code}")

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GroqError(f"Malformed Groq response: {e}") from e
        if not isinstance(content, str) or not content.strip():
            raise GroqError("Groq returned an empty completion")
        return content.strip()
