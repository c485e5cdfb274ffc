from __future__ import annotations

import logging

import httpx

from relay.errors import BackendProtocolError, BackendTransportError
from relay.models import ChatMessage

logger = logging.getLogger(__name__)


class OllamaClient:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        model: str,
        options: dict | None = None,
    ):
        self._http = http_client
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._options = options

    @property
    def model(self) -> str:
        return self._model

    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        options: dict | None = None,
    ) -> str:
        """POST /api/chat with the full message list; return the assistant text.

        Raises BackendTransportError for network and HTTP failures and
        BackendProtocolError when the response carries no message payload.
        """
        url = f"{self._base_url}/api/chat"
        use_model = model or self._model
        payload: dict = {
            "model": use_model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "stream": False,
        }
        use_options = options if options is not None else self._options
        if use_options:
            payload["options"] = use_options

        try:
            resp = await self._http.post(url, json=payload)
            if resp.status_code == 404:
                logger.error(
                    "Ollama model '%s' not found, download it with: ollama pull %s",
                    use_model,
                    use_model,
                )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise BackendTransportError(f"Ollama request failed: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise BackendProtocolError("Invalid response from Ollama: body is not JSON") from e

        msg = data.get("message") if isinstance(data, dict) else None
        if not isinstance(msg, dict):
            raise BackendProtocolError("Invalid response from Ollama: missing message")
        content = msg.get("content") or ""
        logger.debug("LLM raw response: %s", content[:500])
        return content

    async def is_available(self) -> bool:
        try:
            resp = await self._http.get(
                f"{self._base_url}/api/tags",
                timeout=5.0,
            )
            return resp.status_code == 200
        except httpx.HTTPError:
            return False
