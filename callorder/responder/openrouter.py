"""OpenRouter chat-completions responder."""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

import httpx

from callorder.core.errors import ResponderError
from callorder.responder.base import SpeechResponder

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"


class OpenRouterResponder(SpeechResponder):
    """Ask an OpenAI-compatible model hosted on OpenRouter for the next reply."""

    name = "openrouter"

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "openai/gpt-4o-mini",
        referer: str | None = None,
        title: str | None = None,
        timeout: float = 15.0,
        url: str = OPENROUTER_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._referer = referer
        self._title = title or "Pizzeria Order Line"
        self._timeout = timeout
        self._url = url
        self._transport = transport
        self._logger = logging.getLogger("callorder.responder")

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        if self._referer:
            headers["HTTP-Referer"] = self._referer
        if self._title:
            headers["X-Title"] = self._title
        return headers

    async def generate_reply(self, history: Sequence[Mapping[str, str]]) -> str:
        payload = {
            "model": self._model,
            "messages": [{"role": m["role"], "content": m["content"]} for m in history],
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, headers=self._headers(), json=payload)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            self._logger.warning("OpenRouter reply failed: %s", exc)
            raise ResponderError(f"OpenRouter request failed: {exc}") from exc

        choices = data.get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content") or ""
        content = content.strip()
        if not content:
            raise ResponderError("OpenRouter returned an empty reply")
        return content
