"""Ollama provider: streaming /api/chat with native tool calling."""

import json
import logging
from typing import AsyncIterator, List, Optional

import httpx
import ollama

from .base import BaseProvider, Message
from ..exceptions import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"


class OllamaProvider(BaseProvider):
    """Ollama local LLM provider with native tool calling.

    The chat stream is read as raw bytes so the caller can decode the
    line-delimited JSON itself; model management goes through the
    ollama client library.
    """

    name = "ollama"

    def __init__(
        self,
        model: str = None,
        base_url: str = None,
        timeout: Optional[float] = 120.0,
        headers: dict = None,
        transport: httpx.AsyncBaseTransport = None,
        **kwargs
    ):
        super().__init__(model=model or "llama3.2", **kwargs)
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.headers = headers

        # 0 or None disables the read timeout; connecting is always bounded
        read_timeout = timeout or None
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(read_timeout, connect=30.0),
            headers=headers,
            transport=transport,
        )
        self.models_client = ollama.AsyncClient(host=self.base_url, headers=headers)

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "OllamaProvider":
        return cls(
            model=settings.model,
            base_url=settings.base_url,
            timeout=settings.request_timeout,
            **kwargs
        )

    @property
    def chat_url(self) -> str:
        return f"{self.base_url}/api/chat"

    def build_payload(self, messages: List[Message], tools: List[dict] = None) -> dict:
        msg_list = []
        for m in messages:
            if isinstance(m, Message):
                msg_list.append(m.to_dict())
            else:
                msg_list.append(m)

        payload = {
            "model": self.model,
            "messages": msg_list,
            "stream": True,
        }
        if tools:
            payload["tools"] = tools
        return payload

    @staticmethod
    def _error_detail(body: bytes) -> str:
        """Pull the message out of an Ollama {"error": ...} body."""
        text = body.decode("utf-8", errors="replace").strip()
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return text
        if isinstance(data, dict) and data.get("error"):
            return str(data["error"])
        return text

    async def stream_chat(
        self,
        messages: List[Message],
        tools: List[dict] = None,
    ) -> AsyncIterator[bytes]:
        """POST the conversation to /api/chat and yield raw body chunks."""
        payload = self.build_payload(messages, tools)
        logger.debug(f"POST {self.chat_url} model={self.model} messages={len(payload['messages'])}")

        try:
            async with self.client.stream("POST", "/api/chat", json=payload) as response:
                if not response.is_success:
                    body = await response.aread()
                    detail = self._error_detail(body)
                    raise ProviderError(
                        f"Ollama API returned HTTP {response.status_code}: {detail}",
                        status_code=response.status_code,
                    )
                async for chunk in response.aiter_bytes():
                    if chunk:
                        yield chunk
        except httpx.HTTPError as e:
            raise ProviderError(f"Error communicating with Ollama API at {self.base_url}: {e}") from e

    async def list_model_info(self) -> List[dict]:
        """Installed models as dicts with 'name' and 'size' (bytes)."""
        try:
            response = await self.models_client.list()
        except (httpx.HTTPError, ollama.ResponseError, ConnectionError) as e:
            raise ProviderError(f"Error communicating with Ollama API at {self.base_url}: {e}") from e

        # Handle both dict and object response formats
        if hasattr(response, 'models'):
            models = response.models
        elif isinstance(response, dict):
            models = response.get('models', [])
        else:
            models = []

        result = []
        for m in models:
            if hasattr(m, 'model'):
                result.append({"name": m.model, "size": getattr(m, 'size', 0) or 0})
            else:
                result.append({"name": m.get('model', m.get('name', '')), "size": m.get('size', 0) or 0})
        return result

    async def list_models(self) -> List[str]:
        return [m["name"] for m in await self.list_model_info()]

    async def is_configured(self) -> bool:
        try:
            await self.list_model_info()
            return True
        except ProviderError:
            return False

    def get_config_help(self) -> str:
        return f"""Ollama (Local)

1. Install Ollama: https://ollama.ai
2. Start server: ollama serve
3. Pull a model with tool support: ollama pull {self.model}

Set OLLAMA_API_BASE_URL if the server is not at {DEFAULT_BASE_URL}"""

    async def aclose(self):
        await self.client.aclose()
