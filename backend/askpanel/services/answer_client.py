"""Clients for the external answering service.

Two interchangeable implementations: one calls OpenAI directly, the other
forwards to a remote proxy exposing /ask and /ask-image. Both surface every
failure as a RemoteError with one normalized message.
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx
import openai
from openai import AsyncOpenAI

import askpanel.core.config as config_module
from askpanel.core.errors import RemoteError
from askpanel.services.image_fetch import fetch_image_as_data_url


class AnswerClient(ABC):
    @abstractmethod
    async def answer_text(self, text: str) -> str:
        """Answer a text question. Empty string means the backend had no answer."""
        ...

    @abstractmethod
    async def answer_image(self, url: str) -> str:
        """Describe the image at url."""
        ...


class OpenAIAnswerClient(AnswerClient):
    """Answers through the OpenAI chat completions API."""

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        settings = config_module.settings
        if client is None:
            # Configure client with optional gateway base URL
            client_config = {
                "api_key": settings.openai_api_key,
                "timeout": settings.answer_timeout_seconds,
            }
            if settings.openai_base_url:
                client_config["base_url"] = settings.openai_base_url
            client = AsyncOpenAI(**client_config)
        self.client = client
        self.model = settings.openai_model or "gpt-4.1-mini"

    async def _complete(self, messages: list) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
            )
        except openai.APIStatusError as e:
            raise RemoteError(e.message, e.status_code) from e
        except openai.APITimeoutError as e:
            raise RemoteError("Request timed out.") from e
        except openai.OpenAIError as e:
            raise RemoteError(str(e)) from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def answer_text(self, text: str) -> str:
        return await self._complete([
            {"role": "system", "content": config_module.settings.text_system_prompt},
            {"role": "user", "content": text},
        ])

    async def answer_image(self, url: str) -> str:
        data_url = await fetch_image_as_data_url(url)
        return await self._complete([
            {"role": "system", "content": config_module.settings.image_system_prompt},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "Analyze this image."},
                    {"type": "image_url", "image_url": {"url": data_url}},
                ],
            },
        ])


class ProxyAnswerClient(AnswerClient):
    """Forwards questions to a remote answering proxy over HTTP."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = config_module.settings
        self.base_url = (base_url or settings.proxy_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.answer_timeout_seconds
        self._transport = transport

    async def _post(self, path: str, body: dict) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(f"{self.base_url}{path}", json=body)
        except httpx.TimeoutException as e:
            raise RemoteError(f"Request timed out after {self.timeout:g} seconds.") from e
        except httpx.HTTPError as e:
            raise RemoteError(f"Request failed: {e}") from e

        data = _safe_json(response)
        if not response.is_success:
            error = data.get("error") or data.get("detail")
            raise RemoteError(
                str(error) if error else f"Request failed ({response.status_code})",
                response.status_code,
            )

        answer = data.get("answer")
        return answer if isinstance(answer, str) else ""

    async def answer_text(self, text: str) -> str:
        return await self._post("/ask", {"text": text})

    async def answer_image(self, url: str) -> str:
        return await self._post("/ask-image", {"url": url})


def _safe_json(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def get_answer_client() -> AnswerClient:
    """Build the client selected by the answer_backend setting."""
    if config_module.settings.answer_backend == "proxy":
        return ProxyAnswerClient()
    return OpenAIAnswerClient()
