"""
Chat Completion Client
======================

This module talks to OpenAI-compatible chat completion APIs. Two endpoint
dialects are supported:

- the generic OpenAI style (OpenAI, Ollama, LiteLLM, ...), where the model
  name travels in the request body and the key in a Bearer header;
- Azure OpenAI, where the deployment name is part of the URL, the API
  version is a query parameter and the key goes into an ``api-key`` header.

The dialect is chosen once, from the endpoint host name. The model is asked
for a JSON object; the object arrives JSON-encoded inside
``choices[0].message.content`` and is decoded a second time into a
`ClassificationResult`.

Every failure is logged and turned into ``None``. There are no retries.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote_plus, urlsplit

import requests
import structlog

from common.config import DEFAULT_MODEL, Settings
from .errors import ProtocolError, TransportError

log = structlog.get_logger(__name__)

AZURE_HOST_PATTERNS = ("openai.azure.com", "cognitiveservices.azure.com")
DEFAULT_AZURE_API_VERSION = "2024-02-15-preview"
REQUEST_TIMEOUT = 120
TEMPERATURE = 0.3


@dataclass(frozen=True)
class ClassificationResult:
    name: str = ""
    categories: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "categories": list(self.categories),
            "keywords": list(self.keywords),
        }


def _as_list(value: Any, split_commas: bool) -> list[str]:
    """
    Normalize a string-or-list field into a list of strings.

    Comma-split fields (keywords) are trimmed; other entries are kept verbatim.
    """
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",") if split_commas else [value]
    elif isinstance(value, list):
        items = value
    else:
        return []
    if split_commas:
        items = [str(item).strip() for item in items]
    return [str(item) for item in items if str(item)]


def parse_classification_content(content: str) -> ClassificationResult:
    """
    Decode the model's message content into a classification result.

    Raises ``ProtocolError`` if the content is not a non-empty JSON object.
    """
    try:
        data = json.loads(content)
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"Failed to parse LLM JSON output: {e}", body=str(content))
    if not isinstance(data, dict):
        raise ProtocolError("LLM JSON output is not an object", body=str(content))
    if not data:
        raise ProtocolError("LLM JSON output is empty", body=str(content))

    name = data.get("name")
    return ClassificationResult(
        name=str(name) if name is not None else "",
        categories=_as_list(data.get("categories"), split_commas=False),
        keywords=_as_list(data.get("keywords"), split_commas=True),
        raw=data,
    )


def is_azure_endpoint(endpoint: str) -> bool:
    """True if the endpoint's host belongs to Azure OpenAI."""
    host = urlsplit(endpoint).hostname or endpoint
    return any(pattern in host for pattern in AZURE_HOST_PATTERNS)


class ChatCompletionClient:
    """A client for OpenAI-compatible and Azure OpenAI chat completions."""

    def __init__(
        self,
        endpoint: str,
        api_key: str = "",
        model: str = DEFAULT_MODEL,
        api_version: str | None = None,
        logger=None,
        session: requests.Session | None = None,
        timeout: int = REQUEST_TIMEOUT,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.api_version = api_version
        self.timeout = timeout
        self.log = logger or log
        self.is_azure = is_azure_endpoint(self.endpoint)

        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})
        if self.api_key:
            if self.is_azure:
                self._session.headers.update({"api-key": self.api_key})
            else:
                self._session.headers.update(
                    {"Authorization": f"Bearer {self.api_key}"}
                )

    @classmethod
    def from_settings(cls, settings: Settings, logger=None) -> ChatCompletionClient:
        return cls(
            settings.LLM_ENDPOINT,
            api_key=settings.LLM_API_KEY,
            model=settings.LLM_MODEL,
            api_version=settings.LLM_API_VERSION,
            logger=logger,
            timeout=settings.REQUEST_TIMEOUT,
        )

    def close(self) -> None:
        self._session.close()

    @property
    def url(self) -> str:
        if self.is_azure:
            api_version = self.api_version or DEFAULT_AZURE_API_VERSION
            return (
                f"{self.endpoint}/openai/deployments/{quote_plus(self.model)}"
                f"/chat/completions?api-version={quote_plus(api_version)}"
            )
        return f"{self.endpoint}/chat/completions"

    def build_payload(self, system_prompt: str, user_message: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "temperature": TEMPERATURE,
            "response_format": {"type": "json_object"},
        }
        # Azure carries the deployment name in the URL instead
        if not self.is_azure:
            payload["model"] = self.model
        return payload

    def chat_completion(
        self, system_prompt: str, user_message: str
    ) -> ClassificationResult | None:
        """
        Send one system and one user message, returning the parsed result.
        """
        try:
            content = self._request_content(system_prompt, user_message)
            return parse_classification_content(content)
        except TransportError as e:
            self.log.error("API connection failed", url=self.url, error=str(e))
        except ProtocolError as e:
            self.log.error(
                "API response unusable",
                url=self.url,
                error=str(e),
                status_code=e.status_code,
                body=e.body,
            )
        return None

    def _request_content(self, system_prompt: str, user_message: str) -> str:
        """POST the request and return ``choices[0].message.content``."""
        payload = self.build_payload(system_prompt, user_message)
        try:
            response = self._session.post(self.url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TransportError(str(e)) from e

        if response.status_code != 200:
            raise ProtocolError(
                f"API returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = json.loads(response.text)
        except ValueError as e:
            raise ProtocolError(
                f"Failed to parse API response: {e}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str):
            raise ProtocolError(
                "Invalid API response structure",
                status_code=response.status_code,
                body=response.text,
            )
        return content
