"""
Content-Generation Client

HTTP client for the OpenRouter chat-completions API. Every stage of the
mastery loop sends a role-tagged system instruction plus a JSON context
document and receives either a parsed JSON object or markdown text.

Usage:
    async with GenerationClient.from_settings() as client:
        battery_doc = await client.generate(BATTERY_SYSTEM_PROMPT, lesson_doc)
        markdown = await client.generate(REMEDIATION_SYSTEM_PROMPT, ctx, expect_json=False)
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any, Protocol

import httpx
from loguru import logger

from config import get_settings

from .errors import MalformedResponseError, PreconditionError, TransportError

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


class ContentGenerator(Protocol):
    """Anything that can turn an instruction plus context into a document."""

    async def generate(
        self,
        system_instruction: str,
        context: Any,
        expect_json: bool = True,
    ) -> dict[str, Any] | str:
        ...


def parse_json_document(content: str) -> dict[str, Any]:
    """
    Parse a model reply into a JSON object.

    Accepts bare JSON or JSON wrapped in a ```json fence. Anything else,
    including a JSON value that is not an object, is malformed.
    """
    text = content.strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        fenced = _FENCED_JSON.search(text)
        if not fenced:
            raise MalformedResponseError("Expected a JSON object but got non-JSON text")
        try:
            data = json.loads(fenced.group(1).strip())
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"Fenced block is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedResponseError(
            f"Expected a JSON object but got {type(data).__name__}"
        )
    return data


class GenerationClient:
    """
    HTTP client for the content-generation service.

    Supports:
    - JSON mode (response_format=json_object) and markdown mode
    - Exponential backoff on timeouts, connection errors and 5xx
    - Distinct errors for transport failures vs malformed content
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://openrouter.ai/api/v1",
        model: str = "google/gemini-3-flash-preview",
        timeout_seconds: float = 60.0,
        retry_attempts: int = 2,
        referer: str | None = None,
        title: str | None = None,
    ):
        """
        Initialize the generation client.

        Args:
            api_key: OpenRouter API key
            base_url: Base URL for the chat completions API
            model: Model identifier sent with every request
            timeout_seconds: Request timeout
            retry_attempts: Total attempts for transient transport errors
            referer: Optional HTTP-Referer header
            title: Optional X-Title header
        """
        if not api_key:
            raise PreconditionError("OPENROUTER_API_KEY is required")

        self.model = model
        self.retry_attempts = max(1, retry_attempts)

        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        if referer:
            headers["HTTP-Referer"] = referer
        if title:
            headers["X-Title"] = title

        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout_seconds),
        )

    @classmethod
    def from_settings(cls) -> "GenerationClient":
        """Build a client from application settings."""
        cfg = get_settings().get_generation_config()
        return cls(
            api_key=cfg["api_key"],
            base_url=cfg["base_url"],
            model=cfg["model"],
            timeout_seconds=cfg["timeout_seconds"],
            retry_attempts=cfg["retry_attempts"],
            referer=cfg["referer"],
            title=cfg["title"],
        )

    async def __aenter__(self) -> "GenerationClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    def _build_payload(
        self,
        system_instruction: str,
        context: Any,
        expect_json: bool,
    ) -> dict[str, Any]:
        user_content = context if isinstance(context, str) else json.dumps(context)
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_instruction},
                {"role": "user", "content": user_content},
            ],
        }
        if expect_json:
            payload["response_format"] = {"type": "json_object"}
        return payload

    async def _post_once(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Send one request, mapping every transport failure to TransportError."""
        try:
            response = await self.client.post("/chat/completions", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise TransportError(
                f"Generation request failed: {status} {e.response.text[:200]}",
                status_code=status,
            ) from e
        except httpx.RequestError as e:
            raise TransportError(f"Generation service unreachable: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError("Generation service returned a non-JSON envelope") from e

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Send a request, retrying transient transport errors with backoff."""
        for attempt in range(self.retry_attempts):
            try:
                return await self._post_once(payload)
            except TransportError as e:
                if not e.is_transient or attempt == self.retry_attempts - 1:
                    logger.error(f"Generation call failed: {e}")
                    raise
                wait_time = 2 ** attempt  # 1s, 2s, 4s
                logger.warning(
                    f"Generation transport error on attempt {attempt + 1}/{self.retry_attempts}: "
                    f"{e}. Retrying in {wait_time}s..."
                )
                await asyncio.sleep(wait_time)

        raise AssertionError("unreachable")

    @staticmethod
    def _extract_content(envelope: dict[str, Any]) -> str:
        try:
            content = envelope["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError("Unexpected completion envelope format") from e
        if not isinstance(content, str):
            raise MalformedResponseError("Completion content is not text")
        return content

    async def generate(
        self,
        system_instruction: str,
        context: Any,
        expect_json: bool = True,
    ) -> dict[str, Any] | str:
        """
        Submit an instruction plus context and return the generated document.

        Args:
            system_instruction: Role prompt sent as the system message
            context: Structured context (JSON-serialised) or plain text
            expect_json: Request and parse a JSON object instead of markdown

        Returns:
            Parsed JSON object when expect_json, else the raw text

        Raises:
            TransportError: Service unreachable or non-2xx after retries
            MalformedResponseError: Reply parsed but broke the expected shape
        """
        payload = self._build_payload(system_instruction, context, expect_json)
        logger.debug(
            f"Generation request: model={self.model} json={expect_json} "
            f"context_chars={len(payload['messages'][1]['content'])}"
        )

        envelope = await self._post(payload)
        content = self._extract_content(envelope)

        if not expect_json:
            return content

        try:
            return parse_json_document(content)
        except MalformedResponseError as e:
            logger.warning(f"Malformed generation reply: {e}")
            raise
