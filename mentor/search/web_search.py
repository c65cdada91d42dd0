"""
Web-Search Client

You.com index API client used by the outline and lesson generators to
ground content in current information. Search is best-effort: a missing
key, a transport error or a non-2xx status all yield an empty result list.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import httpx
from loguru import logger

from config import get_settings


@dataclass
class SearchResult:
    """A ranked web result."""

    title: str
    url: str
    snippets: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchResult":
        """Parse a result from the `results.web` array."""
        snippets = data.get("snippets") or []
        if not snippets and data.get("description"):
            snippets = [data["description"]]
        return cls(
            title=data.get("title", ""),
            url=data.get("url", ""),
            snippets=list(snippets),
        )


class WebSearchClient:
    """HTTP client for the You.com search index."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://ydc-index.io/v1",
        default_count: int = 5,
        concurrency: int = 3,
        timeout_seconds: float = 15.0,
    ):
        self.api_key = api_key
        self.default_count = default_count
        self.concurrency = max(1, concurrency)
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"X-API-Key": api_key or ""},
            timeout=httpx.Timeout(timeout_seconds),
        )

    @classmethod
    def from_settings(cls) -> "WebSearchClient":
        cfg = get_settings().get_search_config()
        return cls(
            api_key=cfg["api_key"],
            base_url=cfg["base_url"],
            default_count=cfg["result_count"],
            concurrency=cfg["concurrency"],
            timeout_seconds=cfg["timeout_seconds"],
        )

    async def __aenter__(self) -> "WebSearchClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.aclose()

    async def search(self, query: str, result_count: int | None = None) -> list[SearchResult]:
        """
        Search the web for `query`.

        Returns:
            Up to `result_count` results; empty when search is unavailable
        """
        if not self.api_key:
            logger.warning("YDC_API_KEY not configured. Skipping web search.")
            return []

        count = result_count or self.default_count
        try:
            response = await self.client.get(
                "/search",
                params={"query": query, "count": count},
            )
        except httpx.RequestError as e:
            logger.error(f"Web search failed for '{query}': {e}")
            return []

        if response.status_code != 200:
            logger.error(f"Web search returned {response.status_code}: {response.text[:200]}")
            return []

        try:
            data = response.json()
        except ValueError:
            logger.error("Web search returned a non-JSON body")
            return []

        if not isinstance(data, dict) or not isinstance(data.get("results"), dict):
            logger.warning(f"Web search for '{query}' returned no results block")
            return []

        web = data["results"].get("web")
        if not isinstance(web, list):
            logger.warning(f"Web search for '{query}' returned no web results")
            return []
        results = [SearchResult.from_dict(item) for item in web if isinstance(item, dict)]
        logger.debug(f"Web search '{query}': {len(results)} results")
        return results[:count]

    async def search_many(
        self,
        queries: list[str],
        result_count: int | None = None,
    ) -> list[SearchResult]:
        """
        Run several queries with bounded concurrency.

        Results are concatenated in query order; a URL seen in an earlier
        query is dropped from later ones.
        """
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _bounded(query: str) -> list[SearchResult]:
            async with semaphore:
                return await self.search(query, result_count)

        batches = await asyncio.gather(*(_bounded(q) for q in queries))

        merged: list[SearchResult] = []
        seen_urls: set[str] = set()
        for batch in batches:
            for result in batch:
                if result.url and result.url in seen_urls:
                    continue
                seen_urls.add(result.url)
                merged.append(result)

        logger.info(f"Web research: {len(merged)} results from {len(queries)} queries")
        return merged
