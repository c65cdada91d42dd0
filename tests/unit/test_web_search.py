"""
Unit tests for the web-search client and query builders.
"""

import pytest
import pytest_asyncio
from httpx import ConnectError, Request, Response

from mentor.search import (
    SearchResult,
    WebSearchClient,
    build_lesson_queries,
    build_structure_queries,
)

SEARCH_URL = "https://ydc-index.io/v1/search"


def web_results(*items):
    return {"results": {"web": list(items)}}


def hit(n, url=None):
    return {
        "title": f"Result {n}",
        "url": url or f"https://example.test/{n}",
        "snippets": [f"Snippet {n}"],
    }


@pytest_asyncio.fixture
async def client():
    """Search client instance."""
    client = WebSearchClient(api_key="ydc-test", default_count=3, concurrency=2)
    yield client
    await client.close()


class TestSearchResult:
    """Tests for SearchResult parsing."""

    def test_from_dict(self):
        result = SearchResult.from_dict(hit(1))

        assert result.title == "Result 1"
        assert result.url == "https://example.test/1"
        assert result.snippets == ["Snippet 1"]

    def test_description_fallback(self):
        result = SearchResult.from_dict(
            {"title": "T", "url": "https://u.test", "description": "A summary"}
        )
        assert result.snippets == ["A summary"]


class TestWebSearchClient:
    """Tests for WebSearchClient.search."""

    @pytest.mark.asyncio
    async def test_search_success(self, client, monkeypatch):
        sent = {}

        async def mock_get(url, **kwargs):
            sent["url"] = url
            sent["params"] = kwargs["params"]
            return Response(200, json=web_results(hit(1), hit(2)), request=Request("GET", SEARCH_URL))

        monkeypatch.setattr(client.client, "get", mock_get)

        results = await client.search("photosynthesis")

        assert [r.title for r in results] == ["Result 1", "Result 2"]
        assert sent["url"] == "/search"
        assert sent["params"] == {"query": "photosynthesis", "count": 3}

    @pytest.mark.asyncio
    async def test_api_key_header(self, client):
        assert client.client.headers["X-API-Key"] == "ydc-test"

    @pytest.mark.asyncio
    async def test_results_truncated_to_count(self, client, monkeypatch):
        async def mock_get(url, **kwargs):
            return Response(
                200,
                json=web_results(*(hit(i) for i in range(10))),
                request=Request("GET", SEARCH_URL),
            )

        monkeypatch.setattr(client.client, "get", mock_get)

        assert len(await client.search("photosynthesis", result_count=4)) == 4

    @pytest.mark.asyncio
    async def test_missing_key_returns_empty(self):
        client = WebSearchClient(api_key=None)
        try:
            assert await client.search("photosynthesis") == []
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_non_200_returns_empty(self, client, monkeypatch):
        async def mock_get(url, **kwargs):
            return Response(429, text="rate limited", request=Request("GET", SEARCH_URL))

        monkeypatch.setattr(client.client, "get", mock_get)

        assert await client.search("photosynthesis") == []

    @pytest.mark.asyncio
    async def test_connection_error_returns_empty(self, client, monkeypatch):
        async def mock_get(url, **kwargs):
            raise ConnectError("Connection refused")

        monkeypatch.setattr(client.client, "get", mock_get)

        assert await client.search("photosynthesis") == []

    @pytest.mark.asyncio
    async def test_missing_results_block(self, client, monkeypatch):
        async def mock_get(url, **kwargs):
            return Response(200, json={"metadata": {}}, request=Request("GET", SEARCH_URL))

        monkeypatch.setattr(client.client, "get", mock_get)

        assert await client.search("photosynthesis") == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        [],
        [{"title": "Result 1"}],
        {"results": [hit(1)]},
        {"results": {"web": "not a list"}},
    ])
    async def test_unexpected_body_shape_returns_empty(self, client, monkeypatch, body):
        async def mock_get(url, **kwargs):
            return Response(200, json=body, request=Request("GET", SEARCH_URL))

        monkeypatch.setattr(client.client, "get", mock_get)

        assert await client.search("photosynthesis") == []


class TestSearchMany:
    """Tests for WebSearchClient.search_many."""

    @pytest.mark.asyncio
    async def test_merges_in_query_order_without_duplicates(self, client, monkeypatch):
        pages = {
            "first": web_results(hit(1), hit(2)),
            "second": web_results(hit(2), hit(3)),
        }

        async def mock_get(url, **kwargs):
            body = pages[kwargs["params"]["query"]]
            return Response(200, json=body, request=Request("GET", SEARCH_URL))

        monkeypatch.setattr(client.client, "get", mock_get)

        results = await client.search_many(["first", "second"])

        assert [r.url for r in results] == [
            "https://example.test/1",
            "https://example.test/2",
            "https://example.test/3",
        ]

    @pytest.mark.asyncio
    async def test_failed_query_does_not_sink_the_rest(self, client, monkeypatch):
        async def mock_get(url, **kwargs):
            if kwargs["params"]["query"] == "broken":
                raise ConnectError("Connection refused")
            return Response(200, json=web_results(hit(1)), request=Request("GET", SEARCH_URL))

        monkeypatch.setattr(client.client, "get", mock_get)

        results = await client.search_many(["broken", "fine"])

        assert len(results) == 1


class TestQueryBuilders:
    """Tests for the research query builders."""

    def test_structure_queries(self):
        queries = build_structure_queries("Rust programming", year=2026)

        assert queries == [
            "Rust programming comprehensive guide",
            "Rust programming key topics to learn",
            "Rust programming latest developments 2026",
        ]

    def test_lesson_queries(self):
        assert build_lesson_queries("Ownership and borrowing") == [
            "Ownership and borrowing",
            "Ownership and borrowing guide explanation",
        ]
