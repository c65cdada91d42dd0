"""Web research used by the outline and lesson generators."""

from .queries import build_lesson_queries, build_structure_queries
from .web_search import SearchResult, WebSearchClient

__all__ = [
    "SearchResult",
    "WebSearchClient",
    "build_lesson_queries",
    "build_structure_queries",
]
