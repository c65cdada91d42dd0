"""Search query builders for course-structure and lesson research."""

from __future__ import annotations

from datetime import date


def build_structure_queries(subject: str, year: int | None = None) -> list[str]:
    """Broad queries about a subject, used when outlining a course."""
    year = year or date.today().year
    return [
        f"{subject} comprehensive guide",
        f"{subject} key topics to learn",
        f"{subject} latest developments {year}",
    ]


def build_lesson_queries(title: str) -> list[str]:
    """Specific queries about a single lesson topic."""
    return [
        title,
        f"{title} guide explanation",
    ]
