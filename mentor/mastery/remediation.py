"""
Remediation Synthesizer: targeted re-teaching for failed attempts.

Output is scoped to the gaps of a single verdict. Coverage of each gap is
requested from the service but not checked locally.
"""

from __future__ import annotations

from loguru import logger

from mentor.core.errors import MalformedResponseError, PreconditionError
from mentor.core.generation_client import ContentGenerator

from .models import LessonContext, RemediationContent
from .prompts import REMEDIATION_SYSTEM_PROMPT


class RemediationSynthesizer:
    """Produces markdown that re-teaches only the concepts the learner missed."""

    def __init__(self, generator: ContentGenerator):
        self.generator = generator

    async def remediate(
        self,
        lesson: LessonContext,
        gaps: list[str] | tuple[str, ...],
    ) -> RemediationContent:
        """
        Generate re-teaching content for `gaps`.

        Raises:
            PreconditionError: gaps is empty (a passed verdict needs no remediation)
            MalformedResponseError: the service returned no text
        """
        if not gaps:
            raise PreconditionError("Remediation requires at least one gap")

        logger.info(f"Synthesizing remediation for {len(gaps)} gap(s) in '{lesson.title}'")
        text = await self.generator.generate(
            REMEDIATION_SYSTEM_PROMPT,
            {
                "original_lesson": lesson.to_document(),
                "identified_gaps": list(gaps),
            },
            expect_json=False,
        )

        if not isinstance(text, str) or not text.strip():
            raise MalformedResponseError("Remediation reply was empty")

        return RemediationContent(text=text.strip(), gaps=tuple(gaps))
