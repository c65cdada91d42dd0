"""
Response Evaluator.

Delegates the pass/fail judgment to the generation service. Correctness is
never re-derived locally from answer keys: cloze and explanation answers
need semantic comparison, and the decision is holistic per criterion rather
than an item tally. The only local logic is building the transcript sent to
the examiner and validating the verdict that comes back.
"""

from __future__ import annotations

import re
from typing import Any

from loguru import logger
from pydantic import ValidationError

from mentor.core.errors import InvalidVerdictError, PreconditionError
from mentor.core.generation_client import ContentGenerator

from .models import SLOT_NAMES, AnswerSet, ExerciseBattery, Verdict
from .prompts import EVALUATOR_SYSTEM_PROMPT

NOT_ATTEMPTED = "not_attempted"

# Gaps must name a concept; these say nothing about what was missed
GENERIC_GAP_PATTERNS = [
    re.compile(r"^(needs?|requires?) (more )?(practice|work|study|review)\.?$", re.IGNORECASE),
    re.compile(r"^(review|re-?read|study) (the )?(whole |entire )?(lesson|material|content)\.?$", re.IGNORECASE),
    re.compile(r"^(did not|didn't) (meet|pass|understand) (the )?(criteria|lesson|material)\.?$", re.IGNORECASE),
    re.compile(r"^(general|overall) (understanding|comprehension)\.?$", re.IGNORECASE),
    re.compile(r"^(everything|all( criteria)?)\.?$", re.IGNORECASE),
]


def is_generic_gap(gap: str) -> bool:
    """Check if a gap restates failure without naming a concept."""
    return any(p.match(gap.strip()) for p in GENERIC_GAP_PATTERNS)


def parse_verdict(document: Any) -> Verdict:
    """
    Validate an examiner reply as a Verdict.

    Duplicate gaps are collapsed ignoring case (first spelling kept). Every other deviation
    from the contract is an error, never silently repaired.

    Raises:
        InvalidVerdictError: wrong types, blank or generic gaps, or
            passed/gaps disagreeing
    """
    if not isinstance(document, dict):
        raise InvalidVerdictError(
            f"Verdict must be a JSON object, got {type(document).__name__}"
        )

    passed = document.get("passed")
    if not isinstance(passed, bool):
        raise InvalidVerdictError(f"'passed' must be a boolean, got {passed!r}")

    raw_gaps = document.get("gaps", [])
    if not isinstance(raw_gaps, list) or not all(isinstance(g, str) for g in raw_gaps):
        raise InvalidVerdictError("'gaps' must be an array of strings")

    gaps: list[str] = []
    seen: set[str] = set()
    for gap in raw_gaps:
        cleaned = gap.strip()
        if not cleaned:
            raise InvalidVerdictError("Verdict contains a blank gap")
        if is_generic_gap(cleaned):
            raise InvalidVerdictError(f"Gap does not name a concept: {cleaned!r}")
        key = cleaned.casefold()
        if key in seen:
            continue
        seen.add(key)
        gaps.append(cleaned)

    try:
        return Verdict(passed=passed, gaps=gaps)
    except ValidationError as e:
        raise InvalidVerdictError(e.errors()[0]["msg"]) from e


def build_transcript(answers: AnswerSet, battery: ExerciseBattery | None = None) -> dict[str, Any]:
    """
    Pair each learner response with its exercise so the examiner can judge it.

    Without a battery the raw answers are passed through. Slots the learner
    left out are reported as "not_attempted".
    """
    if battery is None:
        transcript: dict[str, Any] = answers.model_dump(by_alias=True, exclude_none=True)
        for slot in SLOT_NAMES:
            transcript.setdefault(slot, NOT_ATTEMPTED)
        return transcript

    transcript = {}

    if answers.multiple_choice is None:
        transcript["multipleChoice"] = NOT_ATTEMPTED
    else:
        transcript["multipleChoice"] = [
            {
                "question": q.question,
                "options": q.options,
                "selected_index": choice,
                "selected_option": q.options[choice] if choice is not None else None,
                "correct_index": q.correct_option_index,
            }
            for q, choice in zip(battery.multiple_choice, answers.multiple_choice)
        ]

    if battery.term_definition is not None:
        if answers.term_definition is None:
            transcript["termDefinition"] = NOT_ATTEMPTED
        else:
            transcript["termDefinition"] = [
                {
                    "term": card.term,
                    "expected_definition": card.definition,
                    "user_input": given,
                }
                for card, given in zip(battery.term_definition, answers.term_definition)
            ]

    if battery.categorize is not None:
        buckets = battery.categorize.buckets
        if answers.categorize is None:
            transcript["categorize"] = NOT_ATTEMPTED
        else:
            transcript["categorize"] = {
                "buckets": buckets,
                "items": [
                    {
                        "item": item.text,
                        "user_bucket": buckets[choice] if choice is not None else None,
                        "correct_bucket": buckets[item.correct_bucket_index],
                    }
                    for item, choice in zip(battery.categorize.items, answers.categorize)
                ],
            }

    if battery.pairing is not None:
        rights = [pair.right for pair in battery.pairing]
        if answers.pairing is None:
            transcript["pairing"] = NOT_ATTEMPTED
        else:
            transcript["pairing"] = [
                {
                    "left": pair.left,
                    "user_match": rights[choice] if choice is not None else None,
                    "correct_match": pair.right,
                }
                for pair, choice in zip(battery.pairing, answers.pairing)
            ]

    if battery.cloze is not None:
        if answers.cloze is None:
            transcript["cloze"] = NOT_ATTEMPTED
        else:
            transcript["cloze"] = {
                "text": battery.cloze.text,
                "blanks": [
                    {
                        "id": blank.id,
                        "user_input": answers.cloze.get(blank.id),
                        "correct_answer": blank.answer,
                    }
                    for blank in battery.cloze.blanks
                ],
            }

    if answers.explain is None or not answers.explain.strip():
        transcript["explain"] = NOT_ATTEMPTED
    else:
        transcript["explain"] = {
            "prompt": battery.explain.prompt,
            "user_explanation": answers.explain,
        }

    return transcript


class ResponseEvaluator:
    """Renders a holistic pass/fail verdict for one answer set."""

    def __init__(self, generator: ContentGenerator):
        self.generator = generator

    async def evaluate(
        self,
        criteria: list[str] | tuple[str, ...],
        answers: AnswerSet,
        battery: ExerciseBattery | None = None,
    ) -> Verdict:
        """
        Judge `answers` against the mastery criteria.

        Args:
            criteria: Mastery criteria of the lesson under test
            answers: Learner submissions
            battery: Battery the answers belong to; adds questions and keys
                to the transcript

        Raises:
            PreconditionError: no criteria, or answers that do not fit the battery
            InvalidVerdictError: the examiner broke the verdict contract
            TransportError / MalformedResponseError: from the generation client
        """
        if not criteria:
            raise PreconditionError("Cannot evaluate without mastery criteria")
        if battery is not None:
            answers.check_against(battery)

        context = {
            "mastery_criteria": list(criteria),
            "user_answers": build_transcript(answers, battery),
        }
        document = await self.generator.generate(
            EVALUATOR_SYSTEM_PROMPT,
            context,
            expect_json=True,
        )

        try:
            verdict = parse_verdict(document)
        except InvalidVerdictError as e:
            logger.warning(f"Rejected verdict: {e}")
            raise

        if verdict.passed:
            logger.info("Verdict: PASSED")
        else:
            logger.info(f"Verdict: FAILED with {len(verdict.gaps)} gap(s): {verdict.gaps}")
        return verdict
