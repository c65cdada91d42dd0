"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests,
including a deterministic stand-in for the content-generation service.
"""
import copy
import sys
from pathlib import Path
from typing import Any

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from mentor.mastery.models import LessonContext  # noqa: E402
from mentor.mastery.prompts import (  # noqa: E402
    BATTERY_SYSTEM_PROMPT,
    EVALUATOR_SYSTEM_PROMPT,
    REMEDIATION_SYSTEM_PROMPT,
)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (stubbed collaborators)")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


# =============================================================================
# Stub generation service
# =============================================================================


class StubGenerator:
    """
    Deterministic content-generation service.

    Each stage answers with a fixed value, a callable of the request
    context, an exception instance to raise, or a list consumed one
    response per call.
    """

    def __init__(self, battery: Any = None, verdict: Any = None, remediation: Any = None):
        self.responses = {
            BATTERY_SYSTEM_PROMPT: battery,
            EVALUATOR_SYSTEM_PROMPT: verdict,
            REMEDIATION_SYSTEM_PROMPT: remediation,
        }
        self.calls: list[tuple[str, Any, bool]] = []

    async def generate(self, system_instruction: str, context: Any, expect_json: bool = True):
        self.calls.append((system_instruction, copy.deepcopy(context), expect_json))

        response = self.responses[system_instruction]
        if isinstance(response, list):
            response = response.pop(0)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(context)
        return copy.deepcopy(response)

    def calls_for(self, system_instruction: str) -> list[tuple[str, Any, bool]]:
        return [c for c in self.calls if c[0] == system_instruction]

    @property
    def battery_calls(self):
        return self.calls_for(BATTERY_SYSTEM_PROMPT)

    @property
    def evaluation_calls(self):
        return self.calls_for(EVALUATOR_SYSTEM_PROMPT)

    @property
    def remediation_calls(self):
        return self.calls_for(REMEDIATION_SYSTEM_PROMPT)


def strict_examiner(context: dict) -> dict:
    """Stand-in examiner for the photosynthesis lesson."""
    answers = context["user_answers"]
    gaps = []

    quiz = answers.get("multipleChoice")
    if quiz == "not_attempted":
        gaps.append("Did not attempt the inputs and outputs questions")
    else:
        for entry in quiz:
            if entry["selected_index"] == entry["correct_index"]:
                continue
            if "Where" in entry["question"]:
                gaps.append("Location of photosynthesis in the chloroplasts")
            else:
                gaps.append("Outputs of photosynthesis: oxygen and sugar")

    explain = answers.get("explain")
    text = "" if explain == "not_attempted" else explain["user_explanation"].lower()
    if not all(term in text for term in ("chloroplast", "oxygen", "sugar")):
        gaps.append("Cannot explain how sunlight, water and carbon dioxide become sugar and oxygen")

    return {"passed": not gaps, "gaps": gaps}


def gap_tutor(context: dict) -> str:
    """Stand-in tutor that writes one section per gap."""
    sections = []
    for gap in context["identified_gaps"]:
        sections.append(
            f"### {gap}\n\nThink of a leaf as a tiny solar-powered kitchen: {gap.lower()}."
        )
    return "\n\n".join(sections)


@pytest.fixture
def make_generator():
    """Factory for StubGenerator instances."""
    return StubGenerator


# =============================================================================
# Photosynthesis lesson
# =============================================================================

PHOTOSYNTHESIS_TEXT = (
    "Photosynthesis is the process by which plants use sunlight, water, and carbon "
    "dioxide to create oxygen and energy in the form of sugar. It takes place in the "
    "chloroplasts, which contain chlorophyll."
)


@pytest.fixture
def lesson():
    """The photosynthesis lesson used by the mentor dry run."""
    return LessonContext(
        title="Introduction to Photosynthesis",
        content_text=PHOTOSYNTHESIS_TEXT,
        mastery_criteria=(
            "Define the inputs and outputs of photosynthesis",
            "Identify where photosynthesis occurs in the cell",
        ),
    )


@pytest.fixture
def battery_document():
    """A complete battery whose answers all come from the lesson text."""
    return {
        "multipleChoice": [
            {
                "question": "Where does photosynthesis take place?",
                "options": ["mitochondria", "chloroplasts", "nucleus"],
                "correctOptionIndex": 1,
            },
            {
                "question": "Which of these is an output of photosynthesis?",
                "options": ["carbon dioxide", "water", "oxygen"],
                "correctOptionIndex": 2,
            },
            {
                "question": "Which pigment do chloroplasts contain?",
                "options": ["chlorophyll", "hemoglobin"],
                "correctOptionIndex": 0,
            },
        ],
        "termDefinition": [
            {
                "term": "Photosynthesis",
                "definition": "the process by which plants use sunlight, water, and carbon "
                "dioxide to create oxygen and energy in the form of sugar",
            },
            {"term": "Chloroplasts", "definition": "contain chlorophyll"},
        ],
        "categorize": {
            "buckets": ["Input", "Output"],
            "items": [
                {"text": "sunlight", "correctBucketIndex": 0},
                {"text": "water", "correctBucketIndex": 0},
                {"text": "carbon dioxide", "correctBucketIndex": 0},
                {"text": "oxygen", "correctBucketIndex": 1},
                {"text": "sugar", "correctBucketIndex": 1},
            ],
        },
        "pairing": [
            {"left": "Chloroplasts", "right": "chlorophyll"},
            {"left": "Energy", "right": "sugar"},
        ],
        "cloze": {
            "text": "Plants use sunlight, water, and [1] to create [2] and sugar.",
            "blanks": [
                {"id": "1", "answer": "carbon dioxide"},
                {"id": "2", "answer": "oxygen"},
            ],
        },
        "explain": {
            "prompt": "Explain in your own words what photosynthesis does and where it happens."
        },
    }


@pytest.fixture
def failing_answers():
    """Wrong location answer and a non-explanation."""
    return {
        "multipleChoice": [0, 2, 0],
        "explain": "I don't know, magic?",
    }


@pytest.fixture
def passing_answers():
    """Every quiz answer correct plus a convincing explanation."""
    return {
        "multipleChoice": [1, 2, 0],
        "explain": "Plants convert sunlight, water, and CO2 into sugar and oxygen "
        "in the chloroplasts using chlorophyll",
    }


@pytest.fixture
def examiner():
    """Deterministic examiner for the photosynthesis lesson."""
    return strict_examiner


@pytest.fixture
def tutor():
    """Deterministic remedial tutor."""
    return gap_tutor


@pytest.fixture
def location_only_answers():
    """Only the location question wrong; inputs and outputs fully understood."""
    return {
        "multipleChoice": [0, 2, 0],
        "explain": "Plants turn sunlight, water and carbon dioxide into sugar and oxygen "
        "inside chloroplasts",
    }
