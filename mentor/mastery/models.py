"""
Mastery Loop Data Models.

Two families live here:
- Domain values owned by the loop (LessonContext, RemediationContent),
  plain dataclasses like the rest of the package.
- Boundary documents exchanged with the generation service and the learner
  (ExerciseBattery, AnswerSet, Verdict), pydantic models so that every
  collaborator reply is validated before the loop trusts it.

Wire names are camelCase (multipleChoice, correctOptionIndex, ...); Python
attributes are snake_case. Both spellings are accepted on input.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterator

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    field_validator,
    model_validator,
)

from mentor.core.errors import PreconditionError

MIN_CRITERIA = 1
MAX_CRITERIA = 5

REMEDIATION_HEADER = "## Remediation (attempt {attempt})"


# =============================================================================
# Lesson
# =============================================================================


@dataclass(frozen=True)
class LessonContext:
    """
    The taught material for one mastery attempt.

    content_text is the only source of truth for generated exercises.
    Instances are never mutated; remediation produces a new context.
    """

    title: str
    content_text: str
    mastery_criteria: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Accept any sequence for criteria but store an immutable tuple
        object.__setattr__(self, "mastery_criteria", tuple(self.mastery_criteria))

    def validate(self) -> None:
        """Raise PreconditionError unless the lesson can seed a battery."""
        if not isinstance(self.content_text, str) or not self.content_text.strip():
            raise PreconditionError("Lesson content_text must be non-empty text")

        criteria = [c for c in self.mastery_criteria if isinstance(c, str) and c.strip()]
        if len(criteria) != len(self.mastery_criteria):
            raise PreconditionError("Mastery criteria must be non-empty strings")
        if not MIN_CRITERIA <= len(criteria) <= MAX_CRITERIA:
            raise PreconditionError(
                f"Lesson needs {MIN_CRITERIA}-{MAX_CRITERIA} mastery criteria, "
                f"got {len(criteria)}"
            )

    def with_remediation(self, remediation_text: str, attempt: int) -> "LessonContext":
        """Return a copy whose content is extended (not replaced) with remediation."""
        header = REMEDIATION_HEADER.format(attempt=attempt)
        extended = f"{self.content_text.rstrip()}\n\n{header}\n\n{remediation_text.strip()}\n"
        return replace(self, content_text=extended)

    def to_document(self) -> dict[str, Any]:
        """Context document sent to the generation service."""
        return {
            "title": self.title,
            "content_text": self.content_text,
            "mastery_criteria": list(self.mastery_criteria),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LessonContext":
        """
        Build a lesson from a lesson-generator document.

        Accepts either `content_text` or the generator's `content` key.
        """
        content = data.get("content_text", data.get("content", ""))
        criteria = data.get("mastery_criteria") or []
        if not isinstance(criteria, list):
            raise PreconditionError("mastery_criteria must be an array")
        return cls(
            title=data.get("title", "Untitled lesson"),
            content_text=content,
            mastery_criteria=tuple(criteria),
        )


@dataclass(frozen=True)
class RemediationContent:
    """Markdown re-teaching scoped to the gaps of one failed attempt."""

    text: str
    gaps: tuple[str, ...]


# =============================================================================
# Exercise Battery (generation service -> loop)
# =============================================================================


class _WireModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
        frozen=True,
    )


class MultipleChoiceItem(_WireModel):
    """Multiple choice or true/false question."""

    question: str = Field(min_length=1)
    options: list[str] = Field(min_length=2)
    correct_option_index: int = Field(alias="correctOptionIndex", ge=0)

    @model_validator(mode="after")
    def _index_in_range(self) -> "MultipleChoiceItem":
        if self.correct_option_index >= len(self.options):
            raise ValueError(
                f"correctOptionIndex {self.correct_option_index} out of range "
                f"for {len(self.options)} options"
            )
        return self

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_option_index]


class TermDefinitionItem(_WireModel):
    term: str = Field(min_length=1)
    definition: str = Field(min_length=1)


class CategorizeItem(_WireModel):
    text: str = Field(min_length=1)
    correct_bucket_index: int = Field(alias="correctBucketIndex", ge=0, le=1)


class CategorizeExercise(_WireModel):
    """Sort items into exactly two buckets."""

    buckets: list[str] = Field(min_length=2, max_length=2)
    items: list[CategorizeItem] = Field(min_length=1)


class PairingItem(_WireModel):
    """`right` is the correct match for the same-index `left`."""

    left: str = Field(min_length=1)
    right: str = Field(min_length=1)


class ClozeBlank(_WireModel):
    id: str = Field(min_length=1)
    answer: str = Field(min_length=1)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # Models often number blanks with bare integers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class ClozeExercise(_WireModel):
    text: str = Field(min_length=1)
    blanks: list[ClozeBlank] = Field(min_length=1)

    @model_validator(mode="after")
    def _unique_ids(self) -> "ClozeExercise":
        ids = [b.id for b in self.blanks]
        if len(ids) != len(set(ids)):
            raise ValueError("Cloze blank ids must be unique")
        return self


class ExplainExercise(_WireModel):
    """Open-ended prompt asking the learner to explain one core concept."""

    prompt: str = Field(min_length=1)


SLOT_NAMES = (
    "multipleChoice",
    "termDefinition",
    "categorize",
    "pairing",
    "cloze",
    "explain",
)
REQUIRED_SLOTS = ("multipleChoice", "explain")


class ExerciseBattery(_WireModel):
    """
    The full set of exercises for one mastery attempt.

    multipleChoice and explain are mandatory; the other slots may be
    omitted by the generator.
    """

    multiple_choice: list[MultipleChoiceItem] = Field(alias="multipleChoice", min_length=1)
    term_definition: list[TermDefinitionItem] | None = Field(default=None, alias="termDefinition")
    categorize: CategorizeExercise | None = None
    pairing: list[PairingItem] | None = None
    cloze: ClozeExercise | None = None
    explain: ExplainExercise

    def present_slots(self) -> list[str]:
        """Wire names of the slots this battery carries."""
        dumped = self.model_dump(by_alias=True, exclude_none=True)
        return [name for name in SLOT_NAMES if name in dumped]

    def answer_texts(self) -> Iterator[str]:
        """Yield the text of every correct answer in the battery."""
        for item in self.multiple_choice:
            yield item.correct_option
        for card in self.term_definition or []:
            yield card.definition
        if self.categorize:
            for sort_item in self.categorize.items:
                yield sort_item.text
        for pair in self.pairing or []:
            yield pair.right
        if self.cloze:
            for blank in self.cloze.blanks:
                yield blank.answer


# =============================================================================
# Learner answers (caller -> loop)
# =============================================================================


class AnswerSet(BaseModel):
    """
    Learner submissions mirroring an ExerciseBattery.

    A missing slot means "not attempted" and counts against mastery; a None
    entry inside a list means that single item was skipped.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    multiple_choice: list[int | None] | None = Field(default=None, alias="multipleChoice")
    term_definition: list[str | None] | None = Field(default=None, alias="termDefinition")
    categorize: list[int | None] | None = None
    pairing: list[int | None] | None = None
    cloze: dict[str, str] | None = None
    explain: str | None = None

    def attempted_slots(self) -> list[str]:
        dumped = self.model_dump(by_alias=True, exclude_none=True)
        return [name for name in SLOT_NAMES if name in dumped]

    def check_against(self, battery: ExerciseBattery) -> None:
        """Raise PreconditionError if these answers cannot belong to `battery`."""
        missing = [s for s in self.attempted_slots() if s not in battery.present_slots()]
        if missing:
            raise PreconditionError(f"Answers given for slots absent from the battery: {missing}")

        _check_indexed(
            "multipleChoice",
            self.multiple_choice,
            [len(q.options) for q in battery.multiple_choice],
        )
        if self.term_definition is not None and battery.term_definition is not None:
            if len(self.term_definition) != len(battery.term_definition):
                raise PreconditionError(
                    f"termDefinition expects {len(battery.term_definition)} answers, "
                    f"got {len(self.term_definition)}"
                )
        if battery.categorize is not None:
            _check_indexed(
                "categorize",
                self.categorize,
                [len(battery.categorize.buckets)] * len(battery.categorize.items),
            )
        if battery.pairing is not None:
            _check_indexed(
                "pairing",
                self.pairing,
                [len(battery.pairing)] * len(battery.pairing),
            )
        if self.cloze is not None and battery.cloze is not None:
            known = {b.id for b in battery.cloze.blanks}
            unknown = sorted(set(self.cloze) - known)
            if unknown:
                raise PreconditionError(f"Unknown cloze blank ids: {unknown}")


def _check_indexed(slot: str, answers: list[int | None] | None, bounds: list[int]) -> None:
    if answers is None:
        return
    if len(answers) != len(bounds):
        raise PreconditionError(f"{slot} expects {len(bounds)} answers, got {len(answers)}")
    for position, (choice, bound) in enumerate(zip(answers, bounds)):
        if choice is not None and not 0 <= choice < bound:
            raise PreconditionError(f"{slot}[{position}] index {choice} out of range 0-{bound - 1}")


# =============================================================================
# Verdict (generation service -> loop)
# =============================================================================


class Verdict(BaseModel):
    """Binary mastery decision. passed is True exactly when gaps is empty; gaps are distinct."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    passed: StrictBool
    gaps: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _passed_iff_no_gaps(self) -> "Verdict":
        if self.passed and self.gaps:
            raise ValueError("A passing verdict must not list gaps")
        if not self.passed and not self.gaps:
            raise ValueError("A failing verdict must name at least one gap")
        keys = [gap.strip().casefold() for gap in self.gaps]
        if len(keys) != len(set(keys)):
            raise ValueError("Verdict gaps must be distinct")
        return self
