"""
Exercise Battery Builder.

Turns a LessonContext into a fresh ExerciseBattery with one request to the
generation service. The reply is validated slot by slot; a reply without
the mandatory multipleChoice/explain slots, or with a broken slot, is
rejected rather than patched with defaults.
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from pydantic import ValidationError

from mentor.core.errors import MalformedBatteryError
from mentor.core.generation_client import ContentGenerator

from .models import REQUIRED_SLOTS, SLOT_NAMES, ExerciseBattery, LessonContext
from .prompts import BATTERY_SYSTEM_PROMPT


def parse_battery(document: Any) -> ExerciseBattery:
    """
    Validate a generated document as an ExerciseBattery.

    Raises:
        MalformedBatteryError: document is not an object, misses a required
            slot, or any present slot breaks its schema
    """
    if not isinstance(document, dict):
        raise MalformedBatteryError(
            f"Battery document must be a JSON object, got {type(document).__name__}"
        )

    missing = [slot for slot in REQUIRED_SLOTS if document.get(slot) is None]
    if missing:
        raise MalformedBatteryError(f"Battery is missing required slots: {missing}")

    try:
        return ExerciseBattery.model_validate(document)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise MalformedBatteryError(f"Battery failed validation: {problems}") from e


class BatteryBuilder:
    """Builds one exercise battery per loop iteration."""

    def __init__(self, generator: ContentGenerator):
        self.generator = generator

    async def build_battery(self, lesson: LessonContext) -> ExerciseBattery:
        """
        Generate exercises strictly derived from `lesson.content_text`.

        Coverage of every mastery criterion is requested from the service
        but cannot be verified locally.

        Raises:
            PreconditionError: empty content or 0/more than 5 criteria
            MalformedBatteryError: the reply is not a usable battery
            TransportError: propagated from the generation client
        """
        lesson.validate()

        logger.info(
            f"Building battery for '{lesson.title}' "
            f"({len(lesson.mastery_criteria)} criteria, {len(lesson.content_text)} chars)"
        )
        document = await self.generator.generate(
            BATTERY_SYSTEM_PROMPT,
            lesson.to_document(),
            expect_json=True,
        )

        try:
            battery = parse_battery(document)
        except MalformedBatteryError as e:
            logger.warning(f"Rejected battery for '{lesson.title}': {e}")
            raise

        present = battery.present_slots()
        omitted = [slot for slot in SLOT_NAMES if slot not in present]
        if omitted:
            logger.debug(f"Battery omitted optional slots: {omitted}")
        logger.info(
            f"Battery ready: {len(battery.multiple_choice)} questions, slots={present}"
        )
        return battery
