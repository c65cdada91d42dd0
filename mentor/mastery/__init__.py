"""
Mastery verification loop.

Components:
- models: LessonContext, ExerciseBattery, AnswerSet, Verdict, RemediationContent
- battery: BatteryBuilder (lesson -> exercises)
- evaluator: ResponseEvaluator (criteria + answers -> verdict)
- remediation: RemediationSynthesizer (lesson + gaps -> re-teaching)
- loop: MasteryLoop and the caller-owned MasterySession
"""

from .battery import BatteryBuilder, parse_battery
from .evaluator import ResponseEvaluator, build_transcript, parse_verdict
from .loop import MasteryLoop, MasterySession, MasteryState
from .models import (
    AnswerSet,
    CategorizeExercise,
    CategorizeItem,
    ClozeBlank,
    ClozeExercise,
    ExerciseBattery,
    ExplainExercise,
    LessonContext,
    MultipleChoiceItem,
    PairingItem,
    RemediationContent,
    TermDefinitionItem,
    Verdict,
)
from .remediation import RemediationSynthesizer

__all__ = [
    # Models
    "LessonContext",
    "ExerciseBattery",
    "MultipleChoiceItem",
    "TermDefinitionItem",
    "CategorizeExercise",
    "CategorizeItem",
    "PairingItem",
    "ClozeExercise",
    "ClozeBlank",
    "ExplainExercise",
    "AnswerSet",
    "Verdict",
    "RemediationContent",
    # Stages
    "BatteryBuilder",
    "parse_battery",
    "ResponseEvaluator",
    "build_transcript",
    "parse_verdict",
    "RemediationSynthesizer",
    # Controller
    "MasteryLoop",
    "MasterySession",
    "MasteryState",
]
