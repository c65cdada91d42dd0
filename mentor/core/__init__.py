"""
Core Module - Error taxonomy and the content-generation collaborator.

Components:
- errors: TransportError, MalformedResponseError, PreconditionError
- generation_client: OpenRouter chat-completions client (ContentGenerator)
"""

from mentor.core.errors import (
    InvalidVerdictError,
    MalformedBatteryError,
    MalformedResponseError,
    MentorError,
    PreconditionError,
    TransportError,
)
from mentor.core.generation_client import (
    ContentGenerator,
    GenerationClient,
    parse_json_document,
)

__all__ = [
    # Errors
    "MentorError",
    "TransportError",
    "MalformedResponseError",
    "MalformedBatteryError",
    "InvalidVerdictError",
    "PreconditionError",
    # Generation
    "ContentGenerator",
    "GenerationClient",
    "parse_json_document",
]
