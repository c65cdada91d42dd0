"""
Error taxonomy for the mastery loop and its collaborators.

- TransportError: collaborator unreachable or returned a non-success status
- MalformedResponseError: collaborator answered but broke the structural contract
- PreconditionError: caller misuse (wrong state, empty gaps, bad lesson)

None of these are repaired or retried by the loop itself; they surface
unchanged to whoever drives the session.
"""

from __future__ import annotations


class MentorError(Exception):
    """Base class for all mentor errors."""
    pass


class TransportError(MentorError):
    """Raised when a collaborator cannot be reached or answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_transient(self) -> bool:
        """Timeouts, connection failures and 5xx responses may succeed on retry."""
        return self.status_code is None or self.status_code >= 500


class MalformedResponseError(MentorError):
    """Raised when a collaborator response violates the expected structure."""
    pass


class MalformedBatteryError(MalformedResponseError):
    """Raised when a generated exercise battery is missing or breaks required slots."""
    pass


class InvalidVerdictError(MalformedResponseError):
    """Raised when an evaluation breaks the passed/gaps invariant."""
    pass


class PreconditionError(MentorError):
    """Raised on caller misuse. Fatal to the call, not to the process."""
    pass
