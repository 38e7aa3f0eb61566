from __future__ import annotations


class LabError(Exception):
    """Base error for the execution pipeline."""


class InputError(LabError):
    """Raised when the submitted script is empty, malformed or oversized."""


class PolicyViolation(LabError):
    """Raised when a statement hits a deny rule or matches no allow rule."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class RateLimited(LabError):
    """Raised when a client submits again inside the cooldown window."""


class ProcessTimeout(LabError):
    """Raised when the external client does not finish before its deadline."""


class ProcessSpawnError(LabError):
    """Raised when the external client cannot be started or its pipes fail."""


class InternalError(LabError):
    """Catch-all for failures that have no more specific kind."""
