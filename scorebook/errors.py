"""
Exception taxonomy for the scoring engine.

Caller errors derive from ``RejectedOperation``: the snapshot passed in is
left untouched and the caller is expected to re-prompt. ``InvariantViolation``
means the match itself is corrupt and is never caught inside the package.
"""


class ScorebookError(Exception):
    """Base class for all scorebook errors."""


class RejectedOperation(ScorebookError):
    """An operation the caller asked for is not allowed in the current state."""


class PreconditionFailed(RejectedOperation):
    """Wrong match status, unresolved striker/bowler, or bad delivery input."""


class InvalidResolution(RejectedOperation):
    """The player picked for a live slot is not eligible for it."""


class InvariantViolation(ScorebookError):
    """A match snapshot references unknown players or breaks a scoring invariant."""
