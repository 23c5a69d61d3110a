from __future__ import annotations


class ScoringError(Exception):
    """Base error. ``rule`` names the violated rule for the scorer."""

    status_code = 400
    retryable = False

    def __init__(self, rule: str):
        super().__init__(rule)
        self.rule = rule


class InputValidationError(ScoringError):
    # Missing/out-of-order answer or malformed runner target; re-prompt.
    status_code = 422


class InvariantViolation(ScoringError):
    status_code = 409


class PlayRejected(InvariantViolation):
    """Commit refused; nothing was applied to the game state."""


class MatchNotPlaying(ScoringError):
    status_code = 409


class CollaboratorError(ScoringError):
    # Persistence or roster failure; the same draft may be committed again.
    status_code = 503
    retryable = True


class UnknownMatch(ScoringError):
    status_code = 404
