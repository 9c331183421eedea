"""Domain errors used by the tutor evaluation pipeline."""

from typing import Optional


class TutorEvalError(Exception):
    """Base exception for user-facing evaluation errors."""


class ConfigError(TutorEvalError):
    """Raised when configuration cannot be located, parsed or is incomplete."""

    exit_code = 2


class EvaluationError(TutorEvalError):
    """Raised when evaluation fails unexpectedly."""

    exit_code = 1


class TutorQueryError(TutorEvalError):
    """Raised when the tutor endpoint cannot be reached or answers non-2xx."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is not None:
            return f"Tutor API error ({self.status_code}): {base}"
        return f"Tutor API error: {base}"


class JudgeEndpointError(TutorEvalError):
    """Raised when the judge model endpoint fails at the transport/HTTP level."""


class JudgeParseError(TutorEvalError):
    """Raised when the judge output holds no usable JSON evaluation."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class PersistenceError(TutorEvalError):
    """Raised when a report or record cannot be written."""


class InvalidEvaluationTypeError(TutorEvalError):
    """Raised when a gateway request names an unknown evaluation type."""

    def __init__(self, evaluation_type: str, valid_types):
        super().__init__(f"Invalid evaluation type: {evaluation_type}")
        self.evaluation_type = evaluation_type
        self.valid_types = list(valid_types)
