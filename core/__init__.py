"""Core shared utilities for the tutor evaluation pipeline."""

from core.config import (
    DEFAULT_CONFIG_NAME,
    EvaluationConfig,
    find_project_root,
    load_config,
    resolve_config_path,
)
from core.errors import (
    ConfigError,
    EvaluationError,
    JudgeEndpointError,
    InvalidEvaluationTypeError,
    JudgeParseError,
    PersistenceError,
    TutorEvalError,
    TutorQueryError,
)

__all__ = [
    "DEFAULT_CONFIG_NAME",
    "EvaluationConfig",
    "find_project_root",
    "load_config",
    "resolve_config_path",
    "TutorEvalError",
    "ConfigError",
    "EvaluationError",
    "TutorQueryError",
    "JudgeEndpointError",
    "JudgeParseError",
    "InvalidEvaluationTypeError",
    "PersistenceError",
]
