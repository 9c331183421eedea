"""Evaluation configuration and project discovery helpers."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "tutoreval.yaml"
PROJECT_MARKERS = (DEFAULT_CONFIG_NAME, "pyproject.toml", ".git")

# Environment variable -> config field
ENV_OVERRIDES = {
    "BACKEND_API_ENDPOINT": "backend_api_endpoint",
    "AI_TUTOR_ENDPOINT": "tutor_api_endpoint",
    "BACKEND_API_KEY": "judge_api_key",
    "JUDGE_MODEL": "judge_model",
    "JUDGE_PROVIDER": "judge_provider",
    "TUTOREVAL_DB_PATH": "db_path",
    "TUTOREVAL_RESULTS_DIR": "results_dir",
}


class EvaluationConfig(BaseModel):
    """Settings shared by the tutor client, judge and suite runner."""

    backend_api_endpoint: str = ""
    tutor_api_endpoint: str = ""
    tutor_path: str = "/learning/interact"
    judge_provider: str = "backend"
    judge_model: str = "nova-micro"
    judge_api_key: Optional[str] = None
    max_tokens: int = Field(default=1000, gt=0)
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    passing_score: float = Field(default=70.0, ge=0.0, le=100.0)
    timeout_seconds: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=0, ge=0)
    inter_test_delay: float = Field(default=1.0, ge=0.0)
    suite_delay: float = Field(default=2.0, ge=0.0)
    results_dir: str = "results"
    db_path: str = "tutoreval.duckdb"
    retention_days: int = Field(default=90, gt=0)

    def require_endpoints(self) -> "EvaluationConfig":
        """Fail fast when the tutor or judge endpoint is not configured."""
        missing = []
        if not self.tutor_api_endpoint:
            missing.append("AI_TUTOR_ENDPOINT (tutor_api_endpoint)")
        if not self.backend_api_endpoint:
            missing.append("BACKEND_API_ENDPOINT (backend_api_endpoint)")
        if missing:
            raise ConfigError(f"Missing required configuration: {', '.join(missing)}")
        return self

    def public_dict(self) -> Dict[str, Any]:
        """Configuration safe to embed in reports (no credentials)."""
        return self.model_dump(exclude={"judge_api_key"})


def find_project_root(start_dir: Optional[Path] = None) -> Path:
    """Find project root by scanning upward for known project markers."""
    current = (start_dir or Path.cwd()).resolve()

    for candidate in (current, *current.parents):
        if any((candidate / marker).exists() for marker in PROJECT_MARKERS):
            return candidate

    return current


def resolve_config_path(config_path: Optional[str] = None, start_dir: Optional[Path] = None) -> Optional[Path]:
    """Resolve a config path from explicit input or project root discovery.

    An explicit path that does not exist is an error. Without one, a missing
    ``tutoreval.yaml`` simply means "environment only" and ``None`` is returned.
    """
    if config_path:
        provided = Path(config_path).expanduser()
        if not provided.is_absolute():
            provided = (start_dir or Path.cwd()) / provided
        provided = provided.resolve()
        if not provided.exists():
            raise ConfigError(f"Config file not found: {provided}")
        return provided

    config_file = find_project_root(start_dir) / DEFAULT_CONFIG_NAME
    return config_file if config_file.exists() else None


def load_config(config_path: Optional[str] = None, start_dir: Optional[Path] = None) -> EvaluationConfig:
    """Build an EvaluationConfig from YAML, then apply environment overrides."""
    load_dotenv()

    data: Dict[str, Any] = {}
    path = resolve_config_path(config_path, start_dir)
    if path is not None:
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Error parsing configuration file {path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigError(f"Configuration file {path} must contain a mapping")
        section = loaded.get("evaluation", loaded) or {}
        if not isinstance(section, dict):
            raise ConfigError(f"The 'evaluation' section of {path} must be a mapping")
        data.update(section)
        logger.debug(f"Loaded configuration from {path}")

    for env_name, field_name in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            data[field_name] = value

    try:
        return EvaluationConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
