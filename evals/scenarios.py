"""Curated test scenarios and the deterministic default generator."""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import ValidationError

from core.errors import ConfigError
from .models import Difficulty, TestScenario

logger = logging.getLogger(__name__)


def _scenario(subject: str, grade: int, question: str, criteria: List[str], difficulty: Difficulty) -> TestScenario:
    return TestScenario(
        subject=subject,
        grade=grade,
        question=question,
        expected_criteria=criteria,
        difficulty=difficulty,
    )


CURATED_SCENARIOS: Dict[Tuple[str, int], List[TestScenario]] = {
    ("mathematics", 8): [
        _scenario(
            "mathematics", 8,
            "Explain the concept of rational numbers with examples",
            ["definition", "examples", "age-appropriate language", "clear explanation"],
            Difficulty.INTERMEDIATE,
        ),
        _scenario(
            "mathematics", 8,
            "Solve: 2x + 5 = 13 and explain each step",
            ["step-by-step solution", "explanation of operations", "correct answer", "mathematical reasoning"],
            Difficulty.INTERMEDIATE,
        ),
    ],
    ("mathematics", 10): [
        _scenario(
            "mathematics", 10,
            "Explain quadratic equations and provide the quadratic formula",
            ["definition", "formula", "when to use", "example application"],
            Difficulty.ADVANCED,
        ),
    ],
    ("science", 8): [
        _scenario(
            "science", 8,
            "What is photosynthesis and why is it important?",
            ["process explanation", "importance", "scientific accuracy", "clear language"],
            Difficulty.INTERMEDIATE,
        ),
    ],
}


def default_scenarios(subject: str, grade: int) -> List[TestScenario]:
    """Templated scenarios for a (subject, grade) with no curated list."""
    return [
        _scenario(
            subject, grade,
            f"Explain a key concept in {subject} appropriate for grade {grade}",
            ["accuracy", "clarity", "age-appropriateness"],
            Difficulty.INTERMEDIATE if grade <= 8 else Difficulty.ADVANCED,
        ),
        _scenario(
            subject, grade,
            f"Provide an example problem and solution in {subject}",
            ["step-by-step explanation", "correct solution", "clear reasoning"],
            Difficulty.INTERMEDIATE,
        ),
        _scenario(
            subject, grade,
            f"Why is this {subject} concept important for students to learn?",
            ["relevance explanation", "real-world applications", "motivation"],
            Difficulty.BEGINNER,
        ),
    ]


class ScenarioCatalog:
    """Lookup of fixed scenarios keyed by (subject, grade).

        catalog = ScenarioCatalog()
        scenarios = catalog.get_scenarios("mathematics", 8, 5)
    """

    def __init__(self, scenarios: Optional[Dict[Tuple[str, int], List[TestScenario]]] = None):
        source = CURATED_SCENARIOS if scenarios is None else scenarios
        self._scenarios: Dict[Tuple[str, int], List[TestScenario]] = {
            (subject.lower(), grade): list(items) for (subject, grade), items in source.items()
        }

    def get_scenarios(self, subject: str, grade: int, count: int) -> List[TestScenario]:
        """Return ``count`` scenarios, cycling the curated or default list in order."""
        if count <= 0:
            return []

        pool = self._scenarios.get((subject.lower(), grade))
        if not pool:
            logger.info(f"No curated scenarios for {subject} grade {grade}, using defaults")
            pool = default_scenarios(subject, grade)

        return [pool[i % len(pool)] for i in range(count)]

    def available(self) -> List[Tuple[str, int]]:
        """Curated (subject, grade) keys."""
        return sorted(key for key, items in self._scenarios.items() if items)

    def extend(self, scenarios: List[TestScenario]) -> None:
        for scenario in scenarios:
            key = (scenario.subject.lower(), scenario.grade)
            self._scenarios.setdefault(key, []).append(scenario)

    @classmethod
    def from_file(cls, path: str, include_curated: bool = True) -> "ScenarioCatalog":
        """Load extra scenarios from a JSON list (or ``{"scenarios": [...]}``)."""
        file_path = Path(path)
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not read scenario file {file_path}: {e}") from e

        items = data.get("scenarios", []) if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise ConfigError(f"Scenario file {file_path} must contain a list of scenarios")

        try:
            scenarios = [TestScenario.model_validate(item) for item in items]
        except ValidationError as e:
            raise ConfigError(f"Invalid scenario in {file_path}: {e}") from e

        catalog = cls() if include_curated else cls({})
        catalog.extend(scenarios)
        logger.info(f"Loaded {len(scenarios)} scenarios from {file_path}")
        return catalog
