"""Tests for the scenario catalog."""

import json

import pytest

from core.errors import ConfigError
from evals.models import Difficulty, TestScenario
from evals.scenarios import ScenarioCatalog, default_scenarios


class TestScenarioCatalog:
    def test_cycling_order(self):
        catalog = ScenarioCatalog({})
        pool = default_scenarios("history", 9)

        scenarios = catalog.get_scenarios("history", 9, 7)

        assert [pool.index(s) for s in scenarios] == [0, 1, 2, 0, 1, 2, 0]

    def test_curated_cycling(self):
        scenarios = ScenarioCatalog().get_scenarios("mathematics", 8, 5)
        questions = [s.question for s in scenarios]
        assert questions[0] == "Explain the concept of rational numbers with examples"
        assert questions[1] == "Solve: 2x + 5 = 13 and explain each step"
        assert questions[2] == questions[0]
        assert questions[4] == questions[0]

    def test_single_curated_entry_repeats(self):
        scenarios = ScenarioCatalog().get_scenarios("science", 8, 3)
        assert len(scenarios) == 3
        assert all(s.question == "What is photosynthesis and why is it important?" for s in scenarios)

    def test_subject_lookup_is_case_insensitive(self):
        scenarios = ScenarioCatalog().get_scenarios("Mathematics", 10, 1)
        assert scenarios[0].difficulty == Difficulty.ADVANCED

    @pytest.mark.parametrize("count", [0, -3])
    def test_non_positive_count(self, count):
        assert ScenarioCatalog().get_scenarios("mathematics", 8, count) == []

    def test_default_generator(self):
        scenarios = ScenarioCatalog().get_scenarios("science", 10, 3)
        assert scenarios[0].question == "Explain a key concept in science appropriate for grade 10"
        assert [s.difficulty for s in scenarios] == [
            Difficulty.ADVANCED, Difficulty.INTERMEDIATE, Difficulty.BEGINNER,
        ]
        assert all(s.grade == 10 for s in scenarios)

    def test_default_first_difficulty_for_lower_grades(self):
        assert default_scenarios("english", 7)[0].difficulty == Difficulty.INTERMEDIATE

    def test_deterministic(self):
        catalog = ScenarioCatalog()
        assert catalog.get_scenarios("science", 10, 4) == catalog.get_scenarios("science", 10, 4)

    def test_available(self):
        assert ScenarioCatalog().available() == [("mathematics", 8), ("mathematics", 10), ("science", 8)]

    def test_scenarios_are_immutable(self):
        scenario = ScenarioCatalog().get_scenarios("mathematics", 8, 1)[0]
        with pytest.raises(Exception):
            scenario.question = "changed"


class TestScenarioFile:
    def test_from_file(self, tmp_path):
        path = tmp_path / "scenarios.json"
        path.write_text(json.dumps({"scenarios": [{
            "subject": "history",
            "grade": 9,
            "question": "Why did the Mughal empire decline?",
            "expectedCriteria": ["causes", "timeline"],
            "difficulty": "advanced",
        }]}))

        catalog = ScenarioCatalog.from_file(str(path))

        scenarios = catalog.get_scenarios("history", 9, 2)
        assert scenarios[0].expected_criteria == ["causes", "timeline"]
        assert scenarios[1] == scenarios[0]
        assert ("mathematics", 8) in catalog.available()

    def test_invalid_file(self, tmp_path):
        path = tmp_path / "scenarios.json"
        path.write_text(json.dumps([{"subject": "history", "grade": 9, "question": "  "}]))
        with pytest.raises(ConfigError):
            ScenarioCatalog.from_file(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            ScenarioCatalog.from_file(str(tmp_path / "nope.json"))

    def test_wire_format(self):
        scenario = TestScenario(subject="science", grade=8, question="Q?", expected_criteria=["a"])
        assert scenario.to_dict() == {
            "subject": "science",
            "grade": 8,
            "question": "Q?",
            "expectedCriteria": ["a"],
            "difficulty": "intermediate",
        }
