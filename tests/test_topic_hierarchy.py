"""Tests for the static topic hierarchy, decision engine and concept catalog."""

from microlearn.services.knowledge_concepts import (
    get_all_topics,
    get_concepts_by_difficulty,
    get_concepts_for_topic,
    get_next_concepts,
    get_prerequisites,
    get_unknown_concepts,
    is_ready_for_concept,
)
from microlearn.services.topic_hierarchy import TopicDecisionEngine


class TestTopicDecisionEngine:

    def setup_method(self):
        self.engine = TopicDecisionEngine()

    def test_new_concept_gets_basic_content(self):
        result = self.engine.get_recommended_content({}, "JavaScript", "Loops")
        assert result["difficultyLevel"] == "Basic"
        assert result["content"] == ["for loops", "while loops", "basic iteration"]
        assert "new to Loops" in result["reasoning"]

    def test_known_concept_gets_next_level(self):
        profile = {"Python": {"Functions": {"proficiency": 1, "confidence": 0.8}}}
        result = self.engine.get_recommended_content(profile, "Python", "Functions")
        assert result["difficultyLevel"] == "Intermediate"
        assert "decorators" in result["content"]

    def test_mastered_concept_gets_advanced_content(self):
        profile = {"Cooking": {"Heat Control": {"proficiency": 2, "confidence": 0.9}}}
        result = self.engine.get_recommended_content(profile, "Cooking", "Heat Control")
        assert result["difficultyLevel"] == "Advanced"
        assert "sous vide" in result["content"]

    def test_category_level_topic_path(self):
        path = self.engine.get_topic_path("Cooking", "Knife Skills")
        assert path["category"] == "Cooking"
        assert "Basic" in path["path"]

    def test_unknown_path_gives_general_content(self):
        assert self.engine.get_topic_path("Gardening", "Soil") is None
        result = self.engine.get_recommended_content({}, "Gardening", "Soil")
        assert result["content"] == ["General learning content"]

    def test_new_language_uses_syntactic_approach_for_known_concept(self):
        profile = {"Python": {"Loops": {"proficiency": 1}}}
        result = self.engine.should_learn_in_new_language(profile, "Loops", "JavaScript")
        assert result["approach"] == "syntactic"
        assert result["shouldLearn"] is True

        fresh = self.engine.should_learn_in_new_language({}, "Loops", "JavaScript")
        assert fresh["approach"] == "conceptual"

    def test_related_concepts_are_siblings(self):
        related = self.engine.get_related_concepts("JavaScript", "Variables")
        assert [r["concept"] for r in related] == ["Functions", "Loops"]
        assert self.engine.get_related_concepts("Gardening", "Soil") == []

    def test_next_learning_path_skips_known_concepts(self):
        profile = {"JavaScript": {
            "Variables": {"proficiency": 2},
            "Functions": {"proficiency": 1},
        }}
        path = self.engine.get_next_learning_path(profile)
        assert path == [{"topic": "JavaScript", "concept": "Loops", "reason": path[0]["reason"]}]


class TestKnowledgeConcepts:

    def test_catalog_topics(self):
        assert get_all_topics() == ["JavaScript", "Python", "Cooking", "History", "Philosophy"]
        assert get_concepts_for_topic("Gardening") == []

    def test_by_difficulty(self):
        names = [c["name"] for c in get_concepts_by_difficulty("JavaScript")]
        assert "Async/Await" not in names
        assert "Objects" in names
        assert [c["name"] for c in get_concepts_by_difficulty("JavaScript", 1)] == ["Variables"]

    def test_unknown_concepts(self):
        names = [c["name"] for c in get_unknown_concepts("History", ["World Wars"])]
        assert "World Wars" not in names
        assert len(names) == 3

    def test_prerequisites_and_readiness(self):
        assert get_prerequisites("Python", "Generators") == ["Functions", "List Comprehensions"]
        assert get_prerequisites("Python", "Nope") == []
        assert is_ready_for_concept("Python", "Functions", ["Variables"]) is True
        assert is_ready_for_concept("Python", "Generators", ["Functions"]) is False

    def test_next_concepts(self):
        names = [c["name"] for c in get_next_concepts("JavaScript", ["Variables"])]
        assert names == ["Functions", "Loops", "Arrays"]
        assert [c["name"] for c in get_next_concepts("JavaScript")] == ["Variables"]
