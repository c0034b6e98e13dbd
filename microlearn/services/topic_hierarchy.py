"""Static topic hierarchy and the rule-based decision engine over it.

category -> topic -> concept -> level -> items to teach at that level.
"""

from microlearn.services.difficulty_engine import (
    PROFICIENCY_LEARNING,
    proficiency_to_level,
)

TOPIC_HIERARCHY = {
    "Code": {
        "JavaScript": {
            "Variables": {
                "Basic": ["let", "var", "const declarations"],
                "Intermediate": ["hoisting", "temporal dead zone", "scope"],
                "Advanced": ["closure", "prototype chain", "memory management"],
            },
            "Functions": {
                "Basic": ["function declarations", "parameters", "return"],
                "Intermediate": ["arrow functions", "callbacks", "scope"],
                "Advanced": ["closures", "currying", "functional programming"],
            },
            "Loops": {
                "Basic": ["for loops", "while loops", "basic iteration"],
                "Intermediate": ["for...of", "for...in", "array methods"],
                "Advanced": ["iterators", "generators", "async iteration"],
            },
        },
        "Python": {
            "Variables": {
                "Basic": ["assignment", "data types", "naming"],
                "Intermediate": ["scope", "global", "nonlocal"],
                "Advanced": ["memory management", "garbage collection"],
            },
            "Functions": {
                "Basic": ["def", "parameters", "return"],
                "Intermediate": ["lambda", "decorators", "scope"],
                "Advanced": ["closures", "generators", "metaclasses"],
            },
            "Loops": {
                "Basic": ["for loops", "while loops", "range()"],
                "Intermediate": ["list comprehensions", "enumerate", "zip"],
                "Advanced": ["generators", "itertools", "async iteration"],
            },
        },
    },
    "Cooking": {
        "Knife Skills": {
            "Basic": ["grip", "basic cuts", "safety"],
            "Intermediate": ["julienne", "brunoise", "chiffonade"],
            "Advanced": ["butchering", "specialty cuts", "knife maintenance"],
        },
        "Heat Control": {
            "Basic": ["temperature levels", "pan selection", "timing"],
            "Intermediate": ["searing", "braising", "roasting"],
            "Advanced": ["sous vide", "molecular gastronomy", "precision cooking"],
        },
    },
}

GENERAL_CONTENT = ["General learning content"]


class TopicDecisionEngine:
    def __init__(self, hierarchy: dict | None = None):
        self.hierarchy = hierarchy if hierarchy is not None else TOPIC_HIERARCHY

    @staticmethod
    def _concept_knowledge(knowledge_profile: dict, topic: str, concept: str) -> dict:
        return (knowledge_profile or {}).get(topic, {}).get(concept) or {"proficiency": 0, "confidence": 0}

    def get_recommended_content(self, knowledge_profile: dict, topic: str, concept: str) -> dict:
        knowledge = self._concept_knowledge(knowledge_profile, topic, concept)
        level = proficiency_to_level(knowledge.get("proficiency"))
        path = self.get_topic_path(topic, concept)
        return {
            "topic": topic,
            "concept": concept,
            "difficultyLevel": level,
            "content": self.get_content_for_level(path, level),
            "reasoning": self.generate_reasoning(topic, concept, level),
        }

    def get_topic_path(self, topic: str, concept: str) -> dict | None:
        """Locate a concept in the hierarchy.

        Top-level categories double as topics (``Cooking`` holds its concepts
        directly), so both shapes are searched.
        """
        for category, topics in self.hierarchy.items():
            if category == topic and concept in topics and _is_level_map(topics[concept]):
                return {"category": category, "topic": topic, "concept": concept, "path": topics[concept]}
            concepts = topics.get(topic)
            if isinstance(concepts, dict) and concept in concepts:
                return {"category": category, "topic": topic, "concept": concept, "path": concepts[concept]}
        return None

    def get_content_for_level(self, topic_path: dict | None, level: str) -> list[str]:
        if not topic_path or level not in topic_path["path"]:
            return list(GENERAL_CONTENT)
        return list(topic_path["path"][level])

    def generate_reasoning(self, topic: str, concept: str, level: str) -> str:
        if level == "Basic":
            return f"Starting with basics since you're new to {concept} in {topic}"
        if level == "Intermediate":
            return f"Building on your existing knowledge of {concept} in {topic}"
        return f"Advanced content since you've mastered the basics of {concept} in {topic}"

    def should_learn_in_new_language(self, knowledge_profile: dict, concept: str, new_language: str) -> dict:
        for topic, concepts in (knowledge_profile or {}).items():
            entry = concepts.get(concept)
            if entry and (entry.get("proficiency") or 0) >= PROFICIENCY_LEARNING:
                return {
                    "shouldLearn": True,
                    "approach": "syntactic",
                    "reasoning": f"You know {concept} in other languages, so we'll focus on {new_language} syntax",
                }
        return {
            "shouldLearn": True,
            "approach": "conceptual",
            "reasoning": f"Learning {concept} for the first time",
        }

    def get_next_learning_path(self, knowledge_profile: dict) -> list[dict]:
        """Related concepts for everything the user already knows, minus what they know."""
        recommendations = []
        seen = set()
        for topic, concepts in (knowledge_profile or {}).items():
            known = {name for name, e in concepts.items() if (e.get("proficiency") or 0) >= PROFICIENCY_LEARNING}
            for concept in known:
                for related in self.get_related_concepts(topic, concept):
                    key = (related["topic"], related["concept"])
                    if related["concept"] in known or key in seen:
                        continue
                    seen.add(key)
                    recommendations.append(related)
        return recommendations

    def get_related_concepts(self, topic: str, concept: str) -> list[dict]:
        path = self.get_topic_path(topic, concept)
        if not path:
            return []
        category = self.hierarchy[path["category"]]
        siblings = category if path["category"] == topic else category[topic]
        return [
            {"topic": topic, "concept": name, "reason": f"Related to {concept} in {topic}"}
            for name in siblings
            if name != concept
        ]


def _is_level_map(node) -> bool:
    return isinstance(node, dict) and "Basic" in node
