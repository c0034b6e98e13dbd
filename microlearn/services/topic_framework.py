"""Model-driven topic organization and next-step recommendations.

The model arranges whatever the user is interested in into categories and
concepts, then picks the next concept from the user's knowledge profile.
Every call has a deterministic fallback; the recommendation fallback walks
the built-in concept catalog.
"""

import json
import logging

from microlearn.services.conversation_memory import SYSTEM_USER
from microlearn.services.difficulty_engine import PROFICIENCY_LEARNING
from microlearn.services.knowledge_concepts import get_next_concepts
from microlearn.services.prompts import render
from microlearn.services.response_parsing import extract_json
from microlearn.services.topic_hierarchy import TopicDecisionEngine

logger = logging.getLogger(__name__)

_decision_engine = TopicDecisionEngine()

# Distinct interest lists whose topic structure is kept; oldest dropped first
MAX_CACHED_STRUCTURES = 128


def _as_list(interests) -> list[str]:
    if isinstance(interests, (list, tuple)):
        return [str(i) for i in interests]
    return [str(interests)] if interests else []


class AITopicFramework:
    def __init__(self, ai_client):
        self.ai_client = ai_client
        self.topic_cache: dict[str, dict] = {}

    @staticmethod
    def _cache_key(interests) -> str:
        return json.dumps(_as_list(interests))

    async def _ask(self, prompt: str) -> dict:
        response = await self.ai_client.generate_response(prompt, SYSTEM_USER, remember=False)
        return extract_json(response)

    async def organize_topics_for_user(self, interests, user_profile: dict | None = None) -> dict:
        prompt = render(
            "topic_organizer.yaml",
            interests=", ".join(_as_list(interests)),
            user_profile=json.dumps(user_profile or {}),
        )
        try:
            structure = await self._ask(prompt)
        except ValueError as exc:
            logger.warning("Failed to organize topics with AI: %s", exc)
            return self.fallback_topic_structure(interests)

        self._remember_structure(interests, structure)
        return structure

    def _remember_structure(self, interests, structure: dict) -> None:
        key = self._cache_key(interests)
        self.topic_cache.pop(key, None)
        self.topic_cache[key] = structure
        while len(self.topic_cache) > MAX_CACHED_STRUCTURES:
            self.topic_cache.pop(next(iter(self.topic_cache)))

    async def get_recommended_content(self, user_profile: dict, interests, current_topic: str | None = None) -> dict:
        knowledge = (user_profile or {}).get("knowledgeProfile") or {}

        structure = self.topic_cache.get(self._cache_key(interests))
        if structure is None:
            structure = await self.organize_topics_for_user(interests, user_profile)

        prompt = render(
            "topic_recommendation.yaml",
            knowledge_profile=json.dumps(knowledge),
            interests=", ".join(_as_list(interests)),
            current_topic=current_topic or "Any",
            topic_structure=json.dumps(structure),
        )
        try:
            return await self._ask(prompt)
        except ValueError as exc:
            logger.warning("Failed to get AI recommendation: %s", exc)
            return self.fallback_recommendation(interests, knowledge)

    async def should_learn_in_new_context(self, user_profile: dict, concept: str, new_context: str) -> dict:
        prompt = render(
            "context_decision.yaml",
            concept=concept,
            new_context=new_context,
            user_profile=json.dumps(user_profile or {}),
        )
        try:
            return await self._ask(prompt)
        except ValueError as exc:
            logger.warning("Failed to get context decision: %s", exc)
            return {
                "shouldLearn": True,
                "reasoning": "Fallback decision",
                "difficultyAdjustment": "same",
                "prerequisites": [],
            }

    @staticmethod
    def fallback_topic_structure(interests) -> dict:
        return {
            "categories": [{
                "name": "General Learning",
                "description": "User's learning interests",
                "topics": [
                    {
                        "name": interest,
                        "description": f"Learning about {interest}",
                        "concepts": ["basics", "intermediate", "advanced"],
                        "difficulty": "Basic",
                        "prerequisites": [],
                        "learningPath": "Start with basics and progress",
                    }
                    for interest in _as_list(interests)
                ],
            }],
            "learningPaths": [{
                "name": "General Path",
                "description": "Basic learning progression",
                "steps": ["Learn fundamentals", "Practice", "Apply knowledge"],
            }],
        }

    @staticmethod
    def fallback_recommendation(interests, knowledge_profile: dict | None = None) -> dict:
        """Next catalog concept for the first interest, or its basics."""
        items = _as_list(interests)
        topic = items[0] if items else "General Learning"
        known = [
            name for name, entry in (knowledge_profile or {}).get(topic, {}).items()
            if (entry.get("proficiency") or 0) >= PROFICIENCY_LEARNING
        ]
        next_concepts = get_next_concepts(topic, known)
        if not next_concepts:
            return {
                "recommendedTopic": topic,
                "recommendedConcept": "basics",
                "difficultyLevel": "Basic",
                "reasoning": "Starting with basics",
                "learningPath": "Begin with fundamentals",
            }

        concept = next_concepts[0]["name"]
        planned = _decision_engine.get_recommended_content(knowledge_profile, topic, concept)
        return {
            "recommendedTopic": topic,
            "recommendedConcept": concept,
            "difficultyLevel": planned["difficultyLevel"],
            "reasoning": planned["reasoning"],
            "learningPath": " -> ".join(c["name"] for c in next_concepts[:3]),
        }

    def clear_cache(self, interests=None) -> None:
        """Forget one interest list's structure, or all of them."""
        if interests is None:
            self.topic_cache.clear()
        else:
            self.topic_cache.pop(self._cache_key(interests), None)
