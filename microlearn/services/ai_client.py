"""Client for the local language-model server.

Usage:
    from microlearn.services.ai_client import get_ai_client

    ai = get_ai_client()
    lesson = await ai.generate_personalized_lesson(user_id, user_data)

The server speaks the OpenAI chat-completions protocol (LM Studio, Ollama,
vLLM...), so requests go through the ``openai`` SDK with ``base_url``
pointed at ``LLM_BASE_URL``. Each user gets a bounded short-term chat
history; planning and analysis calls are made without it.

Every structured call parses JSON out of the reply and falls back to a fixed
object when the model returns something unusable, so callers always get a
well-formed result. Escalation is the exception: with the server unreachable
it raises ``AIServiceError`` rather than passing the apology off as a lesson.
"""

import json
import re
import logging

from openai import APIError, AsyncOpenAI
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from microlearn.config import settings
from microlearn.models.lesson import Lesson
from microlearn.services.conversation_memory import SYSTEM_USER, ConversationMemory
from microlearn.services.difficulty_engine import (
    clamp_difficulty,
    determine_learning_approach,
    difficulty_description,
    escalate_difficulty,
    recommend_difficulty,
)
from microlearn.services.prompts import render
from microlearn.services.response_parsing import extract_json, extract_json_array, strip_reasoning
from microlearn.services.topic_framework import AITopicFramework

logger = logging.getLogger(__name__)

SERVICE_UNAVAILABLE_MESSAGE = "I'm having trouble connecting to the AI service. Please try again later."
LESSON_FALLBACK_MESSAGE = "I'm having trouble generating a lesson right now. Please try again."


class NoInterestsError(ValueError):
    """The user has not registered any learning interests yet."""


class AIServiceError(RuntimeError):
    """The model server could not be reached after retries."""


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=30),
    retry=retry_if_exception_type(APIError),
    before_sleep=lambda retry_state: logger.warning(
        "LLM call failed (attempt %d), retrying: %s",
        retry_state.attempt_number,
        retry_state.outcome.exception(),
    ),
    reraise=True,
)
async def _chat_completion(messages: list[dict], temperature: float) -> str:
    client = AsyncOpenAI(
        base_url=settings.llm_base_url,
        api_key=settings.llm_api_key,
        timeout=settings.llm_timeout,
    )
    response = await client.chat.completions.create(
        model=settings.llm_model,
        messages=messages,
        temperature=temperature,
        stream=False,
    )
    return response.choices[0].message.content or ""


def _join(values) -> str:
    if isinstance(values, (list, tuple)):
        return ", ".join(str(v) for v in values)
    return str(values) if values else "Not specified"


class AIClient:
    def __init__(self, memory: ConversationMemory | None = None):
        self.memory = memory or ConversationMemory(settings.memory_max_size)
        self.topic_framework = AITopicFramework(self)

    def _system_message(self, context: dict) -> dict:
        content = render(
            "assistant_system.yaml",
            key="system_prompt",
            interests=_join(context.get("interests")) if context.get("interests") else "Not specified",
            difficulty=context.get("difficulty") or "Beginner",
            topic=context.get("topic") or "General",
        )
        return {"role": "system", "content": content}

    async def generate_response(
        self,
        prompt: str,
        user_id=SYSTEM_USER,
        context: dict | None = None,
        *,
        remember: bool = True,
    ) -> str:
        """One chat turn for ``user_id``.

        Returns the cleaned reply, or a fixed apology when the server is
        unreachable after retries. With ``remember=False`` the call neither
        reads nor writes the user's history.
        """
        history = self.memory.history(user_id) if remember else []
        messages = [self._system_message(context or {}), *history, {"role": "user", "content": prompt}]

        try:
            raw = await _chat_completion(messages, settings.llm_temperature)
        except Exception as exc:
            logger.error("AI service error: %s", exc)
            return SERVICE_UNAVAILABLE_MESSAGE

        cleaned = strip_reasoning(raw)
        if remember:
            self.memory.append(user_id, prompt, cleaned)
        return cleaned

    # ── Memory control ──────────────────────────────────────────────

    def clear_user_memory(self, user_id) -> None:
        self.memory.clear_user(user_id)

    def clear_all_memory(self) -> None:
        self.memory.clear_all()
        self.topic_framework.clear_cache()

    def forget_topic_structure(self, interests) -> None:
        """Drop the cached topic organization for an interest list that changed."""
        self.topic_framework.clear_cache(interests)

    def get_memory_stats(self) -> dict:
        return self.memory.stats()

    # ── Structured calls ────────────────────────────────────────────

    async def analyze_user_interests(self, raw_input: str, user_profile: dict | None = None) -> dict:
        prompt = render(
            "interest_analysis.yaml",
            raw_input=raw_input,
            user_profile=json.dumps(user_profile or {}),
        )
        response = await self.generate_response(
            prompt, SYSTEM_USER, {"interests": raw_input}, remember=False
        )
        try:
            return extract_json(response)
        except ValueError as exc:
            logger.warning("Failed to parse AI interest analysis (%s); raw response: %s", exc, response)
            return self.fallback_interest_analysis(raw_input)

    @staticmethod
    def fallback_interest_analysis(raw_input: str) -> dict:
        interests = [i.strip() for i in re.split(r"[,;.\n\r]+", raw_input or "") if i.strip()][:5]
        primary = interests[0] if interests else "General Learning"
        return {
            "analysis": {
                "overallTone": "neutral",
                "confidenceLevel": 50,
                "learningStyle": "exploratory",
                "learningProportions": {
                    "primaryFocus": primary,
                    "secondaryAreas": interests[1:],
                    "learningRatio": "Equal focus on all areas",
                },
            },
            "categories": [
                {
                    "name": interest,
                    "topics": [interest],
                    "difficulty": 50,
                    "confidence": 50,
                    "priority": "primary" if i == 0 else "secondary",
                    "proportion": max(20, 100 - i * 20),
                    "frequency": "daily" if i == 0 else "weekly",
                    "reasoning": "Fallback analysis - AI parsing failed",
                }
                for i, interest in enumerate(interests)
            ],
            "recommendations": {
                "startingPoint": primary,
                "learningPath": "Begin with basics",
                "focusAreas": interests[:3],
                "learningSchedule": {
                    "primaryFocus": "Focus daily on main interest",
                    "secondaryAreas": "Include weekly variety",
                    "balance": "Balanced learning approach",
                },
            },
        }

    async def generate_learning_content(self, user_id, topic: str, concept: str, difficulty_percentage=50) -> dict:
        difficulty = clamp_difficulty(difficulty_percentage)
        prompt = render(
            "learning_content.yaml",
            topic=topic,
            concept=concept,
            difficulty=difficulty,
            difficulty_description=difficulty_description(difficulty),
        )
        response = await self.generate_response(prompt, user_id, {"topic": topic, "difficulty": difficulty})
        try:
            return extract_json(response)
        except ValueError:
            return {"content": response, "type": "info", "difficulty": difficulty}

    async def analyze_user_response(self, user_response: str, topic: str, concept: str, correct_answer=None) -> dict:
        prompt = render(
            "response_analysis.yaml",
            topic=topic,
            concept=concept,
            user_response=user_response,
            correct_answer_line=f'Correct Answer: "{correct_answer}"' if correct_answer else "",
        )
        response = await self.generate_response(prompt, SYSTEM_USER, {"topic": topic}, remember=False)
        try:
            return extract_json(response)
        except ValueError:
            return {
                "isCorrect": True,
                "difficultyLevel": 50,
                "confidence": 0.7,
                "feedback": "Good response! Keep learning!",
                "suggestions": [],
                "adjustedDifficulty": 60,
            }

    async def generate_escalated_content(
        self, user_id, topic: str, concept: str, current_difficulty, user_data: dict | None = None
    ) -> dict:
        current = clamp_difficulty(current_difficulty)
        escalated = escalate_difficulty(current)
        recommendation = await self.topic_framework.get_recommended_content(
            user_data or {}, [topic], topic
        )

        prompt = render(
            "escalated_content.yaml",
            topic=topic,
            concept=concept,
            current_difficulty=current,
            new_difficulty=escalated,
            recommendation=json.dumps(recommendation),
            difficulty_description=difficulty_description(escalated),
        )
        response = await self.generate_response(
            prompt, user_id, {"topic": topic, "difficulty": escalated}
        )
        if response == SERVICE_UNAVAILABLE_MESSAGE:
            raise AIServiceError(f"No escalated content for {topic}: model server unavailable")

        try:
            parsed = extract_json(response)
            if not parsed.get("topic"):
                parsed["topic"] = topic
            parsed["difficulty"] = escalated
            return Lesson.model_validate(parsed).finalize_quiz().to_api()
        except ValueError:
            # pydantic's ValidationError is a ValueError too (missing content)
            return {
                "content": response,
                "type": "info",
                "topic": topic,
                "concept": f"Advanced {concept}",
                "difficulty": escalated,
                "reasoning": "Escalated content for advanced learners",
            }

    async def generate_personalized_recommendations(self, user_id, interests, knowledge_profile) -> list:
        prompt = render(
            "recommendations.yaml",
            interests=_join(interests or []),
            knowledge_profile=json.dumps(knowledge_profile or {}),
        )
        response = await self.generate_response(prompt, user_id, {"interests": interests})
        try:
            return extract_json_array(response)
        except ValueError:
            return []

    async def generate_personalized_lesson(self, user_id, user_data: dict) -> dict:
        """Pick what to teach next and ask the model for a lesson.

        ``user_data`` carries ``interests``, ``knowledgeProfile`` and
        ``preferences`` (``difficulty``, ``granularity``).
        """
        interests = user_data.get("interests") or []
        knowledge_profile = user_data.get("knowledgeProfile") or {}
        preferences = user_data.get("preferences") or {}

        if not interests:
            raise NoInterestsError("User has no learning interests. Please add interests in settings first.")

        logger.debug(
            "Lesson generation for user %s: interests=%s preferences=%s", user_id, interests, preferences
        )

        recommendation = await self.topic_framework.get_recommended_content(user_data, interests, None)
        topic = recommendation.get("recommendedTopic") or interests[0]
        concept = recommendation.get("recommendedConcept") or "basics"
        difficulty = recommend_difficulty(knowledge_profile, topic, preferences.get("difficulty", 50))
        context_decision = await self.topic_framework.should_learn_in_new_context(user_data, concept, topic)
        approach = determine_learning_approach(knowledge_profile, topic, concept)

        prompt = render(
            "personalized_lesson.yaml",
            interests=_join(interests),
            knowledge_profile=json.dumps(knowledge_profile),
            preferences=json.dumps(preferences),
            recommendation=json.dumps(recommendation),
            context_decision=json.dumps(context_decision),
            approach=json.dumps(approach),
            difficulty=difficulty,
            difficulty_description=difficulty_description(difficulty),
            granularity=preferences.get("granularity", "auto"),
        )
        response = await self.generate_response(
            prompt, user_id, {"interests": interests, "difficulty": difficulty, "topic": topic}
        )

        try:
            parsed = extract_json(response)
            if not parsed.get("content") or not parsed.get("type"):
                raise ValueError("Invalid lesson format")
            # null or empty counts as missing
            for field, default in (("topic", topic), ("concept", concept), ("difficulty", difficulty)):
                if parsed.get(field) is None or parsed.get(field) == "":
                    parsed[field] = default
            return Lesson.model_validate(parsed).finalize_quiz().to_api()
        except ValueError as exc:
            logger.error("Failed to parse AI lesson response: %s", exc)
            logger.error("Raw response: %s", response)
            return {
                "content": LESSON_FALLBACK_MESSAGE,
                "type": "info",
                "topic": interests[0] or "General",
                "concept": "Learning",
                "difficulty": difficulty,
                "reasoning": "Fallback due to parsing error",
            }


_client: AIClient | None = None


def get_ai_client() -> AIClient:
    """Process-wide client; conversation memory lives as long as the process."""
    global _client
    if _client is None:
        _client = AIClient()
    return _client
