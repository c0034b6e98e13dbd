"""
Endpoints backed by the local language model, plus control of the
per-user conversation memory.

Model output problems never fail outward: the AI client degrades to fixed
fallback objects. Only escalation reports an unreachable model server (503).
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field
from microlearn.db.content import save_content
from microlearn.db.database import get_db
from microlearn.db.users import get_user_profile
from microlearn.models.knowledge import UserScopedRequest
from microlearn.routes.auth import get_current_user, require_role, require_user_owner, resolve_target_user
from microlearn.services.ai_client import (
    LESSON_FALLBACK_MESSAGE,
    AIClient,
    AIServiceError,
    NoInterestsError,
    get_ai_client,
)
from microlearn.services.difficulty_engine import recommend_difficulty

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["ai"])

CONNECTION_TEST_PROMPT = "Hello, are you working?"


class GenerateContentRequest(UserScopedRequest):
    topic: str
    concept: str
    difficulty_percentage: Optional[int] = Field(None, alias="difficultyPercentage", ge=0, le=100)


class AnalyzeResponseRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_response: str = Field(alias="userResponse")
    topic: str
    concept: str
    correct_answer: Optional[str] = Field(None, alias="correctAnswer")


class AnalyzeInterestsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    raw_input: str = Field(alias="input", min_length=1)
    user_profile: Optional[dict] = Field(None, alias="userProfile")


class ChatRequest(UserScopedRequest):
    message: str = Field(min_length=1)
    context: Optional[dict] = None


class EscalateRequest(UserScopedRequest):
    topic: str
    concept: str
    current_difficulty: int = Field(50, alias="currentDifficultyPercentage")


class ValidateQuizRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_answer: Any = Field(alias="userAnswer")
    correct_answer_index: Any = Field(alias="correctAnswerIndex")
    correct_answer_text: str = Field("", alias="correctAnswerText")


class RecommendationsRequest(UserScopedRequest):
    interests: Optional[list[str]] = None
    knowledge_profile: Optional[dict] = Field(None, alias="knowledgeProfile")


async def _load_profile(db, user_id: int) -> dict:
    profile = await get_user_profile(db, user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")
    return profile


@router.get("/ai/test")
async def test_connection(ai: AIClient = Depends(get_ai_client)):
    """Public connectivity check against the model server."""
    response = await ai.generate_response(CONNECTION_TEST_PROMPT, "test", remember=False)
    return {"success": True, "response": response}


@router.post("/ai/generate-content")
async def generate_content(
    body: GenerateContentRequest,
    request: Request,
    db=Depends(get_db),
    ai: AIClient = Depends(get_ai_client),
):
    user_id = await resolve_target_user(request, body.user_id, db)

    difficulty = body.difficulty_percentage
    if difficulty is None:
        profile = await _load_profile(db, user_id)
        difficulty = recommend_difficulty(
            profile["knowledgeProfile"], body.topic, profile["preferences"]["difficulty"]
        )

    content = await ai.generate_learning_content(user_id, body.topic, body.concept, difficulty)
    return {"success": True, "content": content}


@router.post("/ai/analyze-response")
async def analyze_response(
    body: AnalyzeResponseRequest,
    request: Request,
    db=Depends(get_db),
    ai: AIClient = Depends(get_ai_client),
):
    await get_current_user(request, db)
    analysis = await ai.analyze_user_response(body.user_response, body.topic, body.concept, body.correct_answer)
    return {"success": True, "analysis": analysis}


@router.post("/ai/analyze-interests")
async def analyze_interests(
    body: AnalyzeInterestsRequest,
    request: Request,
    db=Depends(get_db),
    ai: AIClient = Depends(get_ai_client),
):
    await get_current_user(request, db)
    analysis = await ai.analyze_user_interests(body.raw_input, body.user_profile)
    return {"success": True, "analysis": analysis}


@router.post("/ai/chat")
async def chat(
    body: ChatRequest,
    request: Request,
    db=Depends(get_db),
    ai: AIClient = Depends(get_ai_client),
):
    user_id = await resolve_target_user(request, body.user_id, db)
    response = await ai.generate_response(body.message, user_id, body.context)
    return {"success": True, "response": response}


@router.post("/ai/escalate-content")
async def escalate_content(
    body: EscalateRequest,
    request: Request,
    db=Depends(get_db),
    ai: AIClient = Depends(get_ai_client),
):
    user_id = await resolve_target_user(request, body.user_id, db)
    profile = await _load_profile(db, user_id)
    try:
        content = await ai.generate_escalated_content(
            user_id, body.topic, body.concept, body.current_difficulty, profile
        )
    except AIServiceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"success": True, "content": content}


@router.post("/ai/validate-quiz")
async def validate_quiz(body: ValidateQuizRequest, request: Request, db=Depends(get_db)):
    """Check a multiple-choice answer locally; no model call."""
    await get_current_user(request, db)

    is_correct = (
        body.user_answer is not None
        and str(body.user_answer).strip() == str(body.correct_answer_index).strip()
    )
    if is_correct:
        feedback = f"Correct! {body.correct_answer_text}"
    else:
        feedback = f"Not quite. The correct answer is: {body.correct_answer_text}"

    return {
        "success": True,
        "isCorrect": is_correct,
        "feedback": feedback,
        "correctAnswer": body.correct_answer_text,
    }


@router.post("/ai/recommendations")
async def ai_recommendations(
    body: RecommendationsRequest,
    request: Request,
    db=Depends(get_db),
    ai: AIClient = Depends(get_ai_client),
):
    user_id = await resolve_target_user(request, body.user_id, db)

    interests = body.interests
    knowledge_profile = body.knowledge_profile
    if interests is None or knowledge_profile is None:
        profile = await _load_profile(db, user_id)
        interests = profile["interests"] if interests is None else interests
        knowledge_profile = profile["knowledgeProfile"] if knowledge_profile is None else knowledge_profile

    recommendations = await ai.generate_personalized_recommendations(user_id, interests, knowledge_profile)
    return {"success": True, "recommendations": recommendations}


# ── Memory control ──────────────────────────────────────────────────

@router.get("/ai/memory/stats")
async def memory_stats(request: Request, db=Depends(get_db), ai: AIClient = Depends(get_ai_client)):
    await require_role("admin")(request, db)
    return {"success": True, "stats": ai.get_memory_stats()}


@router.delete("/ai/memory/user/{user_id}")
async def clear_user_memory(
    user_id: int,
    request: Request,
    db=Depends(get_db),
    ai: AIClient = Depends(get_ai_client),
):
    await require_user_owner(request, user_id, db)
    ai.clear_user_memory(user_id)
    return {"success": True, "message": f"Cleared memory for user {user_id}"}


@router.delete("/ai/memory/all")
async def clear_all_memory(request: Request, db=Depends(get_db), ai: AIClient = Depends(get_ai_client)):
    await require_role("admin")(request, db)
    ai.clear_all_memory()
    return {"success": True, "message": "Cleared all user memory"}


# ── Lessons ─────────────────────────────────────────────────────────

@router.post("/lesson/request")
async def request_lesson(
    body: UserScopedRequest,
    request: Request,
    db=Depends(get_db),
    ai: AIClient = Depends(get_ai_client),
):
    """Let the model decide what to teach next and store the lesson.

    The stored lesson's ID is returned as ``contentId`` so progress can be
    recorded against it. The fixed fallback lesson is not stored.
    """
    user_id = await resolve_target_user(request, body.user_id, db)
    profile = await _load_profile(db, user_id)

    try:
        lesson = await ai.generate_personalized_lesson(user_id, profile)
    except NoInterestsError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if lesson.get("content") != LESSON_FALLBACK_MESSAGE:
        lesson["contentId"] = await save_content(
            db, user_id, lesson, profile["preferences"]["granularity"]
        )
    else:
        logger.warning("Lesson generation for user %s fell back; not storing it", user_id)

    return {"success": True, "lesson": lesson}
