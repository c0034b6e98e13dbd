"""
Knowledge profile endpoints: direct updates, assessments, "too easy"
feedback, free-text analysis and concept recommendations.

Every write goes through the difficulty engine's state transitions and is
stored with INSERT OR REPLACE, so each (user, topic, concept) keeps only its
latest state.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from microlearn.db.database import get_db
from microlearn.db.knowledge import (
    get_knowledge_rows,
    get_knowledge_state,
    get_recommended_concepts,
    init_concepts,
    save_knowledge_state,
    upsert_knowledge,
)
from microlearn.db.users import get_user_profile, update_user
from microlearn.models.knowledge import (
    AssessmentRequest,
    ConceptInitRequest,
    KnowledgeUpdate,
    TextAnalysisRequest,
    TooEasyRequest,
)
from microlearn.routes.auth import require_role, require_user_owner, resolve_target_user
from microlearn.services.ai_client import AIClient, AIServiceError, get_ai_client
from microlearn.services.difficulty_engine import (
    after_assessment,
    after_text_analysis,
    after_too_easy,
    escalate_difficulty,
)
from microlearn.services.text_analysis import analyze_text_input

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["knowledge"])


@router.get("/knowledge/{user_id}")
async def get_knowledge(user_id: int, request: Request, db=Depends(get_db)):
    await require_user_owner(request, user_id, db)
    return await get_knowledge_rows(db, user_id)


@router.post("/knowledge/update")
async def update_knowledge(body: KnowledgeUpdate, request: Request, db=Depends(get_db)):
    user_id = await resolve_target_user(request, body.user_id, db)
    knowledge_id = await upsert_knowledge(
        db, user_id, body.topic, body.concept, body.proficiency_level, body.confidence_score
    )
    return {"success": True, "knowledgeId": knowledge_id}


@router.get("/recommendations/{user_id}")
async def recommendations(
    user_id: int,
    request: Request,
    topic: str = Query(..., min_length=1),
    db=Depends(get_db),
):
    """Catalog concepts of ``topic`` the user has not touched yet, easiest first."""
    await require_user_owner(request, user_id, db)
    return await get_recommended_concepts(db, user_id, topic)


@router.post("/assessment")
async def assessment(body: AssessmentRequest, request: Request, db=Depends(get_db)):
    user_id = await resolve_target_user(request, body.user_id, db)

    correct = body.is_correct()
    previous = await get_knowledge_state(db, user_id, body.topic, body.concept)
    state = after_assessment(previous, correct)
    knowledge_id = await save_knowledge_state(db, user_id, body.topic, body.concept, state)

    return {
        "success": True,
        "correct": correct,
        "knowledgeId": knowledge_id,
        "proficiencyLevel": state.proficiency,
        "confidenceScore": state.confidence,
    }


@router.post("/knowledge/init")
async def init_knowledge_concepts(body: ConceptInitRequest, request: Request, db=Depends(get_db)):
    """Add catalog concepts for a topic; existing (topic, concept) pairs are left alone."""
    await require_role("admin")(request, db)

    inserted = await init_concepts(db, body.topic, [c.model_dump() for c in body.concepts])
    logger.info("Initialized %d new concepts for %s", inserted, body.topic)
    return {"success": True, "inserted": inserted}


@router.post("/too-easy")
async def too_easy(
    body: TooEasyRequest,
    request: Request,
    db=Depends(get_db),
    ai: AIClient = Depends(get_ai_client),
):
    """Mark the concept mastered, raise the learner's difficulty and fetch harder content."""
    user_id = await resolve_target_user(request, body.user_id, db)

    previous = await get_knowledge_state(db, user_id, body.topic, body.concept)
    await save_knowledge_state(db, user_id, body.topic, body.concept, after_too_easy(previous))

    new_difficulty = escalate_difficulty(body.current_difficulty)
    await update_user(db, user_id, {"difficulty": new_difficulty})

    try:
        user_data = await get_user_profile(db, user_id)
        content = await ai.generate_escalated_content(
            user_id, body.topic, body.concept, body.current_difficulty, user_data
        )
    except AIServiceError as e:
        logger.error("Failed to generate escalated content for user %s: %s", user_id, e)
        return {
            "success": True,
            "escalated": False,
            "difficulty": new_difficulty,
            "message": f"Great! You're doing well with {body.topic}. "
                       "We'll adjust the difficulty for future lessons.",
        }

    return {
        "success": True,
        "escalated": True,
        "difficulty": new_difficulty,
        "message": f"Great! Let's try something more challenging in {body.topic}.",
        "newContent": content,
    }


@router.post("/analyze-text")
async def analyze_text(body: TextAnalysisRequest, request: Request, db=Depends(get_db)):
    user_id = await resolve_target_user(request, body.user_id, db)

    analysis = analyze_text_input(body.user_input, body.expected_answer, body.topic, body.concept)
    previous = await get_knowledge_state(db, user_id, body.topic, body.concept)
    state = after_text_analysis(previous, analysis)
    await save_knowledge_state(db, user_id, body.topic, body.concept, state)

    return {"success": True, "analysis": analysis, "updated": True}
