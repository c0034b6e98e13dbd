import logging

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Request
from microlearn.db.content import get_content_by_topic, get_progress, record_progress
from microlearn.db.database import get_db
from microlearn.models.lesson import ProgressEntry
from microlearn.models.user import Granularity
from microlearn.routes.auth import get_current_user, require_user_owner, resolve_target_user
from microlearn.services.sample_content import get_personalized_content

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["content"])


@router.get("/content/{topic}")
async def get_content(topic: str, request: Request, granularity: Granularity = "auto", db=Depends(get_db)):
    """Stored lessons for a topic followed by the matching starter lessons.

    ``auto`` and ``flexible`` return lessons of every granularity from both
    sources; ``high`` or ``low`` narrow both to that level.
    """
    await get_current_user(request, db)

    stored = await get_content_by_topic(db, topic, granularity)
    samples = [
        item for item in get_personalized_content([topic], granularity)
        if item["topic"].lower() == topic.lower()
    ]
    return stored + samples


@router.post("/progress")
async def save_progress(entry: ProgressEntry, request: Request, db=Depends(get_db)):
    user_id = await resolve_target_user(request, entry.user_id, db)

    try:
        progress_id = await record_progress(db, user_id, entry.content_id, entry.completed, entry.score)
    except aiosqlite.IntegrityError:
        raise HTTPException(status_code=404, detail="Content not found")

    return {"success": True, "progressId": progress_id}


@router.get("/progress/{user_id}")
async def list_progress(user_id: int, request: Request, db=Depends(get_db)):
    await require_user_owner(request, user_id, db)
    return await get_progress(db, user_id)
