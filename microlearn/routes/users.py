import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from microlearn.db.database import get_db
from microlearn.db.users import get_user, get_user_profile, setup_user, update_user
from microlearn.models.user import UserSetup, UserUpdate
from microlearn.routes.auth import require_user_owner
from microlearn.services.ai_client import AIClient, get_ai_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


def _forget_old_interests(ai: AIClient, old_interests, new_interests) -> None:
    if old_interests and old_interests != new_interests:
        ai.forget_topic_structure(old_interests)


@router.post("/{user_id}/setup")
async def setup(
    user_id: int,
    body: UserSetup,
    request: Request,
    db=Depends(get_db),
    ai: AIClient = Depends(get_ai_client),
):
    """Onboarding: store interests, notification frequency and granularity."""
    await require_user_owner(request, user_id, db)

    interests = [i.strip() for i in body.interests if i and i.strip()]
    if not interests:
        raise HTTPException(status_code=400, detail="At least one interest is required")

    user = await get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    await setup_user(db, user_id, interests, body.frequency, body.granularity)
    _forget_old_interests(ai, user["interests"], interests)

    logger.info("User %s set up with %d interests", user_id, len(interests))
    return {
        "success": True,
        "userId": user_id,
        "message": "User setup completed successfully",
    }


@router.get("/{user_id}")
async def get_profile(user_id: int, request: Request, db=Depends(get_db)):
    """Profile with the nested knowledge profile and the last ten history items."""
    await require_user_owner(request, user_id, db)

    profile = await get_user_profile(db, user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "user": profile}


@router.put("/{user_id}")
async def update_profile(
    user_id: int,
    body: UserUpdate,
    request: Request,
    db=Depends(get_db),
    ai: AIClient = Depends(get_ai_client),
):
    await require_user_owner(request, user_id, db)

    fields = body.model_dump(exclude_unset=True, exclude_none=True)
    user = await get_user(db, user_id)

    try:
        updated = await update_user(db, user_id, fields)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not updated:
        raise HTTPException(status_code=404, detail="User not found")

    if "interests" in fields:
        _forget_old_interests(ai, user["interests"], fields["interests"])
    return {"success": True, "message": "User updated successfully"}
