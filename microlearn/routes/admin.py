"""
Admin-only endpoints protected by JWT admin role.
"""

import logging

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Request
from microlearn.db.database import get_db
from microlearn.db.users import delete_user_cascade, get_user, list_users
from microlearn.routes.auth import get_current_user
from microlearn.services.ai_client import AIClient, get_ai_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


async def _require_admin(request: Request, db) -> dict:
    """Verify the current user has the admin role."""
    user = await get_current_user(request, db)
    if user["role"] != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


@router.get("/users")
async def get_users(request: Request, db=Depends(get_db)):
    await _require_admin(request, db)
    return {"success": True, "users": await list_users(db)}


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    request: Request,
    db=Depends(get_db),
    ai: AIClient = Depends(get_ai_client),
):
    """Delete a learner with their knowledge and progress, and forget their chat history."""
    admin = await _require_admin(request, db)
    if admin["id"] == user_id:
        raise HTTPException(status_code=400, detail="Admins cannot delete their own account")

    if not await get_user(db, user_id):
        raise HTTPException(status_code=404, detail="User not found")

    try:
        deleted_knowledge, deleted_progress = await delete_user_cascade(db, user_id)
    except aiosqlite.Error as e:
        logger.error("Failed to delete user %s: %s", user_id, e)
        raise HTTPException(status_code=500, detail="Failed to delete user")

    ai.clear_user_memory(user_id)
    logger.info(
        "Admin %s deleted user %s (%d knowledge rows, %d progress rows)",
        admin["id"], user_id, deleted_knowledge, deleted_progress,
    )

    return {
        "success": True,
        "message": f"Successfully deleted user {user_id}",
        "deletedKnowledge": deleted_knowledge,
        "deletedProgress": deleted_progress,
    }
