"""
users.py - Database helper queries for learner accounts

Provides insert/fetch functions for:
- users (accounts, interests and preferences)
- the assembled profile handed to the AI client
- cascading account deletion
"""

import json
from typing import Optional, List, Dict, Any, Tuple
import aiosqlite

from microlearn.db.database import row_to_dict
from microlearn.db.knowledge import delete_knowledge_for_user, get_knowledge_profile

HISTORY_LIMIT = 10

# Columns a learner may change through a profile update
UPDATABLE_FIELDS = ("interests", "frequency", "granularity", "difficulty")


# ══════════════════════════════════════════════════════════════════════════════
# USERS
# ══════════════════════════════════════════════════════════════════════════════

async def create_user(
    db: aiosqlite.Connection,
    name: str,
    email: str,
    password_hash: str,
    role: str = "learner",
) -> int:
    """Create a new account. Returns the new user ID."""
    cursor = await db.execute(
        "INSERT INTO users (name, email, password_hash, role) VALUES (?, ?, ?, ?)",
        (name, email, password_hash, role)
    )
    await db.commit()
    return cursor.lastrowid


async def get_user(db: aiosqlite.Connection, user_id: int) -> Optional[Dict[str, Any]]:
    """Get a user by ID with ``interests`` decoded to a list."""
    cursor = await db.execute(
        "SELECT * FROM users WHERE id = ?",
        (user_id,)
    )
    row = await cursor.fetchone()
    if not row:
        return None
    return _decode_user(row)


async def get_user_by_email(db: aiosqlite.Connection, email: str) -> Optional[Dict[str, Any]]:
    cursor = await db.execute(
        "SELECT * FROM users WHERE email = ?",
        (email,)
    )
    row = await cursor.fetchone()
    if not row:
        return None
    return _decode_user(row)


async def list_users(db: aiosqlite.Connection) -> List[Dict[str, Any]]:
    """All accounts, newest first (no password hashes)."""
    cursor = await db.execute(
        "SELECT id, email, name, role, created_at FROM users ORDER BY created_at DESC, id DESC"
    )
    rows = await cursor.fetchall()
    return [dict(r) for r in rows]


async def setup_user(
    db: aiosqlite.Connection,
    user_id: int,
    interests: List[str],
    frequency: int = 3,
    granularity: str = "auto",
) -> int:
    """Store the onboarding choices. Returns the number of rows updated."""
    cursor = await db.execute(
        "UPDATE users SET interests = ?, frequency = ?, granularity = ? WHERE id = ?",
        (json.dumps(interests), frequency, granularity, user_id)
    )
    await db.commit()
    return cursor.rowcount


async def update_user(db: aiosqlite.Connection, user_id: int, fields: Dict[str, Any]) -> int:
    """Partial update of ``UPDATABLE_FIELDS``. Returns the number of rows updated.

    Raises ValueError when ``fields`` holds nothing updatable.
    """
    updates = []
    values = []
    for name in UPDATABLE_FIELDS:
        if name not in fields:
            continue
        value = fields[name]
        if name == "interests":
            value = json.dumps(value)
        updates.append(f"{name} = ?")
        values.append(value)

    if not updates:
        raise ValueError("No fields to update")

    values.append(user_id)
    cursor = await db.execute(
        f"UPDATE users SET {', '.join(updates)} WHERE id = ?",
        values
    )
    await db.commit()
    return cursor.rowcount


async def get_learning_history(
    db: aiosqlite.Connection,
    user_id: int,
    limit: int = HISTORY_LIMIT,
) -> List[Dict[str, Any]]:
    """Most recent progress rows joined with their content."""
    cursor = await db.execute(
        """SELECT p.*, c.topic, c.concept, c.content, c.type
           FROM progress p
           JOIN content c ON p.content_id = c.id
           WHERE p.user_id = ?
           ORDER BY p.timestamp DESC, p.id DESC
           LIMIT ?""",
        (user_id, limit)
    )
    rows = await cursor.fetchall()
    return [dict(r) for r in rows]


async def get_user_profile(db: aiosqlite.Connection, user_id: int) -> Optional[Dict[str, Any]]:
    """Everything known about a learner in the shape the AI client expects.

    Returns None when the user does not exist.
    """
    user = await get_user(db, user_id)
    if not user:
        return None

    return {
        "id": user["id"],
        "name": user["name"],
        "email": user["email"],
        "role": user["role"],
        "interests": user["interests"],
        "knowledgeProfile": await get_knowledge_profile(db, user_id),
        "learningHistory": await get_learning_history(db, user_id),
        "preferences": {
            "difficulty": user["difficulty"] if user["difficulty"] is not None else 50,
            "granularity": user["granularity"] or "auto",
            "frequency": user["frequency"],
        },
        "createdAt": user["created_at"],
    }


async def delete_user_cascade(db: aiosqlite.Connection, user_id: int) -> Tuple[int, int]:
    """Delete a user with their knowledge and progress rows in one transaction.

    Returns (deleted_knowledge, deleted_progress). Lessons they generated
    stay in the content table with ``user_id`` set to NULL.
    """
    try:
        deleted_knowledge = await delete_knowledge_for_user(db, user_id)
        cursor = await db.execute("DELETE FROM progress WHERE user_id = ?", (user_id,))
        deleted_progress = cursor.rowcount
        await db.execute("DELETE FROM users WHERE id = ?", (user_id,))
        await db.commit()
    except aiosqlite.Error:
        await db.rollback()
        raise
    return deleted_knowledge, deleted_progress


def _decode_user(row: aiosqlite.Row) -> Dict[str, Any]:
    user = row_to_dict(row, parse_json_fields=['interests'])
    if not isinstance(user.get("interests"), list):
        user["interests"] = []
    return user
