"""
content.py - Database helper queries for lessons and progress

Provides insert/fetch functions for:
- content (generated lessons)
- progress (completion and score per lesson)
"""

import json
from typing import Optional, List, Dict, Any
import aiosqlite

from microlearn.db.database import row_to_dict
from microlearn.models.user import MATCH_ALL_GRANULARITIES

# Lesson fields kept in the JSON payload column rather than their own columns
PAYLOAD_FIELDS = ("options", "correctAnswer", "correctAnswerText", "reasoning")


# ══════════════════════════════════════════════════════════════════════════════
# CONTENT
# ══════════════════════════════════════════════════════════════════════════════

async def save_content(
    db: aiosqlite.Connection,
    user_id: Optional[int],
    lesson: Dict[str, Any],
    granularity: str = "auto",
) -> int:
    """Persist a lesson dict as produced by the AI client. Returns the new content ID."""
    payload = {k: lesson[k] for k in PAYLOAD_FIELDS if lesson.get(k) is not None}
    cursor = await db.execute(
        """INSERT INTO content (user_id, topic, concept, content, type, granularity, difficulty_level, payload)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            user_id,
            lesson.get("topic"),
            lesson.get("concept"),
            lesson["content"],
            lesson.get("type") or "info",
            granularity,
            lesson.get("difficulty", 50),
            json.dumps(payload) if payload else None,
        )
    )
    await db.commit()
    return cursor.lastrowid


async def get_content(db: aiosqlite.Connection, content_id: int) -> Optional[Dict[str, Any]]:
    cursor = await db.execute(
        "SELECT * FROM content WHERE id = ?",
        (content_id,)
    )
    row = await cursor.fetchone()
    if not row:
        return None
    return row_to_dict(row, parse_json_fields=['payload'])


async def get_content_by_topic(
    db: aiosqlite.Connection,
    topic: str,
    granularity: str = "auto",
) -> List[Dict[str, Any]]:
    """Stored lessons for a topic at the given granularity.

    ``auto`` and ``flexible`` match every stored lesson; a fixed level
    matches lessons stored at that level or as ``auto``.
    """
    if granularity in MATCH_ALL_GRANULARITIES:
        cursor = await db.execute(
            "SELECT * FROM content WHERE topic = ? ORDER BY created_at DESC, id DESC",
            (topic,)
        )
    else:
        cursor = await db.execute(
            """SELECT * FROM content
               WHERE topic = ? AND (granularity = ? OR granularity = 'auto')
               ORDER BY created_at DESC, id DESC""",
            (topic, granularity)
        )
    rows = await cursor.fetchall()
    return [row_to_dict(r, parse_json_fields=['payload']) for r in rows]


# ══════════════════════════════════════════════════════════════════════════════
# PROGRESS
# ══════════════════════════════════════════════════════════════════════════════

async def record_progress(
    db: aiosqlite.Connection,
    user_id: int,
    content_id: int,
    completed: bool,
    score: Optional[int] = None,
) -> int:
    """Record an attempt at a lesson. Returns the new progress ID.

    Raises aiosqlite.IntegrityError when the content does not exist.
    """
    cursor = await db.execute(
        "INSERT INTO progress (user_id, content_id, completed, score) VALUES (?, ?, ?, ?)",
        (user_id, content_id, int(completed), score)
    )
    await db.commit()
    return cursor.lastrowid


async def get_progress(db: aiosqlite.Connection, user_id: int) -> List[Dict[str, Any]]:
    """All progress rows of a user joined with their lesson, newest first."""
    cursor = await db.execute(
        """SELECT p.*, c.topic, c.concept, c.content
           FROM progress p
           JOIN content c ON p.content_id = c.id
           WHERE p.user_id = ?
           ORDER BY p.timestamp DESC, p.id DESC""",
        (user_id,)
    )
    rows = await cursor.fetchall()
    return [dict(r) for r in rows]
