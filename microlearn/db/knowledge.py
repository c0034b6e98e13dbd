"""
knowledge.py - Database helper queries for the knowledge profile

Provides insert/fetch functions for:
- knowledge_profile (per-user, per-topic, per-concept state)
- knowledge_concepts (catalog of concepts per topic)
"""

import json
from typing import Optional, List, Dict, Any
import aiosqlite

from microlearn.db.database import row_to_dict
from microlearn.services.difficulty_engine import KnowledgeState

RECOMMENDATION_MAX_DIFFICULTY = 3


# ══════════════════════════════════════════════════════════════════════════════
# KNOWLEDGE PROFILE
# ══════════════════════════════════════════════════════════════════════════════

async def upsert_knowledge(
    db: aiosqlite.Connection,
    user_id: int,
    topic: str,
    concept: str,
    proficiency_level: int,
    confidence_score: float,
) -> int:
    """Replace the state for (user, topic, concept). Returns the row ID."""
    cursor = await db.execute(
        """INSERT OR REPLACE INTO knowledge_profile
           (user_id, topic, concept, proficiency_level, confidence_score, last_practiced)
           VALUES (?, ?, ?, ?, ?, CURRENT_TIMESTAMP)""",
        (user_id, topic, concept, proficiency_level, confidence_score)
    )
    await db.commit()
    return cursor.lastrowid


async def save_knowledge_state(
    db: aiosqlite.Connection,
    user_id: int,
    topic: str,
    concept: str,
    state: KnowledgeState,
) -> int:
    return await upsert_knowledge(db, user_id, topic, concept, state.proficiency, state.confidence)


async def get_knowledge_entry(
    db: aiosqlite.Connection,
    user_id: int,
    topic: str,
    concept: str,
) -> Optional[Dict[str, Any]]:
    """Current state for one concept in profile form, or None if never practiced."""
    cursor = await db.execute(
        """SELECT proficiency_level, confidence_score, last_practiced
           FROM knowledge_profile
           WHERE user_id = ? AND topic = ? AND concept = ?""",
        (user_id, topic, concept)
    )
    row = await cursor.fetchone()
    if not row:
        return None
    return {
        "proficiency": row["proficiency_level"],
        "confidence": row["confidence_score"],
        "lastPracticed": row["last_practiced"],
    }


async def get_knowledge_state(
    db: aiosqlite.Connection,
    user_id: int,
    topic: str,
    concept: str,
) -> KnowledgeState:
    return KnowledgeState.from_entry(await get_knowledge_entry(db, user_id, topic, concept))


async def get_knowledge_profile(db: aiosqlite.Connection, user_id: int) -> Dict[str, Dict[str, Any]]:
    """Nested {topic: {concept: {proficiency, confidence, lastPracticed}}} for a user."""
    cursor = await db.execute(
        "SELECT * FROM knowledge_profile WHERE user_id = ?",
        (user_id,)
    )
    rows = await cursor.fetchall()

    profile: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        profile.setdefault(row["topic"], {})[row["concept"]] = {
            "proficiency": row["proficiency_level"],
            "confidence": row["confidence_score"],
            "lastPracticed": row["last_practiced"],
        }
    return profile


async def get_knowledge_rows(db: aiosqlite.Connection, user_id: int) -> List[Dict[str, Any]]:
    """Flat knowledge rows joined with the concept catalog, strongest first per topic."""
    cursor = await db.execute(
        """SELECT kp.*, kc.description, kc.difficulty_level, kc.prerequisites
           FROM knowledge_profile kp
           LEFT JOIN knowledge_concepts kc ON kp.topic = kc.topic AND kp.concept = kc.concept
           WHERE kp.user_id = ?
           ORDER BY kp.topic, kp.proficiency_level DESC""",
        (user_id,)
    )
    rows = await cursor.fetchall()
    return [row_to_dict(r, parse_json_fields=['prerequisites']) for r in rows]


async def delete_knowledge_for_user(db: aiosqlite.Connection, user_id: int) -> int:
    """Delete every knowledge row of a user without committing. Returns rows deleted."""
    cursor = await db.execute(
        "DELETE FROM knowledge_profile WHERE user_id = ?",
        (user_id,)
    )
    return cursor.rowcount


# ══════════════════════════════════════════════════════════════════════════════
# KNOWLEDGE CONCEPTS
# ══════════════════════════════════════════════════════════════════════════════

async def init_concepts(db: aiosqlite.Connection, topic: str, concepts: List[Dict[str, Any]]) -> int:
    """Insert catalog concepts for a topic, keeping any that already exist.

    Each concept is a dict with ``name`` and optional ``description``,
    ``difficulty``, ``prerequisites`` and ``granularity``. Returns how many
    rows were actually inserted.
    """
    inserted = 0
    for concept in concepts:
        prerequisites = concept.get("prerequisites")
        cursor = await db.execute(
            """INSERT OR IGNORE INTO knowledge_concepts
               (topic, concept, description, difficulty_level, prerequisites, granularity_required)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                topic,
                concept["name"],
                concept.get("description"),
                concept.get("difficulty") or 1,
                json.dumps(prerequisites) if prerequisites else None,
                concept.get("granularity") or "high",
            )
        )
        inserted += cursor.rowcount
    await db.commit()
    return inserted


async def get_recommended_concepts(
    db: aiosqlite.Connection,
    user_id: int,
    topic: str,
    max_difficulty: int = RECOMMENDATION_MAX_DIFFICULTY,
) -> List[Dict[str, Any]]:
    """Catalog concepts of a topic the user has no knowledge row for yet.

    Limited to difficulty <= ``max_difficulty`` and ordered easiest first,
    then alphabetically.
    """
    cursor = await db.execute(
        """SELECT * FROM knowledge_concepts
           WHERE topic = ? AND difficulty_level <= ?
             AND concept NOT IN (
                 SELECT concept FROM knowledge_profile WHERE user_id = ? AND topic = ?
             )
           ORDER BY difficulty_level ASC, concept ASC""",
        (topic, max_difficulty, user_id, topic)
    )
    rows = await cursor.fetchall()
    return [row_to_dict(r, parse_json_fields=['prerequisites']) for r in rows]
