"""seed_knowledge_concepts

Loads the built-in concept catalog into knowledge_concepts so the
recommendations endpoint works before any /api/knowledge/init call.

Revision ID: 8e2f4a6c0d19
Revises: 3b7c91d2a4e0
Create Date: 2026-09-02 11:02:51.000417

"""
import json
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from microlearn.services.knowledge_concepts import KNOWLEDGE_CONCEPTS

revision: str = "8e2f4a6c0d19"
down_revision: Union[str, Sequence[str], None] = "3b7c91d2a4e0"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    insert = sa.text(
        """INSERT OR IGNORE INTO knowledge_concepts
           (topic, concept, description, difficulty_level, prerequisites, granularity_required)
           VALUES (:topic, :concept, :description, :difficulty, :prerequisites, :granularity)"""
    )
    bind = op.get_bind()
    for topic, concepts in KNOWLEDGE_CONCEPTS.items():
        for c in concepts:
            bind.execute(insert, {
                "topic": topic,
                "concept": c["name"],
                "description": c["description"],
                "difficulty": c["difficulty"],
                "prerequisites": json.dumps(c["prerequisites"]),
                "granularity": c["granularity"],
            })


def downgrade() -> None:
    bind = op.get_bind()
    delete = sa.text("DELETE FROM knowledge_concepts WHERE topic = :topic AND concept = :concept")
    for topic, concepts in KNOWLEDGE_CONCEPTS.items():
        for c in concepts:
            bind.execute(delete, {"topic": topic, "concept": c["name"]})
