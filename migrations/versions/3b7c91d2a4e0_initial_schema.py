"""initial_schema

Creates the users, content, progress, knowledge_profile and
knowledge_concepts tables from microlearn/db/schema.sql.

Revision ID: 3b7c91d2a4e0
Revises:
Create Date: 2026-09-02 10:14:37.512093

"""
from typing import Sequence, Union
from pathlib import Path

from alembic import op
import sqlalchemy as sa


revision: str = "3b7c91d2a4e0"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the full initial schema.

    schema.sql uses CREATE TABLE IF NOT EXISTS, so it is safe to run
    against an existing database.
    """
    schema_path = Path(__file__).resolve().parents[2] / "microlearn" / "db" / "schema.sql"
    schema_sql = schema_path.read_text()
    # Execute each statement individually (op.execute doesn't support executescript)
    for statement in schema_sql.split(";"):
        # Strip comment lines before checking if there's real SQL
        lines = [
            line for line in statement.splitlines()
            if line.strip() and not line.strip().startswith("--")
        ]
        cleaned = "\n".join(lines).strip()
        if cleaned:
            op.execute(sa.text(cleaned))


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    for table in ("knowledge_concepts", "knowledge_profile", "progress", "content", "users"):
        op.execute(sa.text(f"DROP TABLE IF EXISTS {table}"))
