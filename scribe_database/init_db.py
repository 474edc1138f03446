"""
Database initialization/migration script.

Run this script to create all required tables in the database, or to bring a
legacy notes table up to date with the columns the service expects.
"""
import logging

from sqlalchemy import inspect, text

from .db import get_engine
from .models import Base

logger = logging.getLogger("scribe.database")

# Columns added after the first release; legacy notes tables may lack them.
LEGACY_NOTE_COLUMNS = {
    "updated_at": "TIMESTAMP",
    "share_id": "VARCHAR(36)",
    "is_public": "BOOLEAN DEFAULT FALSE NOT NULL",
}


# PUBLIC_INTERFACE
def ensure_schema(engine):
    """
    Creates missing tables and adds missing note columns.

    Returns the list of changes applied, empty when the schema was already current.
    """
    changes = []
    existing = set(inspect(engine).get_table_names())
    missing = [t for t in Base.metadata.sorted_tables if t.name not in existing]
    if missing:
        Base.metadata.create_all(bind=engine, tables=missing)
        changes.extend(f"created table {t.name}" for t in missing)

    note_columns = {c["name"] for c in inspect(engine).get_columns("notes")}
    with engine.begin() as conn:
        for name, ddl in LEGACY_NOTE_COLUMNS.items():
            if name not in note_columns:
                conn.execute(text(f"ALTER TABLE notes ADD COLUMN {name} {ddl}"))
                changes.append(f"added column notes.{name}")

    for change in changes:
        logger.info("Schema change: %s", change)
    return changes


# PUBLIC_INTERFACE
def init_db():
    """Initializes the database by creating all tables if they do not exist."""
    return ensure_schema(get_engine())


if __name__ == "__main__":
    init_db()
    print("Database tables created successfully.")
