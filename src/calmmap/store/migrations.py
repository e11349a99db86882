"""
Schema setup for the segment database.
"""

import sqlite3
from pathlib import Path


def apply_schema(db_path: Path) -> None:
    """Apply schema to database.

    Creates tables if they don't exist. Safe to run multiple times.

    Args:
        db_path: Path to SQLite database file
    """
    schema_path = Path(__file__).parent / "schema.sql"

    with open(schema_path) as f:
        schema_sql = f.read()

    conn = sqlite3.connect(db_path)
    try:
        conn.executescript(schema_sql)
        conn.commit()
    finally:
        conn.close()


def list_tables(db_path: Path) -> list:
    """Return table names in the database, sorted."""
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        )
        return [row[0] for row in cursor.fetchall()]
    finally:
        conn.close()
