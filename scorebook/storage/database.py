"""
SQLite persistence layer.

Tables:
  - matches: the current snapshot of every match being scored (one row per match)
  - match_history: completed matches, append-only, ordered by archive sequence

Snapshots are stored as the JSON dump of the pydantic ``Match`` model.
Uses aiosqlite for async access. Database file: settings.database_path
"""

import logging
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from scorebook.config import settings
from scorebook.engine.history import search_history
from scorebook.models import Match, MatchStatus

logger = logging.getLogger(__name__)

DB_PATH = Path(settings.database_path)
DB_DIR = DB_PATH.parent

_db: aiosqlite.Connection | None = None


# ------------------------------------------------------------------ #
#  Connection management
# ------------------------------------------------------------------ #

async def init_db() -> None:
    """Create tables if they don't exist. Called once at app startup."""
    global _db
    DB_DIR.mkdir(parents=True, exist_ok=True)

    _db = await aiosqlite.connect(str(DB_PATH))
    _db.row_factory = aiosqlite.Row

    await _db.executescript("""
        CREATE TABLE IF NOT EXISTS matches (
            match_id    TEXT PRIMARY KEY,
            status      TEXT NOT NULL,
            team_a      TEXT NOT NULL,
            team_b      TEXT NOT NULL,
            snapshot    TEXT NOT NULL,
            created_at  TEXT NOT NULL,
            updated_at  TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_matches_status
            ON matches(status, updated_at);

        CREATE TABLE IF NOT EXISTS match_history (
            seq              INTEGER PRIMARY KEY AUTOINCREMENT,
            match_id         TEXT NOT NULL UNIQUE,
            team_a           TEXT NOT NULL,
            team_b           TEXT NOT NULL,
            winning_team_id  TEXT,
            match_date       TEXT NOT NULL,
            snapshot         TEXT NOT NULL,
            archived_at      TEXT NOT NULL
        );
    """)

    await _db.commit()
    logger.info(f"SQLite database initialized at {DB_PATH}")


async def close_db() -> None:
    """Close the database connection."""
    global _db
    if _db:
        await _db.close()
        _db = None


def _get_db() -> aiosqlite.Connection:
    if _db is None:
        raise RuntimeError("Database not initialized, call init_db() first")
    return _db


async def drop_tables() -> None:
    """Drop every scorebook table. Run init_db() again to recreate them."""
    db = _get_db()
    await db.executescript("""
        DROP TABLE IF EXISTS match_history;
        DROP TABLE IF EXISTS matches;
    """)
    await db.commit()
    logger.info(f"Dropped all tables in {DB_PATH}")


# ------------------------------------------------------------------ #
#  Live matches
# ------------------------------------------------------------------ #

async def save_match(match: Match) -> None:
    """Insert or replace the current snapshot of a match."""
    db = _get_db()
    now = datetime.now(timezone.utc).isoformat()
    await db.execute(
        """INSERT INTO matches (match_id, status, team_a, team_b, snapshot, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?)
           ON CONFLICT(match_id) DO UPDATE SET
               status = excluded.status,
               snapshot = excluded.snapshot,
               updated_at = excluded.updated_at""",
        (match.id, match.status.value, match.team_a.name, match.team_b.name,
         match.model_dump_json(), now, now),
    )
    await db.commit()


async def get_match(match_id: str) -> Match | None:
    db = _get_db()
    async with db.execute("SELECT snapshot FROM matches WHERE match_id = ?", (match_id,)) as cur:
        row = await cur.fetchone()
        return Match.model_validate_json(row["snapshot"]) if row else None


async def list_matches(status: MatchStatus | None = None) -> list[Match]:
    """Stored match snapshots, most recently updated first."""
    db = _get_db()
    if status:
        query = "SELECT snapshot FROM matches WHERE status = ? ORDER BY updated_at DESC"
        params: tuple = (status.value,)
    else:
        query = "SELECT snapshot FROM matches ORDER BY updated_at DESC"
        params = ()
    async with db.execute(query, params) as cur:
        return [Match.model_validate_json(r["snapshot"]) for r in await cur.fetchall()]


async def delete_match(match_id: str) -> int:
    """Delete a live match snapshot. Archived history is left alone."""
    db = _get_db()
    cursor = await db.execute("DELETE FROM matches WHERE match_id = ?", (match_id,))
    await db.commit()
    return cursor.rowcount


# ------------------------------------------------------------------ #
#  Match history (append-only)
# ------------------------------------------------------------------ #

async def archive_match(match: Match) -> bool:
    """
    Append a completed match to the history.

    Returns True if the match was archived by this call, False if it was
    already in the history.
    """
    if match.status != MatchStatus.COMPLETED:
        raise ValueError(f"Only completed matches can be archived, {match.id} is {match.status.value}")

    db = _get_db()
    now = datetime.now(timezone.utc).isoformat()
    cursor = await db.execute(
        """INSERT OR IGNORE INTO match_history
           (match_id, team_a, team_b, winning_team_id, match_date, snapshot, archived_at)
           VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (match.id, match.team_a.name, match.team_b.name, match.winning_team_id,
         match.date.isoformat(), match.model_dump_json(), now),
    )
    await db.commit()

    archived = cursor.rowcount == 1
    if archived:
        logger.info(f"Archived match {match.id} ({match.team_a.name} vs {match.team_b.name})")
    else:
        logger.debug(f"Match {match.id} already archived, skipping")
    return archived


async def list_history(query: str | None = None, limit: int | None = None) -> list[Match]:
    """Archived matches, most recent first, optionally filtered by team name or date."""
    db = _get_db()
    async with db.execute("SELECT snapshot FROM match_history ORDER BY seq DESC") as cur:
        matches = [Match.model_validate_json(r["snapshot"]) for r in await cur.fetchall()]
    matches = search_history(matches, query)
    return matches[:limit] if limit else matches


async def get_history_entry(match_id: str) -> Match | None:
    db = _get_db()
    async with db.execute(
        "SELECT snapshot FROM match_history WHERE match_id = ?", (match_id,)
    ) as cur:
        row = await cur.fetchone()
        return Match.model_validate_json(row["snapshot"]) if row else None


async def count_history() -> int:
    db = _get_db()
    async with db.execute("SELECT COUNT(*) AS n FROM match_history") as cur:
        row = await cur.fetchone()
        return row["n"] if row else 0
