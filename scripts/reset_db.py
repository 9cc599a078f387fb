#!/usr/bin/env python3
"""
Wipe the scorebook database: live matches and the archived history.

Usage:
    python scripts/reset_db.py              # settings.database_path
    python scripts/reset_db.py path/to.db
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import scorebook.storage.database as db_mod
from scorebook.config import settings


async def reset(path: Path) -> None:
    db_mod.DB_DIR = path.parent
    db_mod.DB_PATH = path

    await db_mod.init_db()
    try:
        live = await db_mod.list_matches()
        archived = await db_mod.count_history()
        await db_mod.drop_tables()
    finally:
        await db_mod.close_db()

    # Fresh schema
    await db_mod.init_db()
    await db_mod.close_db()
    print(f"Reset {path}: removed {len(live)} stored and {archived} archived matches")


if __name__ == "__main__":
    target = Path(sys.argv[1] if len(sys.argv) > 1 else settings.database_path)
    if not target.exists():
        sys.exit(f"Database not found: {target}")
    asyncio.run(reset(target))
