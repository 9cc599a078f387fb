"""
Shared fixtures for the test suite.

Key design decisions:
  - Engine tests are pure in-memory; only storage and API tests touch SQLite.
  - ``test_db`` points the database module at a temp file per test.
  - Provides an ``httpx.AsyncClient`` wired to the FastAPI app via ASGITransport.
  - Match factories build LIVE matches with team A batting first, openers
    players[0]/players[1] and the last player of team B bowling.
"""

from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

import scorebook.storage.database as db_mod
from scorebook.engine.resolution import (
    assign_bowler,
    assign_non_striker,
    assign_striker,
    available_batters,
    previous_over_bowler_id,
)
from scorebook.engine.scoring_engine import ScoringEngine
from scorebook.engine.setup import TEAM_A_ID, TEAM_B_ID, build_roster, complete_toss, create_match
from scorebook.main import app
from scorebook.models import DismissalType, ExtraType, Match, PlayerEntry

MATCH_DATE = datetime(2026, 10, 19, 14, 30, tzinfo=timezone.utc)


# --------------------------------------------------------------------------- #
#  Database: fresh file for every test that asks for it
# --------------------------------------------------------------------------- #

@pytest_asyncio.fixture
async def test_db(tmp_path: Path):
    """
    Before each test:
      1. Point the DB module to a temp file.
      2. Run init_db() to create all tables.
    After the test:
      3. Close the connection.
    """
    db_mod.DB_DIR = tmp_path
    db_mod.DB_PATH = tmp_path / "test.db"

    await db_mod.init_db()
    yield
    await db_mod.close_db()


# --------------------------------------------------------------------------- #
#  HTTP client: talks to the FastAPI app without a real server
# --------------------------------------------------------------------------- #

@pytest_asyncio.fixture
async def client(test_db) -> AsyncClient:
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


# --------------------------------------------------------------------------- #
#  Match factories
# --------------------------------------------------------------------------- #

@pytest.fixture
def engine() -> ScoringEngine:
    return ScoringEngine()


@pytest.fixture
def new_match():
    """Factory for a match still waiting for the toss."""

    def _make(total_overs: int = 10, squad_size: int = 11) -> Match:
        entries = [PlayerEntry() for _ in range(squad_size)]
        return create_match(
            "Team A", build_roster(TEAM_A_ID, "A", entries),
            "Team B", build_roster(TEAM_B_ID, "B", entries),
            total_overs=total_overs,
            date=MATCH_DATE,
        )

    return _make


@pytest.fixture
def live_match(new_match):
    """Factory for a LIVE match with openers and the first bowler picked."""

    def _make(total_overs: int = 10, squad_size: int = 11, batting_first: str = TEAM_A_ID) -> Match:
        match = complete_toss(new_match(total_overs, squad_size), batting_first, bat_first=True)
        batters = match.batting_team.players
        match = assign_striker(match, batters[0].id)
        match = assign_non_striker(match, batters[1].id)
        return assign_bowler(match, match.bowling_team.players[-1].id)

    return _make


def fill_slots(match: Match) -> Match:
    """Pick the next batter in order and alternate the last two bowlers."""
    if match.current_striker_id is None:
        match = assign_striker(match, available_batters(match)[0].id)
    if match.current_non_striker_id is None and available_batters(match):
        match = assign_non_striker(match, available_batters(match)[0].id)
    if match.current_bowler_id is None:
        blocked = previous_over_bowler_id(match)
        bowler = next(p for p in reversed(match.bowling_team.players) if p.id != blocked)
        match = assign_bowler(match, bowler.id)
    return match


@pytest.fixture
def play(engine):
    """
    Apply a list of deliveries, filling any empty slot before each one.

    A delivery is either an int (runs off the bat) or a tuple
    ``(runs, extra, dismissal)``. Returns every DeliveryResult in order.
    """

    def _play(match: Match, deliveries: list) -> list:
        results = []
        for delivery in deliveries:
            if isinstance(delivery, int):
                delivery = (delivery, ExtraType.NONE, DismissalType.NONE)
            match = fill_slots(match)
            result = engine.apply_delivery(match, *delivery)
            results.append(result)
            match = result.match
        return results

    return _play
