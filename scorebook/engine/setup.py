"""
Building a match before the first ball: rosters, toss, and manual end.
"""

import logging
from datetime import datetime
from typing import Optional
import uuid

from scorebook.config import settings
from scorebook.errors import PreconditionFailed, RejectedOperation
from scorebook.models import Match, MatchStatus, Player, PlayerEntry, Team

logger = logging.getLogger(__name__)

TEAM_A_ID = "team_a"
TEAM_B_ID = "team_b"


def create_player(
    name: str,
    team_id: str,
    is_captain: bool = False,
    avatar: Optional[str] = None,
) -> Player:
    return Player(
        id=str(uuid.uuid4()),
        name=name,
        avatar=avatar,
        team_id=team_id,
        is_captain=is_captain,
    )


def create_team(name: str, team_id: str, players: Optional[list[Player]] = None) -> Team:
    return Team(id=team_id, name=name, players=players or [])


def build_roster(
    team_id: str,
    label: str,
    entries: list[PlayerEntry],
    captain_index: int = 0,
) -> list[Player]:
    """
    Turn the setup form entries into players.

    Blank names become "Player A1", "Player A2", ... using the team label.
    Exactly one player, the one at ``captain_index``, is captain.
    """
    if len(entries) < settings.min_squad_size:
        raise RejectedOperation(
            f"Team {label} needs at least {settings.min_squad_size} players, got {len(entries)}"
        )
    if captain_index >= len(entries):
        raise RejectedOperation(f"Captain index {captain_index} is outside team {label}'s roster")

    players = []
    for i, entry in enumerate(entries):
        name = entry.name.strip() or f"Player {label}{i + 1}"
        players.append(create_player(name, team_id, i == captain_index, entry.avatar))
    return players


def create_match(
    team_a_name: str,
    team_a_players: list[Player],
    team_b_name: str,
    team_b_players: list[Player],
    total_overs: Optional[int] = None,
    date: Optional[datetime] = None,
) -> Match:
    """A fresh match waiting for the toss."""
    if not team_a_name.strip() or not team_b_name.strip():
        raise RejectedOperation("Team names required")
    total_overs = total_overs or settings.default_total_overs
    if total_overs < 1:
        raise RejectedOperation(f"A match needs at least one over, got {total_overs}")

    fields = {
        "id": str(uuid.uuid4()),
        "total_overs": total_overs,
        "team_a": create_team(team_a_name.strip(), TEAM_A_ID, team_a_players),
        "team_b": create_team(team_b_name.strip(), TEAM_B_ID, team_b_players),
    }
    if date is not None:
        fields["date"] = date
    match = Match(**fields)
    logger.info(
        f"Match {match.id} created: {match.team_a.name} vs {match.team_b.name}, "
        f"{total_overs} overs"
    )
    return match


def complete_toss(match: Match, winner_id: str, bat_first: bool) -> Match:
    """
    Record the toss and put the match in play.

    All three live slots start empty, so the caller must pick the opening
    pair and the first bowler.
    """
    if match.status != MatchStatus.TOSS:
        raise PreconditionFailed(f"Match {match.id} is {match.status.value}, toss already done")
    winner = match.get_team(winner_id)
    if winner is None:
        raise RejectedOperation(f"Toss winner {winner_id} is not playing in this match")

    batting_id = winner.id if bat_first else match.other_team(winner.id).id
    m = match.model_copy(deep=True)
    m.status = MatchStatus.LIVE
    m.toss_winner_id = winner.id
    m.batting_first_id = batting_id
    m.team_a.is_batting = batting_id == m.team_a.id
    m.team_b.is_batting = batting_id == m.team_b.id
    m.current_striker_id = None
    m.current_non_striker_id = None
    m.current_bowler_id = None

    logger.info(
        f"Match {m.id}: {winner.name} won the toss and chose to "
        f"{'bat' if bat_first else 'bowl'}"
    )
    return m


def end_match(match: Match) -> Match:
    """Close a match early. No winner and no man of the match are recorded."""
    if match.status == MatchStatus.COMPLETED:
        raise PreconditionFailed(f"Match {match.id} is already completed")
    m = match.model_copy(deep=True)
    m.status = MatchStatus.COMPLETED
    m.winning_team_id = None
    m.man_of_the_match_id = None
    logger.info(f"Match {m.id} ended early by the scorer")
    return m
