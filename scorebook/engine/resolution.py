"""
Filling the live slots (striker, non-striker, bowler).

The scoring engine clears a slot whenever the caller has to choose someone:
a wicket empties the striker's end, the end of an over empties the bowler,
an innings break empties all three. The setters here validate the choice
and return a new snapshot; the input match is never modified.
"""

import logging
from typing import Optional

from scorebook.engine.stats import BALLS_PER_OVER
from scorebook.errors import InvalidResolution, PreconditionFailed
from scorebook.models import Match, MatchStatus, PendingResolutions, Player

logger = logging.getLogger(__name__)


def pending_resolutions(match: Match) -> PendingResolutions:
    """Every unset live slot of a LIVE match needs a resolution."""
    if match.status != MatchStatus.LIVE:
        return PendingResolutions()
    return PendingResolutions(
        needs_striker=match.current_striker_id is None,
        needs_non_striker=match.current_non_striker_id is None,
        needs_bowler=match.current_bowler_id is None,
    )


def previous_over_bowler_id(match: Match) -> Optional[str]:
    """
    Bowler of the over immediately before the one about to be bowled.

    Only deliveries of the current innings count, and extras count the same
    as legal balls, so a bowler who sent down a single wide in the last over
    is still "the previous bowler".
    """
    current_over = match.batting_team.legal_balls // BALLS_PER_OVER
    for ball in reversed(match.balls):
        if ball.innings != match.current_innings:
            break
        if ball.over_number < current_over:
            return ball.bowler_id
    return None


def available_batters(match: Match) -> list[Player]:
    """Batting-side players who are not out and not already at the crease."""
    occupied = {match.current_striker_id, match.current_non_striker_id}
    return [
        p for p in match.batting_team.players
        if not p.is_out and p.id not in occupied
    ]


def available_bowlers(match: Match) -> list[Player]:
    blocked = previous_over_bowler_id(match)
    return [p for p in match.bowling_team.players if p.id != blocked]


def assign_striker(match: Match, player_id: str) -> Match:
    _require_live(match)
    _check_batter(
        match, player_id,
        occupant=match.current_striker_id,
        other_slot=match.current_non_striker_id,
        slot="striker",
    )
    logger.debug(f"Match {match.id}: striker -> {player_id}")
    return match.model_copy(update={"current_striker_id": player_id}, deep=True)


def assign_non_striker(match: Match, player_id: str) -> Match:
    _require_live(match)
    _check_batter(
        match, player_id,
        occupant=match.current_non_striker_id,
        other_slot=match.current_striker_id,
        slot="non-striker",
    )
    logger.debug(f"Match {match.id}: non-striker -> {player_id}")
    return match.model_copy(update={"current_non_striker_id": player_id}, deep=True)


def assign_bowler(match: Match, player_id: str) -> Match:
    _require_live(match)
    bowling = match.bowling_team
    if bowling.get_player(player_id) is None:
        raise InvalidResolution(
            f"Player {player_id} is not in the bowling side ({bowling.name})"
        )
    if player_id == previous_over_bowler_id(match):
        raise InvalidResolution(
            f"{bowling.get_player(player_id).name} bowled the previous over"
        )
    logger.debug(f"Match {match.id}: bowler -> {player_id}")
    return match.model_copy(update={"current_bowler_id": player_id}, deep=True)


def _require_live(match: Match) -> None:
    if match.status != MatchStatus.LIVE:
        raise PreconditionFailed(
            f"Match {match.id} is {match.status.value}, players can only be picked while LIVE"
        )


def _check_batter(
    match: Match,
    player_id: str,
    occupant: Optional[str],
    other_slot: Optional[str],
    slot: str,
) -> None:
    batting = match.batting_team
    # Batters only leave the crease by being dismissed
    if occupant is not None:
        current = batting.get_player(occupant)
        raise InvalidResolution(
            f"The {slot} end is taken by {current.name if current else occupant}"
        )
    player = batting.get_player(player_id)
    if player is None:
        raise InvalidResolution(
            f"Player {player_id} is not in the batting side ({batting.name})"
        )
    if player.is_out:
        raise InvalidResolution(f"{player.name} is already out")
    if player_id == other_slot:
        raise InvalidResolution(f"{player.name} is already batting, cannot also be {slot}")
