import logging
from typing import Optional

from scorebook.engine.stats import run_rate
from scorebook.models import Match, Player

logger = logging.getLogger(__name__)

HALF_CENTURY_BONUS = 20
WICKET_POINTS = 20
THREE_WICKET_BONUS = 20
ECONOMY_BONUS = 10
ECONOMY_MIN_BALLS = 12
ECONOMY_THRESHOLD = 6.0


def player_award_score(player: Player) -> int:
    """Points for one player's all-round contribution to the match."""
    score = player.runs + player.fours * 2 + player.sixes * 3
    if player.runs > 50:
        score += HALF_CENTURY_BONUS

    score += player.wickets * WICKET_POINTS
    if player.wickets >= 3:
        score += THREE_WICKET_BONUS
    if (
        player.balls_bowled > ECONOMY_MIN_BALLS
        and run_rate(player.runs_conceded, player.balls_bowled) < ECONOMY_THRESHOLD
    ):
        score += ECONOMY_BONUS
    return score


def determine_man_of_the_match(match: Match) -> Optional[str]:
    """
    Pick the highest-scoring player from the winning side.

    Ties go to whoever appears first in the roster. Returns None when the
    match has no recorded winner.
    """
    winners = match.get_team(match.winning_team_id)
    if winners is None:
        return None

    best_id: Optional[str] = None
    best_score = -1
    for player in winners.players:
        score = player_award_score(player)
        if score > best_score:
            best_score = score
            best_id = player.id

    logger.debug(f"Man of the match for {match.id}: {best_id} ({best_score} pts)")
    return best_id
