"""
Read-only views of a match for the dashboard and the full scorecard.

Both views are plain dicts rebuilt from the snapshot on every call.
"""

from typing import Optional

from scorebook.config import settings
from scorebook.engine.resolution import pending_resolutions
from scorebook.engine.stats import (
    current_run_rate,
    economy_rate,
    overs_display,
    projected_score,
    required_run_rate,
    strike_rate,
)
from scorebook.models import Ball, DismissalType, ExtraType, Match, Player, Team

DISMISSAL_TEXT = {
    DismissalType.BOWLED: "b",
    DismissalType.CAUGHT: "c",
    DismissalType.LBW: "lbw",
    DismissalType.RUN_OUT: "run out",
    DismissalType.STUMPED: "st",
    DismissalType.HIT_WICKET: "hw",
}

EXTRA_PREFIX = {
    ExtraType.WIDE: "WD",
    ExtraType.NO_BALL: "NB",
    ExtraType.BYE: "B",
    ExtraType.LEG_BYE: "LB",
}


def dismissal_text(kind: DismissalType) -> str:
    return DISMISSAL_TEXT.get(kind, "")


def ball_symbol(ball: Ball) -> str:
    """Short label for the recent-balls strip, e.g. "4", "W", "WD", "NB2", "LB1"."""
    if ball.is_wicket:
        return "W"
    prefix = EXTRA_PREFIX.get(ball.extra_type)
    if prefix is None:
        return str(ball.runs_scored)
    if ball.extra_type == ExtraType.WIDE:
        runs = ball.extra_runs - 1
    elif ball.extra_type == ExtraType.NO_BALL:
        runs = ball.runs_scored
    else:
        runs = ball.extra_runs
    return f"{prefix}{runs}" if runs else prefix


def batter_line(player: Player) -> dict:
    return {
        "id": player.id,
        "name": player.name,
        "is_captain": player.is_captain,
        "runs": player.runs,
        "balls": player.balls_faced,
        "fours": player.fours,
        "sixes": player.sixes,
        "strike_rate": strike_rate(player.runs, player.balls_faced),
        "is_out": player.is_out,
        "dismissal": dismissal_text(player.dismissal_type),
    }


def bowler_line(player: Player) -> dict:
    return {
        "id": player.id,
        "name": player.name,
        "overs": overs_display(player.balls_bowled),
        "maidens": player.maidens,
        "runs": player.runs_conceded,
        "wickets": player.wickets,
        "economy": economy_rate(player.runs_conceded, player.balls_bowled),
    }


def build_scoreboard(match: Match, recent: Optional[int] = None) -> dict:
    """Live dashboard: score, rates, the batters at the crease and the current bowler."""
    recent = recent or settings.recent_balls_window
    batting = match.batting_team
    bowling = match.bowling_team
    striker = batting.get_player(match.current_striker_id)
    non_striker = batting.get_player(match.current_non_striker_id)
    bowler = bowling.get_player(match.current_bowler_id)

    board = {
        "match_id": match.id,
        "status": match.status.value,
        "innings": match.current_innings,
        "batting_team": batting.name,
        "bowling_team": bowling.name,
        "score": f"{batting.total_runs}/{batting.wickets}",
        "overs": overs_display(batting.legal_balls),
        "total_overs": match.total_overs,
        "extras": batting.extras,
        "crr": current_run_rate(batting.total_runs, batting.legal_balls),
        "target": match.target,
        "rrr": required_run_rate(match),
        "projected": None,
        "striker": batter_line(striker) if striker else None,
        "non_striker": batter_line(non_striker) if non_striker else None,
        "bowler": bowler_line(bowler) if bowler else None,
        "recent_balls": [ball_symbol(b) for b in reversed(match.balls[-recent:])],
        "pending": pending_resolutions(match).model_dump(),
        "winning_team_id": match.winning_team_id,
        "man_of_the_match_id": match.man_of_the_match_id,
    }
    if match.current_innings == 1:
        board["projected"] = projected_score(
            batting.total_runs, batting.legal_balls, match.total_overs
        )
    return board


def _has_batted(match: Match, player: Player) -> bool:
    return (
        player.balls_faced > 0
        or player.is_out
        or any(b.striker_id == player.id or b.non_striker_id == player.id for b in match.balls)
        or player.id in (match.current_striker_id, match.current_non_striker_id)
    )


def _innings_card(match: Match, innings: int, batting: Team, bowling: Team) -> dict:
    live = match.current_innings == innings
    bowlers = [
        p for p in bowling.players
        if p.balls_bowled > 0 or (live and p.id == match.current_bowler_id)
    ]
    return {
        "innings": innings,
        "batting_team": batting.name,
        "bowling_team": bowling.name,
        "total": f"{batting.total_runs}/{batting.wickets}",
        "overs": overs_display(batting.legal_balls),
        "extras": batting.extras,
        "batting": [batter_line(p) for p in batting.players if _has_batted(match, p)],
        "bowling": [bowler_line(p) for p in bowlers],
    }


def build_scorecard(match: Match) -> dict:
    """Full scorecard: one entry per innings started so far, in batting order."""
    innings_cards = []
    for innings in (1, 2):
        if innings > match.current_innings:
            break
        batting = match.batting_team_for(innings)
        if batting is None:
            break
        bowling = match.other_team(batting.id)
        innings_cards.append(_innings_card(match, innings, batting, bowling))

    return {
        "match_id": match.id,
        "status": match.status.value,
        "total_overs": match.total_overs,
        "toss_winner_id": match.toss_winner_id,
        "winning_team_id": match.winning_team_id,
        "man_of_the_match_id": match.man_of_the_match_id,
        "innings": innings_cards,
    }
