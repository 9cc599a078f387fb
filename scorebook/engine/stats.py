"""
Derived match statistics.

Everything here is a pure function of the numbers passed in and is
recomputed on every read; nothing is cached on the match snapshot.
Rates are returned pre-formatted to two decimals for display.
"""

import math

from scorebook.models import Match, MatchStatus

BALLS_PER_OVER = 6
NOT_AVAILABLE = "N/A"


def strike_rate(runs: int, balls_faced: int) -> str:
    """Runs per 100 balls faced."""
    if balls_faced == 0:
        return "0.00"
    return f"{runs / balls_faced * 100:.2f}"


def economy_rate(runs_conceded: int, legal_balls: int) -> str:
    """Runs conceded per over."""
    if legal_balls == 0:
        return "0.00"
    return f"{runs_conceded / (legal_balls / BALLS_PER_OVER):.2f}"


def overs_display(legal_balls: int) -> str:
    return f"{legal_balls // BALLS_PER_OVER}.{legal_balls % BALLS_PER_OVER}"


def run_rate(runs: int, legal_balls: int) -> float:
    if legal_balls == 0:
        return 0.0
    return runs / (legal_balls / BALLS_PER_OVER)


def current_run_rate(runs: int, legal_balls: int) -> str:
    return f"{run_rate(runs, legal_balls):.2f}"


def required_run_rate(match: Match) -> str:
    """Run rate the chasing side needs; "N/A" outside a live chase."""
    target = match.target
    if target is None or match.status != MatchStatus.LIVE:
        return NOT_AVAILABLE
    batting = match.batting_team
    balls_remaining = match.total_overs * BALLS_PER_OVER - batting.legal_balls
    runs_needed = target - batting.total_runs
    if balls_remaining <= 0 or runs_needed <= 0:
        return NOT_AVAILABLE
    return f"{runs_needed / balls_remaining * BALLS_PER_OVER:.2f}"


def projected_score(current_runs: int, legal_balls: int, total_overs: int) -> int:
    """Innings total if the current run rate holds for the full quota of overs."""
    if legal_balls == 0:
        return 0
    # Half-up rounding, not banker's rounding
    return math.floor(run_rate(current_runs, legal_balls) * total_overs + 0.5)
