#!/usr/bin/env python3
"""
Play a random match through the scoring engine.

Useful for eyeballing scoreboards and for filling a local history database.
Outcomes are drawn from fixed weights; players are picked automatically
(next batter in the order, least-used eligible bowler).

Usage:
    python scripts/simulate_match.py                      # 5 overs, print result
    python scripts/simulate_match.py --overs 20 --seed 7
    python scripts/simulate_match.py --save               # archive to settings.database_path
"""

import argparse
import asyncio
import json
import random
import sys
from pathlib import Path

# Allow importing scorebook when run as script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from scorebook.engine.resolution import (
    assign_bowler,
    assign_non_striker,
    assign_striker,
    available_batters,
    available_bowlers,
)
from scorebook.engine.scoreboard import build_scorecard
from scorebook.engine.scoring_engine import ScoringEngine
from scorebook.engine.setup import TEAM_A_ID, TEAM_B_ID, build_roster, complete_toss, create_match
from scorebook.models import DismissalType, ExtraType, Match, MatchStatus, NotificationType, PlayerEntry

# (runs, extra, dismissal), weight
OUTCOMES = [
    ((0, ExtraType.NONE, DismissalType.NONE), 35),
    ((1, ExtraType.NONE, DismissalType.NONE), 30),
    ((2, ExtraType.NONE, DismissalType.NONE), 10),
    ((3, ExtraType.NONE, DismissalType.NONE), 2),
    ((4, ExtraType.NONE, DismissalType.NONE), 12),
    ((6, ExtraType.NONE, DismissalType.NONE), 5),
    ((0, ExtraType.NONE, DismissalType.CAUGHT), 2),
    ((0, ExtraType.NONE, DismissalType.BOWLED), 1),
    ((0, ExtraType.NONE, DismissalType.LBW), 1),
    ((1, ExtraType.NONE, DismissalType.RUN_OUT), 1),
    ((0, ExtraType.WIDE, DismissalType.NONE), 2),
    ((0, ExtraType.NO_BALL, DismissalType.NONE), 1),
    ((1, ExtraType.LEG_BYE, DismissalType.NONE), 1),
]


def fill_slots(match: Match) -> Match:
    """Pick whoever is needed for the next delivery."""
    if match.current_striker_id is None:
        match = assign_striker(match, available_batters(match)[0].id)
    if match.current_non_striker_id is None and available_batters(match):
        match = assign_non_striker(match, available_batters(match)[0].id)
    if match.current_bowler_id is None:
        bowler = min(available_bowlers(match), key=lambda p: p.balls_bowled)
        match = assign_bowler(match, bowler.id)
    return match


def simulate(overs: int, squad_size: int, rng: random.Random, verbose: bool = True) -> Match:
    entries = [PlayerEntry() for _ in range(squad_size)]
    match = create_match(
        "Strikers", build_roster(TEAM_A_ID, "A", entries),
        "Titans", build_roster(TEAM_B_ID, "B", entries),
        total_overs=overs,
    )
    match = complete_toss(match, rng.choice([TEAM_A_ID, TEAM_B_ID]), rng.random() < 0.5)

    engine = ScoringEngine()
    outcomes = [o for o, _ in OUTCOMES]
    weights = [w for _, w in OUTCOMES]

    while match.status == MatchStatus.LIVE:
        match = fill_slots(match)
        runs, extra, dismissal = rng.choices(outcomes, weights=weights)[0]
        result = engine.apply_delivery(match, runs, extra, dismissal)
        match = result.match
        if verbose and result.notification.type != NotificationType.NONE:
            batting = match.batting_team
            print(f"  [{batting.name} {batting.total_runs}/{batting.wickets}] "
                  f"{result.notification.type.value}: {result.notification.message}")
    return match


async def save(match: Match) -> None:
    from scorebook.storage.database import archive_match, close_db, init_db, save_match

    await init_db()
    try:
        await save_match(match)
        archived = await archive_match(match)
        print(f"Archived: {archived}")
    finally:
        await close_db()


def main():
    parser = argparse.ArgumentParser(description="Simulate a match through the scoring engine")
    parser.add_argument("--overs", type=int, default=5, help="Overs per innings (default: 5)")
    parser.add_argument("--players", type=int, default=11, help="Squad size (default: 11)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--save", action="store_true", help="Archive the result to the database")
    parser.add_argument("--json", action="store_true", help="Print the full scorecard as JSON")
    args = parser.parse_args()
    if args.players < 11:
        # Innings only end early at ten wickets
        parser.error("--players must be at least 11")

    rng = random.Random(args.seed)
    match = simulate(args.overs, args.players, rng, verbose=not args.json)

    if args.json:
        print(json.dumps(build_scorecard(match), indent=2))
    else:
        winner = match.get_team(match.winning_team_id)
        motm = match.get_player(match.man_of_the_match_id)
        print(f"\n{'='*60}")
        print(f"{match.team_a.name}: {match.team_a.total_runs}/{match.team_a.wickets}")
        print(f"{match.team_b.name}: {match.team_b.total_runs}/{match.team_b.wickets}")
        print(f"Winner: {winner.name if winner else 'none'}")
        print(f"Man of the match: {motm.name if motm else 'none'}")
        print(f"{'='*60}")

    if args.save:
        asyncio.run(save(match))


if __name__ == "__main__":
    main()
