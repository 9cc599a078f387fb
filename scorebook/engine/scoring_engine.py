from datetime import datetime
import logging
from typing import Optional

from scorebook.config import settings
from scorebook.engine.awards import determine_man_of_the_match
from scorebook.engine.resolution import pending_resolutions
from scorebook.engine.stats import BALLS_PER_OVER
from scorebook.errors import InvariantViolation, PreconditionFailed
from scorebook.models import (
    Ball,
    DeliveryResult,
    DismissalType,
    ExtraType,
    Match,
    MatchStatus,
    Notification,
    NotificationType,
    Player,
    Team,
)

logger = logging.getLogger(__name__)

MAX_WICKETS = 10

# Extras whose runs (other than the penalty) still go to the batter
BATTER_SCORING_EXTRAS = (ExtraType.NONE, ExtraType.NO_BALL)
# Deliveries the striker is charged with facing
BALL_FACED_EXTRAS = (ExtraType.NONE, ExtraType.BYE, ExtraType.LEG_BYE)


def split_runs(runs: int, extra: ExtraType) -> tuple[int, int]:
    """Return (runs to the batter, extra runs to the team) for one delivery."""
    if extra == ExtraType.WIDE:
        return 0, 1 + runs
    if extra == ExtraType.NO_BALL:
        return runs, 1
    if extra in (ExtraType.BYE, ExtraType.LEG_BYE):
        return 0, runs
    return runs, 0


class ScoringEngine:
    """
    Ball-by-ball reducer: (match, delivery) -> (new match, effects).

    Each call deep-copies the incoming snapshot and applies the delivery to
    the copy, so snapshots kept by the caller never share mutable state.
    The effects are the pending-resolution flags and at most one
    notification; the engine never performs them itself. Completion is
    signalled through ``DeliveryResult.match_completed`` and the caller is
    responsible for archiving the finished match.

    Rule simplifications: every dismissal, run-outs included, removes the
    striker; no-balls carry no free hit; a tied match goes to the side
    defending the total.
    """

    def apply_delivery(
        self,
        match: Match,
        runs: int,
        extra: ExtraType = ExtraType.NONE,
        dismissal: DismissalType = DismissalType.NONE,
        timestamp: Optional[datetime] = None,
    ) -> DeliveryResult:
        self._check_preconditions(match, runs)

        m = match.model_copy(deep=True)
        batting = m.batting_team
        bowling = m.bowling_team
        striker = _roster_player(batting, m.current_striker_id, "striker")
        bowler = _roster_player(bowling, m.current_bowler_id, "bowler")
        if m.current_non_striker_id is not None:
            _roster_player(batting, m.current_non_striker_id, "non-striker")

        is_legal = extra not in (ExtraType.WIDE, ExtraType.NO_BALL)
        is_wicket = dismissal != DismissalType.NONE
        batter_runs, extra_runs = split_runs(runs, extra)
        ball_runs = batter_runs + extra_runs
        notification = Notification()

        # --- 1. Ball record ---
        m.balls.append(Ball(
            id=f"{m.id}-{len(m.balls) + 1}",
            innings=m.current_innings,
            over_number=batting.legal_balls // BALLS_PER_OVER,
            ball_number=batting.legal_balls % BALLS_PER_OVER + 1,
            bowler_id=bowler.id,
            striker_id=striker.id,
            non_striker_id=m.current_non_striker_id,
            runs_scored=batter_runs,
            extra_type=extra,
            extra_runs=extra_runs,
            is_wicket=is_wicket,
            dismissal_type=dismissal,
            dismissed_player_id=striker.id if is_wicket else None,
            timestamp=timestamp or m.date,
        ))

        # --- 2. Team & bowler aggregates ---
        batting.total_runs += ball_runs
        batting.extras += extra_runs
        if is_legal:
            batting.legal_balls += 1
            bowler.balls_bowled += 1
        bowler.runs_conceded += ball_runs
        if is_wicket and dismissal != DismissalType.RUN_OUT:
            bowler.wickets += 1

        # --- 3. Batter ---
        if extra in BALL_FACED_EXTRAS:
            striker.balls_faced += 1
        if extra in BATTER_SCORING_EXTRAS:
            striker.runs += runs
            if runs == 4:
                striker.fours += 1
                notification = Notification(type=NotificationType.FOUR, message="Boundary!")
            elif runs == 6:
                striker.sixes += 1
                notification = Notification(type=NotificationType.SIX, message="Huge Six!")

        # --- 4. Wicket ---
        if is_wicket:
            batting.wickets += 1
            striker.is_out = True
            striker.dismissal_type = dismissal
            m.current_striker_id = None
            notification = Notification(
                type=NotificationType.WICKET, message=f"{striker.name} is OUT!"
            )

        # --- 5. Strike rotation (applies to extras too) ---
        if runs % 2 == 1:
            _swap_ends(m)

        # --- 6. Over completion ---
        over_complete = is_legal and batting.legal_balls % BALLS_PER_OVER == 0
        if over_complete:
            _swap_ends(m)
            m.current_bowler_id = None
            self._credit_maiden(m, bowler)

        logger.debug(
            f"Match {m.id} inn {m.current_innings} "
            f"[{batting.legal_balls // BALLS_PER_OVER}.{batting.legal_balls % BALLS_PER_OVER}] "
            f"{runs} {extra.value} {dismissal.value} -> {batting.total_runs}/{batting.wickets}"
        )

        # --- 7. Termination ---
        all_out = batting.wickets >= MAX_WICKETS
        overs_done = batting.legal_balls >= m.total_overs * BALLS_PER_OVER
        target_reached = m.current_innings == 2 and batting.total_runs >= bowling.total_runs + 1

        # --- 8. Resolution ---
        if target_reached:
            notification = self._finish(m, winner=batting)
        elif all_out or overs_done:
            if m.current_innings == 1:
                notification = self._switch_innings(m)
            else:
                notification = self._finish(m, winner=bowling)

        check_invariants(m)
        return DeliveryResult(
            match=m,
            pending=pending_resolutions(m),
            notification=notification,
        )

    # ------------------------------------------------------------------ #
    #  Helpers
    # ------------------------------------------------------------------ #

    def _check_preconditions(self, match: Match, runs: int) -> None:
        if match.status != MatchStatus.LIVE:
            raise PreconditionFailed(
                f"Match {match.id} is {match.status.value}, deliveries need a LIVE match"
            )
        if match.current_striker_id is None:
            raise PreconditionFailed("Select a striker before the next delivery")
        if match.current_bowler_id is None:
            raise PreconditionFailed("Select a bowler before the next delivery")
        if not 0 <= runs <= settings.max_runs_per_delivery:
            raise PreconditionFailed(
                f"Runs must be between 0 and {settings.max_runs_per_delivery}, got {runs}"
            )

    def _credit_maiden(self, m: Match, bowler: Player) -> None:
        completed_over = m.batting_team.legal_balls // BALLS_PER_OVER - 1
        over_balls = [
            b for b in m.innings_balls()
            if b.over_number == completed_over and b.bowler_id == bowler.id
        ]
        if over_balls and sum(b.total_runs for b in over_balls) == 0:
            bowler.maidens += 1

    def _switch_innings(self, m: Match) -> Notification:
        target = m.batting_team.total_runs + 1
        m.current_innings = 2
        m.team_a.is_batting = not m.team_a.is_batting
        m.team_b.is_batting = not m.team_b.is_batting
        m.current_striker_id = None
        m.current_non_striker_id = None
        m.current_bowler_id = None
        logger.info(f"Match {m.id}: innings break, {m.batting_team.name} need {target}")
        return Notification(type=NotificationType.INNINGS_BREAK, message=f"Target: {target}")

    def _finish(self, m: Match, winner: Team) -> Notification:
        m.status = MatchStatus.COMPLETED
        m.winning_team_id = winner.id
        m.man_of_the_match_id = determine_man_of_the_match(m)
        logger.info(
            f"Match {m.id} completed: {winner.name} won "
            f"({m.team_a.name} {m.team_a.total_runs}/{m.team_a.wickets}, "
            f"{m.team_b.name} {m.team_b.total_runs}/{m.team_b.wickets})"
        )
        return Notification(type=NotificationType.WIN, message=f"{winner.name} Wins!")


def _swap_ends(m: Match) -> None:
    m.current_striker_id, m.current_non_striker_id = (
        m.current_non_striker_id,
        m.current_striker_id,
    )


def _roster_player(team: Team, player_id: Optional[str], role: str) -> Player:
    player = team.get_player(player_id)
    if player is None:
        raise InvariantViolation(f"Current {role} {player_id} is not in {team.name}'s roster")
    return player


def check_invariants(match: Match) -> None:
    """Raise InvariantViolation if the snapshot is internally inconsistent."""
    for team in match.teams:
        if not 0 <= team.wickets <= MAX_WICKETS:
            raise InvariantViolation(f"{team.name} has {team.wickets} wickets")
        if team.legal_balls > match.total_overs * BALLS_PER_OVER:
            raise InvariantViolation(f"{team.name} faced {team.legal_balls} legal balls")

    if match.status == MatchStatus.LIVE and match.team_a.is_batting == match.team_b.is_batting:
        raise InvariantViolation("Exactly one team must be batting while the match is live")

    for ball in match.balls:
        for player_id in (ball.striker_id, ball.non_striker_id, ball.bowler_id):
            if player_id is not None and match.get_player(player_id) is None:
                raise InvariantViolation(f"Ball {ball.id} references unknown player {player_id}")

    for innings in (1, 2):
        team = match.batting_team_for(innings)
        if team is None:
            continue
        logged = sum(b.total_runs for b in match.innings_balls(innings))
        if logged != team.total_runs:
            raise InvariantViolation(
                f"Innings {innings}: ball log sums to {logged}, {team.name} has {team.total_runs}"
            )
