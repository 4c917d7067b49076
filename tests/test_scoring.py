"""
Tests for the delivery transition: runs, extras, strike rotation, overs, wickets and
automatic end of innings.

Run with: pytest tests/test_scoring.py -v
"""
import pytest

from scorebox.engine.innings import set_keeper, set_next_batter, start_next_innings
from scorebox.engine.metrics import get_match_result
from scorebox.engine.scoring import apply_delivery, dismissal_text, display_for, rotation_runs, undo_last_delivery
from scorebox.engine.state import (
    Delivery, DismissalType, ExtraType, MatchFormat, TEAM_B, batting_players, current_inning,
    find_player,
)

from conftest import build_match, play


def batter(state, player_id):
    return find_player(batting_players(state), player_id)


def dots(count):
    return [Delivery(runs=0) for _ in range(count)]


class TestRunsOffTheBat:
    """Legal deliveries credit the innings and the striker"""

    def test_four_credits_innings_and_batter(self, t20_match):
        state = apply_delivery(t20_match, Delivery(runs=4))
        innings = current_inning(state)

        assert innings.total_runs == 4
        assert innings.total_balls == 1
        assert batter(state, "a1").runs == 4
        assert batter(state, "a1").fours == 1
        assert batter(state, "a1").balls == 1
        assert state.striker_id == "a1", "A boundary must not swap strike"

    def test_six_counts_as_six(self, t20_match):
        state = apply_delivery(t20_match, Delivery(runs=6))
        assert batter(state, "a1").sixes == 1
        assert batter(state, "a1").fours == 0
        assert state.striker_id == "a1"

    def test_input_state_is_not_mutated(self, t20_match):
        apply_delivery(t20_match, Delivery(runs=4))
        assert current_inning(t20_match).total_runs == 0
        assert current_inning(t20_match).deliveries == []
        assert not t20_match.has_activity

    def test_crease_is_stamped_on_delivery(self, t20_match):
        state = apply_delivery(t20_match, Delivery(runs=1))
        stamped = current_inning(state).deliveries[-1]
        assert (stamped.batter_id, stamped.non_striker_id, stamped.bowler_id) == ("a1", "a2", "b1")
        assert state.has_activity

    def test_caller_crease_ids_are_replaced(self, t20_match):
        state = apply_delivery(t20_match, Delivery(runs=4, batter_id="a5", non_striker_id="a6", bowler_id="b9"))
        stamped = current_inning(state).deliveries[-1]
        assert (stamped.batter_id, stamped.non_striker_id, stamped.bowler_id) == ("a1", "a2", "b1")
        assert batter(state, "a1").runs == 4, "Runs go to the striker at the crease"


class TestStrikeRotation:
    """Odd runs swap the batters; boundaries and even runs do not"""

    def test_single_swaps(self, t20_match):
        state = apply_delivery(t20_match, Delivery(runs=1))
        assert (state.striker_id, state.non_striker_id) == ("a2", "a1")

    def test_three_swaps(self, t20_match):
        state = apply_delivery(t20_match, Delivery(runs=3))
        assert state.striker_id == "a2"

    def test_two_does_not_swap(self, t20_match):
        state = apply_delivery(t20_match, Delivery(runs=2))
        assert state.striker_id == "a1"

    def test_wall_bonus_scores_two_and_swaps_once(self, indoor_match):
        state = apply_delivery(indoor_match, Delivery(runs=2, wall_bonus=True))
        assert current_inning(state).total_runs == 2
        assert batter(state, "a1").runs == 2
        assert state.striker_id == "a2", "Wall bonus rotates like a single"

    def test_rotation_override(self, t20_match):
        delivery = Delivery(runs=4, runs_for_rotation=1)
        assert rotation_runs(delivery) == 1
        state = apply_delivery(t20_match, delivery)
        assert batter(state, "a1").runs == 4
        assert state.striker_id == "a2"


class TestExtras:
    """Wides and no-balls carry a 1-run penalty inside runs; byes are not the batter's"""

    def test_wide_penalty_only(self, t20_match):
        state = apply_delivery(t20_match, Delivery(runs=1, is_legal=False, extra_type=ExtraType.WIDE))
        innings = current_inning(state)
        assert innings.total_runs == 1
        assert innings.extras.wides == 1
        assert innings.total_balls == 0, "A wide is not a legal ball"
        assert batter(state, "a1").balls == 0
        assert batter(state, "a1").runs == 0
        assert state.striker_id == "a1"

    def test_wide_never_rotates(self, t20_match):
        state = apply_delivery(t20_match, Delivery(runs=2, is_legal=False, extra_type=ExtraType.WIDE))
        assert current_inning(state).total_runs == 2
        assert state.striker_id == "a1"

    def test_no_ball_credits_runs_off_the_bat(self, t20_match):
        state = apply_delivery(t20_match, Delivery(runs=5, is_legal=False, extra_type=ExtraType.NO_BALL))
        innings = current_inning(state)
        assert innings.total_runs == 5
        assert innings.extras.no_balls == 1
        assert batter(state, "a1").runs == 4
        assert batter(state, "a1").fours == 1
        assert batter(state, "a1").balls == 0
        assert state.striker_id == "a1"

    def test_no_ball_single_swaps(self, t20_match):
        state = apply_delivery(t20_match, Delivery(runs=2, is_legal=False, extra_type=ExtraType.NO_BALL))
        assert state.striker_id == "a2"

    def test_bye_counts_ball_not_runs_for_batter(self, t20_match):
        state = apply_delivery(t20_match, Delivery(runs=1, extra_type=ExtraType.BYE))
        innings = current_inning(state)
        assert innings.extras.byes == 1
        assert innings.total_balls == 1
        assert batter(state, "a1").runs == 0
        assert batter(state, "a1").balls == 1
        assert state.striker_id == "a2", "Batters ran a bye, so they crossed"

    def test_leg_bye_four_is_not_a_boundary_for_batter(self, t20_match):
        state = apply_delivery(t20_match, Delivery(runs=4, extra_type=ExtraType.LEG_BYE))
        assert current_inning(state).extras.leg_byes == 1
        assert batter(state, "a1").fours == 0


class TestOverBoundary:
    """The sixth legal ball swaps strike and clears the bowler"""

    def test_sixth_dot_ends_over(self, t20_match):
        state = play(t20_match, *dots(5))
        assert state.bowler_id == "b1"

        state = apply_delivery(state, Delivery(runs=0))
        assert current_inning(state).total_balls == 6
        assert state.bowler_id is None
        assert (state.striker_id, state.non_striker_id) == ("a2", "a1")

    def test_single_off_last_ball_keeps_striker(self, t20_match):
        state = play(t20_match, *dots(5))
        state = apply_delivery(state, Delivery(runs=1))
        assert (state.striker_id, state.non_striker_id) == ("a1", "a2"), \
            "Single then over change should cancel out"
        assert state.bowler_id is None

    def test_wide_does_not_end_over(self, t20_match):
        state = play(t20_match, *dots(5))
        state = apply_delivery(state, Delivery(runs=1, is_legal=False, extra_type=ExtraType.WIDE))
        assert current_inning(state).total_balls == 5
        assert state.bowler_id == "b1"


class TestPreconditions:
    """Invalid calls hand back the same state"""

    def test_no_bowler_is_ignored(self, t20_match):
        state = play(t20_match, *dots(6))
        assert state.bowler_id is None
        assert apply_delivery(state, Delivery(runs=4)) is state

    def test_no_striker_is_ignored(self, t20_match):
        t20_match.striker_id = None
        assert apply_delivery(t20_match, Delivery(runs=1)) is t20_match

    def test_completed_innings_is_ignored(self, t20_match):
        current_inning(t20_match).completed = True
        assert apply_delivery(t20_match, Delivery(runs=1)) is t20_match


class TestWickets:
    """Dismissals mark the striker out and open the striker's end"""

    def test_t20_wicket(self, t20_match):
        state = apply_delivery(t20_match, Delivery(
            is_wicket=True, dismissal="Bowled", dismissal_type=DismissalType.BOWLED,
        ))
        innings = current_inning(state)
        out = batter(state, "a1")

        assert innings.wickets == 1
        assert innings.total_runs == 0
        assert out.is_out
        assert out.dismissal == "Bowled"
        assert out.dismissal_details.bowler_name == "B1"
        assert out.outs_count == 0, "Only Indoor counts repeat outs"
        assert state.striker_id is None
        assert state.non_striker_id == "a2"

    def test_fielder_recorded_in_details(self, t20_match):
        state = apply_delivery(t20_match, Delivery(
            is_wicket=True, dismissal="Caught", dismissal_type=DismissalType.CAUGHT, fielder_id="b7",
        ))
        assert batter(state, "a1").dismissal_details.fielder_name == "B7"

    def test_default_dismissal_text(self, t20_match):
        state = apply_delivery(t20_match, Delivery(is_wicket=True))
        assert batter(state, "a1").dismissal == "out"
        assert batter(state, "a1").dismissal_details is None

    def test_indoor_wicket_costs_three_runs(self, indoor_match):
        state = apply_delivery(indoor_match, Delivery(is_wicket=True))
        innings = current_inning(state)
        out = batter(state, "a1")

        assert innings.wickets == 1
        assert innings.total_runs == -3
        assert out.outs_count == 1
        assert out.is_out
        assert state.striker_id is None
        assert state.non_striker_id == "a2"
        assert state.batting_cycle_dismissals == 1


class TestDismissalText:
    """Scorecard lines built when the scorer only picks a dismissal type"""

    @pytest.mark.parametrize("kind,fielder_id,expected", [
        (DismissalType.BOWLED, None, "b B1"),
        (DismissalType.CAUGHT, "b3", "c B3 b B1"),
        (DismissalType.CAUGHT, "b11", "c †B11 b B1"),
        (DismissalType.CAUGHT, None, "c & b B1"),
        (DismissalType.LBW, None, "lbw b B1"),
        (DismissalType.STUMPED, None, "st †B11 b B1"),
        (DismissalType.RUN_OUT, "b4", "run out (B4)"),
        (DismissalType.RUN_OUT, None, "run out"),
        (DismissalType.HIT_WICKET, None, "hit wicket b B1"),
        (DismissalType.OTHER, None, "Other"),
    ])
    def test_line_for_each_type(self, t20_match, kind, fielder_id, expected):
        set_keeper(t20_match, TEAM_B, "b11")
        state = apply_delivery(t20_match, Delivery(is_wicket=True, dismissal_type=kind, fielder_id=fielder_id))
        assert batter(state, "a1").dismissal == expected

    def test_stumping_without_keeper_names_fielder(self, t20_match):
        state = apply_delivery(t20_match, Delivery(
            is_wicket=True, dismissal_type=DismissalType.STUMPED, fielder_id="b5",
        ))
        assert batter(state, "a1").dismissal == "st †B5 b B1"

    def test_given_text_wins(self, t20_match):
        state = apply_delivery(t20_match, Delivery(
            is_wicket=True, dismissal="retired out", dismissal_type=DismissalType.OTHER,
        ))
        assert batter(state, "a1").dismissal == "retired out"

    def test_helper_matches_recorded_text(self, t20_match):
        set_keeper(t20_match, TEAM_B, "b2")
        state = apply_delivery(t20_match, Delivery(
            is_wicket=True, dismissal_type=DismissalType.CAUGHT, fielder_id="b2",
        ))
        innings = current_inning(state)
        assert dismissal_text(state, innings, innings.deliveries[-1]) == "c †B2 b B1"

    def test_undo_restores_earlier_generated_text(self):
        state = build_match(MatchFormat.INDOOR, squad_size=2, overs=2)
        state = apply_delivery(state, Delivery(is_wicket=True, dismissal_type=DismissalType.BOWLED))
        set_next_batter(state, "a1")
        state = apply_delivery(state, Delivery(is_wicket=True, dismissal_type=DismissalType.LBW))
        assert batter(state, "a1").dismissal == "lbw b B1"

        state = undo_last_delivery(state)
        assert batter(state, "a1").dismissal == "b B1", "Earlier dismissal should come back from the log"


class TestIndoorCycle:
    """Once every batter has been out, the whole side is back in"""

    def test_cycle_resets_after_every_player_out(self):
        state = build_match(MatchFormat.INDOOR, squad_size=3, overs=2)
        order = list(state.batting_order)
        assert order == ["a1", "a2", "a3"]

        state = apply_delivery(state, Delivery(is_wicket=True))  # a1
        state = set_next_batter(state, "a3")
        state = apply_delivery(state, Delivery(is_wicket=True))  # a3
        assert state.batting_cycle_dismissals == 2

        # a1 returns while still out: Indoor allows it
        state = set_next_batter(state, "a1")
        assert state.striker_id == "a1"
        state = apply_delivery(state, Delivery(runs=1))
        assert state.striker_id == "a2"
        state = apply_delivery(state, Delivery(is_wicket=True))  # a2 closes the cycle

        innings = current_inning(state)
        assert state.batting_cycle_dismissals == 0
        assert all(not p.is_out for p in batting_players(state)), "Cycle reset should clear every out flag"
        assert [p.outs_count for p in batting_players(state)] == [1, 1, 1]
        assert state.batting_order == order
        assert innings.wickets == 3
        assert innings.total_runs == 1 - 9
        assert not innings.completed, "Indoor innings only end on overs"


class TestAutoTermination:
    """Innings close themselves on overs, target or all out"""

    def test_overs_limit_completes_and_opens_chase(self):
        state = build_match(MatchFormat.T20, overs=1)
        state = play(state, *[Delivery(runs=1) for _ in range(6)])

        first = state.innings[0]
        assert first.completed
        assert first.total_runs == 6
        assert len(state.innings) == 2
        chase = state.innings[1]
        assert chase.batting_team == TEAM_B
        assert chase.target == 7
        assert chase.overs_limit == 1
        assert state.current_innings == 0, "The chase is opened, not started"

    def test_target_reached_completes_and_reports_result(self):
        state = build_match(MatchFormat.T20, overs=1)
        state = play(state, *[Delivery(runs=1) for _ in range(6)])
        state = start_next_innings(state)
        assert len(state.innings) == 2, "Chase innings must be reused, not duplicated"

        state = play(state, Delivery(runs=4), Delivery(runs=4))
        chase = current_inning(state)
        assert chase.total_runs == 8
        assert chase.completed
        assert get_match_result(state) == "Team B won by 10 wickets (4 balls remaining)"

    def test_all_out_completes_innings(self):
        state = build_match(MatchFormat.T20, squad_size=3)
        state = apply_delivery(state, Delivery(is_wicket=True))
        state = set_next_batter(state, "a3")
        state = apply_delivery(state, Delivery(is_wicket=True))

        assert current_inning(state).completed
        assert len(state.innings) == 1, "All out does not open the chase automatically"

    def test_indoor_never_all_out(self):
        state = build_match(MatchFormat.INDOOR, squad_size=3, overs=2)
        state = apply_delivery(state, Delivery(is_wicket=True))
        state = set_next_batter(state, "a3")
        state = apply_delivery(state, Delivery(is_wicket=True))
        assert not current_inning(state).completed


class TestRunConservation:
    """Innings total always equals delivery runs less the Indoor wicket penalty"""

    MIXED = [
        Delivery(runs=1), Delivery(runs=4), Delivery(runs=1, is_legal=False, extra_type=ExtraType.WIDE),
        Delivery(is_wicket=True), Delivery(runs=3, is_legal=False, extra_type=ExtraType.NO_BALL),
        Delivery(runs=2, extra_type=ExtraType.LEG_BYE), Delivery(runs=6), Delivery(runs=0),
        Delivery(is_wicket=True, dismissal="Caught"), Delivery(runs=1, extra_type=ExtraType.BYE),
        Delivery(runs=2), Delivery(runs=3),
    ]

    def test_t20(self, t20_match):
        state = play(t20_match, *self.MIXED)
        innings = current_inning(state)
        assert innings.total_runs == sum(d.runs for d in innings.deliveries)
        assert innings.wickets == sum(1 for d in innings.deliveries if d.is_wicket)
        assert innings.total_balls == sum(1 for d in innings.deliveries if d.is_legal)

    def test_indoor(self, indoor_match):
        state = play(indoor_match, *(self.MIXED + [Delivery(runs=2, wall_bonus=True)]))
        innings = current_inning(state)
        assert innings.total_runs == sum(d.runs for d in innings.deliveries) - 3 * innings.wickets
        assert innings.wickets == 2


class TestDisplayLabels:
    def test_labels(self):
        assert display_for(Delivery(runs=4)) == "4"
        assert display_for(Delivery(runs=1, is_legal=False, extra_type=ExtraType.WIDE)) == "Wd"
        assert display_for(Delivery(runs=3, is_legal=False, extra_type=ExtraType.NO_BALL)) == "Nb+2"
        assert display_for(Delivery(runs=2, extra_type=ExtraType.LEG_BYE)) == "Lb2"
        assert display_for(Delivery(runs=2, wall_bonus=True)) == "W+1"
        assert display_for(Delivery(is_wicket=True)) == "W"
