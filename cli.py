#!/usr/bin/env python3
"""
CLI for scoring and simulating Scorebox matches
"""
import random
from collections import defaultdict
from dataclasses import replace
from typing import Optional

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.progress import track

from scorebox.config import configure_logging
from scorebox.database import init_db, get_session
from scorebox.engine.formats import apply_format, set_overs_limit, set_squad_size
from scorebox.engine.innings import (
    create_new_match, apply_toss, set_next_batter, set_next_bowler, next_batter_in_order,
    start_next_innings, complete_match,
)
from scorebox.engine.metrics import (
    get_current_run_rate, get_match_result, get_overs_display, get_partnership,
    get_required_run_rate,
)
from scorebox.engine.scoring import apply_delivery, display_for, undo_last_delivery
from scorebox.engine.state import (
    Delivery, DismissalType, ExtraType, MatchFormat, MatchState, MatchStatus, Player,
    TossDecision, TEAM_A, TEAM_B, batting_players, bowling_players, current_inning,
    find_player, team_name,
)
from scorebox.engine.stats import bowler_name, get_batting_card, get_bowler_stats
from scorebox.generators import RosterGenerator
from scorebox.store import MatchStore, new_match_id

console = Console()

# Ball outcome weights for simulated matches
BASE_PROBS = {
    "dot": 0.35,
    "single": 0.30,
    "two": 0.10,
    "three": 0.02,
    "four": 0.12,
    "six": 0.05,
    "wicket": 0.04,
    "wide": 0.015,
    "no_ball": 0.005,
    "leg_bye": 0.01,
}

# Indoor courts: sixes are rare, the back wall pays 2
INDOOR_PROBS = {**BASE_PROBS, "six": 0.01, "wall_bonus": 0.06}

DISMISSAL_TYPES = [
    (DismissalType.BOWLED, 0.20),
    (DismissalType.CAUGHT, 0.50),
    (DismissalType.LBW, 0.15),
    (DismissalType.RUN_OUT, 0.10),
    (DismissalType.STUMPED, 0.05),
]

FORMAT_CHOICE = click.Choice([f.value for f in MatchFormat], case_sensitive=False)


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
def cli(log_level: Optional[str]):
    """Scorebox - Ball-by-ball Cricket Scoring"""
    configure_logging(log_level)


@cli.command()
def init():
    """Initialize the database"""
    console.print("[yellow]Initializing database...[/yellow]")
    init_db()
    console.print("[green]Database initialized successfully![/green]")


def _open_store():
    init_db()
    session = get_session()
    return session, MatchStore(session)


def _load_or_exit(store: MatchStore, match_id: str) -> MatchState:
    state = store.load(match_id)
    if state is None or state.status == MatchStatus.DELETED:
        console.print(f"[red]Match {match_id} not found.[/red]")
        raise SystemExit(1)
    return state


def _save(store: MatchStore, match_id: str, state: MatchState):
    result = store.save(match_id, state)
    if not result.success:
        console.print(f"[red]Could not save match: {result.error}[/red]")
        raise SystemExit(1)


def _resolve_player(players: list[Player], ref: str) -> Optional[Player]:
    """A player by id, or by 1-based roster position."""
    player = find_player(players, ref)
    if player is None and ref.isdigit() and 0 < int(ref) <= len(players):
        player = players[int(ref) - 1]
    return player


@cli.command()
@click.option("--format", "match_format", type=FORMAT_CHOICE, default=MatchFormat.INDOOR.value)
@click.option("--overs", type=int, default=None, help="Custom overs limit (clamped to the format)")
@click.option("--squad", type=int, default=None, help="Players per side (format default if omitted)")
@click.option("--team-a", default=None, help="Team A name")
@click.option("--team-b", default=None, help="Team B name")
@click.option("--demo", is_flag=True, help="Fill both squads with placeholder players")
def new_match(match_format: str, overs: Optional[int], squad: Optional[int], team_a: Optional[str], team_b: Optional[str], demo: bool):
    """Create a draft match"""
    state = create_new_match()
    apply_format(state, MatchFormat(match_format.upper()))
    set_squad_size(state, squad)
    if overs is not None:
        set_overs_limit(state, overs)
    if demo:
        RosterGenerator.fill_rosters(state)
    if team_a:
        state.team_a_name = team_a
    if team_b:
        state.team_b_name = team_b

    session, store = _open_store()
    match_id = new_match_id()
    _save(store, match_id, state)
    session.close()

    console.print(f"[green]Created match {match_id}[/green]")
    console.print(f"  {state.team_a_name} vs {state.team_b_name} - {state.format.value}, {state.overs_limit} overs")


@cli.command()
@click.option("--all", "include_deleted", is_flag=True, help="Include deleted matches")
def list_matches(include_deleted: bool):
    """List saved matches"""
    session, store = _open_store()
    records = store.list_matches(include_deleted=include_deleted)

    if not records:
        console.print("[red]No matches found. Run 'new-match' first.[/red]")
        session.close()
        return

    table = Table(title=f"Matches ({len(records)} total)")
    table.add_column("ID")
    table.add_column("Teams", style="cyan")
    table.add_column("Format")
    table.add_column("Status", style="magenta")
    table.add_column("Result", style="green")

    for record in records:
        table.add_row(
            record.id,
            f"{record.team_a_name} vs {record.team_b_name}",
            record.format.value,
            record.status.value,
            record.result_summary or "",
        )

    console.print(table)
    session.close()


@cli.command()
@click.argument("match_id")
def show(match_id: str):
    """Show the live scoreboard for a match"""
    session, store = _open_store()
    state = _load_or_exit(store, match_id)
    session.close()
    _print_scoreboard(state)


@cli.command()
@click.argument("match_id")
@click.argument("winner", type=click.Choice([TEAM_A, TEAM_B]))
@click.argument("decision", type=click.Choice([d.value for d in TossDecision], case_sensitive=False))
def toss(match_id: str, winner: str, decision: str):
    """Record the toss and start the match"""
    session, store = _open_store()
    state = _load_or_exit(store, match_id)
    if state.has_activity:
        console.print("[red]Toss already played out.[/red]")
        session.close()
        raise SystemExit(1)
    apply_toss(state, winner, TossDecision(decision.upper()))
    _save(store, match_id, state)
    session.close()
    console.print(f"[green]{team_name(state, current_inning(state).batting_team)} will bat first.[/green]")


@cli.command()
@click.argument("match_id")
@click.argument("player")
def batter(match_id: str, player: str):
    """Send in a batter (id or batting-order position)"""
    session, store = _open_store()
    state = _load_or_exit(store, match_id)
    chosen = _resolve_player(batting_players(state), player)
    if chosen is None:
        console.print(f"[red]No batter {player} in {team_name(state, current_inning(state).batting_team)}.[/red]")
        session.close()
        raise SystemExit(1)
    set_next_batter(state, chosen.id)
    _save(store, match_id, state)
    session.close()
    _print_scoreboard(state)


@cli.command()
@click.argument("match_id")
@click.argument("player")
def bowler(match_id: str, player: str):
    """Choose the bowler (id or roster position)"""
    session, store = _open_store()
    state = _load_or_exit(store, match_id)
    chosen = _resolve_player(bowling_players(state), player)
    if chosen is None:
        console.print(f"[red]No bowler {player} in {team_name(state, current_inning(state).bowling_team)}.[/red]")
        session.close()
        raise SystemExit(1)
    set_next_bowler(state, chosen.id)
    _save(store, match_id, state)
    session.close()
    _print_scoreboard(state)


@cli.command()
@click.argument("match_id")
@click.argument("runs", type=int, default=0)
@click.option("--extra", type=click.Choice([e.value for e in ExtraType]), default=None,
              help="Extra type; wide/noball runs include the 1-run penalty")
@click.option("--wicket", is_flag=True, help="Striker is out")
@click.option("--dismissal", type=click.Choice([d.value for d in DismissalType]), default=None)
@click.option("--fielder", default=None, help="Fielder id or roster position")
@click.option("--wall-bonus", is_flag=True, help="Indoor back-wall bonus (2 runs, rotates as 1)")
def score(match_id: str, runs: int, extra: Optional[str], wicket: bool, dismissal: Optional[str],
          fielder: Optional[str], wall_bonus: bool):
    """Score one ball"""
    session, store = _open_store()
    state = _load_or_exit(store, match_id)

    extra_type = ExtraType(extra) if extra else None
    if extra_type in (ExtraType.WIDE, ExtraType.NO_BALL):
        runs = max(runs, 1)
    if wall_bonus:
        runs = 2

    fielder_player = _resolve_player(bowling_players(state), fielder) if fielder else None
    dismissal_type = DismissalType(dismissal) if dismissal else (DismissalType.OTHER if wicket else None)
    delivery = Delivery(
        runs=runs,
        is_legal=extra_type not in (ExtraType.WIDE, ExtraType.NO_BALL),
        is_wicket=wicket,
        extra_type=extra_type,
        dismissal_type=dismissal_type,
        fielder_id=fielder_player.id if fielder_player else None,
        wall_bonus=wall_bonus,
    )
    delivery = replace(delivery, display=display_for(delivery))

    new_state = apply_delivery(state, delivery)
    if new_state is state:
        console.print("[red]Ball not scored: set striker, non-striker and bowler first (or the innings is over).[/red]")
        session.close()
        raise SystemExit(1)

    _save(store, match_id, new_state)
    session.close()
    _print_scoreboard(new_state)


@cli.command()
@click.argument("match_id")
def undo(match_id: str):
    """Undo the last ball of the current innings"""
    session, store = _open_store()
    state = _load_or_exit(store, match_id)
    if not current_inning(state).deliveries:
        console.print("[yellow]Nothing to undo.[/yellow]")
        session.close()
        return
    state = undo_last_delivery(state)
    _save(store, match_id, state)
    session.close()
    _print_scoreboard(state)


@cli.command()
@click.argument("match_id")
def next_innings(match_id: str):
    """Start the second innings"""
    session, store = _open_store()
    state = _load_or_exit(store, match_id)
    if state.current_innings + 1 >= state.innings_count:
        console.print("[red]No innings left to start.[/red]")
        session.close()
        raise SystemExit(1)
    start_next_innings(state)
    _save(store, match_id, state)
    session.close()
    _print_scoreboard(state)


def _print_scoreboard(state: MatchState):
    """Print the live score panel and the current innings scorecard"""
    innings = current_inning(state)
    batters = batting_players(state)

    lines = [
        f"[bold]{team_name(state, innings.batting_team)}[/bold] {innings.total_runs}/{innings.wickets} "
        f"({get_overs_display(innings.total_balls)}/{innings.overs_limit} ov)  "
        f"RR {get_current_run_rate(innings):.2f}",
    ]
    if innings.target is not None:
        required = get_required_run_rate(innings)
        lines.append(f"Target {innings.target}" + (f"  RRR {required:.2f}" if required is not None else ""))

    striker = find_player(batters, state.striker_id)
    non_striker = find_player(batters, state.non_striker_id)
    current_bowler = find_player(bowling_players(state), state.bowler_id)
    partnership = get_partnership(state)
    lines.append(
        f"Striker: {striker.name if striker else '-'}*  Non-striker: {non_striker.name if non_striker else '-'}  "
        f"Bowler: {current_bowler.name if current_bowler else '-'}"
    )
    lines.append(f"Partnership: {partnership.runs} ({partnership.balls})")

    result = get_match_result(state)
    if result:
        lines.append(f"[bold green]{result}[/bold green]")

    console.print(Panel("\n".join(lines), title=f"{state.team_a_name} vs {state.team_b_name} - {state.format.value}"))
    _print_scorecard(state)


def _print_scorecard(state: MatchState):
    """Print innings scorecard"""
    innings = current_inning(state)

    # Batting
    bat_table = Table(title="Batting")
    bat_table.add_column("Batter", style="cyan")
    bat_table.add_column("Dismissal")
    bat_table.add_column("R", justify="right")
    bat_table.add_column("B", justify="right")
    bat_table.add_column("4s", justify="right")
    bat_table.add_column("6s", justify="right")
    bat_table.add_column("SR", justify="right")

    for row in get_batting_card(state):
        bat_table.add_row(
            row.name,
            row.dismissal,
            str(row.runs),
            str(row.balls),
            str(row.fours),
            str(row.sixes),
            f"{row.strike_rate:.1f}",
        )

    console.print(bat_table)

    # Bowling
    bowl_table = Table(title="Bowling")
    bowl_table.add_column("Bowler", style="magenta")
    bowl_table.add_column("O", justify="right")
    bowl_table.add_column("M", justify="right")
    bowl_table.add_column("R", justify="right")
    bowl_table.add_column("W", justify="right")
    bowl_table.add_column("Econ", justify="right")

    for bowler_id, spell in get_bowler_stats(innings).items():
        bowl_table.add_row(
            bowler_name(state, innings, bowler_id),
            spell.overs_display,
            str(spell.maidens),
            str(spell.runs_conceded),
            str(spell.wickets),
            f"{spell.economy:.1f}",
        )

    console.print(bowl_table)
    extras = innings.extras
    console.print(f"Extras: {extras.total} (w {extras.wides}, nb {extras.no_balls}, b {extras.byes}, lb {extras.leg_byes})")


# Simulation

def _random_delivery(state: MatchState) -> Delivery:
    probs = INDOOR_PROBS if state.format == MatchFormat.INDOOR else BASE_PROBS
    outcome = random.choices(list(probs), weights=list(probs.values()), k=1)[0]

    if outcome == "wicket":
        kinds = [k for k, _ in DISMISSAL_TYPES]
        weights = [w for _, w in DISMISSAL_TYPES]
        kind = random.choices(kinds, weights=weights, k=1)[0]
        fielder = None
        if kind in (DismissalType.CAUGHT, DismissalType.RUN_OUT, DismissalType.STUMPED):
            fielder = random.choice(bowling_players(state)).id
        delivery = Delivery(is_wicket=True, dismissal_type=kind, fielder_id=fielder)
    elif outcome == "wide":
        delivery = Delivery(runs=1, is_legal=False, extra_type=ExtraType.WIDE)
    elif outcome == "no_ball":
        delivery = Delivery(runs=1 + random.choice([0, 0, 1, 4]), is_legal=False, extra_type=ExtraType.NO_BALL)
    elif outcome == "leg_bye":
        delivery = Delivery(runs=1, extra_type=ExtraType.LEG_BYE)
    elif outcome == "wall_bonus":
        delivery = Delivery(runs=2, wall_bonus=True)
    else:
        runs = {"dot": 0, "single": 1, "two": 2, "three": 3, "four": 4, "six": 6}[outcome]
        delivery = Delivery(runs=runs)

    return replace(delivery, display=display_for(delivery))


def _fill_crease(state: MatchState, last_bowler: Optional[str]) -> bool:
    """Bring in batters and a bowler as needed. False when the crease cannot be filled."""
    batters = batting_players(state)
    while not state.striker_id or not state.non_striker_id:
        if state.format == MatchFormat.INDOOR:
            next_id = next_batter_in_order(state)
        else:
            at_crease = {state.striker_id, state.non_striker_id}
            next_id = next((p.id for p in batters if not p.is_out and p.id not in at_crease), None)
        if next_id is None:
            return False
        set_next_batter(state, next_id)

    if not state.bowler_id:
        options = [p for p in bowling_players(state) if p.id != last_bowler] or bowling_players(state)
        if not options:
            return False
        set_next_bowler(state, random.choice(options).id)
    return True


def simulate_match(match_format: MatchFormat, overs: Optional[int] = None) -> MatchState:
    """Play a whole match ball by ball with random outcomes and generated rosters"""
    state = create_new_match()
    apply_format(state, match_format)
    set_squad_size(state, None)
    if overs is not None:
        set_overs_limit(state, overs)
    RosterGenerator.fill_rosters(state)
    apply_toss(state, random.choice([TEAM_A, TEAM_B]), random.choice(list(TossDecision)))

    while True:
        last_bowler = None
        while not current_inning(state).completed:
            if not _fill_crease(state, last_bowler):
                break
            bowling_now = state.bowler_id
            state = apply_delivery(state, _random_delivery(state))
            if state.bowler_id is None:
                last_bowler = bowling_now

        if state.current_innings + 1 >= state.innings_count:
            break
        _print_innings_summary(state)
        start_next_innings(state)

    _print_innings_summary(state)
    complete_match(state)
    return state


def _print_innings_summary(state: MatchState):
    innings = current_inning(state)
    console.print(Panel(
        f"[bold]{team_name(state, innings.batting_team)}[/bold] {innings.total_runs}/{innings.wickets} "
        f"({get_overs_display(innings.total_balls)} overs) - RR: {get_current_run_rate(innings):.2f}",
        title=f"Innings {state.current_innings + 1}",
    ))
    _print_scorecard(state)


@cli.command()
@click.option("--format", "match_format", type=FORMAT_CHOICE, default=MatchFormat.T20.value)
@click.option("--overs", type=int, default=None, help="Custom overs limit")
@click.option("--seed", type=int, default=None, help="Random seed for a repeatable match")
@click.option("--save", is_flag=True, help="Store the finished match")
def simulate(match_format: str, overs: Optional[int], seed: Optional[int], save: bool):
    """Simulate a match between two generated teams"""
    if seed is not None:
        RosterGenerator.seed(seed)

    console.print("\n[yellow]Simulating match...[/yellow]\n")
    state = simulate_match(MatchFormat(match_format.upper()), overs)

    console.print(f"\n[bold green]{get_match_result(state) or 'No result'}[/bold green]")

    if save:
        session, store = _open_store()
        match_id = new_match_id()
        _save(store, match_id, state)
        session.close()
        console.print(f"[green]Saved as {match_id}[/green]")


@cli.command()
@click.option("--matches", default=100, help="Number of matches to simulate")
@click.option("--format", "match_format", type=FORMAT_CHOICE, default=MatchFormat.T20.value)
def benchmark(matches: int, match_format: str):
    """Run multiple simulations to check score ranges and run conservation"""
    fmt = MatchFormat(match_format.upper())
    stats = defaultdict(list)
    mismatches = 0

    console.print(f"[yellow]Running {matches} simulations...[/yellow]")

    quiet = console.quiet
    console.quiet = True
    try:
        for _ in track(range(matches), description="Simulating...", console=Console()):
            state = simulate_match(fmt)
            for innings in state.innings:
                stats["scores"].append(innings.total_runs)
                stats["wickets"].append(innings.wickets)
                penalty = 3 * innings.wickets if fmt == MatchFormat.INDOOR else 0
                if innings.total_runs != sum(d.runs for d in innings.deliveries) - penalty:
                    mismatches += 1
            first, second = state.innings
            stats["chasing_wins"].append(1 if second.total_runs > first.total_runs else 0)
    finally:
        console.quiet = quiet

    console.print(Panel("[bold]Simulation Statistics[/bold]"))
    scores = stats["scores"]
    console.print(f"[cyan]Average Score:[/cyan] {sum(scores) / len(scores):.1f}")
    console.print(f"[cyan]Min Score:[/cyan] {min(scores)}")
    console.print(f"[cyan]Max Score:[/cyan] {max(scores)}")
    console.print(f"[cyan]Average Wickets:[/cyan] {sum(stats['wickets']) / len(stats['wickets']):.1f}")
    chase_win_pct = sum(stats["chasing_wins"]) / len(stats["chasing_wins"]) * 100
    console.print(f"[cyan]Chasing Win %:[/cyan] {chase_win_pct:.1f}%")

    if mismatches:
        console.print(f"[red]{mismatches} innings broke run conservation![/red]")
    else:
        console.print("[green]Run conservation held for every innings.[/green]")


if __name__ == "__main__":
    cli()
