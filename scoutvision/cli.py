"""Command line entry point for quick scouting queries over CSV exports."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from typing import Iterable, Optional

import pandas as pd

from .cancellation import CancellationToken
from .engine import ScoutEngine
from .entities import Player
from .ingest import load_rows
from .names import RESOLVERS
from .query import players_frame
from .roles import RoleNotFoundError
from .similarity import DISTANCES, METRIC_STRATEGIES, SimilarityOptions


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scouting queries over Wyscout-style CSV exports.")
    parser.add_argument("--players", required=True, help="CSV of per-player season rows.")
    parser.add_argument("--teams", help="CSV of team statistics.")
    parser.add_argument("--shots", help="CSV of shot events.")
    parser.add_argument(
        "--resolver",
        choices=sorted(RESOLVERS),
        default="substring",
        help="How shot rows are matched to player names.",
    )
    parser.add_argument("--timeout", type=float, default=None, help="Abort long searches after N seconds.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("summary", help="Dataset counts and load report.")

    similar = sub.add_parser("similar", help="Players closest to a reference player.")
    similar.add_argument("player")
    similar.add_argument("--team", default=None)
    similar.add_argument("--limit", type=int, default=None)
    similar.add_argument("--distance", choices=DISTANCES, default="euclidean")
    similar.add_argument("--strategy", choices=sorted(METRIC_STRATEGIES), default="position")
    similar.add_argument("--same-position", action="store_true")
    similar.add_argument("--exclude-team", action="store_true")
    similar.add_argument("--min-minutes", type=float, default=None)

    roles = sub.add_parser("roles", help="Best roles for a player.")
    roles.add_argument("player")
    roles.add_argument("--team", default=None)
    roles.add_argument("--cohort", choices=("all", "position", "team", "league"), default="all")
    roles.add_argument("--limit", type=int, default=3)

    rank = sub.add_parser("rank", help="Top players for one role.")
    rank.add_argument("role")
    rank.add_argument("--limit", type=int, default=20)

    clusters = sub.add_parser("clusters", help="K-means groups over a metric list.")
    clusters.add_argument("--metrics", nargs="+", required=True)
    clusters.add_argument("--k", type=int, default=None)
    clusters.add_argument("--seed", type=int, default=None)
    return parser.parse_args(argv)


def _find_player(engine: ScoutEngine, name: str, team: Optional[str]) -> Player:
    player = engine.player(name, team)
    if player is None:
        raise SystemExit(f"Player not found: {name}")
    return player


def _print(frame: pd.DataFrame) -> None:
    if frame.empty:
        print("No results.")
    else:
        print(frame.to_string(index=False))


def run_summary(engine: ScoutEngine, args: argparse.Namespace) -> None:
    stats = engine.dataset_stats()
    report = engine.report
    print(f"Players: {stats.player_count}")
    print(f"Teams:   {stats.team_count} ({report.placeholder_teams} without team stats)")
    print(f"Shots:   {stats.shot_count} ({report.unresolved_shot_players} unmatched)")
    print(f"Leagues: {', '.join(stats.leagues) or '-'}")
    print(f"Seasons: {', '.join(stats.seasons) or '-'}")
    print(f"Metrics: {stats.metric_count}")
    for kind, count in sorted(report.skipped_by_kind().items()):
        print(f"Skipped {kind} rows: {count}")


def run_similar(engine: ScoutEngine, args: argparse.Namespace, cancel: Optional[CancellationToken]) -> None:
    reference = _find_player(engine, args.player, args.team)
    options = SimilarityOptions(
        max_results=args.limit,
        same_position_only=args.same_position,
        exclude_same_team=args.exclude_team,
        min_minutes=args.min_minutes,
        distance=args.distance,
        strategy=args.strategy,
    )
    results = engine.similar_players(reference, options, cancel=cancel)
    frame = players_frame([result.player for result in results])
    if not frame.empty:
        frame.insert(0, "score", [result.score for result in results])
        frame = frame.drop(columns=["player_id"])
    print(f"Similar to {reference.name} ({reference.team_name}):")
    _print(frame)


def run_roles(engine: ScoutEngine, args: argparse.Namespace) -> None:
    player = _find_player(engine, args.player, args.team)
    scores = engine.best_roles(player, cohort_mode=args.cohort, limit=args.limit)
    frame = pd.DataFrame(
        [
            {"role": score.role, "score": score.normalized_score, "percentile": score.percentile}
            for score in scores
        ]
    )
    print(f"Best roles for {player.name} ({player.team_name}):")
    _print(frame)


def run_rank(engine: ScoutEngine, args: argparse.Namespace) -> None:
    try:
        ranked = engine.roles.rank_players(args.role, engine.store.players(), limit=args.limit)
    except RoleNotFoundError:
        raise SystemExit(f"Unknown role: {args.role}") from None
    frame = players_frame([item.player for item in ranked])
    if not frame.empty:
        frame.insert(0, "score", [item.normalized_score for item in ranked])
        frame = frame.drop(columns=["player_id"])
    _print(frame)


def run_clusters(engine: ScoutEngine, args: argparse.Namespace, cancel: Optional[CancellationToken]) -> None:
    config = engine.clusters.default_config(args.metrics)
    overrides = {}
    if args.k is not None:
        overrides["k"] = args.k
    if args.seed is not None:
        overrides["seed"] = args.seed
    config = replace(config, **overrides)
    clusters = engine.cluster_players(args.metrics, config=config, cancel=cancel)
    if not clusters:
        print("Not enough players for the requested number of clusters.")
        return
    for cluster in clusters:
        names = ", ".join(player.name for player in cluster.players[:8])
        more = f" (+{cluster.size - 8})" if cluster.size > 8 else ""
        print(f"[{cluster.cluster_id}] {cluster.label}: {cluster.size} players - {names}{more}")


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    engine = ScoutEngine()
    engine.load(
        load_rows(args.players),
        load_rows(args.teams) if args.teams else (),
        load_rows(args.shots) if args.shots else (),
        resolver=args.resolver,
    )
    cancel = CancellationToken(args.timeout) if args.timeout is not None else None

    if args.command == "summary":
        run_summary(engine, args)
    elif args.command == "similar":
        run_similar(engine, args, cancel)
    elif args.command == "roles":
        run_roles(engine, args)
    elif args.command == "rank":
        run_rank(engine, args)
    elif args.command == "clusters":
        run_clusters(engine, args, cancel)
    return 0


if __name__ == "__main__":
    sys.exit(main())
