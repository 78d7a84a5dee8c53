from __future__ import annotations

import argparse
import asyncio
import logging
import pathlib
from typing import Any, Optional

from pydantic import ValidationError

from .adapters import ApiClient, ApiError, fetch_roster
from .adapters.api import DEFAULT_BASE_URL
from .cache import QueryCache
from .collect import FRC_PRESETS, ConfigError
from .models import AdvancementOptions, ScheduledMatch, TeamRanking
from .readiness import StageNotReadyError, StageReadinessEvaluator
from .selection import filter_teams
from .utils import read_env, write_json
from .wizard import ResultsView, SchedulerWizard

PKG = pathlib.Path(__file__).resolve().parent


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def load_config(path: Optional[str] = None) -> dict:
    cfg_path = pathlib.Path(path or read_env("SCHEDULER_CONFIG") or PKG / "config.yaml")
    import yaml  # type: ignore

    return yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}


def make_client(cfg: dict, transport: Any = None) -> ApiClient:
    api = cfg.get("api", {}) or {}
    base = read_env("SCHEDULER_API_URL") or api.get("base_url") or DEFAULT_BASE_URL
    token = read_env("SCHEDULER_API_TOKEN") or api.get("token")
    return ApiClient(base_url=base, token=token, timeout=float(api.get("timeout", 20)), transport=transport)


def make_cache(cfg: dict) -> QueryCache:
    stale = (cfg.get("cache", {}) or {}).get("stale_seconds")
    return QueryCache(stale_seconds=float(stale) if stale is not None else None)


def format_match(m: ScheduledMatch) -> str:
    red = ", ".join(m.team_numbers("RED")) or "No teams"
    blue = ", ".join(m.team_numbers("BLUE")) or "No teams"
    return f"Match #{m.match_number}  Round: {m.round_number}  [{m.display_status}]\n  Red Alliance:  {red}\n  Blue Alliance: {blue}"


def print_notice(level: str, message: str) -> None:
    print(("❌ " if level == "error" else "✅ ") + message)


def _configure(wizard: SchedulerWizard, args: argparse.Namespace) -> None:
    c = wizard.collector
    if args.teams_per_alliance is not None:
        c.set_teams_per_alliance(args.teams_per_alliance)
    if c.scheduler_type == "swiss" and args.round is not None:
        c.set_round_number(args.round)
    elif c.scheduler_type == "playoff" and args.rounds is not None:
        c.set_number_of_rounds(args.rounds)
    elif c.scheduler_type == "frc":
        manual = {}
        if args.frc_rounds is not None:
            manual["rounds"] = args.frc_rounds
        if args.quality is not None:
            manual["quality_level"] = args.quality
        if args.separation is not None:
            manual["min_match_separation"] = args.separation
        if manual:
            c.set_frc_manual(**manual)
        if args.preset:
            c.choose_preset(args.preset)
        c.set_advanced(args.advanced)


async def _run_wizard(wizard: SchedulerWizard, args: argparse.Namespace) -> int:
    if args.scheduler and not wizard.select_scheduler(args.scheduler):
        print(f"❌ The {args.scheduler} scheduler is not available for a {args.stage_type} stage")
        return 1
    try:
        _configure(wizard, args)
    except ConfigError as e:
        print(f"❌ Invalid configuration: {e}")
        return 1

    print(f"Generate matches for {wizard.stage_name} ({args.stage_type.lower()} stage)")
    outcome = await wizard.generate()
    view = wizard.view
    if not outcome.ok or not isinstance(view, ResultsView):
        return 1

    pages = view.pages
    pages.go_to(args.page)
    print(f"Created {len(pages)} matches")
    for m in pages.items:
        print(format_match(m))
    if pages.total_pages > 1:
        print(f"Page {pages.page} of {pages.total_pages}")
    if args.json:
        write_json(args.json, [m.model_dump(by_alias=True) for m in outcome.matches])
    return 0


async def generate_cmd(args: argparse.Namespace, cfg: dict, transport: Any = None) -> int:
    async with make_client(cfg, transport) as client:
        wizard = SchedulerWizard(
            client,
            make_cache(cfg),
            stage_id=args.stage_id,
            stage_name=args.stage_name or args.stage_id,
            stage_type=args.stage_type,
            tournament_id=args.tournament_id,
            notify=print_notice,
        )
        wizard.open()
        try:
            return await _run_wizard(wizard, args)
        finally:
            wizard.close()


async def readiness_cmd(args: argparse.Namespace, cfg: dict, transport: Any = None) -> int:
    async with make_client(cfg, transport) as client:
        evaluator = StageReadinessEvaluator(client, make_cache(cfg))
        status = await evaluator.evaluate(args.stage_id, args.stage_type)
    r = status.readiness
    print(f"ready: {'yes' if r.ready else 'no'}" + (f" ({r.reason})" if r.reason else ""))
    if r.incomplete_matches is not None:
        print(f"incomplete matches: {r.incomplete_matches}")
    if status.round_progress is not None:
        p = status.round_progress
        print(f"latest round: {p.latest_round_number}  all completed: {'yes' if p.all_matches_completed else 'no'}")
        print(f"next round can be generated: {'yes' if status.can_generate_next_round else 'no'}")
    print(f"end stage / advance: {'enabled' if status.can_advance else 'disabled'}")
    return 0 if status.can_advance else 1


async def teams_cmd(args: argparse.Namespace, cfg: dict, transport: Any = None) -> int:
    async with make_client(cfg, transport) as client:
        teams = await fetch_roster(client, args.scheduler, args.stage_id, args.tournament_id, print_notice)
    shown = filter_teams(teams, args.search or "")
    for t in shown:
        org = f" ({t.organization})" if t.organization else ""
        print(f"{t.team_number}  {t.name}{org}")
    print(f"{len(shown)} of {len(teams)} teams")
    return 0


def format_ranking(r: TeamRanking, position: int) -> str:
    rank = r.rank if r.rank is not None else position
    return (
        f"{rank:>3}. {r.team_number}  {r.team_name}  "
        f"{r.wins}-{r.losses}-{r.ties}  RP {r.ranking_points:g}  diff {r.point_differential:+g}"
    )


async def rankings_cmd(args: argparse.Namespace, cfg: dict, transport: Any = None) -> int:
    async with make_client(cfg, transport) as client:
        evaluator = StageReadinessEvaluator(client, make_cache(cfg), notify=print_notice)
        try:
            rankings = await evaluator.rankings(args.stage_id)
        except ApiError as e:
            print(f"❌ Failed to load rankings: {e.message}")
            return 1
    for i, r in enumerate(rankings, start=1):
        print(format_ranking(r, i))
    print(f"{len(rankings)} teams ranked")
    return 0


async def advance_cmd(args: argparse.Namespace, cfg: dict, transport: Any = None) -> int:
    try:
        options = AdvancementOptions(
            teams_to_advance=args.teams,
            next_stage_id=args.next_stage_id,
        )
    except ValidationError as e:
        print(f"❌ Invalid advancement options: {e.error_count()} error(s)")
        return 1

    async with make_client(cfg, transport) as client:
        evaluator = StageReadinessEvaluator(client, make_cache(cfg), notify=print_notice)
        try:
            preview = await evaluator.preview(args.stage_id, args.teams)
        except ApiError as e:
            print(f"❌ Failed to preview advancement: {e.message}")
            return 1
        print(f"Teams to advance from {args.stage_id}:")
        for i, r in enumerate(preview, start=1):
            print(format_ranking(r, i))
        if args.preview:
            return 0

        try:
            result = await evaluator.advance(args.stage_id, options)
        except StageNotReadyError as e:
            print(f"❌ Stage cannot be ended yet: {e}")
            return 1
        except ApiError:
            return 1
    if result.next_stage is not None:
        print(f"Next stage: {result.next_stage.name or result.next_stage.id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="schedclient", description="Tournament match scheduling client")
    parser.add_argument("--config", help="alternate config.yaml")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd", required=True)

    gen = sub.add_parser("generate", help="generate matches for a stage")
    gen.add_argument("--stage-id", required=True)
    gen.add_argument("--stage-name")
    gen.add_argument("--stage-type", required=True, choices=["SWISS", "PLAYOFF", "FINAL"])
    gen.add_argument("--tournament-id", required=True)
    gen.add_argument("--scheduler", choices=["swiss", "frc", "playoff"])
    gen.add_argument("--teams-per-alliance", type=int, choices=[1, 2, 3])
    gen.add_argument("--round", type=int, help="current Swiss round (0 for the first round)")
    gen.add_argument("--rounds", type=int, choices=[2, 3, 4, 5], help="playoff rounds")
    gen.add_argument("--preset", choices=sorted(FRC_PRESETS))
    gen.add_argument("--frc-rounds", type=int)
    gen.add_argument("--quality", choices=["low", "medium", "high"])
    gen.add_argument("--separation", type=int)
    gen.add_argument("--advanced", action="store_true", help="enable advanced MatchMaker penalties")
    gen.add_argument("--page", type=int, default=1)
    gen.add_argument("--json", help="write generated matches to this file")

    rd = sub.add_parser("readiness", help="check whether a stage can be ended")
    rd.add_argument("--stage-id", required=True)
    rd.add_argument("--stage-type", required=True, choices=["SWISS", "PLAYOFF", "FINAL"])

    tm = sub.add_parser("teams", help="list teams available for selection")
    tm.add_argument("--stage-id", required=True)
    tm.add_argument("--tournament-id", required=True)
    tm.add_argument("--scheduler", default="manual")
    tm.add_argument("--search")

    rk = sub.add_parser("rankings", help="show the current rankings of a stage")
    rk.add_argument("--stage-id", required=True)

    adv = sub.add_parser("advance", help="end a stage and advance its top teams")
    adv.add_argument("--stage-id", required=True)
    adv.add_argument("--teams", type=int, required=True, help="number of teams to advance")
    adv.add_argument("--next-stage-id")
    adv.add_argument("--preview", action="store_true", help="only show who would advance")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    cfg = load_config(args.config)

    if args.cmd == "generate":
        return asyncio.run(generate_cmd(args, cfg))
    elif args.cmd == "readiness":
        return asyncio.run(readiness_cmd(args, cfg))
    elif args.cmd == "rankings":
        return asyncio.run(rankings_cmd(args, cfg))
    elif args.cmd == "advance":
        return asyncio.run(advance_cmd(args, cfg))
    elif args.cmd == "teams":
        return asyncio.run(teams_cmd(args, cfg))
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
