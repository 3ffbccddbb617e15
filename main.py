"""
Command-line entry point for crewstats.

Examples:
    python main.py match ABCDEFGH:1234
    python main.py wins 140000000000000000 --role imposter
    python main.py teammates 140000000000000000 --worst
"""

import argparse
import asyncio
import json
import logging
import os
import sys

from src.adapters.database import DatabaseAdapter, rows_to_dicts
from src.config.settings import get_settings
from src.contracts.common import GameRole
from src.contracts.game import PlayerAction
from src.contracts.statistics import MatchStatistics
from src.core.observability import configure_stdlib_json_logging, set_correlation_id
from src.core.services.stats_service import MatchStatsService
from src.core.utils.time_format import format_offset

ROLE_CHOICES = {"crewmate": GameRole.CREWMATE, "imposter": GameRole.IMPOSTER}
ACTION_CHOICES = {"died": PlayerAction.DIED, "exiled": PlayerAction.EXILED}


def setup_logging() -> None:
    """Set up structured JSON logging for both stderr and file."""
    settings = get_settings()

    try:
        os.makedirs("logs", exist_ok=True)
        file_target = os.path.join("logs", "crewstats.log")
    except OSError:
        file_target = "crewstats.log"

    configure_stdlib_json_logging(level=settings.app_log_level, file_target=file_target)

    if not settings.app_debug:
        logging.getLogger("asyncpg").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="crewstats", description="Among Us match statistics")
    sub = parser.add_subparsers(dest="command", required=True)

    match = sub.add_parser("match", help="Statistics and timeline for one match")
    match.add_argument("match_id", help="Game id or CODE:GAMEID")

    wins = sub.add_parser("wins", help="Guild win-rate leaderboard")
    wins.add_argument("guild_id")
    wins.add_argument("--role", choices=sorted(ROLE_CHOICES))

    mates = sub.add_parser("teammates", help="Best (or worst) teammate pairs")
    mates.add_argument("guild_id")
    mates.add_argument("--user", dest="user_id")
    mates.add_argument("--role", choices=sorted(ROLE_CHOICES), default="crewmate")
    mates.add_argument("--worst", action="store_true")

    firsts = sub.add_parser("first-targets", help="Players most often hit first")
    firsts.add_argument("guild_id")
    firsts.add_argument("--user", dest="user_id")
    firsts.add_argument("--action", choices=sorted(ACTION_CHOICES), default="died")

    killed = sub.add_parser("killed-by", help="Crewmate deaths per imposter")
    killed.add_argument("guild_id")
    killed.add_argument("--user", dest="user_id")

    return parser


def render_match(stats: MatchStatistics) -> str:
    """Plain-text match summary with an MM:SS timeline."""
    lines = [
        f"Result: {stats.win_type.name} ({stats.win_faction.value})",
        f"Duration: {format_offset(stats.duration)}",
        f"Winners: {', '.join(stats.winner_names) or '-'}",
        f"Losers: {', '.join(stats.loser_names) or '-'}",
        f"Meetings: {stats.num_meetings}  Killed: {stats.num_killed}  "
        f"Voted off: {stats.num_voted_off}  Disconnects: {stats.num_disconnects}",
    ]
    for entry in stats.events:
        who = entry.player_name
        suffix = f" {who}" if who else ""
        lines.append(f"  {format_offset(entry.offset)} {entry.kind.name}{suffix}")
    return "\n".join(lines)


async def run(args: argparse.Namespace) -> int:
    logger = logging.getLogger(__name__)
    db_adapter = DatabaseAdapter()
    await db_adapter.connect()
    try:
        service = MatchStatsService(db_adapter)

        if args.command == "match":
            stats = await service.get_match_statistics(args.match_id)
            if stats is None:
                logger.error("Invalid match id: %s", args.match_id)
                return 2
            print(render_match(stats))
            return 0

        if args.command == "wins":
            rows = await service.win_leaderboard(
                args.guild_id, ROLE_CHOICES[args.role] if args.role else None
            )
        elif args.command == "teammates":
            lookup = service.worst_teammates if args.worst else service.best_teammates
            rows = await lookup(args.guild_id, ROLE_CHOICES[args.role], user_id=args.user_id)
        elif args.command == "first-targets":
            rows = await service.first_targets(
                args.guild_id, ACTION_CHOICES[args.action], user_id=args.user_id
            )
        else:
            rows = await service.killed_by(args.guild_id, user_id=args.user_id)

        print(json.dumps(rows_to_dicts(rows), indent=2))
        return 0
    finally:
        await db_adapter.disconnect()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    set_correlation_id(f"cli-{args.command}")
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        logging.getLogger(__name__).error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
