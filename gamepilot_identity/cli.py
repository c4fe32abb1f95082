"""
Command-Line Interface for the GamePilot identity engine
=======================================================

Usage:
    gamepilot-identity recommend --catalog games.json (--identity identity.json | --sessions sessions.json)
    gamepilot-identity mood --sessions sessions.json [--forecast]
    gamepilot-identity identity --sessions sessions.json --user <user_id>

    or

    python -m gamepilot_identity.cli <command> [options]

Input files are JSON with camelCase keys:
    games.json      list of catalog games
    sessions.json   list of game sessions
    identity.json   a player identity (with its sessions)
    users.json      {"userId": [sessions...]} for collaborative scoring

Examples:
    gamepilot-identity recommend --identity me.json --catalog games.json -n 5
    gamepilot-identity recommend --sessions s.json --user me --catalog games.json --format csv
    gamepilot-identity mood --sessions s.json --forecast
"""

import argparse
import json
import logging
import sys
from typing import Any, List, Optional

from .config import LOG_LEVEL, NUM_RECOMMENDATIONS
from .identity import IdentityEngine
from .models import GameSession, PlayerIdentity, RecommendationContext
from .mood import MoodEngine
from .recommender import RecommendationEngine, RecommendationOutput

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog='gamepilot-identity',
        description='🎮 GamePilot - mood-aware game recommendations',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s recommend --identity me.json --catalog games.json -n 5
  %(prog)s mood --sessions sessions.json --forecast

Environment Variables:
  GAMEPILOT_LOG_LEVEL         Log level when --verbose is not given
  GAMEPILOT_MIN_DATA_POINTS   Sessions needed before personalized ranking
        """
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    sub = parser.add_subparsers(dest='command')

    rec = sub.add_parser('recommend', help='Rank catalog games for a player')
    source = rec.add_mutually_exclusive_group(required=True)
    source.add_argument('--identity', type=str, help='Player identity JSON file')
    source.add_argument('--sessions', type=str, help='Session history JSON file')
    rec.add_argument('--user', type=str, default='local-user', help='User id when using --sessions')
    rec.add_argument('--catalog', type=str, required=True, help='Catalog games JSON file')
    rec.add_argument('--users', type=str, default=None, help='Other players\' sessions JSON file')
    rec.add_argument('--mood', type=str, default=None, help='Override the current mood')
    rec.add_argument('--genre', action='append', default=[], help='Restrict to a genre (repeatable)')
    rec.add_argument('--platform', type=str, default=None, help='Restrict to a platform')
    rec.add_argument('--social', type=str, default=None, help='Social context: solo, co-op or pvp')
    rec.add_argument('--time', type=float, default=None, help='Minutes available')
    rec.add_argument('--exclude-recent', action='store_true', help='Skip recently played games')
    rec.add_argument(
        '-n', '--num',
        type=int,
        default=NUM_RECOMMENDATIONS,
        help=f'Number of recommendations to generate (default: {NUM_RECOMMENDATIONS})'
    )
    rec.add_argument(
        '--format',
        type=str,
        choices=['json', 'csv', 'simple'],
        default='json',
        help='Output format (default: json)'
    )
    rec.add_argument('-o', '--output', type=str, default=None, help='Output file path')

    mood = sub.add_parser('mood', help='Infer the current mood from sessions')
    mood.add_argument('--sessions', type=str, required=True, help='Session history JSON file')
    mood.add_argument('--forecast', action='store_true', help='Also forecast the next session')

    ident = sub.add_parser('identity', help='Compute a player identity from sessions')
    ident.add_argument('--sessions', type=str, required=True, help='Session history JSON file')
    ident.add_argument('--user', type=str, required=True, help='User id')
    ident.add_argument('-o', '--output', type=str, default=None, help='Output file path')

    return parser


def load_json(path: str) -> Any:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def load_sessions(path: str) -> List[GameSession]:
    data = load_json(path)
    if isinstance(data, dict):
        data = data.get('sessions', [])
    return [GameSession.from_dict(s) for s in data]


def format_output(result: RecommendationOutput, fmt: str) -> str:
    """Format recommendation output based on requested format."""
    if fmt == 'json':
        return result.to_json(indent=2)

    elif fmt == 'csv':
        lines = ['game_id,title,score,confidence,reasons']
        for rec in result.recommendations:
            title = rec.title.replace('"', '""')
            reasons = '; '.join(rec.reasons).replace('"', '""')
            lines.append(
                f'{rec.game_id},"{title}",{rec.score:.4f},{rec.confidence:.2f},"{reasons}"'
            )
        return '\n'.join(lines)

    elif fmt == 'simple':
        lines = [
            f"🎮 Recommendations for: {result.user_id}",
            f"   Current mood: {result.current_mood}",
        ]
        if result.is_fallback:
            lines.append("   ⚠️  Not enough history yet, ranked by genre affinity")
        lines.extend([
            "",
            "Top {0} Recommendations:".format(len(result.recommendations)),
            "-" * 50,
        ])
        for i, rec in enumerate(result.recommendations, 1):
            lines.append(f"{i:2}. {rec.title or rec.game_id}")
            lines.append(f"    Score: {rec.score:.4f} (confidence {rec.confidence:.2f})")
            lines.append(f"    Why: {'; '.join(rec.reasons)}")
            lines.append(f"    Playtime: ~{rec.estimated_playtime:.0f} min | Difficulty: {rec.difficulty}")
            lines.append("")
        return '\n'.join(lines)

    return result.to_json()


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, LOG_LEVEL.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        stream=sys.stderr,
    )


def write_output(text: str, path: Optional[str]) -> None:
    if path:
        with open(path, 'w', encoding='utf-8') as f:
            f.write(text)
        print(f"✅ Output saved to: {path}")
    else:
        print(text)


def run_recommend(args: argparse.Namespace) -> int:
    if args.identity:
        identity = PlayerIdentity.from_dict(load_json(args.identity))
    else:
        identity = IdentityEngine().compute_identity(args.user, load_sessions(args.sessions))

    catalog = load_json(args.catalog)
    engine = RecommendationEngine()
    if args.users:
        for user_id, sessions in load_json(args.users).items():
            engine.register_user(user_id, [GameSession.from_dict(s) for s in sessions])

    context = RecommendationContext(
        current_mood=args.mood,
        exclude_recently_played=args.exclude_recent,
        genres=[g.lower() for g in args.genre],
        platform=args.platform,
        social_context=args.social,
        time_available=args.time,
    )
    result = engine.recommend(identity, catalog, context=context, count=args.num)
    write_output(format_output(result, args.format), args.output)
    return 0


def run_mood(args: argparse.Namespace) -> int:
    engine = MoodEngine()
    sessions = load_sessions(args.sessions)
    output = {"analysis": engine.analyze_mood(sessions).to_dict()}
    if args.forecast:
        output["forecast"] = engine.forecast_mood(sessions).to_dict()
    print(json.dumps(output, indent=2))
    return 0


def run_identity(args: argparse.Namespace) -> int:
    identity = IdentityEngine().compute_identity(args.user, load_sessions(args.sessions))
    write_output(json.dumps(identity.to_dict(), indent=2), args.output)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    commands = {
        'recommend': run_recommend,
        'mood': run_mood,
        'identity': run_identity,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 1

    try:
        return command(args)
    except (OSError, ValueError) as e:
        print(f"❌ Error: {str(e)}", file=sys.stderr)
        if args.verbose:
            logger.exception("Command %s failed", args.command)
        return 1


if __name__ == '__main__':
    sys.exit(main())
