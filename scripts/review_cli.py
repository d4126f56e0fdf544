#!/usr/bin/env python3
"""
Problem Review Command Line Interface

Drive the spaced repetition review engine from the terminal. Every command
prints its result as JSON.

Setup:
    1. Ensure PostgreSQL and Redis are running, or point DATABASE_URL at a
       local SQLite file (e.g. sqlite+aiosqlite:///./review.db) and pass
       --no-cache
    2. Copy .env.example to .env in the project root and adjust
    3. python scripts/review_cli.py init-db

Usage:
    # Create tables
    python review_cli.py init-db

    # Load solved problems exported from the judge (JSON list of objects
    # with problem_id, title, difficulty, topics)
    python review_cli.py load-solved alice solved.json

    # Track problems
    python review_cli.py add alice two-sum "Two Sum" Easy --topics array hash-table
    python review_cli.py import alice
    python review_cli.py recommend alice --limit 5

    # Review
    python review_cli.py due alice
    python review_cli.py review alice two-sum 4 --insight "complement lookup"
    python review_cli.py history alice two-sum

    # Analytics
    python review_cli.py stats alice
    python review_cli.py weak alice

Environment Variables (set in .env or environment):
    - DATABASE_URL or POSTGRES_*: Database connection
    - REDIS_URL: Read cache (ignored with --no-cache)
    - DEBUG: Enable SQL echo
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Add backend to path for imports (must be before review_engine.* imports)
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from dotenv import load_dotenv

# Load environment variables from project root .env
project_root = Path(__file__).parent.parent
load_dotenv(project_root / ".env")

# App imports (after sys.path setup and env loading)
from pydantic import BaseModel
from sqlalchemy import select

from review_engine.db.base import async_session_maker, engine, init_db
from review_engine.db.models_review import SolvedProblem
from review_engine.db.redis import close_redis_pool
from review_engine.enums.review import Difficulty
from review_engine.errors import ServiceError
from review_engine.services.review.api import create_review_api

logger = logging.getLogger("review_cli")


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    # Reduce noise from SQLAlchemy (unless --debug)
    if not debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)


def print_json(result: Any) -> None:
    """Print a model, a list of models or plain data as indented JSON."""
    if isinstance(result, BaseModel):
        data = result.model_dump(mode="json")
    elif isinstance(result, list):
        data = [r.model_dump(mode="json") if isinstance(r, BaseModel) else r for r in result]
    else:
        data = result
    print(json.dumps(data, indent=2))


# =============================================================================
# Solved Problem Loading
# =============================================================================


async def load_solved(user_id: str, path: Path) -> dict[str, int]:
    """
    Load solved problems from a JSON export into the registry table.

    Problems already present for the user are left untouched.
    """
    entries = json.loads(path.read_text())

    async with async_session_maker() as session:
        result = await session.execute(
            select(SolvedProblem.problem_id).where(SolvedProblem.user_id == user_id)
        )
        existing = set(result.scalars().all())

        added = 0
        for entry in entries:
            problem_id = entry["problem_id"]
            if problem_id in existing:
                continue
            session.add(
                SolvedProblem(
                    user_id=user_id,
                    problem_id=problem_id,
                    title=entry.get("title") or problem_id,
                    difficulty=Difficulty(entry.get("difficulty", "Medium")).value,
                    topics=entry.get("topics") or [],
                )
            )
            existing.add(problem_id)
            added += 1
        await session.commit()

    logger.info(f"Loaded {added} solved problems for {user_id} from {path}")
    return {"loaded": added, "total": len(entries)}


# =============================================================================
# CLI Setup
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        description="Spaced repetition review of solved coding problems",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--no-cache", action="store_true", help="Bypass the Redis read cache"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("init-db", help="Create database tables")

    load_parser = subparsers.add_parser(
        "load-solved", help="Load solved problems from a JSON export"
    )
    load_parser.add_argument("user_id")
    load_parser.add_argument("path", type=Path, help="JSON file with solved problems")

    add_parser = subparsers.add_parser("add", help="Start tracking a problem")
    add_parser.add_argument("user_id")
    add_parser.add_argument("problem_id", help="Problem slug, e.g. two-sum")
    add_parser.add_argument("title")
    add_parser.add_argument("difficulty", help="Easy, Medium or Hard")
    add_parser.add_argument("--topics", nargs="*", default=None)
    add_parser.add_argument(
        "--confidence", type=int, default=None, help="Initial rating 1-5 (default: 3)"
    )
    add_parser.add_argument("--notes", default=None)

    review_parser = subparsers.add_parser("review", help="Submit a confidence rating")
    review_parser.add_argument("user_id")
    review_parser.add_argument("problem_id")
    review_parser.add_argument("confidence", type=int, help="Rating 1-5")
    review_parser.add_argument("--notes", default=None)
    review_parser.add_argument(
        "--mistake", action="append", dest="mistake_patterns", default=None,
        help="Mistake pattern (repeatable, replaces stored list)",
    )
    review_parser.add_argument(
        "--insight", action="append", dest="key_insights", default=None,
        help="Key insight (repeatable, replaces stored list)",
    )

    due_parser = subparsers.add_parser("due", help="Show the due queue")
    due_parser.add_argument("user_id")
    due_parser.add_argument("--limit", type=int, default=None)

    stats_parser = subparsers.add_parser("stats", help="Show review statistics")
    stats_parser.add_argument("user_id")

    weak_parser = subparsers.add_parser("weak", help="Show weak topics")
    weak_parser.add_argument("user_id")
    weak_parser.add_argument("--limit", type=int, default=None)

    import_parser = subparsers.add_parser(
        "import", help="Track every solved problem not tracked yet"
    )
    import_parser.add_argument("user_id")

    recommend_parser = subparsers.add_parser(
        "recommend", help="Rank untracked solved problems by importance"
    )
    recommend_parser.add_argument("user_id")
    recommend_parser.add_argument("--limit", type=int, default=None)

    history_parser = subparsers.add_parser("history", help="Show a problem's reviews")
    history_parser.add_argument("user_id")
    history_parser.add_argument("problem_id")
    history_parser.add_argument("--limit", type=int, default=None)

    return parser


async def run_command(args: argparse.Namespace) -> Any:
    """Dispatch a parsed command and return its result."""
    if args.command == "init-db":
        await init_db()
        return {"initialized": True}

    if args.command == "load-solved":
        return await load_solved(args.user_id, args.path)

    api = create_review_api(use_cache=False if args.no_cache else None)

    if args.command == "add":
        return await api.add_to_review(
            args.user_id,
            args.problem_id,
            args.title,
            args.difficulty,
            topics=args.topics,
            confidence=args.confidence,
            notes=args.notes,
        )
    if args.command == "review":
        return await api.record_review(
            args.user_id,
            args.problem_id,
            args.confidence,
            notes=args.notes,
            mistake_patterns=args.mistake_patterns,
            key_insights=args.key_insights,
        )
    if args.command == "due":
        return await api.get_due_for_review(args.user_id, args.limit)
    if args.command == "stats":
        return await api.get_review_stats(args.user_id)
    if args.command == "weak":
        return await api.get_weak_topics(args.user_id, args.limit)
    if args.command == "import":
        return await api.import_solved_problems(args.user_id)
    if args.command == "recommend":
        return await api.get_recommended_for_review(args.user_id, args.limit)
    if args.command == "history":
        return await api.get_review_history(args.user_id, args.problem_id, args.limit)

    raise ValueError(f"Unknown command: {args.command}")


async def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.debug)

    try:
        print_json(await run_command(args))
    except ServiceError as e:
        logger.error(f"{e.error_code}: {e.message}")
        print_json(e.to_response())
        return 2
    finally:
        await close_redis_pool()
        await engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
