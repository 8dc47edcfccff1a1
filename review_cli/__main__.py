"""CLI interface for the review engine.

Usage:
    python -m review_cli init-db                          Create database tables
    python -m review_cli add-card --owner USER            Register a card for a user
    python -m review_cli submit session.json --user USER  Log a review session from JSON
    python -m review_cli events --user USER               List review events, newest first
    python -m review_cli stats --user USER                List card stats, soonest due first
"""

import argparse
import asyncio
import json
import logging
import sys
import uuid
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from review_engine.api.schemas import (
    PageInfo,
    ReviewEventListResponse,
    ReviewEventOut,
    ReviewEventsQuery,
    ReviewStatsListResponse,
    ReviewStatsOut,
    ReviewStatsQuery,
    SubmitSessionRequest,
    format_validation_errors,
)
from review_engine.database import async_session, init_db
from review_engine.errors import ReviewEngineError
from review_engine.models.card import Card
from review_engine.srs.history import list_review_events, list_review_stats
from review_engine.srs.session import process_review_session

logger = logging.getLogger(__name__)

SessionFactory = async_sessionmaker[AsyncSession]


async def ensure_db() -> None:
    """Create tables if they don't exist."""
    await init_db()


async def add_card(
    owner_id: str,
    card_id: str | None = None,
    session_factory: SessionFactory = async_session,
) -> str:
    """Register a card owned by ``owner_id`` and return its id."""
    async with session_factory() as db:
        card = Card(id=card_id or str(uuid.uuid4()), owner_id=owner_id)
        db.add(card)
        await db.commit()
        return card.id


async def submit_session(
    user_id: str,
    body: dict[str, Any],
    session_factory: SessionFactory = async_session,
) -> int:
    """Validate a session body exactly like the HTTP route and log it."""
    request = SubmitSessionRequest.model_validate(body)
    async with session_factory() as db:
        result = await process_review_session(db, user_id, request.to_command())
    return result.logged


async def fetch_events(
    user_id: str,
    params: dict[str, str],
    session_factory: SessionFactory = async_session,
) -> ReviewEventListResponse:
    query = ReviewEventsQuery.model_validate(params)
    async with session_factory() as db:
        page = await list_review_events(db, user_id, query.to_query())
    return ReviewEventListResponse(
        data=[ReviewEventOut.model_validate(event) for event in page.items],
        page=PageInfo(next_cursor=page.next_cursor, has_more=page.has_more),
    )


async def fetch_stats(
    user_id: str,
    params: dict[str, str],
    session_factory: SessionFactory = async_session,
) -> ReviewStatsListResponse:
    query = ReviewStatsQuery.model_validate(params)
    async with session_factory() as db:
        page = await list_review_stats(db, user_id, query.to_query())
    return ReviewStatsListResponse(
        data=[ReviewStatsOut.model_validate(row) for row in page.items],
        page=PageInfo(next_cursor=page.next_cursor, has_more=page.has_more),
    )


def _query_params(args: argparse.Namespace, names: dict[str, str]) -> dict[str, str]:
    params = {}
    for attr, param in names.items():
        value = getattr(args, attr, None)
        if value is not None:
            params[param] = str(value)
    return params


async def cmd_init_db(args: argparse.Namespace) -> None:
    await ensure_db()
    print("  Database ready")


async def cmd_add_card(args: argparse.Namespace) -> None:
    await ensure_db()
    card_id = await add_card(args.owner, args.id)
    print(card_id)


async def cmd_submit(args: argparse.Namespace) -> None:
    await ensure_db()
    body = json.loads(Path(args.file).read_text(encoding="utf-8"))
    logged = await submit_session(args.user, body)
    print(json.dumps({"logged": logged}))


async def cmd_events(args: argparse.Namespace) -> None:
    await ensure_db()
    params = _query_params(
        args, {"card": "card_id", "from_": "from", "to": "to", "limit": "limit", "cursor": "cursor"}
    )
    response = await fetch_events(args.user, params)
    print(response.model_dump_json(indent=2))


async def cmd_stats(args: argparse.Namespace) -> None:
    await ensure_db()
    params = _query_params(
        args, {"card": "card_id", "before": "next_review_before", "limit": "limit", "cursor": "cursor"}
    )
    response = await fetch_stats(args.user, params)
    print(response.model_dump_json(indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="review_cli",
        description="Spaced repetition review engine",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-db", help="Create database tables")

    add_parser = subparsers.add_parser("add-card", help="Register a card for a user")
    add_parser.add_argument("--owner", required=True, help="Owning user id")
    add_parser.add_argument("--id", default=None, help="Card UUID (generated if omitted)")

    submit_parser = subparsers.add_parser("submit", help="Log a review session from a JSON file")
    submit_parser.add_argument("file", help="Path to a session JSON body")
    submit_parser.add_argument("--user", required=True, help="Caller user id")

    events_parser = subparsers.add_parser("events", help="List review events")
    events_parser.add_argument("--user", required=True, help="Caller user id")
    events_parser.add_argument("--card", default=None, help="Only events for this card")
    events_parser.add_argument("--from", dest="from_", default=None, help="Reviewed at or after (ISO)")
    events_parser.add_argument("--to", default=None, help="Reviewed at or before (ISO)")
    events_parser.add_argument("--limit", type=int, default=None)
    events_parser.add_argument("--cursor", default=None)

    stats_parser = subparsers.add_parser("stats", help="List per-card stats")
    stats_parser.add_argument("--user", required=True, help="Caller user id")
    stats_parser.add_argument("--card", default=None, help="Only stats for this card")
    stats_parser.add_argument("--before", default=None, help="Next review before (ISO)")
    stats_parser.add_argument("--limit", type=int, default=None)
    stats_parser.add_argument("--cursor", default=None)

    return parser


def main() -> None:
    """Entry point for the review engine CLI."""
    parser = build_parser()
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if not args.command:
        parser.print_help()
        return

    cmd_map = {
        "init-db": cmd_init_db,
        "add-card": cmd_add_card,
        "submit": cmd_submit,
        "events": cmd_events,
        "stats": cmd_stats,
    }

    try:
        asyncio.run(cmd_map[args.command](args))
    except ValidationError as exc:
        print(f"error: {format_validation_errors(list(exc.errors()))}", file=sys.stderr)
        sys.exit(2)
    except json.JSONDecodeError as exc:
        print(f"error: session file is not valid JSON: {exc}", file=sys.stderr)
        sys.exit(2)
    except ReviewEngineError as exc:
        print(f"error [{exc.code}]: {exc.message}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
