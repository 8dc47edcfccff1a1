"""Tests for CLI commands (non-interactive paths)."""

import json
import uuid

import pytest

import review_cli.__main__ as cli
from review_cli.__main__ import add_card, build_parser, fetch_events, fetch_stats, submit_session
from review_engine.database import init_db
from review_engine.errors import CardNotFound

USER_ID = "11111111-1111-1111-1111-111111111111"


def _body(card_id: str, *outcomes: str) -> dict:
    return {
        "session_id": str(uuid.uuid4()),
        "started_at": "2024-06-01T09:00:00+02:00",
        "completed_at": "2024-06-01T09:05:00+02:00",
        "reviews": [{"card_id": card_id, "outcome": outcome} for outcome in outcomes],
    }


@pytest.mark.asyncio
async def test_ensure_db(db_engine, monkeypatch) -> None:
    """Database tables can be created repeatedly."""
    monkeypatch.setattr(cli, "init_db", lambda: init_db(db_engine))
    await cli.ensure_db()
    await cli.ensure_db()


@pytest.mark.asyncio
async def test_add_card(session_factory) -> None:
    card_id = await add_card(USER_ID, session_factory=session_factory)
    assert uuid.UUID(card_id)

    fixed = str(uuid.uuid4())
    assert await add_card(USER_ID, fixed, session_factory=session_factory) == fixed


@pytest.mark.asyncio
async def test_submit_and_list(session_factory) -> None:
    card_id = await add_card(USER_ID, session_factory=session_factory)

    logged = await submit_session(USER_ID, _body(card_id, "good", "easy"), session_factory=session_factory)
    assert logged == 2

    events = await fetch_events(USER_ID, {"limit": "1"}, session_factory=session_factory)
    assert len(events.data) == 1
    assert events.page.has_more is True

    rest = await fetch_events(
        USER_ID, {"limit": "1", "cursor": events.page.next_cursor}, session_factory=session_factory
    )
    assert len(rest.data) == 1
    assert rest.page.has_more is False

    stats = await fetch_stats(USER_ID, {"card_id": card_id}, session_factory=session_factory)
    [row] = stats.data
    assert row.total_reviews == 2
    assert row.last_interval_days == 6


@pytest.mark.asyncio
async def test_submit_rejects_foreign_card(session_factory) -> None:
    card_id = await add_card("someone-else", session_factory=session_factory)
    with pytest.raises(CardNotFound):
        await submit_session(USER_ID, _body(card_id, "good"), session_factory=session_factory)


def test_parser_events_options() -> None:
    args = build_parser().parse_args(
        ["events", "--user", USER_ID, "--from", "2024-01-01T00:00:00Z", "--limit", "5"]
    )
    assert args.command == "events"
    assert args.from_ == "2024-01-01T00:00:00Z"
    assert args.limit == 5
    assert args.cursor is None


def test_main_without_command_prints_help(monkeypatch, capsys) -> None:
    monkeypatch.setattr("sys.argv", ["review_cli"])
    cli.main()
    assert "Spaced repetition review engine" in capsys.readouterr().out


@pytest.mark.parametrize(
    "contents",
    ["{not json", json.dumps({"session_id": "abc", "reviews": []})],
)
def test_main_submit_bad_file(tmp_path, monkeypatch, capsys, contents: str) -> None:
    async def _no_db() -> None:
        return None

    session_file = tmp_path / "session.json"
    session_file.write_text(contents, encoding="utf-8")
    monkeypatch.setattr(cli, "ensure_db", _no_db)
    monkeypatch.setattr("sys.argv", ["review_cli", "submit", str(session_file), "--user", USER_ID])

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 2
    assert capsys.readouterr().err.startswith("error:")
