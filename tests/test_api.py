"""End-to-end tests for the HTTP API."""

import uuid

import pytest
from httpx import AsyncClient

USER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_USER_ID = "22222222-2222-2222-2222-222222222222"

AUTH = {"X-User-Id": USER_ID}


def _session_body(*reviews: dict) -> dict:
    return {
        "session_id": str(uuid.uuid4()),
        "started_at": "2024-06-01T09:00:00Z",
        "completed_at": "2024-06-01T09:12:30Z",
        "reviews": list(reviews),
    }


async def _submit(client: AsyncClient, *reviews: dict, headers: dict | None = None):
    return await client.post("/api/review-sessions", json=_session_body(*reviews), headers=headers or AUTH)


# --- POST /api/review-sessions ---


@pytest.mark.asyncio
async def test_submit_requires_identity(client: AsyncClient, make_card) -> None:
    card = await make_card(USER_ID)
    response = await _submit(client, {"card_id": card, "outcome": "good"}, headers={})
    assert response.status_code == 401
    assert response.json() == {"error": {"code": "unauthorized", "message": "User not authenticated."}}


@pytest.mark.asyncio
async def test_submit_blank_identity(client: AsyncClient, make_card) -> None:
    card = await make_card(USER_ID)
    response = await _submit(client, {"card_id": card, "outcome": "good"}, headers={"X-User-Id": "  "})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_submit_logs_reviews(client: AsyncClient, make_card) -> None:
    a = await make_card(USER_ID)
    b = await make_card(USER_ID)

    response = await _submit(
        client,
        {"card_id": a, "outcome": "good", "response_time_ms": 2400, "payload": {"side": "front"}},
        {"card_id": b, "outcome": "again", "was_learning_step": True},
    )

    assert response.status_code == 201
    assert response.json() == {"logged": 2}


@pytest.mark.asyncio
async def test_submit_empty_reviews(client: AsyncClient) -> None:
    response = await _submit(client)
    body = response.json()
    assert response.status_code == 400
    assert body["error"]["code"] == "invalid_body"
    assert "reviews" in body["error"]["message"]


@pytest.mark.asyncio
async def test_submit_too_many_reviews(client: AsyncClient, make_card) -> None:
    card = await make_card(USER_ID)
    response = await _submit(client, *({"card_id": card, "outcome": "good"} for _ in range(101)))
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid_body"


@pytest.mark.asyncio
async def test_submit_hundred_reviews(client: AsyncClient, make_card) -> None:
    card = await make_card(USER_ID)
    response = await _submit(client, *({"card_id": card, "outcome": "hard"} for _ in range(100)))
    assert response.status_code == 201
    assert response.json() == {"logged": 100}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "review",
    [
        {"card_id": "not-a-uuid", "outcome": "good"},
        {"card_id": str(uuid.uuid4()), "outcome": "perfect"},
        {"card_id": str(uuid.uuid4()), "outcome": "good", "response_time_ms": 0},
        {"card_id": str(uuid.uuid4()), "outcome": "good", "prev_interval_days": -1},
        {"card_id": str(uuid.uuid4())},
    ],
)
async def test_submit_malformed_review(client: AsyncClient, review: dict) -> None:
    response = await _submit(client, review)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid_body"


@pytest.mark.asyncio
async def test_submit_session_window(client: AsyncClient, make_card) -> None:
    card = await make_card(USER_ID)
    body = _session_body({"card_id": card, "outcome": "good"})
    body["completed_at"] = "2024-06-01T08:00:00Z"

    response = await client.post("/api/review-sessions", json=body, headers=AUTH)

    assert response.status_code == 400
    assert "Completed at must not be before started at." in response.json()["error"]["message"]


@pytest.mark.asyncio
async def test_submit_card_not_owned(client: AsyncClient, make_card) -> None:
    mine = await make_card(USER_ID)
    theirs = await make_card(OTHER_USER_ID)

    response = await _submit(client, {"card_id": mine, "outcome": "good"}, {"card_id": theirs, "outcome": "good"})

    assert response.status_code == 404
    error = response.json()["error"]
    assert error["code"] == "card_not_found"
    assert theirs in error["message"]
    assert error["details"] == {"missing_card_ids": [theirs]}

    # Nothing from the rejected batch was logged
    events = await client.get("/api/review-events", headers=AUTH)
    assert events.json()["data"] == []


# --- GET /api/review-events ---


@pytest.mark.asyncio
async def test_events_requires_identity(client: AsyncClient) -> None:
    response = await client.get("/api/review-events")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_events_listing(client: AsyncClient, make_card) -> None:
    card = await make_card(USER_ID)
    await _submit(client, {"card_id": card, "outcome": "easy", "payload": {"deck": "kanji"}})

    response = await client.get("/api/review-events", headers=AUTH)

    assert response.status_code == 200
    body = response.json()
    assert body["page"] == {"next_cursor": None, "has_more": False}
    [event] = body["data"]
    assert event["card_id"] == card
    assert event["user_id"] == USER_ID
    assert event["outcome"] == "easy"
    assert event["grade"] == 4
    assert event["next_interval_days"] == 1
    assert event["payload"] == {"deck": "kanji"}
    assert event["reviewed_at"].endswith("+00:00")


@pytest.mark.asyncio
async def test_events_pagination(client: AsyncClient, make_card) -> None:
    cards = [await make_card(USER_ID) for _ in range(3)]
    await _submit(client, *({"card_id": c, "outcome": "good"} for c in cards))

    seen: list[int] = []
    params = {"limit": "2"}
    while True:
        response = await client.get("/api/review-events", params=params, headers=AUTH)
        assert response.status_code == 200
        body = response.json()
        seen.extend(event["id"] for event in body["data"])
        if not body["page"]["has_more"]:
            assert body["page"]["next_cursor"] is None
            break
        params = {"limit": "2", "cursor": body["page"]["next_cursor"]}

    assert len(seen) == 3
    assert len(set(seen)) == 3


@pytest.mark.asyncio
async def test_events_card_filter(client: AsyncClient, make_card) -> None:
    a = await make_card(USER_ID)
    b = await make_card(USER_ID)
    await _submit(client, {"card_id": a, "outcome": "good"}, {"card_id": b, "outcome": "hard"})

    response = await client.get("/api/review-events", params={"card_id": b}, headers=AUTH)
    assert [event["card_id"] for event in response.json()["data"]] == [b]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params",
    [
        {"limit": "0"},
        {"limit": "101"},
        {"limit": "ten"},
        {"card_id": "nope"},
        {"from": "last tuesday"},
        {"cursor": "@@@"},
    ],
)
async def test_events_invalid_query(client: AsyncClient, params: dict) -> None:
    response = await client.get("/api/review-events", params=params, headers=AUTH)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid_query"


@pytest.mark.asyncio
async def test_events_limit_message(client: AsyncClient) -> None:
    response = await client.get("/api/review-events", params={"limit": "500"}, headers=AUTH)
    assert "Limit must be between 1 and 100." in response.json()["error"]["message"]


# --- GET /api/review-stats ---


@pytest.mark.asyncio
async def test_stats_listing(client: AsyncClient, make_card) -> None:
    card = await make_card(USER_ID)
    await _submit(client, {"card_id": card, "outcome": "good"}, {"card_id": card, "outcome": "good"})

    response = await client.get("/api/review-stats", headers=AUTH)

    assert response.status_code == 200
    [row] = response.json()["data"]
    assert row["card_id"] == card
    assert row["total_reviews"] == 2
    assert row["consecutive_successes"] == 2
    assert row["last_interval_days"] == 6
    assert row["aggregates"] == {"average_interval": 3.5, "success_rate": 1.0, "current_streak": 2}


@pytest.mark.asyncio
async def test_stats_scoped_to_caller(client: AsyncClient, make_card) -> None:
    card = await make_card(USER_ID)
    await _submit(client, {"card_id": card, "outcome": "good"})

    response = await client.get("/api/review-stats", headers={"X-User-Id": OTHER_USER_ID})
    assert response.json() == {"data": [], "page": {"next_cursor": None, "has_more": False}}


@pytest.mark.asyncio
async def test_stats_invalid_query(client: AsyncClient) -> None:
    response = await client.get(
        "/api/review-stats", params={"next_review_before": "soon"}, headers=AUTH
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid_query"


# --- Error handling ---


@pytest.mark.asyncio
async def test_unexpected_error_is_masked(client: AsyncClient, monkeypatch) -> None:
    async def _explode(*args, **kwargs):
        raise RuntimeError("secret internal detail")

    monkeypatch.setattr("review_engine.api.events_router.list_review_events", _explode)

    response = await client.get("/api/review-events", headers=AUTH)

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "unexpected_error"
    assert "secret" not in error["message"]
