"""
Integration tests for FastAPI API endpoints.

Uses conftest fixtures:
  - test_db: fresh SQLite DB per test
  - client: httpx.AsyncClient wired to app via ASGITransport
"""

import asyncio
import json

import pytest

from scorebook import main

# --------------------------------------------------------------------------- #
#  Helpers
# --------------------------------------------------------------------------- #


def _team(name: str, size: int = 11, captain_index: int = 0) -> dict:
    return {
        "name": name,
        "players": [{"name": ""} for _ in range(size)],
        "captain_index": captain_index,
    }


async def _create(client, total_overs: int = 1) -> dict:
    r = await client.post("/api/matches", json={
        "team_a": _team("Lions"),
        "team_b": _team("Tigers"),
        "total_overs": total_overs,
    })
    assert r.status_code == 201
    return r.json()["match"]


async def _start(client, total_overs: int = 1) -> dict:
    """Create a match, let Lions bat, and pick openers and a bowler."""
    match = await _create(client, total_overs)
    match_id = match["id"]
    lions = [p["id"] for p in match["team_a"]["players"]]
    tigers = [p["id"] for p in match["team_b"]["players"]]

    r = await client.post(f"/api/matches/{match_id}/toss", json={"winner_id": "team_a", "bat_first": True})
    assert r.status_code == 200
    await client.post(f"/api/matches/{match_id}/striker", json={"player_id": lions[0]})
    await client.post(f"/api/matches/{match_id}/non-striker", json={"player_id": lions[1]})
    r = await client.post(f"/api/matches/{match_id}/bowler", json={"player_id": tigers[-1]})
    assert r.status_code == 200
    assert r.json()["pending"] == {
        "needs_striker": False, "needs_non_striker": False, "needs_bowler": False,
    }
    return {"id": match_id, "lions": lions, "tigers": tigers}


async def _deliver(client, match_id: str, runs: int = 0, **kw):
    return await client.post(f"/api/matches/{match_id}/deliveries", json={"runs": runs, **kw})


# --------------------------------------------------------------------------- #
#  Setup & toss
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio
async def test_create_match(client):
    match = await _create(client, total_overs=5)
    assert match["status"] == "TOSS"
    assert match["total_overs"] == 5
    assert match["team_a"]["id"] == "team_a"
    assert match["team_a"]["players"][0]["name"] == "Player A1"
    assert match["team_a"]["players"][0]["is_captain"] is True
    assert match["team_b"]["players"][10]["name"] == "Player B11"

    r = await client.get("/api/matches")
    assert r.status_code == 200
    assert [m["match_id"] for m in r.json()] == [match["id"]]

    r = await client.get("/api/matches", params={"status": "LIVE"})
    assert r.json() == []


@pytest.mark.asyncio
async def test_create_match_rejects_ten_player_squad(client):
    r = await client.post("/api/matches", json={
        "team_a": _team("Lions", size=10),
        "team_b": _team("Tigers"),
    })
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_create_match_validation_error(client):
    r = await client.post("/api/matches", json={"team_a": _team("Lions")})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_toss_sets_pending_slots(client):
    match = await _create(client)
    r = await client.post(f"/api/matches/{match['id']}/toss", json={"winner_id": "team_b", "bat_first": False})
    assert r.status_code == 200
    body = r.json()
    assert body["match"]["status"] == "LIVE"
    assert body["match"]["batting_first_id"] == "team_a"
    assert body["pending"] == {"needs_striker": True, "needs_non_striker": True, "needs_bowler": True}

    r = await client.post(f"/api/matches/{match['id']}/toss", json={"winner_id": "team_a", "bat_first": True})
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_unknown_match_404(client):
    assert (await client.get("/api/matches/nope")).status_code == 404
    assert (await client.get("/api/matches/nope/scoreboard")).status_code == 404
    assert (await _deliver(client, "nope")).status_code == 404
    assert (await client.get("/api/history/nope")).status_code == 404


# --------------------------------------------------------------------------- #
#  Scoring
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio
async def test_delivery_updates_match(client):
    m = await _start(client, total_overs=2)
    r = await _deliver(client, m["id"], 4)
    assert r.status_code == 200
    body = r.json()
    assert body["notification"] == {"type": "FOUR", "message": "Boundary!"}
    assert body["match"]["team_a"]["total_runs"] == 4
    assert body["match"]["balls"][0]["id"] == f"{m['id']}-1"

    r = await _deliver(client, m["id"], 1, extra_type="WIDE")
    assert r.json()["match"]["team_a"]["total_runs"] == 6
    assert r.json()["notification"]["type"] == "NONE"

    r = await client.get(f"/api/matches/{m['id']}/scoreboard")
    assert r.status_code == 200
    board = r.json()
    assert board["score"] == "6/0"
    assert board["overs"] == "0.1"
    assert board["recent_balls"] == ["WD1", "4"]


@pytest.mark.asyncio
async def test_wicket_then_pick_new_batter(client):
    m = await _start(client)
    r = await _deliver(client, m["id"], 0, dismissal_type="CAUGHT")
    body = r.json()
    assert body["notification"]["type"] == "WICKET"
    assert body["pending"]["needs_striker"] is True

    r = await _deliver(client, m["id"], 1)
    assert r.status_code == 409
    assert "striker" in r.json()["detail"]

    # Dismissed batter cannot come back
    r = await client.post(f"/api/matches/{m['id']}/striker", json={"player_id": m["lions"][0]})
    assert r.status_code == 409

    r = await client.get(f"/api/matches/{m['id']}")
    assert m["lions"][0] not in r.json()["available_batters"]
    assert m["lions"][2] in r.json()["available_batters"]

    r = await client.post(f"/api/matches/{m['id']}/striker", json={"player_id": m["lions"][2]})
    assert r.status_code == 200
    assert r.json()["pending"]["needs_striker"] is False


@pytest.mark.asyncio
async def test_invalid_runs(client):
    m = await _start(client)
    assert (await _deliver(client, m["id"], -1)).status_code == 422
    assert (await _deliver(client, m["id"], 7)).status_code == 409


@pytest.mark.asyncio
async def test_previous_bowler_rejected(client):
    m = await _start(client, total_overs=3)
    for _ in range(6):
        await _deliver(client, m["id"], 0)

    r = await client.get(f"/api/matches/{m['id']}")
    assert r.json()["pending"]["needs_bowler"] is True
    assert m["tigers"][-1] not in r.json()["available_bowlers"]

    r = await client.post(f"/api/matches/{m['id']}/bowler", json={"player_id": m["tigers"][-1]})
    assert r.status_code == 409
    r = await client.post(f"/api/matches/{m['id']}/bowler", json={"player_id": m["tigers"][-2]})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_full_match_is_archived_once(client):
    m = await _start(client)
    for runs in [1, 1, 1, 1, 1, 0]:
        await _deliver(client, m["id"], runs)

    r = await _deliver(client, m["id"], 0)
    assert r.status_code == 409

    r = await client.get(f"/api/matches/{m['id']}")
    body = r.json()
    assert body["match"]["current_innings"] == 2
    assert body["match"]["team_a"]["total_runs"] == 5
    assert body["pending"] == {"needs_striker": True, "needs_non_striker": True, "needs_bowler": True}

    await client.post(f"/api/matches/{m['id']}/striker", json={"player_id": m["tigers"][0]})
    await client.post(f"/api/matches/{m['id']}/non-striker", json={"player_id": m["tigers"][1]})
    await client.post(f"/api/matches/{m['id']}/bowler", json={"player_id": m["lions"][-1]})

    r = await _deliver(client, m["id"], 6)
    assert r.status_code == 200
    body = r.json()
    assert body["notification"] == {"type": "WIN", "message": "Tigers Wins!"}
    assert body["match"]["status"] == "COMPLETED"
    assert body["match"]["winning_team_id"] == "team_b"
    assert body["match"]["man_of_the_match_id"] == m["tigers"][0]

    assert (await _deliver(client, m["id"], 1)).status_code == 409
    assert (await client.post(f"/api/matches/{m['id']}/end")).status_code == 409

    r = await client.get("/api/history")
    history = r.json()
    assert len(history) == 1
    assert history[0]["match_id"] == m["id"]
    assert history[0]["team_a"] == "Lions 5/0"
    assert history[0]["team_b"] == "Tigers 6/0"

    r = await client.get(f"/api/history/{m['id']}")
    assert r.status_code == 200
    card = r.json()
    assert [inn["total"] for inn in card["innings"]] == ["5/0", "6/0"]


@pytest.mark.asyncio
async def test_end_match_early(client):
    m = await _start(client, total_overs=5)
    await _deliver(client, m["id"], 2)

    r = await client.post(f"/api/matches/{m['id']}/end")
    assert r.status_code == 200
    assert r.json()["match"]["status"] == "COMPLETED"
    assert r.json()["match"]["winning_team_id"] is None

    r = await client.get("/api/history", params={"q": "lions"})
    assert [h["match_id"] for h in r.json()] == [m["id"]]
    r = await client.get("/api/history", params={"q": "sharks"})
    assert r.json() == []


@pytest.mark.asyncio
async def test_scorecard(client):
    m = await _start(client, total_overs=2)
    await _deliver(client, m["id"], 3)
    r = await client.get(f"/api/matches/{m['id']}/scorecard")
    assert r.status_code == 200
    card = r.json()
    assert len(card["innings"]) == 1
    assert card["innings"][0]["batting_team"] == "Lions"
    assert card["innings"][0]["total"] == "3/0"


@pytest.mark.asyncio
async def test_occupied_end_is_rejected(client):
    m = await _start(client)
    r = await client.post(f"/api/matches/{m['id']}/striker", json={"player_id": m["lions"][5]})
    assert r.status_code == 409

    r = await client.get(f"/api/matches/{m['id']}")
    assert r.json()["match"]["current_striker_id"] == m["lions"][0]


@pytest.mark.asyncio
async def test_unknown_match_leaves_no_lock(client):
    calls = [
        ("toss", {"winner_id": "team_a", "bat_first": True}),
        ("striker", {"player_id": "p1"}),
        ("non-striker", {"player_id": "p2"}),
        ("bowler", {"player_id": "p3"}),
        ("end", None),
    ]
    for path, body in calls:
        r = await client.post(f"/api/matches/ghost/{path}", json=body)
        assert r.status_code == 404
    assert (await _deliver(client, "ghost", 1)).status_code == 404
    assert (await client.delete("/api/matches/ghost")).status_code == 404
    assert "ghost" not in main._match_locks


@pytest.mark.asyncio
async def test_lock_released_when_match_completes(client):
    m = await _start(client)
    await _deliver(client, m["id"], 0)
    assert m["id"] in main._match_locks

    await client.post(f"/api/matches/{m['id']}/end")
    assert m["id"] not in main._match_locks

    assert (await _deliver(client, m["id"], 1)).status_code == 409
    assert m["id"] not in main._match_locks


@pytest.mark.asyncio
async def test_delete_match(client):
    m = await _start(client, total_overs=2)
    await _deliver(client, m["id"], 4)

    r = await client.delete(f"/api/matches/{m['id']}")
    assert r.status_code == 204
    assert (await client.get(f"/api/matches/{m['id']}")).status_code == 404
    assert (await client.get("/api/matches")).json() == []
    assert m["id"] not in main._match_locks


@pytest.mark.asyncio
async def test_delete_finished_match_keeps_history(client):
    m = await _start(client, total_overs=2)
    await client.post(f"/api/matches/{m['id']}/end")

    assert (await client.delete(f"/api/matches/{m['id']}")).status_code == 204
    assert (await client.get(f"/api/history/{m['id']}")).status_code == 200


# --------------------------------------------------------------------------- #
#  Broadcast
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio
async def test_delivery_broadcasts_to_followers(client):
    m = await _start(client, total_overs=2)
    queue: asyncio.Queue = asyncio.Queue()
    main.subscribers[m["id"]].append(queue)
    try:
        await _deliver(client, m["id"], 6)
    finally:
        main.subscribers[m["id"]].remove(queue)

    update = queue.get_nowait()
    assert update["event"] == "score_update"
    assert json.loads(update["data"])["score"] == "6/0"

    note = queue.get_nowait()
    assert note["event"] == "notification"
    assert json.loads(note["data"]) == {"type": "SIX", "message": "Huge Six!"}
    assert queue.empty()
