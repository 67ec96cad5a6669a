from __future__ import annotations

import warnings
from collections.abc import Iterator

import fakeredis
import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from lumina.api.deps import get_registry
from lumina.corpus.registry import WordCorpus
from lumina.main import app
from lumina.registry import SessionRegistry
from lumina.streams import SessionStream, read_stream
from lumina.supply.suppliers import CorpusChallengeSupplier

# Three countdown ticks, "go", and the short pause before play.
COUNTDOWN_SECONDS = 4


@pytest.fixture()
def registry(corpus: WordCorpus, fake_redis: fakeredis.FakeRedis, scheduler) -> SessionRegistry:
    return SessionRegistry(
        corpus=corpus,
        supplier=CorpusChallengeSupplier(corpus=corpus),
        r=fake_redis,
        scheduler=scheduler,
    )


@pytest.fixture()
def client(registry: SessionRegistry) -> Iterator[TestClient]:
    app.dependency_overrides[get_registry] = lambda: registry
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


def _start_practice(client: TestClient) -> dict:
    resp = client.post("/session", json={"mode": "practice", "tier": "Novice"})
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_healthcheck(client: TestClient) -> None:
    assert client.get("/healthcheck").json() == {"status": "ok"}


def test_create_practice_session_starts_countdown(client: TestClient, registry: SessionRegistry) -> None:
    body = _start_practice(client)

    assert body["status"] == "countdown"
    assert body["mode"] == "practice"
    assert body["tier"] == "Novice"
    assert body["countdown"] == 3
    assert len(body["choices"]) == 4
    assert len(registry) == 1


def test_practice_without_tier_is_rejected(client: TestClient, registry: SessionRegistry) -> None:
    resp = client.post("/session", json={"mode": "practice"})
    assert resp.status_code == 422
    assert "tier" in resp.json()["detail"]
    assert len(registry) == 0


def test_unknown_session_is_404(client: TestClient) -> None:
    assert client.get("/session/nope").status_code == 404
    assert client.post("/session/nope/answer", json={"answer": "TABLE"}).status_code == 404


def test_answer_during_countdown_is_rejected(client: TestClient) -> None:
    session_id = _start_practice(client)["session_id"]
    resp = client.post(f"/session/{session_id}/answer", json={"answer": "TABLE"})
    assert resp.status_code == 422


def test_answer_after_countdown(client: TestClient, registry: SessionRegistry, scheduler, fake_redis) -> None:
    session_id = _start_practice(client)["session_id"]
    scheduler.advance(COUNTDOWN_SECONDS)
    assert client.get(f"/session/{session_id}").json()["status"] == "playing"

    answer = registry.get(session_id).challenge.correct_answer
    resp = client.post(f"/session/{session_id}/answer", json={"answer": answer.lower()})
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "correct"
    assert body["streak"] == 1

    types = [e["type"] for e in read_stream(r=fake_redis, stream=SessionStream(session_id))]
    assert "COUNTDOWN_TICK" in types
    assert "CORRECT" in types


def test_delete_session(client: TestClient, registry: SessionRegistry, scheduler) -> None:
    session_id = _start_practice(client)["session_id"]
    assert client.delete(f"/session/{session_id}").status_code == 204
    assert len(registry) == 0
    assert scheduler.pending() == 0
    assert client.get(f"/session/{session_id}").status_code == 404


def test_duel_continue_requires_finished_round(client: TestClient) -> None:
    resp = client.post("/session", json={"mode": "duel"})
    assert resp.status_code == 201
    session_id = resp.json()["session_id"]
    assert resp.json()["duel"]["turn"] == 1

    assert client.post(f"/session/{session_id}/duel/continue").status_code == 422
    assert client.post(f"/session/{session_id}/level/continue").status_code == 422


def test_websocket_snapshot_then_pause_updates(client: TestClient, scheduler) -> None:
    session_id = _start_practice(client)["session_id"]
    scheduler.advance(COUNTDOWN_SECONDS)

    with client.websocket_connect(f"/ws/session/{session_id}") as ws:
        first = ws.receive_json()
        resp = client.post(f"/session/{session_id}/pause")
        assert resp.status_code == 200
        update = ws.receive_json()

    assert first["type"] == "SNAPSHOT"
    assert first["payload"]["status"] == "playing"
    assert update["type"] == "STATE_CHANGED"
    assert update["session_id"] == session_id
    assert update["payload"]["paused"] is True


def test_websocket_for_unknown_session_is_closed(client: TestClient) -> None:
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/ws/session/nope"):
            pass
    assert exc.value.code == 1008


def test_info_lists_corpus_languages(client: TestClient) -> None:
    body = client.get("/info").json()
    assert body["name"] == "lumina"
    assert body["languages"] == ["en"]


def test_rejection_status_code_is_not_deprecated(client: TestClient) -> None:
    session_id = _start_practice(client)["session_id"]
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        resp = client.post(f"/session/{session_id}/answer", json={"answer": "TABLE"})

    assert resp.status_code == 422
    assert not [w for w in caught if "422" in str(w.message) or "UNPROCESSABLE" in str(w.message)]
