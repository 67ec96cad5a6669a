from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status

from lumina.api.deps import get_registry
from lumina.api.models import AnswerRequest, RecallPickRequest, SessionCreateRequest, SessionView
from lumina.registry import SessionNotFoundError, SessionRegistry
from lumina.session import GameSessionController

router = APIRouter()


def _require_session(registry: SessionRegistry, session_id: str) -> GameSessionController:
    try:
        return registry.get(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found") from e


def _unprocessable(detail: str) -> HTTPException:
    return HTTPException(status_code=422, detail=detail)


@router.websocket("/ws/session/{session_id}")
async def session_updates_ws(
    websocket: WebSocket,
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> None:
    try:
        controller = registry.get(session_id)
    except SessionNotFoundError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    ws_hub = registry.ws_hub
    snapshot = {"type": "SNAPSHOT", "session_id": session_id, "payload": controller.snapshot().model_dump(mode="json")}
    await ws_hub.join(session_id, websocket, first=snapshot)
    try:
        # Client messages are ignored; reading only detects the disconnect.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await ws_hub.leave(session_id, websocket)


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/session", response_model=SessionView, status_code=status.HTTP_201_CREATED)
async def create_session_route(
    payload: SessionCreateRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionView:
    controller = registry.create()
    try:
        controller.select_mode(
            payload.mode,
            tier=payload.tier,
            starting_difficulty=payload.starting_difficulty,
            resume=payload.resume,
            multiplier_level=payload.multiplier_level,
            language=payload.language,
        )
    except ValueError as e:
        registry.remove(controller.session_id)
        raise _unprocessable(str(e)) from e
    return controller.snapshot()


@router.get("/session/{session_id}", response_model=SessionView)
async def get_session_route(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> SessionView:
    return _require_session(registry, session_id).snapshot()


@router.post("/session/{session_id}/answer", response_model=SessionView)
async def answer_route(
    session_id: str,
    payload: AnswerRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionView:
    controller = _require_session(registry, session_id)
    if not controller.submit_answer(payload.answer, player=payload.player):
        raise _unprocessable(f"Answer not accepted in status {controller.status}")
    return controller.snapshot()


@router.post("/session/{session_id}/pause", response_model=SessionView)
async def pause_route(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> SessionView:
    controller = _require_session(registry, session_id)
    if not controller.toggle_pause():
        raise _unprocessable(f"Cannot pause in status {controller.status}")
    return controller.snapshot()


@router.post("/session/{session_id}/recall", response_model=SessionView)
async def recall_route(
    session_id: str,
    payload: RecallPickRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionView:
    controller = _require_session(registry, session_id)
    if not controller.recall_pick(payload.word):
        raise _unprocessable("Recall pick not accepted")
    return controller.snapshot()


@router.post("/session/{session_id}/duel/continue", response_model=SessionView)
async def duel_continue_route(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> SessionView:
    controller = _require_session(registry, session_id)
    if not controller.continue_duel():
        raise _unprocessable(f"No duel round to continue in status {controller.status}")
    return controller.snapshot()


@router.post("/session/{session_id}/level/continue", response_model=SessionView)
async def level_continue_route(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> SessionView:
    controller = _require_session(registry, session_id)
    if not controller.continue_level():
        raise _unprocessable(f"No completed level in status {controller.status}")
    return controller.snapshot()


@router.delete("/session/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session_route(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> None:
    _require_session(registry, session_id)
    registry.remove(session_id)
