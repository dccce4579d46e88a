from __future__ import annotations

import importlib.util
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, TypeVar

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, ORJSONResponse, PlainTextResponse
from pydantic import ValidationError

from .cards import CardSlot, InvariantViolationError
from .config import load_environment
from .hand import Street
from .models import (
    ActionRequestModel,
    ActionResolutionModel,
    AvailableCardsModel,
    CardRequestModel,
    FollowUpRequestModel,
    HeroPositionRequestModel,
    PlayerCountRequestModel,
    RemoveActionRequestModel,
    SessionStateModel,
    StackRequestModel,
    WizardJumpRequestModel,
)
from .session_manager import SessionFlowError, SessionManager, SessionNotFoundError

load_environment()

DefaultResponseClass = ORJSONResponse if importlib.util.find_spec("orjson") else JSONResponse
manager = SessionManager()

T = TypeVar("T")


@asynccontextmanager
async def lifespan(_: FastAPI):
    try:
        yield
    finally:
        await manager.aclose()


app = FastAPI(
    title="Poker Hand History API",
    version="0.1.0",
    default_response_class=DefaultResponseClass,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def _call(operation: Callable[[], Awaitable[T]]) -> T:
    try:
        return await operation()
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvariantViolationError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except SessionFlowError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@app.get("/api/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/api/sessions", response_model=SessionStateModel)
async def create_session() -> SessionStateModel:
    return await manager.create_session()


@app.get("/api/sessions/{session_id}", response_model=SessionStateModel)
async def get_session(session_id: str) -> SessionStateModel:
    return await _call(lambda: manager.get_state(session_id))


@app.get("/api/sessions/{session_id}/hand-history", response_class=PlainTextResponse)
async def get_hand_history(session_id: str) -> str:
    return await _call(lambda: manager.get_hand_history(session_id))


@app.post("/api/sessions/{session_id}/player-count", response_model=SessionStateModel)
async def set_player_count(session_id: str, payload: PlayerCountRequestModel) -> SessionStateModel:
    return await _call(lambda: manager.set_player_count(session_id, payload.delta))


@app.post("/api/sessions/{session_id}/stacks", response_model=SessionStateModel)
async def set_stack(session_id: str, payload: StackRequestModel) -> SessionStateModel:
    return await _call(lambda: manager.set_stack(session_id, payload.position, payload.stack))


@app.post("/api/sessions/{session_id}/hero-position", response_model=SessionStateModel)
async def set_hero_position(session_id: str, payload: HeroPositionRequestModel) -> SessionStateModel:
    return await _call(lambda: manager.set_hero_position(session_id, payload.position))


@app.post("/api/sessions/{session_id}/cards", response_model=SessionStateModel)
async def set_card(session_id: str, payload: CardRequestModel) -> SessionStateModel:
    return await _call(lambda: manager.set_card(session_id, payload))


@app.get("/api/sessions/{session_id}/cards/{slot}/available", response_model=AvailableCardsModel)
async def available_cards(session_id: str, slot: CardSlot) -> AvailableCardsModel:
    return await _call(lambda: manager.available_cards(session_id, slot))


@app.post("/api/sessions/{session_id}/actions", response_model=ActionResolutionModel)
async def add_action(session_id: str, payload: ActionRequestModel) -> ActionResolutionModel:
    return await _call(lambda: manager.add_action(session_id, payload))


@app.delete("/api/sessions/{session_id}/actions/{street}/{index}", response_model=ActionResolutionModel)
async def remove_action(session_id: str, street: Street, index: int) -> ActionResolutionModel:
    return await _call(lambda: manager.remove_action(session_id, street, index))


@app.post("/api/sessions/{session_id}/wizard/next", response_model=SessionStateModel)
async def next_step(session_id: str) -> SessionStateModel:
    return await _call(lambda: manager.next_step(session_id))


@app.post("/api/sessions/{session_id}/wizard/back", response_model=SessionStateModel)
async def previous_step(session_id: str) -> SessionStateModel:
    return await _call(lambda: manager.previous_step(session_id))


@app.post("/api/sessions/{session_id}/wizard/jump", response_model=SessionStateModel)
async def jump_to_step(session_id: str, payload: WizardJumpRequestModel) -> SessionStateModel:
    return await _call(lambda: manager.jump_to_step(session_id, payload.step))


@app.post("/api/sessions/{session_id}/analysis", response_model=SessionStateModel)
async def submit(session_id: str) -> SessionStateModel:
    return await _call(lambda: manager.submit(session_id))


@app.post("/api/sessions/{session_id}/analysis/follow-ups", response_model=SessionStateModel)
async def follow_up(session_id: str, payload: FollowUpRequestModel) -> SessionStateModel:
    return await _call(lambda: manager.follow_up(session_id, payload.query))


@app.post("/api/sessions/{session_id}/reset", response_model=SessionStateModel)
async def reset(session_id: str) -> SessionStateModel:
    return await _call(lambda: manager.reset(session_id))


def _ws_error_payload(request_id: str, status: int, message: str, extra: dict[str, Any] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": "error",
        "requestId": request_id,
        "status": status,
        "message": message,
    }
    if extra:
        payload.update(extra)
    return payload


async def _dispatch_ws_op(session_id: str, op: str, message: dict[str, Any]) -> tuple[str, Any] | None:
    if op == "get_state":
        return "session_state", await manager.get_state(session_id)
    if op == "player_count":
        payload = PlayerCountRequestModel.model_validate(message)
        return "session_state", await manager.set_player_count(session_id, payload.delta)
    if op == "stack":
        stack_payload = StackRequestModel.model_validate(message)
        return "session_state", await manager.set_stack(session_id, stack_payload.position, stack_payload.stack)
    if op == "hero_position":
        hero_payload = HeroPositionRequestModel.model_validate(message)
        return "session_state", await manager.set_hero_position(session_id, hero_payload.position)
    if op == "card":
        return "session_state", await manager.set_card(session_id, CardRequestModel.model_validate(message))
    if op == "action":
        return "action_resolution", await manager.add_action(session_id, ActionRequestModel.model_validate(message))
    if op == "remove_action":
        remove_payload = RemoveActionRequestModel.model_validate(message)
        return "action_resolution", await manager.remove_action(
            session_id, remove_payload.street, remove_payload.index
        )
    if op == "next":
        return "session_state", await manager.next_step(session_id)
    if op == "back":
        return "session_state", await manager.previous_step(session_id)
    if op == "jump":
        jump_payload = WizardJumpRequestModel.model_validate(message)
        return "session_state", await manager.jump_to_step(session_id, jump_payload.step)
    if op == "submit":
        return "session_state", await manager.submit(session_id)
    if op == "follow_up":
        follow_payload = FollowUpRequestModel.model_validate(message)
        return "session_state", await manager.follow_up(session_id, follow_payload.query)
    if op == "reset":
        return "session_state", await manager.reset(session_id)
    return None


@app.websocket("/api/ws/sessions/{session_id}")
async def session_socket(websocket: WebSocket, session_id: str) -> None:
    await websocket.accept()
    try:
        initial_state = await manager.get_state(session_id)
    except SessionNotFoundError as exc:
        await websocket.send_json(_ws_error_payload(request_id="", status=404, message=str(exc)))
        await websocket.close(code=4404)
        return

    await websocket.send_json(
        {
            "type": "session_state",
            "requestId": "",
            "payload": initial_state.model_dump(by_alias=True),
        }
    )

    while True:
        try:
            raw_message = await websocket.receive_json()
        except WebSocketDisconnect:
            return
        except ValueError:
            await websocket.send_json(_ws_error_payload(request_id="", status=400, message="Malformed websocket JSON payload."))
            continue

        if not isinstance(raw_message, dict):
            await websocket.send_json(_ws_error_payload(request_id="", status=400, message="Websocket message must be a JSON object."))
            continue

        request_id = str(raw_message.get("requestId", ""))
        op = str(raw_message.get("op", "")).strip().lower()

        try:
            if op == "ping":
                await websocket.send_json({"type": "pong", "requestId": request_id})
                continue

            result = await _dispatch_ws_op(session_id, op, raw_message)
            if result is None:
                await websocket.send_json(
                    _ws_error_payload(request_id=request_id, status=400, message=f"Unsupported websocket op: {op}")
                )
                continue

            message_type, model = result
            await websocket.send_json(
                {
                    "type": message_type,
                    "requestId": request_id,
                    "payload": model.model_dump(by_alias=True),
                }
            )
        except SessionNotFoundError as exc:
            await websocket.send_json(_ws_error_payload(request_id=request_id, status=404, message=str(exc)))
        except ValidationError as exc:
            await websocket.send_json(
                _ws_error_payload(
                    request_id=request_id,
                    status=422,
                    message="Invalid payload.",
                    extra={"detail": exc.errors(include_url=False, include_context=False)},
                )
            )
        except (InvariantViolationError, SessionFlowError) as exc:
            await websocket.send_json(_ws_error_payload(request_id=request_id, status=409, message=str(exc)))
        except ValueError as exc:
            await websocket.send_json(_ws_error_payload(request_id=request_id, status=422, message=str(exc)))
