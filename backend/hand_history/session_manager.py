from __future__ import annotations

import asyncio
import inspect
import logging
import os
import uuid
from collections import OrderedDict
from typing import Optional

from .analyst import AnalysisClient, AnalysisTurn, GeminiAnalyst
from .cards import Card, CardSlot, InvariantViolationError
from .hand import ActionEntry, Street
from .models import (
    ActionRequestModel,
    ActionResolutionModel,
    AvailableCardsModel,
    CardRequestModel,
    SessionStateModel,
)
from .positions import Position
from .session import HandEntrySession, SessionFlowError, action_entry_model

logger = logging.getLogger(__name__)


class SessionNotFoundError(KeyError):
    pass


class SessionManager:
    def __init__(self, analyst: Optional[AnalysisClient] = None) -> None:
        self._sessions: OrderedDict[str, HandEntrySession] = OrderedDict()
        self._session_locks: dict[str, asyncio.Lock] = {}
        self._lock = asyncio.Lock()
        self._analyst: AnalysisClient = analyst or GeminiAnalyst.from_env()
        self._auto_analyze = os.getenv("AUTO_ANALYZE_ON_QUESTION", "1").strip().lower() not in {"0", "false", "no"}
        self._max_sessions = max(1, int(os.getenv("MAX_SESSIONS", "1000")))

    async def aclose(self) -> None:
        close_method = getattr(self._analyst, "aclose", None)
        if close_method is None:
            return
        result = close_method()
        if inspect.isawaitable(result):
            await result

    async def create_session(self) -> SessionStateModel:
        async with self._lock:
            session_id = uuid.uuid4().hex[:12]
            session = HandEntrySession(session_id=session_id)
            self._sessions[session_id] = session
            self._session_locks[session_id] = asyncio.Lock()
            while len(self._sessions) > self._max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                self._session_locks.pop(evicted, None)
                logger.info("Evicted session %s", evicted)
        logger.info("Created session %s", session_id)
        return session.get_state()

    async def get_state(self, session_id: str) -> SessionStateModel:
        session, lock = await self._get_session_entry(session_id)
        async with lock:
            return session.get_state()

    async def get_hand_history(self, session_id: str) -> str:
        session, lock = await self._get_session_entry(session_id)
        async with lock:
            return session.hand_history()

    async def available_cards(self, session_id: str, slot: CardSlot) -> AvailableCardsModel:
        session, lock = await self._get_session_entry(session_id)
        async with lock:
            cards = session.available_cards(slot)
            return AvailableCardsModel(slot=slot, cards=[card.label() for card in cards])

    async def set_player_count(self, session_id: str, delta: int) -> SessionStateModel:
        session, lock = await self._get_session_entry(session_id)
        async with lock:
            session.set_player_count(delta)
            return session.get_state()

    async def set_stack(self, session_id: str, position: Position, stack: float) -> SessionStateModel:
        session, lock = await self._get_session_entry(session_id)
        async with lock:
            session.set_stack(position, stack)
            return session.get_state()

    async def set_hero_position(self, session_id: str, position: Position) -> SessionStateModel:
        session, lock = await self._get_session_entry(session_id)
        async with lock:
            session.set_hero_position(position)
            return session.get_state()

    async def set_card(self, session_id: str, payload: CardRequestModel) -> SessionStateModel:
        session, lock = await self._get_session_entry(session_id)
        card = Card(rank=payload.rank, suit=payload.suit) if payload.rank or payload.suit else None
        async with lock:
            session.set_card(payload.slot, card)
            return session.get_state()

    async def add_action(self, session_id: str, payload: ActionRequestModel) -> ActionResolutionModel:
        session, lock = await self._get_session_entry(session_id)
        entry = ActionEntry(position=payload.position, action=payload.action, amount=payload.amount)
        async with lock:
            previous_hand = session.hand
            outcome = session.add_action(payload.street, entry)
            analysis_triggered = False
            if outcome.is_question and self._auto_analyze:
                # Snapshot is taken from the committed state, inside the same lock.
                try:
                    await self._run_analysis(session, session.start_analysis(require_review=False))
                except Exception as exc:
                    session.hand = previous_hand
                    logger.warning("Analysis failed for session %s, action rolled back: %s", session_id, exc)
                    raise
                analysis_triggered = True
            return ActionResolutionModel(
                session_state=session.get_state(),
                applied=outcome.applied,
                reason=outcome.reason,
                entry=action_entry_model(outcome.entry) if outcome.entry else None,
                analysis_triggered=analysis_triggered,
            )

    async def remove_action(self, session_id: str, street: Street, index: int) -> ActionResolutionModel:
        session, lock = await self._get_session_entry(session_id)
        async with lock:
            outcome = session.remove_action(street, index)
            return ActionResolutionModel(
                session_state=session.get_state(),
                applied=outcome.applied,
                reason=outcome.reason,
                entry=action_entry_model(outcome.entry) if outcome.entry else None,
            )

    async def next_step(self, session_id: str) -> SessionStateModel:
        session, lock = await self._get_session_entry(session_id)
        async with lock:
            session.next_step()
            return session.get_state()

    async def previous_step(self, session_id: str) -> SessionStateModel:
        session, lock = await self._get_session_entry(session_id)
        async with lock:
            session.previous_step()
            return session.get_state()

    async def jump_to_step(self, session_id: str, step: int) -> SessionStateModel:
        session, lock = await self._get_session_entry(session_id)
        async with lock:
            session.jump_to(step)
            return session.get_state()

    async def reset(self, session_id: str) -> SessionStateModel:
        session, lock = await self._get_session_entry(session_id)
        async with lock:
            session.reset()
            logger.info("Reset hand for session %s", session_id)
            return session.get_state()

    async def submit(self, session_id: str) -> SessionStateModel:
        session, lock = await self._get_session_entry(session_id)
        async with lock:
            await self._run_analysis(session, session.start_analysis())
            return session.get_state()

    async def follow_up(self, session_id: str, query: str) -> SessionStateModel:
        session, lock = await self._get_session_entry(session_id)
        async with lock:
            await self._run_analysis(session, session.start_follow_up(query))
            return session.get_state()

    async def _run_analysis(self, session: HandEntrySession, turns: list[AnalysisTurn]) -> None:
        logger.info("Requesting analysis for session %s (%s turns)", session.session_id, len(turns))
        reply = await self._analyst.analyze(turns)
        session.commit_exchange(turns, reply)

    async def _get_session_entry(self, session_id: str) -> tuple[HandEntrySession, asyncio.Lock]:
        async with self._lock:
            session = self._get_session(session_id)
            lock = self._session_locks.get(session_id)
            if lock is None:
                lock = asyncio.Lock()
                self._session_locks[session_id] = lock
            return session, lock

    def _get_session(self, session_id: str) -> HandEntrySession:
        session = self._sessions.get(session_id)
        if not session:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        return session


__all__ = [
    "InvariantViolationError",
    "SessionFlowError",
    "SessionManager",
    "SessionNotFoundError",
]
