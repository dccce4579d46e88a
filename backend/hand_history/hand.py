from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterator, Literal, Optional

from .cards import Card, CardLedger, CardSlot, InvariantViolationError
from .positions import DEFAULT_PLAYER_COUNT, MAX_PLAYERS, MIN_PLAYERS, Position, positions_for
from .pot import FORCED_BETS, pot_size

logger = logging.getLogger(__name__)

ActionType = Literal["fold", "check", "call", "bet", "raise", "all-in", "?"]

QUESTION_ACTION = "?"
DEFAULT_STACK_BB = 100.0
MAX_STACK_BB = 10_000.0
DEFAULT_HERO_POSITION: Position = "CO"

AMOUNT_REQUIRED = frozenset({"bet", "raise"})
AMOUNT_OPTIONAL = frozenset({"call", "all-in"})


class Street(str, Enum):
    PREFLOP = "preflop"
    FLOP = "flop"
    TURN = "turn"
    RIVER = "river"


@dataclass(frozen=True)
class StackEntry:
    position: Position
    stack: float = DEFAULT_STACK_BB
    is_hero: bool = False


@dataclass(frozen=True)
class ActionEntry:
    position: Position
    action: ActionType
    amount: Optional[float] = None

    @property
    def is_question(self) -> bool:
        return self.action == QUESTION_ACTION


@dataclass(frozen=True)
class HandHistoryState:
    hero_hand: tuple[Optional[Card], Optional[Card]] = (None, None)
    hero_position: Position = DEFAULT_HERO_POSITION
    player_count: int = DEFAULT_PLAYER_COUNT
    stacks: tuple[StackEntry, ...] = field(default_factory=lambda: default_stacks(DEFAULT_PLAYER_COUNT))
    pot_size: float = FORCED_BETS
    preflop_actions: tuple[ActionEntry, ...] = ()
    flop_cards: tuple[Optional[Card], Optional[Card], Optional[Card]] = (None, None, None)
    flop_actions: tuple[ActionEntry, ...] = ()
    turn_card: Optional[Card] = None
    turn_actions: tuple[ActionEntry, ...] = ()
    river_card: Optional[Card] = None
    river_actions: tuple[ActionEntry, ...] = ()

    def all_actions(self) -> Iterator[ActionEntry]:
        for street in Street:
            yield from street_actions(self, street)

    def card_slots(self) -> dict[CardSlot, Optional[Card]]:
        return {
            CardSlot.HERO_1: self.hero_hand[0],
            CardSlot.HERO_2: self.hero_hand[1],
            CardSlot.FLOP_1: self.flop_cards[0],
            CardSlot.FLOP_2: self.flop_cards[1],
            CardSlot.FLOP_3: self.flop_cards[2],
            CardSlot.TURN: self.turn_card,
            CardSlot.RIVER: self.river_card,
        }

    @property
    def ledger(self) -> CardLedger:
        return CardLedger.from_slots(self.card_slots())


@dataclass(frozen=True)
class ActionOutcome:
    """Result of an action-log mutation.

    ``applied`` is False when the input was rejected; ``state`` is then the
    unchanged prior state and ``reason`` says why.
    """

    state: HandHistoryState
    applied: bool
    entry: Optional[ActionEntry] = None
    reason: Optional[str] = None

    @property
    def is_question(self) -> bool:
        return self.applied and self.entry is not None and self.entry.is_question


def default_stacks(player_count: int, hero_position: Position = DEFAULT_HERO_POSITION) -> tuple[StackEntry, ...]:
    return tuple(
        StackEntry(position=position, stack=DEFAULT_STACK_BB, is_hero=position == hero_position)
        for position in positions_for(player_count)
    )


def new_hand() -> HandHistoryState:
    return HandHistoryState()


def street_actions(state: HandHistoryState, street: Street) -> tuple[ActionEntry, ...]:
    if street is Street.PREFLOP:
        return state.preflop_actions
    if street is Street.FLOP:
        return state.flop_actions
    if street is Street.TURN:
        return state.turn_actions
    if street is Street.RIVER:
        return state.river_actions
    raise ValueError(f"Unknown street: {street!r}")


def _with_street_actions(state: HandHistoryState, street: Street, actions: tuple[ActionEntry, ...]) -> HandHistoryState:
    if street is Street.PREFLOP:
        updated = replace(state, preflop_actions=actions)
    elif street is Street.FLOP:
        updated = replace(state, flop_actions=actions)
    elif street is Street.TURN:
        updated = replace(state, turn_actions=actions)
    else:
        updated = replace(state, river_actions=actions)
    return replace(updated, pot_size=pot_size(updated.all_actions()))


def set_player_count(state: HandHistoryState, delta: int) -> HandHistoryState:
    """Resize the table. Stacks are reset to the default table for the new count."""
    new_count = max(MIN_PLAYERS, min(MAX_PLAYERS, state.player_count + delta))
    if new_count == state.player_count:
        return state

    positions = positions_for(new_count)
    hero_position = state.hero_position if state.hero_position in positions else positions[-1]
    return replace(
        state,
        player_count=new_count,
        hero_position=hero_position,
        stacks=default_stacks(new_count, hero_position),
    )


def set_stack(state: HandHistoryState, position: Position, value: float) -> HandHistoryState:
    if position not in {entry.position for entry in state.stacks}:
        logger.error("Stack update for position %s outside the %s-handed table", position, state.player_count)
        raise InvariantViolationError(f"Position {position} is not seated at a {state.player_count}-handed table.")

    try:
        stack = float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric stack %r for %s", value, position)
        return state
    if math.isnan(stack):
        logger.warning("Ignoring non-numeric stack %r for %s", value, position)
        return state

    stack = max(0.0, min(MAX_STACK_BB, stack))
    return replace(
        state,
        stacks=tuple(replace(entry, stack=stack) if entry.position == position else entry for entry in state.stacks),
    )


def set_hero_position(state: HandHistoryState, position: Position) -> HandHistoryState:
    if position not in positions_for(state.player_count):
        logger.error("Hero position %s not valid for %s players", position, state.player_count)
        raise InvariantViolationError(f"Position {position} is not valid for {state.player_count} players.")

    return replace(
        state,
        hero_position=position,
        stacks=tuple(replace(entry, is_hero=entry.position == position) for entry in state.stacks),
    )


def set_card(state: HandHistoryState, slot: CardSlot, card: Optional[Card]) -> HandHistoryState:
    """Assign or clear one card slot.

    Complete cards go through the ledger, which raises ``DuplicateCardError``
    before anything is changed. Partial cards are stored as-is.
    """
    if card is not None and card.is_complete:
        state.ledger.assign(slot, card)
    elif card is not None and not card.rank and not card.suit:
        card = None

    if slot is CardSlot.HERO_1:
        return replace(state, hero_hand=(card, state.hero_hand[1]))
    if slot is CardSlot.HERO_2:
        return replace(state, hero_hand=(state.hero_hand[0], card))
    if slot in (CardSlot.FLOP_1, CardSlot.FLOP_2, CardSlot.FLOP_3):
        index = (CardSlot.FLOP_1, CardSlot.FLOP_2, CardSlot.FLOP_3).index(slot)
        flop = list(state.flop_cards)
        flop[index] = card
        return replace(state, flop_cards=(flop[0], flop[1], flop[2]))
    if slot is CardSlot.TURN:
        return replace(state, turn_card=card)
    return replace(state, river_card=card)


def _is_amount(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def validate_action(state: HandHistoryState, entry: ActionEntry) -> Optional[str]:
    if entry.position not in positions_for(state.player_count):
        return f"Position {entry.position} is not seated at a {state.player_count}-handed table."
    if entry.action in (AMOUNT_REQUIRED | AMOUNT_OPTIONAL) and entry.amount is not None and not _is_amount(entry.amount):
        return f"The amount for {entry.action} must be a finite number, got {entry.amount!r}."
    if entry.action in AMOUNT_REQUIRED and (entry.amount is None or not entry.amount > 0):
        return f"A positive amount is required for {entry.action}."
    if entry.action in AMOUNT_OPTIONAL and entry.amount is not None and not entry.amount > 0:
        return f"The amount for {entry.action} must be positive when given."
    return None


def add_action(state: HandHistoryState, street: Street, entry: ActionEntry) -> ActionOutcome:
    reason = validate_action(state, entry)
    if reason:
        logger.warning("Action not added on %s: %s", street.value, reason)
        return ActionOutcome(state=state, applied=False, entry=entry, reason=reason)

    if entry.action not in AMOUNT_REQUIRED and entry.action not in AMOUNT_OPTIONAL and entry.amount is not None:
        entry = replace(entry, amount=None)

    actions = street_actions(state, street) + (entry,)
    return ActionOutcome(state=_with_street_actions(state, street, actions), applied=True, entry=entry)


def remove_action(state: HandHistoryState, street: Street, index: int) -> ActionOutcome:
    actions = list(street_actions(state, street))
    if index < 0 or index >= len(actions):
        reason = f"No {street.value} action at index {index}."
        logger.warning("Action not removed: %s", reason)
        return ActionOutcome(state=state, applied=False, reason=reason)

    removed = actions.pop(index)
    return ActionOutcome(state=_with_street_actions(state, street, tuple(actions)), applied=True, entry=removed)
