from __future__ import annotations

from typing import Optional

from .analyst import AnalysisTurn
from .cards import Card, CardSlot
from .hand import (
    ActionEntry,
    ActionOutcome,
    HandHistoryState,
    StackEntry,
    Street,
    add_action,
    new_hand,
    remove_action,
    set_card,
    set_hero_position,
    set_player_count,
    set_stack,
    street_actions,
)
from .models import (
    ActionEntryModel,
    AnalysisTurnModel,
    CardModel,
    HandStateModel,
    SessionStateModel,
    StackEntryModel,
    WizardStateModel,
)
from .positions import Position, available_positions
from .serializer import serialize
from .wizard import Wizard, WizardStep, blocking_reason


class SessionFlowError(ValueError):
    pass


def _card_model(card: Optional[Card]) -> Optional[CardModel]:
    if card is None:
        return None
    return CardModel(rank=card.rank, suit=card.suit)


def _stack_model(entry: StackEntry) -> StackEntryModel:
    return StackEntryModel(position=entry.position, stack=entry.stack, is_hero=entry.is_hero)


def action_entry_model(entry: ActionEntry) -> ActionEntryModel:
    return ActionEntryModel(
        position=entry.position,
        action=entry.action,
        amount=entry.amount,
        is_question=entry.is_question,
    )


def hand_state_model(hand: HandHistoryState) -> HandStateModel:
    def actions(street: Street) -> list[ActionEntryModel]:
        return [action_entry_model(entry) for entry in street_actions(hand, street)]

    return HandStateModel(
        hero_hand=[_card_model(card) for card in hand.hero_hand],
        hero_position=hand.hero_position,
        player_count=hand.player_count,
        stacks=[_stack_model(entry) for entry in hand.stacks],
        pot_size=hand.pot_size,
        preflop_actions=actions(Street.PREFLOP),
        flop_cards=[_card_model(card) for card in hand.flop_cards],
        flop_actions=actions(Street.FLOP),
        turn_card=_card_model(hand.turn_card),
        turn_actions=actions(Street.TURN),
        river_card=_card_model(hand.river_card),
        river_actions=actions(Street.RIVER),
        used_cards=sorted(card.label() for card in hand.ledger.used_cards),
    )


class HandEntrySession:
    """Owns one hand being entered: the hand model, the wizard step and the analysis transcript.

    Every mutation replaces ``self.hand`` with the value returned by a pure
    transition, so readers never see a half-applied change.
    """

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self.hand: HandHistoryState = new_hand()
        self.wizard = Wizard()
        self.transcript: list[AnalysisTurn] = []

    def get_state(self) -> SessionStateModel:
        reason = blocking_reason(self.wizard.step, self.hand)
        return SessionStateModel(
            session_id=self.session_id,
            hand=hand_state_model(self.hand),
            wizard=WizardStateModel(
                step=int(self.wizard.step),
                label=self.wizard.label,
                can_advance=reason is None,
                blocking_reason=reason,
                visited_steps=[int(step) for step in self.wizard.visited_steps],
            ),
            available_positions=available_positions(self.hand),
            hand_history=self.hand_history(),
            analysis=[
                AnalysisTurnModel(role=turn.role, content=turn.content, created_at=turn.created_at)
                for turn in self.transcript
            ],
        )

    def hand_history(self) -> str:
        return serialize(self.hand)

    def available_cards(self, slot: CardSlot) -> list[Card]:
        return self.hand.ledger.available_cards(editing=slot)

    def set_player_count(self, delta: int) -> None:
        self.hand = set_player_count(self.hand, delta)

    def set_stack(self, position: Position, stack: float) -> None:
        self.hand = set_stack(self.hand, position, stack)

    def set_hero_position(self, position: Position) -> None:
        self.hand = set_hero_position(self.hand, position)

    def set_card(self, slot: CardSlot, card: Optional[Card]) -> None:
        self.hand = set_card(self.hand, slot, card)

    def add_action(self, street: Street, entry: ActionEntry) -> ActionOutcome:
        outcome = add_action(self.hand, street, entry)
        self.hand = outcome.state
        return outcome

    def remove_action(self, street: Street, index: int) -> ActionOutcome:
        outcome = remove_action(self.hand, street, index)
        self.hand = outcome.state
        return outcome

    def next_step(self) -> None:
        reason = blocking_reason(self.wizard.step, self.hand)
        if reason:
            raise SessionFlowError(reason)
        self.wizard = self.wizard.advance(self.hand)

    def previous_step(self) -> None:
        self.wizard = self.wizard.back()

    def jump_to(self, step: int) -> None:
        if step > self.wizard.step:
            raise SessionFlowError(f"Step {step} has not been reached yet.")
        self.wizard = self.wizard.jump(step)

    def reset(self) -> None:
        self.hand = new_hand()
        self.wizard = Wizard()
        self.transcript = []

    def start_analysis(self, require_review: bool = True) -> list[AnalysisTurn]:
        """Build a fresh conversation opened by a snapshot of the current hand history.

        The transcript itself is left alone until ``commit_exchange`` is called
        with the reply.
        """
        if require_review and self.wizard.step is not WizardStep.REVIEW:
            raise SessionFlowError("Hands can only be submitted from the review step.")
        return [AnalysisTurn(role="user", content=self.hand_history())]

    def start_follow_up(self, query: str) -> list[AnalysisTurn]:
        if not any(turn.role == "assistant" for turn in self.transcript):
            raise SessionFlowError("Submit the hand for analysis before asking follow-up questions.")
        return [*self.transcript, AnalysisTurn(role="user", content=query)]

    def commit_exchange(self, turns: list[AnalysisTurn], reply: str) -> AnalysisTurn:
        turn = AnalysisTurn(role="assistant", content=reply)
        self.transcript = [*turns, turn]
        return turn
