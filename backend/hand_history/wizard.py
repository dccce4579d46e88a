from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from .cards import Card
from .hand import HandHistoryState


class WizardStep(IntEnum):
    BASIC_INFO = 1
    PREFLOP = 2
    FLOP = 3
    TURN = 4
    RIVER = 5
    REVIEW = 6


STEP_LABELS: dict[WizardStep, str] = {
    WizardStep.BASIC_INFO: "Basic info",
    WizardStep.PREFLOP: "Preflop",
    WizardStep.FLOP: "Flop",
    WizardStep.TURN: "Turn",
    WizardStep.RIVER: "River",
    WizardStep.REVIEW: "Review",
}


def _complete(*cards: Optional[Card]) -> bool:
    return all(card is not None and card.is_complete for card in cards)


def blocking_reason(step: WizardStep, state: HandHistoryState) -> Optional[str]:
    """Why the wizard cannot leave ``step`` going forward, or None if it can."""
    if step is WizardStep.BASIC_INFO and not _complete(*state.hero_hand):
        return "Both hero cards need a rank and a suit."
    if step is WizardStep.FLOP and not _complete(*state.flop_cards):
        return "All three flop cards need a rank and a suit."
    if step is WizardStep.TURN and not _complete(state.turn_card):
        return "The turn card needs a rank and a suit."
    if step is WizardStep.RIVER and not _complete(state.river_card):
        return "The river card needs a rank and a suit."
    if step is WizardStep.REVIEW:
        return "Review is the last step."
    return None


@dataclass(frozen=True)
class Wizard:
    step: WizardStep = WizardStep.BASIC_INFO

    @property
    def label(self) -> str:
        return STEP_LABELS[self.step]

    @property
    def visited_steps(self) -> list[WizardStep]:
        return [step for step in WizardStep if step <= self.step]

    def can_advance(self, state: HandHistoryState) -> bool:
        return blocking_reason(self.step, state) is None

    def advance(self, state: HandHistoryState) -> "Wizard":
        if not self.can_advance(state):
            return self
        return Wizard(step=WizardStep(min(self.step + 1, WizardStep.REVIEW)))

    def back(self) -> "Wizard":
        return Wizard(step=WizardStep(max(self.step - 1, WizardStep.BASIC_INFO)))

    def jump(self, target: int) -> "Wizard":
        """Jump to an already visited step; future steps are ignored."""
        if target < WizardStep.BASIC_INFO or target > self.step:
            return self
        return Wizard(step=WizardStep(target))
