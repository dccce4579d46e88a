from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .cards import CardSlot
from .hand import ActionType, Street
from .positions import Position

Rank = Literal["2", "3", "4", "5", "6", "7", "8", "9", "T", "J", "Q", "K", "A"]
Suit = Literal["h", "d", "s", "c"]
Role = Literal["user", "assistant"]


def to_camel(value: str) -> str:
    parts = value.split("_")
    return parts[0] + "".join(part.capitalize() for part in parts[1:])


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class CardModel(CamelModel):
    rank: Optional[Rank] = None
    suit: Optional[Suit] = None


class StackEntryModel(CamelModel):
    position: Position
    stack: float
    is_hero: bool


class ActionEntryModel(CamelModel):
    position: Position
    action: ActionType
    amount: Optional[float] = None
    is_question: bool = False


class HandStateModel(CamelModel):
    hero_hand: List[Optional[CardModel]]
    hero_position: Position
    player_count: int
    stacks: List[StackEntryModel]
    pot_size: float
    preflop_actions: List[ActionEntryModel]
    flop_cards: List[Optional[CardModel]]
    flop_actions: List[ActionEntryModel]
    turn_card: Optional[CardModel]
    turn_actions: List[ActionEntryModel]
    river_card: Optional[CardModel]
    river_actions: List[ActionEntryModel]
    used_cards: List[str]


class WizardStateModel(CamelModel):
    step: int
    label: str
    can_advance: bool
    blocking_reason: Optional[str] = None
    visited_steps: List[int]


class AnalysisTurnModel(CamelModel):
    role: Role
    content: str
    created_at: str


class SessionStateModel(CamelModel):
    session_id: str
    hand: HandStateModel
    wizard: WizardStateModel
    available_positions: List[Position]
    hand_history: str
    analysis: List[AnalysisTurnModel]


class PlayerCountRequestModel(CamelModel):
    delta: int


class StackRequestModel(CamelModel):
    position: Position
    stack: float = Field(allow_inf_nan=False)


class HeroPositionRequestModel(CamelModel):
    position: Position


class CardRequestModel(CamelModel):
    slot: CardSlot
    rank: Optional[Rank] = None
    suit: Optional[Suit] = None


class ActionRequestModel(CamelModel):
    street: Street
    position: Position
    action: ActionType
    amount: Optional[float] = Field(default=None, allow_inf_nan=False)


class RemoveActionRequestModel(CamelModel):
    street: Street
    index: int


class WizardJumpRequestModel(CamelModel):
    step: int = Field(ge=1, le=6)


class FollowUpRequestModel(CamelModel):
    query: str = Field(min_length=1)


class AvailableCardsModel(CamelModel):
    slot: CardSlot
    cards: List[str]


class ActionResolutionModel(CamelModel):
    session_state: SessionStateModel
    applied: bool
    reason: Optional[str] = None
    entry: Optional[ActionEntryModel] = None
    analysis_triggered: bool = False
