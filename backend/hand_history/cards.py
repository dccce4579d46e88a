from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

RANK_ORDER = "23456789TJQKA"
SUITS = "hdsc"


class InvariantViolationError(RuntimeError):
    """Raised when a mutation would leave the hand in a corrupt state."""


class DuplicateCardError(InvariantViolationError):
    def __init__(self, card: "Card", slot: "CardSlot") -> None:
        super().__init__(f"Card {card} is already used elsewhere; cannot assign it to {slot.value}.")
        self.card = card
        self.slot = slot


@dataclass(frozen=True)
class Card:
    """A card slot value. Either field may be missing while the user is still picking."""

    rank: Optional[str] = None
    suit: Optional[str] = None

    def __post_init__(self) -> None:
        if self.rank is not None and self.rank not in RANK_ORDER:
            raise ValueError(f"Unknown rank: {self.rank!r}")
        if self.suit is not None and self.suit not in SUITS:
            raise ValueError(f"Unknown suit: {self.suit!r}")

    @classmethod
    def parse(cls, text: str) -> "Card":
        value = text.strip()
        if len(value) != 2:
            raise ValueError(f"Card must be rank+suit, got {text!r}")
        return cls(rank=value[0].upper(), suit=value[1].lower())

    @property
    def is_complete(self) -> bool:
        return self.rank is not None and self.suit is not None

    def label(self) -> str:
        return f"{self.rank or '?'}{self.suit or '?'}"

    def __str__(self) -> str:
        return self.label()


class CardSlot(str, Enum):
    HERO_1 = "hero1"
    HERO_2 = "hero2"
    FLOP_1 = "flop1"
    FLOP_2 = "flop2"
    FLOP_3 = "flop3"
    TURN = "turn"
    RIVER = "river"


def full_deck() -> list[Card]:
    return [Card(rank=rank, suit=suit) for rank in RANK_ORDER for suit in SUITS]


@dataclass(frozen=True)
class CardLedger:
    """Tracks which complete cards occupy which slots.

    Partial cards never enter the ledger; they are stored on the hand only.
    """

    occupied: Mapping[CardSlot, Card] = field(default_factory=dict)

    @classmethod
    def from_slots(cls, slots: Mapping[CardSlot, Optional[Card]]) -> "CardLedger":
        return cls(occupied={slot: card for slot, card in slots.items() if card is not None and card.is_complete})

    @property
    def used_cards(self) -> frozenset[Card]:
        return frozenset(self.occupied.values())

    def is_available(self, card: Card, editing: Optional[CardSlot] = None) -> bool:
        return not any(slot != editing and held == card for slot, held in self.occupied.items())

    def available_cards(self, editing: Optional[CardSlot] = None) -> list[Card]:
        return [card for card in full_deck() if self.is_available(card, editing)]

    def assign(self, slot: CardSlot, card: Card) -> "CardLedger":
        if not card.is_complete:
            return self.clear(slot)
        if not self.is_available(card, editing=slot):
            logger.error("Refusing duplicate card assignment: %s -> %s", card, slot.value)
            raise DuplicateCardError(card, slot)
        occupied = dict(self.occupied)
        occupied[slot] = card
        return CardLedger(occupied=occupied)

    def clear(self, slot: CardSlot) -> "CardLedger":
        if slot not in self.occupied:
            return self
        occupied = dict(self.occupied)
        del occupied[slot]
        return CardLedger(occupied=occupied)
