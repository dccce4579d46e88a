from __future__ import annotations

from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from .hand import HandHistoryState

Position = Literal["BTN", "SB", "BB", "UTG", "UTG+1", "MP", "MP+1", "HJ", "CO"]

MIN_PLAYERS = 2
MAX_PLAYERS = 9
DEFAULT_PLAYER_COUNT = 6

POSITIONS_BY_PLAYER_COUNT: dict[int, tuple[Position, ...]] = {
    2: ("SB", "BB"),
    3: ("BTN", "SB", "BB"),
    4: ("BTN", "SB", "BB", "CO"),
    5: ("BTN", "SB", "BB", "UTG", "CO"),
    6: ("BTN", "SB", "BB", "UTG", "MP", "CO"),
    7: ("BTN", "SB", "BB", "UTG", "UTG+1", "MP", "CO"),
    8: ("BTN", "SB", "BB", "UTG", "UTG+1", "MP", "HJ", "CO"),
    9: ("BTN", "SB", "BB", "UTG", "UTG+1", "MP", "MP+1", "HJ", "CO"),
}


def positions_for(player_count: int) -> tuple[Position, ...]:
    return POSITIONS_BY_PLAYER_COUNT.get(player_count, POSITIONS_BY_PLAYER_COUNT[DEFAULT_PLAYER_COUNT])


def folded_positions(state: "HandHistoryState") -> set[Position]:
    return {entry.position for entry in state.all_actions() if entry.action == "fold"}


def available_positions(state: "HandHistoryState") -> list[Position]:
    """Seats that may still act: the table for the player count minus anyone who folded."""
    folded = folded_positions(state)
    return [position for position in positions_for(state.player_count) if position not in folded]
