"""Canonical text hand-history handed to the analysis service.

The document is plain markdown-ish text. Sections appear in a fixed order and
only when their data exists, so a half-entered hand still renders as a live
preview. Pot sizes are read from the state as maintained, never recomputed.
"""

from __future__ import annotations

from typing import Optional

from .cards import Card
from .hand import ActionEntry, HandHistoryState, Street, street_actions

QUESTION_LABEL = "requesting analysis"
HERO_TAG = " (Hero)"

STREET_TITLES: dict[Street, str] = {
    Street.PREFLOP: "Preflop",
    Street.FLOP: "Flop",
    Street.TURN: "Turn",
    Street.RIVER: "River",
}


def format_card(card: Optional[Card]) -> str:
    if card is None:
        return "?"
    return card.label()


def format_bb(value: float) -> str:
    return f"{value:.1f}BB"


def format_action(entry: ActionEntry, hero_position: str) -> str:
    position = f"{entry.position}{HERO_TAG}" if entry.position == hero_position else entry.position
    label = QUESTION_LABEL if entry.is_question else entry.action
    amount = f" {format_bb(entry.amount)}" if entry.amount else ""
    return f"{position}: {label}{amount}"


def _header(state: HandHistoryState) -> list[str]:
    lines = [
        "### Setup",
        "",
        f"- Hero hand: {format_card(state.hero_hand[0])} {format_card(state.hero_hand[1])}",
        f"- Hero position: {state.hero_position}",
        f"- Players: {state.player_count}",
        "- Stacks:",
    ]
    for entry in state.stacks:
        position = f"{entry.position}{HERO_TAG}" if entry.is_hero else entry.position
        lines.append(f"  - {position}: {format_bb(entry.stack)}")
    lines.append(f"- Current pot: {format_bb(state.pot_size)}")
    return lines


def _action_lines(state: HandHistoryState, street: Street) -> list[str]:
    actions = street_actions(state, street)
    if not actions:
        return []
    lines = [f"- {STREET_TITLES[street]} actions:"]
    lines.extend(f"  - {format_action(entry, state.hero_position)}" for entry in actions)
    return lines


def _board_section(state: HandHistoryState, street: Street, cards: list[Optional[Card]]) -> list[str]:
    title = STREET_TITLES[street]
    return [
        "",
        f"### {title}",
        f"- {title} board: {' '.join(format_card(card) for card in cards)}",
        f"- Pot at {title.lower()}: {format_bb(state.pot_size)}",
        *_action_lines(state, street),
    ]


def serialize(state: HandHistoryState) -> str:
    lines = _header(state)

    preflop = _action_lines(state, Street.PREFLOP)
    if preflop:
        lines.extend(["", f"### {STREET_TITLES[Street.PREFLOP]}", *preflop])

    if any(card is not None for card in state.flop_cards):
        lines.extend(_board_section(state, Street.FLOP, list(state.flop_cards)))
    if state.turn_card is not None:
        lines.extend(_board_section(state, Street.TURN, [state.turn_card]))
    if state.river_card is not None:
        lines.extend(_board_section(state, Street.RIVER, [state.river_card]))

    return "\n".join(lines) + "\n"
