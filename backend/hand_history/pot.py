from __future__ import annotations

from typing import Iterable, Protocol

BIG_BLIND = 1.0
SMALL_BLIND = 0.5
ANTE = 1.0
FORCED_BETS = BIG_BLIND + SMALL_BLIND + ANTE

CHIP_COMMITTING_ACTIONS = frozenset({"bet", "call", "raise", "all-in"})


class _Committable(Protocol):
    action: str
    amount: float | None


def committed_amount(entry: _Committable) -> float:
    if entry.action not in CHIP_COMMITTING_ACTIONS:
        return 0.0
    if entry.amount is None or entry.amount <= 0:
        return 0.0
    return float(entry.amount)


def pot_size(actions: Iterable[_Committable]) -> float:
    """Forced bets plus every chip committed by the recorded actions.

    Always a full recomputation; the pot never drops below the forced bets.
    """
    return FORCED_BETS + sum(committed_amount(entry) for entry in actions)
