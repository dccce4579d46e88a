import random

from backend.hand_history.hand import ActionEntry, Street, add_action, new_hand, remove_action
from backend.hand_history.pot import FORCED_BETS, pot_size


def test_forced_bets_constant() -> None:
    assert FORCED_BETS == 2.5
    assert pot_size([]) == 2.5


def test_only_chip_committing_actions_count() -> None:
    actions = [
        ActionEntry("UTG", "fold"),
        ActionEntry("MP", "check"),
        ActionEntry("CO", "bet", 4.0),
        ActionEntry("BTN", "call", 4.0),
        ActionEntry("SB", "raise", 12.0),
        ActionEntry("BB", "all-in", 96.0),
        ActionEntry("CO", "call"),
        ActionEntry("CO", "?"),
    ]
    assert pot_size(actions) == 2.5 + 4.0 + 4.0 + 12.0 + 96.0


def test_add_then_remove_returns_to_prior_pot() -> None:
    state = add_action(new_hand(), Street.PREFLOP, ActionEntry("MP", "raise", 2.5)).state
    before = state.pot_size

    added = add_action(state, Street.FLOP, ActionEntry("CO", "bet", 3.5)).state
    assert added.pot_size == before + 3.5

    removed = remove_action(added, Street.FLOP, 0).state
    assert removed.pot_size == before


def test_pot_never_drops_below_forced_bets() -> None:
    state = new_hand()
    for entry in (ActionEntry("UTG", "raise", 3.0), ActionEntry("CO", "call", 3.0), ActionEntry("BB", "all-in", 100.0)):
        state = add_action(state, Street.PREFLOP, entry).state

    for index in (1, 1, 0):
        state = remove_action(state, Street.PREFLOP, index).state
        assert state.pot_size >= FORCED_BETS
    assert state.pot_size == FORCED_BETS

    assert remove_action(state, Street.PREFLOP, 0).state.pot_size == FORCED_BETS


def test_pot_depends_only_on_committed_amounts() -> None:
    entries = [
        (Street.PREFLOP, ActionEntry("UTG", "raise", 2.5)),
        (Street.PREFLOP, ActionEntry("BB", "call", 2.5)),
        (Street.FLOP, ActionEntry("BB", "check")),
        (Street.FLOP, ActionEntry("UTG", "bet", 4.0)),
        (Street.TURN, ActionEntry("BB", "call", 4.0)),
    ]
    replayed = new_hand()
    for street, entry in entries:
        replayed = add_action(replayed, street, entry).state

    shuffled = list(entries)
    random.Random(7).shuffle(shuffled)
    other = new_hand()
    for street, entry in shuffled:
        other = add_action(other, street, entry).state

    assert replayed.pot_size == other.pot_size == pot_size(replayed.all_actions())
