import pytest

from backend.hand_history.cards import Card, CardLedger, CardSlot, DuplicateCardError, full_deck


def test_deck_has_52_distinct_cards() -> None:
    deck = full_deck()
    assert len(deck) == 52
    assert len(set(deck)) == 52


def test_card_parse_and_label() -> None:
    card = Card.parse("as")
    assert card == Card(rank="A", suit="s")
    assert card.label() == "As"
    assert Card(rank="T").label() == "T?"
    assert not Card(rank="T").is_complete


def test_unknown_rank_is_rejected() -> None:
    with pytest.raises(ValueError):
        Card(rank="1", suit="h")


def test_card_is_available_again_for_the_slot_holding_it() -> None:
    ledger = CardLedger().assign(CardSlot.HERO_1, Card("A", "s"))

    assert ledger.is_available(Card("A", "s"), editing=CardSlot.HERO_1)
    assert not ledger.is_available(Card("A", "s"), editing=CardSlot.FLOP_1)
    assert not ledger.is_available(Card("A", "s"))


def test_assign_replaces_previous_card_of_slot() -> None:
    ledger = CardLedger().assign(CardSlot.TURN, Card("2", "c")).assign(CardSlot.TURN, Card("3", "c"))

    assert ledger.used_cards == frozenset({Card("3", "c")})
    assert ledger.is_available(Card("2", "c"), editing=CardSlot.RIVER)


def test_duplicate_assignment_fails_without_touching_ledger() -> None:
    ledger = CardLedger().assign(CardSlot.HERO_1, Card("K", "h"))

    with pytest.raises(DuplicateCardError):
        ledger.assign(CardSlot.RIVER, Card("K", "h"))

    assert ledger.occupied == {CardSlot.HERO_1: Card("K", "h")}


def test_clear_and_partial_cards_stay_out_of_ledger() -> None:
    ledger = CardLedger().assign(CardSlot.FLOP_1, Card("Q", "d"))
    assert ledger.clear(CardSlot.FLOP_1).used_cards == frozenset()

    ledger = CardLedger.from_slots({CardSlot.HERO_1: Card(rank="Q"), CardSlot.HERO_2: None})
    assert ledger.used_cards == frozenset()


def test_available_cards_excludes_cards_used_elsewhere() -> None:
    ledger = CardLedger().assign(CardSlot.HERO_1, Card("A", "h")).assign(CardSlot.HERO_2, Card("A", "d"))

    for_hero_one = ledger.available_cards(editing=CardSlot.HERO_1)
    assert len(for_hero_one) == 51
    assert Card("A", "h") in for_hero_one
    assert Card("A", "d") not in for_hero_one
    assert len(ledger.available_cards(editing=CardSlot.FLOP_1)) == 50
