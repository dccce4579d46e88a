from backend.hand_history.cards import Card, CardSlot
from backend.hand_history.hand import ActionEntry, Street, add_action, new_hand, set_card
from backend.hand_history.serializer import QUESTION_LABEL, serialize


def _ak_in_cutoff():
    state = set_card(new_hand(), CardSlot.HERO_1, Card("A", "s"))
    state = set_card(state, CardSlot.HERO_2, Card("K", "s"))
    state = add_action(state, Street.PREFLOP, ActionEntry("CO", "raise", 3.0)).state
    return add_action(state, Street.PREFLOP, ActionEntry("BB", "?")).state


def test_preflop_question_document() -> None:
    text = serialize(_ak_in_cutoff())

    assert text == (
        "### Setup\n"
        "\n"
        "- Hero hand: As Ks\n"
        "- Hero position: CO\n"
        "- Players: 6\n"
        "- Stacks:\n"
        "  - BTN: 100.0BB\n"
        "  - SB: 100.0BB\n"
        "  - BB: 100.0BB\n"
        "  - UTG: 100.0BB\n"
        "  - MP: 100.0BB\n"
        "  - CO (Hero): 100.0BB\n"
        "- Current pot: 5.5BB\n"
        "\n"
        "### Preflop\n"
        "- Preflop actions:\n"
        "  - CO (Hero): raise 3.0BB\n"
        f"  - BB: {QUESTION_LABEL}\n"
    )


def test_raise_line_comes_before_question_line() -> None:
    text = serialize(_ak_in_cutoff())
    raise_at = text.index("CO (Hero): raise 3.0BB")
    question_at = text.index(f"BB: {QUESTION_LABEL}")
    assert raise_at < question_at
    assert text.rstrip().endswith(QUESTION_LABEL)


def test_empty_hand_only_has_header() -> None:
    text = serialize(new_hand())

    assert "- Hero hand: ? ?" in text
    assert "- Current pot: 2.5BB" in text
    assert "### Preflop" not in text
    assert "### Flop" not in text


def test_partial_cards_render_placeholders() -> None:
    state = set_card(new_hand(), CardSlot.HERO_1, Card(rank="Q"))
    state = set_card(state, CardSlot.FLOP_2, Card("8", "c"))

    text = serialize(state)

    assert "- Hero hand: Q? ?" in text
    assert "### Flop\n- Flop board: ? 8c ?\n- Pot at flop: 2.5BB\n" in text
    assert "### Turn" not in text


def test_board_sections_follow_cards_and_read_current_pot() -> None:
    state = _ak_in_cutoff()
    for slot, text in ((CardSlot.FLOP_1, "Qh"), (CardSlot.FLOP_2, "7d"), (CardSlot.FLOP_3, "2c"), (CardSlot.TURN, "9s")):
        state = set_card(state, slot, Card.parse(text))
    state = add_action(state, Street.FLOP, ActionEntry("BB", "check")).state
    state = add_action(state, Street.FLOP, ActionEntry("CO", "bet", 4.0)).state

    text = serialize(state)

    assert "### Flop\n- Flop board: Qh 7d 2c\n- Pot at flop: 9.5BB\n- Flop actions:\n" in text
    assert "  - BB: check\n  - CO (Hero): bet 4.0BB\n" in text
    assert "### Turn\n- Turn board: 9s\n- Pot at turn: 9.5BB\n" in text
    assert "### River" not in text
    assert text.index("### Preflop") < text.index("### Flop") < text.index("### Turn")


def test_river_section_lists_river_actions_last() -> None:
    state = _ak_in_cutoff()
    for slot, text in (
        (CardSlot.FLOP_1, "Qh"),
        (CardSlot.FLOP_2, "7d"),
        (CardSlot.FLOP_3, "2c"),
        (CardSlot.TURN, "9s"),
        (CardSlot.RIVER, "3h"),
    ):
        state = set_card(state, slot, Card.parse(text))
    state = add_action(state, Street.RIVER, ActionEntry("CO", "bet", 6.0)).state
    state = add_action(state, Street.RIVER, ActionEntry("BB", "call", 6.0)).state

    text = serialize(state)

    assert text.endswith(
        "### River\n"
        "- River board: 3h\n"
        "- Pot at river: 17.5BB\n"
        "- River actions:\n"
        "  - CO (Hero): bet 6.0BB\n"
        "  - BB: call 6.0BB\n"
    )
    assert text.index("### Turn") < text.index("### River")


def test_serialize_is_deterministic() -> None:
    state = _ak_in_cutoff()
    assert serialize(state) == serialize(state)
