import pytest

from trap_forge.plugins.trapautomator.flavor import (
    FLAVOR_RULES,
    compose_flavor,
    location_phrase,
    normalize,
    with_subject,
)


def test_spike_pit_reads_naturally() -> None:
    flavor = compose_flavor(
        "As you trigger {trigger}, spikes erupt from the floor.",
        "step on a pressure plate",
        "floor",
    )
    assert flavor == "You step on a pressure plate on the floor. Spikes erupt from the floor."


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("As you trigger {trigger}, spikes erupt.", "Spikes erupt."),
        ("As you {trigger}, the floor tilts.", "The floor tilts."),
        ("As you step forward, a blade swings.", "A blade swings."),
        ("When you trigger {trigger}, darts fly.", "Darts fly."),
        ("When {trigger} clicks, gas hisses out.", "Gas hisses out."),
        ("You {trigger} {location} and a needle stabs you.", "A needle stabs you."),
        ("You {trigger} and the ceiling drops.", "The ceiling drops."),
        ("You {trigger} {location} flames roar up.", "Flames roar up."),
    ],
)
def test_leading_clause_rules(raw, expected) -> None:
    assert normalize(raw) == expected


def test_rules_are_ordered_and_named() -> None:
    names = [name for name, _pattern, _repl in FLAVOR_RULES]
    assert len(names) == len(set(names))
    # Token-anchored "As you" rules must run before the generic clause rule.
    assert names.index("as-you-trigger-token") < names.index("as-you-clause")
    assert names.index("as-you-token") < names.index("as-you-clause")


@pytest.mark.parametrize(
    "raw",
    [
        "{trigger}",
        "{location}{trigger}",
        "{trig{trigger}ger} fires",
        "{{trigger}location} fires",
        "Darts fly from the {location}, {trigger} again.",
        "You {TRIGGER} {Location} and the roof falls.",
        "Mid-sentence {trigger} then {location}.",
    ],
)
def test_normalize_never_leaves_placeholders(raw) -> None:
    out = normalize(raw).lower()
    assert "{trigger}" not in out
    assert "{location}" not in out


def test_orphaned_preposition_is_removed() -> None:
    assert normalize("A dart flies out from the {location}.") == "A dart flies out."
    assert normalize("Smoke pours in the {location}, choking you.") == "Smoke pours choking you."


def test_normalize_tidies_whitespace_and_leading_you() -> None:
    assert normalize("  You   feel a draft  ,  ") == "Feel a draft"
    assert normalize(" , . a rumble .") == "A rumble."


@pytest.mark.parametrize("raw", [None, "", 42, ["a"]])
def test_normalize_non_text_is_empty(raw) -> None:
    assert normalize(raw) == ""


def test_sensory_verbs_get_a_subject() -> None:
    assert with_subject("Hear a click.") == "You hear a click."
    assert with_subject("Notice the smell.") == "You notice the smell."
    assert with_subject("Darts fly.") == "Darts fly."
    assert compose_flavor("You {trigger} and hear a fizzing fuse.", "trip a wire", "wall") == (
        "You trip a wire on the wall. You hear a fizzing fuse."
    )


@pytest.mark.parametrize("trigger", ["step on a pressure plate", "trip a snare"])
@pytest.mark.parametrize(
    "description",
    [
        "As you trigger {trigger}, spikes erupt from the floor.",
        "When {trigger} clicks, a net falls.",
        "Gas fills the room.",
    ],
)
def test_floor_composition_pattern(trigger, description) -> None:
    expected = f"You {trigger} on the floor. {with_subject(normalize(description))}"
    assert compose_flavor(description, trigger, "floor") == expected


def test_other_location_has_no_phrase() -> None:
    assert location_phrase("other") == ""
    assert location_phrase("unknown") == ""
    assert compose_flavor("Darts fly.", "pull a lever", "other") == "You pull a lever. Darts fly."


def test_no_trigger_means_description_only() -> None:
    assert compose_flavor("A dusty chest.", None, "floor") == "A dusty chest."
    assert compose_flavor("A dusty chest.", "   ", "wall") == "A dusty chest."
