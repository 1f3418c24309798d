import random

import pytest

from trap_forge.plugins.trapautomator.errors import NotFoundFailure, ValidationFailure
from trap_forge.plugins.trapautomator.generator import CompositionRequest, compose_result, generate


def spike_pit(**kwargs) -> CompositionRequest:
    return CompositionRequest(def_type="trap", key="spike-pit", trigger="step on a pressure plate", **kwargs)


def test_spike_pit_composition(store) -> None:
    result = compose_result(store, spike_pit())

    assert result.flavor == "You step on a pressure plate on the floor. Spikes erupt from the floor."
    assert result.name == "Spike Pit"
    assert result.save_type == "dex"
    assert result.hidden_dc == 12
    assert result.fail_text == "You take damage."
    assert result.success_text == "You narrowly avoid the spikes."
    assert result.damage_type is None


def test_trap_options_flow_into_the_result(store) -> None:
    result = compose_result(
        store,
        spike_pit(dc=16, save_type="CON", damage=" 2d10 ", damage_type="piercing",
                  half_on_success=True, effect="You are poisoned."),
    )
    assert result.hidden_dc == 16
    assert result.save_type == "con"
    assert result.damage_formula == "2d10"
    assert result.damage_type == "piercing"
    assert result.fail_text == "You take damage. You are poisoned."
    assert result.success_text == "You narrowly avoid the spikes. You take half damage."


def test_dc_and_save_fall_back(store) -> None:
    result = compose_result(store, CompositionRequest("trap", "boom", trigger="step on a landmine"))
    assert result.hidden_dc == 10
    assert result.save_type == "dex"
    assert result.flavor == "You step on a landmine on the floor. You hear a fizzing fuse."


def test_trap_payload_hides_the_dc(store) -> None:
    payload = compose_result(store, spike_pit()).to_payload()
    assert payload["hiddenDC"] == 12
    assert "DC" not in payload
    assert payload["type"] == "trap"
    assert payload["saveType"] == "dex"


def test_cache_flavor_is_the_found_text(store) -> None:
    result = compose_result(store, CompositionRequest(def_type="cache", key="dusty-chest"))

    assert result.flavor == "A dusty chest."
    assert result.found_text == "A dusty chest."
    assert result.to_payload() == {
        "name": "Dusty Chest",
        "type": "cache",
        "flavor": "A dusty chest.",
        "saveType": None,
        "DC": None,
        "damageFormula": None,
        "halfDamageOnSuccess": False,
        "foundText": "A dusty chest.",
    }


def test_cache_found_text_can_be_replaced(store) -> None:
    result = compose_result(store, CompositionRequest("cache", "dusty-chest", found_text="A rusted chest."))
    assert result.flavor == "A rusted chest."
    assert result.found_text == "A rusted chest."


@pytest.mark.parametrize(
    "request_",
    [
        CompositionRequest("trap", "spike-pit", location="roof"),
        CompositionRequest("trap", "spike-pit", save_type="luck"),
        CompositionRequest("potion", "spike-pit"),
    ],
)
def test_bad_requests_are_rejected(store, request_) -> None:
    with pytest.raises(ValidationFailure):
        compose_result(store, request_)


def test_unknown_definition(store) -> None:
    with pytest.raises(NotFoundFailure):
        compose_result(store, CompositionRequest("trap", "missing"))


def test_generate_returns_one_authored_set(store) -> None:
    result, hints = generate(store, spike_pit(), random.Random(3))
    assert result.name == "Spike Pit"
    assert hints in store.get("trap", "spike-pit")["hints"]["floor"]


def test_markdown_lists_resolution_and_hints(store) -> None:
    result, hints = generate(store, spike_pit(damage="2d10", damage_type="piercing"), random.Random(3))
    md = result.to_markdown(hints)

    assert md.startswith("# Spike Pit")
    assert "DEX (DC 12, hidden)" in md
    assert "- **Damage:** 2d10 piercing" in md
    assert f"- **+2:** {hints['+2']}" in md
