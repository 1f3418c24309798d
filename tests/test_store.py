import pytest

from trap_forge.plugins.trapautomator import edits
from trap_forge.plugins.trapautomator.categories import DEFAULT_TRIGGERS, Classification
from trap_forge.plugins.trapautomator.errors import NotFoundFailure, PersistenceFailure, ValidationFailure
from trap_forge.plugins.trapautomator.flavor import compose_flavor
from trap_forge.plugins.trapautomator.store import DefinitionStore


def test_rebuild_logs_counts(store, logs) -> None:
    assert logs[-1] == "[TrapAutomator] Definitions ready: 3 traps, 1 caches."


def test_triggers_are_seeded_and_inherited(store) -> None:
    assert store.trigger_list("generic") == DEFAULT_TRIGGERS["generic"]
    assert store.trigger_list("ork") == DEFAULT_TRIGGERS["grimdark"]


def test_blank_store_has_no_triggers(logs) -> None:
    store = DefinitionStore({}, log=logs.append)
    assert store.triggers == {}
    assert logs == ["[TrapAutomator] Definitions ready: 0 traps, 0 caches."]


def test_category_queries(store) -> None:
    assert store.all_categories() == ["generic", "ork", "sci-fi"]
    assert store.primary_categories() == ["generic", "sci-fi"]
    assert store.subcategories("grimdark") == ["ork"]
    assert store.available_trap_categories() == ["generic", "sci-fi", "grimdark"]
    assert store.trap_subcategories("grimdark") == ["ork"]
    assert store.trap_subcategories("generic") == []
    assert store.traps_by_category()["generic"]["_"] == [("spike-pit", "Spike Pit")]


def test_traps_in_falls_back_to_every_group(store) -> None:
    assert store.traps_in("generic") == [("spike-pit", "Spike Pit")]
    assert store.traps_in("grimdark") == [("boom", "Boom")]
    assert store.traps_in("grimdark", "ork") == [("boom", "Boom")]
    assert store.traps_in("magical") == []


def test_lookups(store) -> None:
    assert store.get("trap", "spike-pit")["name"] == "Spike Pit"
    with pytest.raises(NotFoundFailure):
        store.get("trap", "nope")
    with pytest.raises(KeyError):
        store.get("cache", "spike-pit")
    with pytest.raises(ValidationFailure):
        store.of_type("potion")
    assert store.classify("ork") == Classification("grimdark", "ork")


def test_triggers_for_prefers_subcategory_list(store) -> None:
    assert store.triggers_for("boom") == DEFAULT_TRIGGERS["grimdark"]
    assert store.triggers_for("spike-pit") == DEFAULT_TRIGGERS["generic"]
    assert store.triggers_for("lab-laser") == DEFAULT_TRIGGERS["sci-fi"]


def test_triggers_for_trims_and_dedupes(definitions) -> None:
    custom = {"triggers": {"generic": [" pull a lever ", "pull a lever", "kick a door"]}}
    store = DefinitionStore(definitions, custom, log=lambda _m: None)
    assert store.triggers_for("spike-pit") == ["pull a lever", "kick a door"]


def test_triggers_for_without_phrases_fails(definitions) -> None:
    custom = {"triggers": {"generic": ["  ", ""]}}
    store = DefinitionStore(definitions, custom, log=lambda _m: None)
    with pytest.raises(ValidationFailure):
        store.triggers_for("spike-pit")


def test_custom_layer_shadows_without_touching_base(definitions) -> None:
    custom = {"trap": {"spike-pit": {"defaultDC": 18}}}
    store = DefinitionStore(definitions, custom, log=lambda _m: None)

    assert store.get("trap", "spike-pit")["defaultDC"] == 18
    assert store.get("trap", "spike-pit")["name"] == "Spike Pit"
    assert store.is_custom("trap", "spike-pit")
    assert not store.is_custom("trap", "boom")
    assert definitions["trap"]["spike-pit"]["defaultDC"] == 12


def test_inherited_triggers_stay_put_when_the_primary_changes(store) -> None:
    original = store.trigger_list("grimdark")

    store.apply_custom({"triggers": {"grimdark": ["open a vox-locked door"]}})

    assert store.trigger_list("grimdark") == ["open a vox-locked door"]
    assert store.trigger_list("ork") == original


def test_apply_custom_persists_a_copy(store) -> None:
    saved = []
    custom = {"categories": {"pirates": {"name": "pirates"}}}

    store.apply_custom(custom, persist=saved.append)

    assert saved == [custom]
    saved[0]["categories"]["pirates"]["name"] = "changed"
    assert store.categories["pirates"]["name"] == "pirates"


def test_failed_persist_keeps_the_merged_view(store, logs) -> None:
    def broken(_data):
        raise OSError("disk full")

    with pytest.raises(PersistenceFailure) as exc:
        store.apply_custom({"categories": {"pirates": {}}}, persist=broken)

    assert isinstance(exc.value, OSError)
    assert "pirates" in store.categories
    assert store.custom == {"categories": {"pirates": {}}}
    assert "disk full" in logs[-1]


def test_builtin_definitions_compose_cleanly() -> None:
    store = DefinitionStore.from_builtin(log=lambda _m: None)

    assert "spike-pit" in store.traps
    assert store.triggers_for("ork-boom-trap") == DEFAULT_TRIGGERS["grimdark"]
    for key, d in store.traps.items():
        trigger = store.triggers_for(key)[0]
        for loc in ("floor", "wall", "ceiling", "other"):
            flavor = compose_flavor(d["description"]["flavor"], trigger, loc)
            assert "{" not in flavor and "}" not in flavor
            assert flavor.startswith(f"You {trigger}")


def test_cyclic_custom_categories_still_load(definitions, logs) -> None:
    custom = {"categories": {"a": {"primary": "b"}, "b": {"primary": "a"}}}

    store = DefinitionStore(definitions, custom, log=logs.append)

    assert any("loops back on itself" in m for m in logs)
    assert store.classify("a") == Classification("b", "a")
    assert store.classify("b") == Classification("b")
    assert store.custom["categories"] == {"a": {"primary": "b"}, "b": {}}
    assert store.triggers_for("spike-pit") == DEFAULT_TRIGGERS["generic"]


def test_self_referencing_category_is_repaired(definitions) -> None:
    store = DefinitionStore(definitions, {"categories": {"loop": {"primary": "Loop"}}}, log=lambda _m: None)
    assert store.classify("loop") == Classification("loop")


def test_deleted_subcategory_drops_its_inherited_triggers(definitions) -> None:
    definitions["trap"]["plank"] = {"name": "Plank", "category": "reavers", "description": {"flavor": "x"}}
    store = DefinitionStore(definitions, {"categories": {"reavers": {"primary": "generic"}}}, log=lambda _m: None)
    assert store.trigger_list("reavers") == DEFAULT_TRIGGERS["generic"]

    store.apply_custom(edits.delete_category(store.custom, "reavers"))

    assert "reavers" not in store.triggers
    assert store.classify("reavers") == Classification("generic")
