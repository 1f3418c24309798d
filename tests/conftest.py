import copy
from typing import Any, Dict, List

import pytest

from trap_forge.plugins.trapautomator.store import DefinitionStore

SAMPLE_DEFINITIONS: Dict[str, Any] = {
    "trap": {
        "spike-pit": {
            "name": "Spike Pit",
            "category": "generic",
            "defaultSave": "dex",
            "defaultDC": 12,
            "description": {
                "flavor": "As you trigger {trigger}, spikes erupt from the floor.",
                "fail": "You take damage.",
                "success": "You narrowly avoid the spikes.",
            },
            "hints": {
                "floor": [
                    {"+2": "Scratches", "+4": "A seam", "+6": "Dried blood", "+10": "The plate"},
                    {"+2": "Uneven dust", "+4": "A low tile", "+6": "Tiny holes", "+10": "Spike tips"},
                ],
            },
        },
        "boom": {
            "name": "Boom",
            "category": "ork",
            "description": {"flavor": "You {trigger} and hear a fizzing fuse."},
            "hints": {},
        },
        "lab-laser": {
            "name": "Lab Laser",
            "category": "sci-fi",
            "defaultSave": "con",
            "description": {"flavor": "When {trigger} blinks red, a laser sweeps the room."},
            "hints": {"wall": {"+2": ["A lens"], "+4": ["A wire"]}},
        },
    },
    "cache": {
        "dusty-chest": {
            "name": "Dusty Chest",
            "category": "generic",
            "description": {"found": "A dusty chest."},
            "hints": {"floor": [{"+2": "Drag marks", "+4": "", "+6": "", "+10": ""}]},
        },
    },
}


@pytest.fixture
def definitions() -> Dict[str, Any]:
    return copy.deepcopy(SAMPLE_DEFINITIONS)


@pytest.fixture
def logs() -> List[str]:
    return []


@pytest.fixture
def store(definitions: Dict[str, Any], logs: List[str]) -> DefinitionStore:
    return DefinitionStore(definitions, log=logs.append)
