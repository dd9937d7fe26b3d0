import json
import random
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from core import BudgetEnforcer, default_form_schema, load_point_caps
from sheet_model import AllocationGroup


@pytest.fixture(scope="module")
def schema():
    return default_form_schema()


@pytest.fixture(scope="module")
def enforcer(schema):
    return BudgetEnforcer.from_schema(schema)


def test_body_scenario(schema, enforcer):
    body = schema.group("body")
    state = AllocationGroup(stats={"Strength": 6, "Dexterity": 6, "Health": 6})
    assert enforcer.points_used(body, state) == 18
    assert enforcer.display(body, state) == "2/20"
    assert not enforcer.allows_stat(body, state, "Energy", 3)
    assert enforcer.allows_stat(body, state, "Energy", 2)


def test_decreases_always_allowed(schema):
    body = schema.group("body")
    state = AllocationGroup(stats={"Strength": 6, "Dexterity": 6, "Health": 6})
    tight = BudgetEnforcer(caps={"body": 5})
    assert tight.allows_stat(body, state, "Strength", 2)
    assert tight.allows_stat(body, state, "Strength", 0)
    assert not tight.allows_stat(body, state, "Energy", 1)


def test_mind_traits_are_free(schema, enforcer):
    mind = schema.group("mind")
    state = AllocationGroup(stats={label: 4 for label in mind.stat_labels[:5]})
    assert enforcer.points_used(mind, state) == 20
    state.traits = {label: True for label in mind.traits}
    assert enforcer.points_used(mind, state) == 20
    assert enforcer.allows_trait(mind, state, "Stubborn", True)


def test_budgeted_traits_cost_a_point():
    body = default_form_schema().group("body")
    body.traits.append("Scarred")
    state = AllocationGroup(stats={"Strength": 2})
    tight = BudgetEnforcer(caps={"body": 2})
    assert not tight.allows_trait(body, state, "Scarred", True)
    state.stats["Strength"] = 1
    assert tight.allows_trait(body, state, "Scarred", True)
    state.traits["Scarred"] = True
    assert tight.points_used(body, state) == 2
    assert tight.allows_trait(body, state, "Scarred", False)


def test_control_states(schema, enforcer):
    body = schema.group("body")
    state = AllocationGroup(stats={"Strength": 6, "Dexterity": 6, "Health": 6})
    states = enforcer.control_states(body, state)
    assert states.pips["Strength"] == [True] * 6
    assert states.pips["Energy"] == [True, True, False, False, False, False]
    assert states.to_dict()["pips"]["Strength"] == [True] * 6


def test_zero_cap_keeps_filled_pips_togglable(schema):
    body = schema.group("body")
    state = AllocationGroup(stats={"Strength": 2})
    zero = BudgetEnforcer(caps={"body": 0})
    states = zero.control_states(body, state)
    assert states.pips["Strength"] == [True, True, False, False, False, False]
    assert states.pips["Dexterity"] == [False] * 6
    assert zero.display(body, state) == "0/0"


def test_clamp_lowers_last_stats_first(schema):
    body = schema.group("body")
    state = AllocationGroup(stats={label: 6 for label in body.stat_labels})
    removed = BudgetEnforcer(caps={"body": 20}).clamp(body, state)
    assert removed == 16
    assert state.stats == {
        "Strength": 6, "Dexterity": 6, "Health": 6,
        "Energy": 2, "Beauty": 0, "Style": 0,
    }


def test_budget_invariant_over_random_sequences(schema, enforcer):
    rng = random.Random(2024)
    states = {name: AllocationGroup() for name in schema.groups}
    for _ in range(2000):
        name = rng.choice(list(schema.groups))
        group_def = schema.group(name)
        state = states[name]
        if group_def.traits and rng.random() < 0.2:
            label = rng.choice(group_def.traits)
            checked = not state.traits.get(label, False)
            if enforcer.allows_trait(group_def, state, label, checked):
                state.traits[label] = checked
        else:
            stat = rng.choice(group_def.stats)
            k = rng.randint(1, stat.pips)
            current = state.stats.get(stat.label, 0)
            desired = 0 if current == k else k
            if enforcer.allows_stat(group_def, state, stat.label, desired):
                state.stats[stat.label] = desired
        assert enforcer.points_used(group_def, state) <= enforcer.cap(group_def)


def test_load_point_caps_skips_unknown_groups(tmp_path):
    caps_file = tmp_path / "caps.json"
    caps_file.write_text(json.dumps({"body": 12, "luck": 3}), encoding="utf-8")
    caps = load_point_caps(str(caps_file))
    assert caps == {"body": 12}
    assert default_form_schema(caps).group("body").cap == 12


def test_repo_point_caps_match_defaults():
    caps = load_point_caps(str(ROOT_DIR / "data" / "point_caps.json"))
    assert caps == default_form_schema().caps
