import json
import random
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from core import Note, default_form_schema
from legacy_fields import CHECK, RANGE, legacy_controls
from sheet_model import BLANK
from snapshot_codec import SnapshotCodec, character_name, parse_snapshot_text


@pytest.fixture(scope="module")
def schema():
    return default_form_schema()


@pytest.fixture(scope="module")
def codec(schema):
    return SnapshotCodec(schema)


def _random_document(codec, schema, rng):
    document = codec.default_document()
    for label in schema.identity_labels:
        document.identity[label] = rng.choice(["", "Aria", "Unknown", "42"])
    titles = rng.sample(schema.note_titles, rng.randint(0, len(schema.note_titles)))
    document.notes = [Note(title=t, text=rng.choice(["", "likes tea"])) for t in titles]
    for name, group_def in schema.groups.items():
        group = document.group(name)
        for stat in group_def.stats:
            group.stats[stat.label] = rng.randint(0, stat.pips)
        for slider in group_def.sliders:
            group.sliders[slider.key] = rng.randint(slider.minimum, slider.maximum)
        for label in group_def.traits:
            group.traits[label] = rng.random() < 0.5
    document.portrait = rng.choice([None, "data:image/png;base64,AAAA"])
    return document


def test_default_snapshot_shape(codec, schema):
    data = codec.default_snapshot()
    assert data["version"] == 2
    assert data["identity"]["Name"] == "Jane Doe"
    assert [n["title"] for n in data["notes"]] == schema.note_titles
    assert data["body"] == {"stats": {label: 0 for label in schema.group("body").stat_labels}}
    assert set(data["mind"]) == {"stats", "sliders", "traits"}
    assert data["mind"]["sliders"]["Nice / Mean"] == 5
    assert data["portrait"] is None


def test_blank_snapshot(codec):
    data = codec.blank_snapshot()
    assert all(value == "" for value in data["identity"].values())
    assert data["notes"] == []
    assert all(v == 5 for v in data["social"]["sliders"].values())
    assert not any(data["social"]["traits"].values())


def test_full_round_trip(codec, schema):
    rng = random.Random(7)
    for _ in range(25):
        document = _random_document(codec, schema, rng)
        assert codec.from_snapshot(codec.to_snapshot(document)) == document


def test_diff_round_trip(codec, schema):
    rng = random.Random(8)
    for _ in range(25):
        document = _random_document(codec, schema, rng)
        assert codec.from_snapshot(codec.to_diff_snapshot(document)) == document


def test_diff_of_default_is_minimal(codec):
    assert codec.to_diff_snapshot(codec.default_document()) == {"version": 2, "portrait": None}


def test_diff_keeps_only_changed_keys(codec):
    document = codec.default_document()
    document.group("body").stats["Strength"] = 3
    document.identity["Name"] = "Aria"
    diff = codec.to_diff_snapshot(document)
    assert diff["identity"] == {"Name": "Aria"}
    assert diff["body"] == {"stats": {"Strength": 3}}
    assert "skills" not in diff


def test_export_and_reimport_aria(codec):
    document = codec.default_document()
    document.identity["Name"] = "Aria"
    document.notes = []
    text = json.dumps(codec.to_snapshot(document))
    again = codec.from_snapshot(json.loads(text))
    assert again.identity["Name"] == "Aria"
    assert again.notes == []
    assert character_name(json.loads(text)) == "Aria"


def test_absent_keys_keep_defaults_and_unknown_keys_are_ignored(codec):
    document = codec.from_snapshot({
        "version": 2,
        "identity": {"Nickname": "Ari", "Favourite Colour": "green"},
        "body": {"stats": {"Strength": 4, "Wingspan": 3}},
        "dreams": {"stats": {}},
    })
    assert document.identity["Name"] == "Jane Doe"
    assert document.identity["Nickname"] == "Ari"
    assert "Favourite Colour" not in document.identity
    assert document.group("body").stats["Strength"] == 4
    assert "Wingspan" not in document.group("body").stats
    assert "dreams" not in document.groups
    assert len(document.notes) == 6


def test_out_of_range_values_are_clamped(codec):
    document = codec.from_snapshot({
        "body": {"stats": {"Strength": 9, "Dexterity": -3, "Health": "2"}},
        "mind": {"sliders": {"Nice / Mean": 40}},
    })
    assert document.group("body").stats["Strength"] == 6
    assert document.group("body").stats["Dexterity"] == 0
    assert document.group("body").stats["Health"] == 2
    assert document.group("mind").sliders["Nice / Mean"] == 10


def test_portrait_is_always_set_or_cleared(codec):
    base = codec.default_document()
    base.portrait = "data:image/png;base64,AAAA"
    assert codec.from_snapshot({"version": 2}, base=base).portrait is None
    assert codec.from_snapshot({"portrait": "data:x"}, base=base).portrait == "data:x"


def test_blank_marker_and_garbage(codec):
    assert codec.from_snapshot(BLANK.to_dict()) == codec.blank_document()
    assert codec.from_snapshot(BLANK) == codec.blank_document()
    assert codec.from_snapshot(None) == codec.default_document()
    assert codec.from_snapshot(["not", "a", "sheet"]) == codec.default_document()
    assert character_name(BLANK.to_dict()) == ""


def test_character_name_keys():
    assert character_name({"identity": {"name": " Bo "}}) == "Bo"
    assert character_name({"identity": {"characterName": "Cy"}}) == "Cy"
    assert character_name({"identity": {"Name": ""}}) == ""
    assert character_name({}) == ""


def test_parse_snapshot_text():
    assert parse_snapshot_text('{"version": 2}') == {"version": 2}
    assert parse_snapshot_text("{nope") is None
    assert parse_snapshot_text("[1, 2]") is None


def test_canonical_documents_are_independent_copies(codec):
    first = codec.default_document()
    first.identity["Name"] = "Changed"
    first.group("body").stats["Strength"] = 6
    assert codec.default_document().identity["Name"] == "Jane Doe"
    assert codec.default_document().group("body").stats["Strength"] == 0


# --- Legacy fields ---

def test_legacy_fields_map_positionally(codec, schema):
    controls = legacy_controls(schema, codec.default_document())
    # 6 note texts, then 8 identity inputs, then the first body stat's pips
    assert [c.section for c in controls[:6]] == ["note"] * 6
    assert controls[6].label == "Name"
    assert (controls[14].section, controls[14].label, controls[14].pip) == ("body", "Strength", 1)

    fields = [{"t": "textarea", "v": "Quiet and kind"}]
    fields += [{"t": "c", "v": False}] * 5
    fields += [{"t": "text", "v": "Old Aria"}]
    document = codec.from_snapshot({"version": 1, "fields": fields})

    assert document.note("Personality").text == "Quiet and kind"
    assert document.identity["Name"] == "Old Aria"
    # Controls after the last field keep their defaults
    assert document.identity["Nickname"] == "Unknown"
    assert document.group("body").stats["Strength"] == 0


def test_legacy_pips_count_checked_boxes(codec, schema):
    fields = [{"t": "c", "v": False}] * 14
    fields += [{"t": "c", "v": True}] * 3 + [{"t": "c", "v": False}] * 3
    document = codec.from_snapshot({"fields": fields})
    assert document.group("body").stats["Strength"] == 3
    # Mismatched kinds leave text controls untouched
    assert document.identity["Name"] == "Jane Doe"


def test_legacy_sliders_are_scaled(codec, schema):
    controls = legacy_controls(schema, codec.default_document())
    first_range = next(i for i, c in enumerate(controls) if c.kind == RANGE)
    assert controls[first_range].label == "Nice / Mean"
    fields = [{"t": "c", "v": False}] * first_range + [{"t": "range", "v": "80"}]
    document = codec.from_snapshot({"fields": fields})
    assert document.group("mind").sliders["Nice / Mean"] == 8


def test_legacy_extra_fields_are_ignored(codec, schema):
    controls = legacy_controls(schema, codec.default_document())
    fields = [{"t": "c" if c.kind == CHECK else "text", "v": False if c.kind == CHECK else ""} for c in controls]
    fields += [{"t": "text", "v": "extra"}] * 10
    document = codec.from_snapshot({"fields": fields})
    assert document.identity["Name"] == ""


def test_legacy_checkbox_then_text_lands_on_notes(codec):
    document = codec.from_snapshot({"fields": [{"t": "c", "v": True}, {"t": "t", "v": "Bob"}]})
    # Notes come first: the checkbox entry does not fit the Personality text
    # and is skipped, "Bob" fills Hobbies, everything after stays default
    expected = codec.default_document()
    expected.note("Hobbies").text = "Bob"
    assert document == expected
    assert document.identity["Name"] == "Jane Doe"
    assert document.note("Personality").text == ""


# --- Non-finite numbers ---

def test_non_finite_stats_and_sliders_keep_defaults(codec):
    text = (
        '{"version": 2,'
        ' "body": {"stats": {"Strength": NaN, "Dexterity": "inf", "Health": 1e400, "Energy": "3"}},'
        ' "mind": {"sliders": {"Nice / Mean": Infinity}}}'
    )
    document = codec.from_snapshot(json.loads(text))
    body = document.group("body").stats
    assert (body["Strength"], body["Dexterity"], body["Health"], body["Energy"]) == (0, 0, 0, 3)
    assert document.group("mind").sliders["Nice / Mean"] == 5
    assert json.loads(json.dumps(codec.to_snapshot(document)))["body"]["stats"]["Strength"] == 0


def test_legacy_non_finite_sliders_are_skipped(codec, schema):
    controls = legacy_controls(schema, codec.default_document())
    first_range = next(i for i, c in enumerate(controls) if c.kind == RANGE)
    fields = [{"t": "c", "v": False}] * first_range
    fields += [{"t": "range", "v": "nan"}, {"t": "range", "v": 10 ** 400}, {"t": "range", "v": "-inf"}]
    document = codec.from_snapshot({"fields": fields})
    assert document.group("mind").sliders == codec.default_document().group("mind").sliders
