import json
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from relationship_registry import RelationshipEntry, RelationshipRegistry


def _sheet(name=None, portrait=None):
    data = {"version": 2, "identity": {}}
    if name is not None:
        data["identity"]["Name"] = name
    if portrait is not None:
        data["portrait"] = portrait
    return json.dumps(data)


@pytest.fixture
def registry():
    return RelationshipRegistry()


def test_import_prepends_batch_and_selects_first(registry):
    first = registry.import_payloads([("mum.json", _sheet("Mum"))], "family")
    assert registry.selection["family"] == first[0].id

    batch = registry.import_payloads(
        [("dad.json", _sheet("Dad")), ("gran.json", _sheet("Gran"))], "family"
    )
    assert [e.name for e in registry.list_entries("family")] == ["Dad", "Gran", "Mum"]
    # Existing selection is kept
    assert registry.selection["family"] == first[0].id
    assert all(e.relation == "" for e in batch)


def test_names_fall_back_to_filename(registry):
    added = registry.import_payloads(
        [("old_friend.v1.json", _sheet()), (".json", _sheet(""))], "friends"
    )
    assert [e.name for e in added] == ["old_friend.v1", "Imported Sheet"]
    assert all(e.relation is None for e in added)
    assert added[0].source_file == "old_friend.v1.json"


def test_failures_are_dropped(registry, tmp_path):
    good = tmp_path / "rival.json"
    good.write_text(_sheet("Rival", portrait="data:image/png;base64,AA"), encoding="utf-8")
    bad = tmp_path / "broken.json"
    bad.write_text("{not json", encoding="utf-8")
    added = registry.import_entries([str(bad), str(tmp_path / "missing.json"), str(good)], "hate")
    assert [e.name for e in added] == ["Rival"]
    assert added[0].portrait == "data:image/png;base64,AA"
    assert registry.selection["hate"] == added[0].id


def test_kinds_are_independent(registry):
    fam = registry.import_payloads([("a.json", _sheet("A"))], "family")[0]
    love = registry.import_payloads([("b.json", _sheet("B"))], "love")[0]
    registry.confirm("family")
    assert registry.selection["family"] is None
    assert registry.selection["love"] == love.id
    registry.remove("love", love.id)
    assert registry.selection["love"] is None
    assert registry.list_entries("family") == [fam]


def test_update_relation_is_family_only(registry):
    fam = registry.import_payloads([("a.json", _sheet("A"))], "family")[0]
    pal = registry.import_payloads([("b.json", _sheet("B"))], "friends")[0]
    assert registry.update_relation("family", fam.id, "Sister")
    assert registry.find("family", fam.id).relation == "Sister"
    assert not registry.update_relation("friends", pal.id, "Sister")
    assert not registry.update_relation("family", "nope", "Sister")


def test_select_and_remove_unknown(registry):
    assert not registry.select("love", "nope")
    assert registry.select("love", None)
    assert not registry.remove("love", "nope")
    with pytest.raises(ValueError):
        registry.select("rivals", None)


def test_max_entries_drops_oldest():
    registry = RelationshipRegistry(max_entries=2)
    oldest = registry.import_payloads([("a.json", _sheet("A"))], "friends")[0]
    registry.import_payloads([("b.json", _sheet("B")), ("c.json", _sheet("C"))], "friends")
    assert [e.name for e in registry.list_entries("friends")] == ["B", "C"]
    assert registry.find("friends", oldest.id) is None
    assert registry.selected("friends").name == "B"


def test_to_dict_round_trip(registry):
    registry.import_payloads([("a.json", _sheet("A"))], "family")
    registry.import_payloads([("b.json", _sheet("B"))], "hate")
    data = json.loads(json.dumps(registry.to_dict()))
    assert set(data["relationships"]["family"][0]) == {"id", "name", "portrait", "relation", "sourceFile", "addedAt"}
    assert "relation" not in data["relationships"]["hate"][0]
    again = RelationshipRegistry.from_dict(data)
    assert again.to_dict() == registry.to_dict()


def test_from_dict_normalises_garbage():
    registry = RelationshipRegistry.from_dict({
        "relationships": {"family": "oops", "friends": [{"id": "x", "name": "X"}, {"name": "no id"}, 5]},
        "relationshipSelection": {"family": 3, "friends": "x"},
    })
    assert registry.list_entries("family") == []
    assert [e.id for e in registry.list_entries("friends")] == ["x"]
    assert registry.selection == {"family": None, "friends": "x", "love": None, "hate": None}
    assert RelationshipRegistry.from_dict(None).to_dict() == RelationshipRegistry().to_dict()


def test_entry_from_dict_requires_id():
    with pytest.raises(ValueError):
        RelationshipEntry.from_dict({"name": "nobody"})


def test_reset_clears_every_kind(registry):
    registry.import_payloads([("a.json", _sheet("A"))], "family")
    registry.import_payloads([("b.json", _sheet("B"))], "love")
    registry.reset()
    assert registry.to_dict() == RelationshipRegistry().to_dict()
