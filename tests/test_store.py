"""Tests for store module (Layer 2c)."""

import json

from sentence_practice.models import PracticeMode
from sentence_practice.store import InputStore, load_inputs, save_inputs


def test_load_missing_file(tmp_path):
    assert load_inputs(str(tmp_path / "nope.json")) == {}


def test_load_malformed_json(tmp_path):
    """Corrupt store starts empty instead of raising."""
    path = tmp_path / "inputs.json"
    path.write_text("{not json")
    assert load_inputs(str(path)) == {}


def test_load_non_object(tmp_path):
    path = tmp_path / "inputs.json"
    path.write_text("[1, 2]")
    assert load_inputs(str(path)) == {}


def test_store_malformed_mode_section(tmp_path):
    """A mode entry that is not an object starts empty; other modes survive."""
    path = tmp_path / "inputs.json"
    path.write_text('{"dictation": "oops", "recitation": {"0-Hi.": "hi"}}')
    store = InputStore(str(path), PracticeMode.DICTATION)
    assert store.get("x") == ""
    store.set("0-Hi.", "hi")
    store.save()

    data = json.loads(path.read_text())
    assert data == {"dictation": {"0-Hi.": "hi"}, "recitation": {"0-Hi.": "hi"}}


def test_save_creates_directory(tmp_path):
    path = tmp_path / "nested" / "dir" / "inputs.json"
    save_inputs(str(path), {"dictation": {"0-Hi.": "hi"}})
    assert json.loads(path.read_text()) == {"dictation": {"0-Hi.": "hi"}}


def test_store_round_trip(tmp_path):
    path = str(tmp_path / "inputs.json")
    store = InputStore(path, PracticeMode.DICTATION)
    store.set("0-Hi.", "hi")
    store.save()

    reloaded = InputStore(path, PracticeMode.DICTATION)
    assert reloaded.get("0-Hi.") == "hi"
    assert reloaded.get("1-Bye.") == ""


def test_store_modes_are_separate(tmp_path):
    path = str(tmp_path / "inputs.json")
    dictation = InputStore(path, PracticeMode.DICTATION)
    dictation.set("0-Hi.", "hi")
    dictation.save()

    recitation = InputStore(path, PracticeMode.RECITATION)
    assert recitation.all() == {}
    recitation.set("0-Hi.", "high")
    recitation.save()

    data = json.loads((tmp_path / "inputs.json").read_text())
    assert data == {"dictation": {"0-Hi.": "hi"}, "recitation": {"0-Hi.": "high"}}


def test_store_blank_value_removes_entry(tmp_path):
    store = InputStore(str(tmp_path / "inputs.json"))
    store.set("0-Hi.", "hi")
    store.set("0-Hi.", "   ")
    assert store.all() == {}


def test_store_delete_and_clear(tmp_path):
    store = InputStore(str(tmp_path / "inputs.json"))
    store.set("0-Hi.", "hi")
    store.set("1-Bye.", "bye")
    store.delete("0-Hi.")
    assert store.all() == {"1-Bye.": "bye"}
    store.clear()
    assert store.all() == {}
