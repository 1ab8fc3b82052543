import json
import logging

from grade_tracker.records import add_module, add_year
from grade_tracker.storage import (
    DATA_KEY,
    THEME_KEY,
    JsonStore,
    load_theme,
    load_years,
    save_theme,
    save_years,
    try_save_years,
)


def test_missing_file_reads_empty(tmp_path):
    store = JsonStore(str(tmp_path / "data.json"))
    assert store.get("anything") is None
    assert load_years(store) == []
    assert load_theme(store) == "default"


def test_set_and_get_round_trip(tmp_path):
    path = tmp_path / "data.json"
    store = JsonStore(str(path))
    store.set("a", {"x": [1, 2]})
    store.set("b", "text")

    assert JsonStore(str(path)).get("a") == {"x": [1, 2]}
    assert json.loads(path.read_text(encoding="utf-8")) == {"a": {"x": [1, 2]}, "b": "text"}
    assert [p.name for p in tmp_path.iterdir()] == ["data.json"]


def test_years_and_theme_use_separate_keys(tmp_path):
    store = JsonStore(str(tmp_path / "data.json"))
    years = add_year([])
    years = add_module(years, years[0]["id"])

    save_years(store, years)
    save_theme(store, "joshMode")

    assert load_years(store) == years
    assert load_theme(store) == "joshMode"
    assert set(json.loads((tmp_path / "data.json").read_text()).keys()) == {DATA_KEY, THEME_KEY}


def test_corrupt_file_is_logged_and_treated_as_empty(tmp_path, caplog):
    path = tmp_path / "data.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonStore(str(path))

    with caplog.at_level(logging.WARNING, logger="grade_tracker.storage"):
        assert load_years(store) == []
    assert "Could not read" in caplog.text

    store.set(THEME_KEY, "asianParent")
    assert load_theme(store) == "asianParent"


def test_non_object_file_is_ignored(tmp_path):
    path = tmp_path / "data.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    assert JsonStore(str(path)).get(DATA_KEY, []) == []


def test_unknown_theme_falls_back_to_default(tmp_path):
    store = JsonStore(str(tmp_path / "data.json"))
    store.set(THEME_KEY, "neon")
    assert load_theme(store) == "default"


def test_try_save_years_reports_success(tmp_path):
    store = JsonStore(str(tmp_path / "data.json"))
    years = add_year([])
    assert try_save_years(store, years) is None
    assert load_years(store) == years


def test_try_save_years_returns_the_error_and_leaves_no_temp_file(tmp_path, caplog):
    # the target path is a directory, so the final rename fails
    target = tmp_path / "data.json"
    target.mkdir()
    store = JsonStore(str(target))

    with caplog.at_level(logging.ERROR, logger="grade_tracker.storage"):
        error = try_save_years(store, add_year([]))

    assert error
    assert "Saving to" in caplog.text
    assert [p.name for p in tmp_path.iterdir()] == ["data.json"]
