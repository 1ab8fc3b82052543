import copy
import datetime

import pandas as pd
import pytest

from grade_tracker import records
from grade_tracker.records import (
    RecordNotFound,
    add_assessment,
    add_module,
    add_year,
    assessments_from_frame,
    assessments_to_frame,
    default_year_weighting,
    delete_module,
    delete_year,
    find_module,
    find_year,
    normalise_record,
    to_iso_date,
    to_number,
    update_module,
    update_year,
)


def _record():
    years = add_year([])
    year_id = years[0]["id"]
    years = add_module(years, year_id)
    module_id = years[0]["modules"][0]["id"]
    years = add_assessment(years, year_id, module_id)
    return years, year_id, module_id


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("42", 42.0),
        (" 7.5 ", 7.5),
        (12, 12.0),
        ("", None),
        ("   ", None),
        (None, None),
        ("abc", None),
        (float("nan"), None),
        ("inf", None),
    ],
)
def test_to_number(raw, expected):
    assert to_number(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2026-11-03", "2026-11-03"),
        (" 2026-01-05 ", "2026-01-05"),
        ("03/11/2026", "2026-11-03"),
        ("", ""),
        (None, ""),
    ],
)
def test_to_iso_date(raw, expected):
    assert to_iso_date(raw) == expected


@pytest.mark.parametrize("raw", ["week 7", "2026-13-01", "31/02/2026", "Nov 3"])
def test_to_iso_date_rejects_unreadable_dates(raw):
    with pytest.raises(ValueError, match="Unrecognised due date"):
        to_iso_date(raw)


def test_default_year_weightings():
    assert [default_year_weighting(n) for n in range(1, 6)] == [7.5, 20.0, 36.5, 36.5, 0.0]


def test_add_year_names_and_weights_by_position():
    years = []
    for _ in range(3):
        years = add_year(years)
    assert [y["name"] for y in years] == ["Year 1", "Year 2", "Year 3"]
    assert [y["weighting"] for y in years] == [7.5, 20.0, 36.5]
    assert len({y["id"] for y in years}) == 3


def test_new_module_and_assessment_defaults():
    years, year_id, module_id = _record()
    module = find_module(years, year_id, module_id)
    assert module["name"] == "New Module"
    assert module["ects"] == 10.0
    assert module["moderated_score"] is None
    assessment = module["assessments"][0]
    assert assessment["title"] == "New Assessment"
    assert assessment["weight"] == 25.0
    assert assessment["grade"] is None
    assert assessment["due_date"] == ""


def test_operations_do_not_mutate_input():
    years, year_id, module_id = _record()
    snapshot = copy.deepcopy(years)

    add_year(years)
    add_module(years, year_id)
    update_year(years, year_id, name="First year")
    update_module(years, year_id, module_id, moderated_score="70")
    delete_module(years, year_id, module_id)

    assert years == snapshot


def test_update_coerces_numeric_fields():
    years, year_id, module_id = _record()
    years = update_year(years, year_id, weighting="12.5", name="Freshers")
    years = update_module(years, year_id, module_id, ects="5", moderated_score="")
    assert find_year(years, year_id)["weighting"] == 12.5
    assert find_year(years, year_id)["name"] == "Freshers"
    module = find_module(years, year_id, module_id)
    assert module["ects"] == 5.0
    assert module["moderated_score"] is None


def test_assessments_are_replaced_through_update_module():
    years, year_id, module_id = _record()
    assessment = find_module(years, year_id, module_id)["assessments"][0]

    years = update_module(
        years, year_id, module_id, assessments=[{**assessment, "grade": 68.0, "title": "Essay"}]
    )
    updated = find_module(years, year_id, module_id)["assessments"][0]
    assert updated["grade"] == 68.0
    assert updated["title"] == "Essay"
    assert updated["id"] == assessment["id"]

    years = update_module(years, year_id, module_id, assessments=[])
    assert find_module(years, year_id, module_id)["assessments"] == []


def test_delete_year():
    years, year_id, _ = _record()
    assert delete_year(years, year_id) == []


def test_unknown_ids_raise():
    years, year_id, module_id = _record()
    with pytest.raises(RecordNotFound):
        delete_year(years, "missing")
    with pytest.raises(RecordNotFound):
        update_module(years, year_id, "missing", name="x")
    with pytest.raises(KeyError):
        find_module(years, "missing", module_id)


def test_normalise_record_rejects_non_lists():
    assert normalise_record(None) == []
    assert normalise_record({"years": []}) == []


def test_normalise_record_fills_defaults_and_reads_camel_case():
    raw = [
        {
            "id": 1700000000000,
            "weighting": "20",
            "modules": [
                {
                    "name": "Algorithms",
                    "ects": "10",
                    "moderatedScore": 72,
                    "assessments": [{"title": "Exam", "dueDate": "2026-05-01", "weight": "60", "grade": None}],
                },
                "not a module",
            ],
        },
        "not a year",
    ]
    years = normalise_record(raw)
    assert len(years) == 1
    year = years[0]
    assert year["id"] == "1700000000000"
    assert year["name"] == "Year 1"
    assert year["weighting"] == 20.0
    assert year["collapsed"] is False
    module = year["modules"][0]
    assert module["moderated_score"] == 72.0
    assert module["ects"] == 10.0
    assert module["id"]
    assessment = module["assessments"][0]
    assert assessment["due_date"] == "2026-05-01"
    assert assessment["weight"] == 60.0
    assert assessment["grade"] is None


def test_assessment_frame_round_trip_keeps_ids():
    years, year_id, module_id = _record()
    assessment = find_module(years, year_id, module_id)["assessments"][0]
    years = update_module(
        years,
        year_id,
        module_id,
        assessments=[{**assessment, "due_date": "2026-01-15", "grade": 55.0}],
    )
    module = find_module(years, year_id, module_id)

    df = assessments_to_frame(module)
    assert list(df.columns) == records.ASSESSMENT_COLUMNS
    assert df.loc[0, "Due Date"] == datetime.date(2026, 1, 15)

    assert assessments_from_frame(df) == module["assessments"]


def test_assessments_from_frame_assigns_ids_and_drops_blank_rows():
    df = pd.DataFrame(
        [
            {"id": None, "Title": "Lab", "Due Date": None, "Weight (%)": 20.0, "Grade (%)": None},
            {"id": None, "Title": None, "Due Date": None, "Weight (%)": None, "Grade (%)": None},
            {"id": "abc", "Title": " Quiz ", "Due Date": pd.Timestamp("2026-03-02"), "Weight (%)": 10.0, "Grade (%)": 90.0},
        ]
    )
    out = assessments_from_frame(df)
    assert len(out) == 2
    assert out[0]["id"]
    assert out[0]["title"] == "Lab"
    assert out[0]["due_date"] == ""
    assert out[0]["grade"] is None
    assert out[1] == {"id": "abc", "title": "Quiz", "due_date": "2026-03-02", "weight": 10.0, "grade": 90.0}


def test_assessments_to_frame_for_empty_module():
    df = assessments_to_frame({"assessments": []})
    assert df.empty
    assert list(df.columns) == records.ASSESSMENT_COLUMNS
