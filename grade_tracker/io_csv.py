import logging
from typing import List

import pandas as pd

from grade_tracker.records import (
    default_year_weighting,
    new_id,
    normalise_record,
    to_iso_date,
    to_number,
)

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "Year",
    "Module",
    "ECTS",
    "Moderated Score",
    "Assessment",
    "Due Date",
    "Weight (%)",
    "Grade (%)",
]
EXPORT_FILE_NAME = "grade_tracker_export.csv"

# ------------------------
# Export
# ------------------------

def _blank_if_none(value):
    return "" if value is None else value

def export_frame(years: List[dict]) -> pd.DataFrame:
    rows = []
    for year in years:
        for module in year.get("modules", []):
            base = {
                "Year": year.get("name", ""),
                "Module": module.get("name", ""),
                "ECTS": _blank_if_none(module.get("ects")),
                "Moderated Score": _blank_if_none(module.get("moderated_score")),
            }
            assessments = module.get("assessments", [])
            if not assessments:
                rows.append({**base, "Assessment": "", "Due Date": "", "Weight (%)": "", "Grade (%)": ""})
                continue
            for a in assessments:
                rows.append(
                    {
                        **base,
                        "Assessment": a.get("title", ""),
                        "Due Date": a.get("due_date", ""),
                        "Weight (%)": _blank_if_none(a.get("weight")),
                        "Grade (%)": _blank_if_none(a.get("grade")),
                    }
                )
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)

def export_csv(years: List[dict]) -> str:
    return export_frame(years).to_csv(index=False)

# ------------------------
# Import (UI-side upload)
# ------------------------

def _normalise_cols(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [str(c).strip().lower() for c in df.columns]
    # allow the short headers as well as the exported "(%)" ones
    df = df.rename(columns={"weight (%)": "weight", "grade (%)": "grade", "title": "assessment"})
    return df

def read_csv_upload(uploaded_file) -> pd.DataFrame:
    df = pd.read_csv(uploaded_file, dtype=str, keep_default_na=False)
    return _normalise_cols(df)

def validate_export_csv(df: pd.DataFrame) -> pd.DataFrame:
    required = {"year", "module"}
    missing = required - set(df.columns)
    if missing:
        raise ValueError(f"Missing columns: {sorted(missing)}. Expected: Year, Module.")
    out = df.copy()
    for col in ["ects", "moderated score", "assessment", "due date", "weight", "grade"]:
        if col not in out.columns:
            out[col] = ""
    return out

def records_from_frame(df: pd.DataFrame) -> List[dict]:
    """
    Rebuild years -> modules -> assessments from an exported CSV.

    The export writes the rows of one year, and of one module, next to each
    other. A new year starts whenever the Year cell changes from the row
    before, and a new module whenever (Module, ECTS, Moderated Score) changes
    or the row before was a module without assessments. Names are never used
    to look modules up, so two "New Module"s stay two modules.
    Year weightings are not exported, so the defaults by position apply.

    Due dates are normalised to YYYY-MM-DD; a ValueError lists the rows whose
    due date cannot be read.
    """
    years = []
    bad_dates = []
    year_key = None
    module_key = None
    module_closed = False

    # line 1 of the file is the header
    for line, (_, row) in enumerate(df.iterrows(), start=2):
        year_name = str(row.get("year", "")).strip()
        module_name = str(row.get("module", "")).strip()
        if not year_name:
            logger.info("Skipping CSV line %d without a year: %s", line, dict(row))
            continue

        ects = to_number(row.get("ects"))
        moderated_score = to_number(row.get("moderated score"))
        title = str(row.get("assessment", "")).strip()
        due_text = str(row.get("due date", "")).strip()
        weight = to_number(row.get("weight"))
        grade = to_number(row.get("grade"))
        # module-only rows carry no assessment
        module_only = not title and not due_text and weight is None and grade is None

        if year_name != year_key:
            year = {
                "id": new_id(),
                "name": year_name,
                "weighting": default_year_weighting(len(years) + 1),
                "modules": [],
                "collapsed": False,
            }
            years.append(year)
            year_key = year_name
            module_key = None

        key = (module_name, ects, moderated_score)
        if key != module_key or module_closed:
            module = {
                "id": new_id(),
                "name": module_name,
                "ects": ects,
                "moderated_score": moderated_score,
                "assessments": [],
            }
            year["modules"].append(module)
            module_key = key
        module_closed = module_only
        if module_only:
            continue

        try:
            due_date = to_iso_date(due_text)
        except ValueError:
            bad_dates.append(f"line {line}: {due_text!r}")
            continue
        module["assessments"].append(
            {"title": title, "due_date": due_date, "weight": weight, "grade": grade}
        )

    if bad_dates:
        raise ValueError(
            "Unrecognised due dates (use YYYY-MM-DD or DD/MM/YYYY): " + ", ".join(bad_dates)
        )
    return normalise_record(years)
