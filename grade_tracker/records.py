"""
Academic record state owned by the caller (the Streamlit session).

Every operation here returns a new list of years and leaves its input
untouched, so a snapshot handed to the grade engine never changes under it.

Shapes (plain dicts, JSON friendly):
    year       {"id", "name", "weighting", "modules", "collapsed"}
    module     {"id", "name", "ects", "moderated_score", "assessments"}
    assessment {"id", "title", "due_date", "weight", "grade"}
"""
import math
import uuid
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

NUMERIC_FIELDS = {"weighting", "ects", "moderated_score", "weight", "grade"}

DEFAULT_YEAR_WEIGHTINGS = {1: 7.5, 2: 20.0, 3: 36.5, 4: 36.5}

DUE_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y")

ASSESSMENT_COLUMNS = ["id", "Title", "Due Date", "Weight (%)", "Grade (%)"]


class RecordNotFound(KeyError):
    pass


# ------------------------
# Coercion
# ------------------------
def to_number(raw: Any) -> Optional[float]:
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def to_iso_date(raw: Any) -> str:
    """
    Due date as "YYYY-MM-DD", or "" when blank.
    Accepts ISO dates and day-first "DD/MM/YYYY"; anything else raises ValueError.
    """
    text = _text(raw).strip()
    if not text:
        return ""
    for fmt in DUE_DATE_FORMATS:
        try:
            return pd.to_datetime(text, format=fmt).date().isoformat()
        except ValueError:
            continue
    raise ValueError(f"Unrecognised due date {text!r}. Expected YYYY-MM-DD or DD/MM/YYYY.")


def _coerce(changes: Dict[str, Any]) -> Dict[str, Any]:
    return {k: (to_number(v) if k in NUMERIC_FIELDS else v) for k, v in changes.items()}


def new_id() -> str:
    return uuid.uuid4().hex


# ------------------------
# Creation defaults
# ------------------------
def default_year_weighting(year_number: int) -> float:
    return DEFAULT_YEAR_WEIGHTINGS.get(year_number, 0.0)


def new_year(years: List[dict]) -> dict:
    year_number = len(years) + 1
    return {
        "id": new_id(),
        "name": f"Year {year_number}",
        "weighting": default_year_weighting(year_number),
        "modules": [],
        "collapsed": False,
    }


def new_module() -> dict:
    return {
        "id": new_id(),
        "name": "New Module",
        "ects": 10.0,
        "moderated_score": None,
        "assessments": [],
    }


def new_assessment() -> dict:
    return {
        "id": new_id(),
        "title": "New Assessment",
        "due_date": "",
        "weight": 25.0,
        "grade": None,
    }


# ------------------------
# Copy-on-write helpers
# ------------------------
def _replace(items: List[dict], item_id: str, fn: Callable[[dict], dict]) -> List[dict]:
    out = []
    found = False
    for item in items:
        if item["id"] == item_id:
            out.append(fn(item))
            found = True
        else:
            out.append(item)
    if not found:
        raise RecordNotFound(item_id)
    return out


def _remove(items: List[dict], item_id: str) -> List[dict]:
    out = [item for item in items if item["id"] != item_id]
    if len(out) == len(items):
        raise RecordNotFound(item_id)
    return out


def _with_modules(years, year_id, fn) -> List[dict]:
    return _replace(years, year_id, lambda y: {**y, "modules": fn(y["modules"])})


def _with_assessments(years, year_id, module_id, fn) -> List[dict]:
    return _with_modules(
        years,
        year_id,
        lambda modules: _replace(
            modules, module_id, lambda m: {**m, "assessments": fn(m["assessments"])}
        ),
    )


# ------------------------
# Lookups
# ------------------------
def find_year(years: List[dict], year_id: str) -> dict:
    for year in years:
        if year["id"] == year_id:
            return year
    raise RecordNotFound(year_id)


def find_module(years: List[dict], year_id: str, module_id: str) -> dict:
    for module in find_year(years, year_id)["modules"]:
        if module["id"] == module_id:
            return module
    raise RecordNotFound(module_id)


# ------------------------
# Add / update / delete
# ------------------------
def add_year(years: List[dict]) -> List[dict]:
    return [*years, new_year(years)]


def add_module(years: List[dict], year_id: str) -> List[dict]:
    return _with_modules(years, year_id, lambda modules: [*modules, new_module()])


def add_assessment(years: List[dict], year_id: str, module_id: str) -> List[dict]:
    return _with_assessments(
        years, year_id, module_id, lambda assessments: [*assessments, new_assessment()]
    )


def update_year(years: List[dict], year_id: str, **changes) -> List[dict]:
    return _replace(years, year_id, lambda y: {**y, **_coerce(changes)})


def update_module(years: List[dict], year_id: str, module_id: str, **changes) -> List[dict]:
    return _with_modules(
        years,
        year_id,
        lambda modules: _replace(modules, module_id, lambda m: {**m, **_coerce(changes)}),
    )


def delete_year(years: List[dict], year_id: str) -> List[dict]:
    return _remove(years, year_id)


def delete_module(years: List[dict], year_id: str, module_id: str) -> List[dict]:
    return _with_modules(years, year_id, lambda modules: _remove(modules, module_id))


# ------------------------
# Normalising loaded / imported data
# ------------------------
def _pick(d: dict, *keys, default=None):
    # accepts both snake_case and the camelCase keys of older saves
    for key in keys:
        if key in d:
            return d[key]
    return default


def _text(value) -> str:
    if value is None or (pd.api.types.is_scalar(value) and pd.isna(value)):
        return ""
    return str(value)


def _normalise_assessment(raw: dict) -> dict:
    return {
        "id": _text(raw.get("id")) or new_id(),
        "title": _text(raw.get("title")),
        "due_date": _text(_pick(raw, "due_date", "dueDate")),
        "weight": to_number(raw.get("weight")),
        "grade": to_number(raw.get("grade")),
    }


def _normalise_module(raw: dict) -> dict:
    return {
        "id": _text(raw.get("id")) or new_id(),
        "name": _text(raw.get("name")),
        "ects": to_number(raw.get("ects")),
        "moderated_score": to_number(_pick(raw, "moderated_score", "moderatedScore")),
        "assessments": [
            _normalise_assessment(a) for a in raw.get("assessments") or [] if isinstance(a, dict)
        ],
    }


def normalise_record(raw: Any) -> List[dict]:
    if not isinstance(raw, list):
        return []

    years = []
    for index, y in enumerate(raw):
        if not isinstance(y, dict):
            continue
        years.append(
            {
                "id": _text(y.get("id")) or new_id(),
                "name": _text(y.get("name")) or f"Year {index + 1}",
                "weighting": to_number(y.get("weighting")),
                "modules": [
                    _normalise_module(m) for m in y.get("modules") or [] if isinstance(m, dict)
                ],
                "collapsed": bool(y.get("collapsed", False)),
            }
        )
    return years


# ------------------------
# Assessment table (st.data_editor) bridge
# ------------------------
def assessments_to_frame(module: dict) -> pd.DataFrame:
    rows = [
        {
            "id": a["id"],
            "Title": a.get("title", ""),
            "Due Date": a.get("due_date") or None,
            "Weight (%)": a.get("weight"),
            "Grade (%)": a.get("grade"),
        }
        for a in module.get("assessments", [])
    ]
    df = pd.DataFrame(rows, columns=ASSESSMENT_COLUMNS)
    df["Due Date"] = pd.to_datetime(df["Due Date"], errors="coerce").dt.date
    df["Weight (%)"] = pd.to_numeric(df["Weight (%)"], errors="coerce")
    df["Grade (%)"] = pd.to_numeric(df["Grade (%)"], errors="coerce")
    return df


def _date_text(value) -> str:
    if value is None or (pd.api.types.is_scalar(value) and pd.isna(value)):
        return ""
    if isinstance(value, str):
        return value.strip()
    return value.isoformat()[:10]


def assessments_from_frame(df: pd.DataFrame) -> List[dict]:
    assessments = []
    for _, row in df.iterrows():
        title = _text(row.get("Title")).strip()
        due_date = _date_text(row.get("Due Date"))
        weight = to_number(row.get("Weight (%)"))
        grade = to_number(row.get("Grade (%)"))

        # rows added in the editor and left empty
        if not title and not due_date and weight is None and grade is None:
            continue

        assessments.append(
            {
                "id": _text(row.get("id")) or new_id(),
                "title": title,
                "due_date": due_date,
                "weight": weight,
                "grade": grade,
            }
        )
    return assessments
