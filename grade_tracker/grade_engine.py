from typing import Dict, Iterable, Optional
import numpy as np
from decimal import Decimal, ROUND_HALF_UP

# ------------------------
# Target grade outcomes
# ------------------------
NOT_APPLICABLE = "N/A"
DONE = "Done"
ACHIEVED = "Achieved"
UNREACHABLE = ">100%"


# ------------------------
# Helpers
# ------------------------
def round_2dp_half_up(x: float) -> float:
    return float(Decimal(str(x)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))

def format_percent(x: float) -> str:
    return f"{round_2dp_half_up(x):.2f}%"

def _number(x) -> float:
    # None, blanks and anything non-numeric count as "not entered"
    if x is None:
        return np.nan
    try:
        return float(x)
    except (TypeError, ValueError):
        return np.nan

def _grade_weight_pairs(assessments: Iterable[dict]) -> np.ndarray:
    """
    assessments: sequence of assessment dicts
    returns: Nx2 numpy array -> [grade, weight], NaN where a value is missing
    """
    pairs = [[_number(a.get("grade")), _number(a.get("weight"))] for a in assessments]
    return np.array(pairs, dtype=float).reshape(-1, 2)

def has_moderated_score(module: dict) -> bool:
    return not np.isnan(_number(module.get("moderated_score")))


# ------------------------
# Core logic
# ------------------------
def module_average(module: dict) -> Dict[str, float]:
    """
    Weighted average over the graded assessments of a module.

    Only assessments with a grade and a positive weight count; everything
    else is left out of both sums rather than treated as a zero.

    returns: {"average": weighted mean grade (0 if nothing graded),
              "total_graded_weight": percentage of the module weight graded so far}
    """
    gw = _grade_weight_pairs(module.get("assessments", []))
    grades, weights = gw[:, 0], gw[:, 1]

    counted = ~np.isnan(grades) & (np.nan_to_num(weights) > 0)
    fractions = weights[counted] / 100.0
    total_weight = float(fractions.sum())
    if total_weight == 0:
        return {"average": 0.0, "total_graded_weight": 0.0}

    average = float(np.dot(grades[counted], fractions) / total_weight)
    return {"average": average, "total_graded_weight": total_weight * 100}


def effective_module_score(module: dict) -> float:
    # a moderated score replaces the computed average entirely
    if has_moderated_score(module):
        return _number(module.get("moderated_score"))
    return module_average(module)["average"]


def year_average(year: dict) -> float:
    """
    ECTS-weighted mean of the effective module scores.

    Modules with a score of 0 are skipped, so a genuine 0 cannot be told
    apart from an ungraded module.
    """
    modules = year.get("modules", [])
    if not modules:
        return 0.0

    scores = np.array([effective_module_score(m) for m in modules], dtype=float)
    ects = np.array([_number(m.get("ects")) for m in modules], dtype=float)

    counted = (np.nan_to_num(scores) > 0) & (np.nan_to_num(ects) > 0)
    total_ects = float(ects[counted].sum())
    if total_ects == 0:
        return 0.0

    return float(np.dot(scores[counted], ects[counted]) / total_ects)


def overall_degree_average(years: Iterable[dict]) -> float:
    years = list(years)
    if not years:
        return 0.0

    weightings = np.array([_number(y.get("weighting")) for y in years], dtype=float)
    counted = np.nan_to_num(weightings) > 0
    total_weighting = float(weightings[counted].sum())
    if total_weighting == 0:
        return 0.0

    averages = np.array(
        [year_average(y) for y, keep in zip(years, counted) if keep], dtype=float
    )
    return float(np.dot(averages, weightings[counted]) / total_weighting)


def target_grade_needed(module: Optional[dict], target: float) -> str:
    """
    Average needed on the ungraded assessments of a module to finish on
    `target` percent, assuming the assessment weights add up to 100.

    Returns one of NOT_APPLICABLE, DONE, ACHIEVED, UNREACHABLE or the
    required average formatted as a percentage, e.g. "83.33%".
    """
    if module is None or has_moderated_score(module):
        return NOT_APPLICABLE

    gw = _grade_weight_pairs(module.get("assessments", []))
    grades, weights = gw[:, 0], gw[:, 1]

    graded = ~np.isnan(grades)
    graded_weights = np.nan_to_num(weights[graded])
    graded_weight = float(graded_weights.sum())
    achieved_score = float(np.dot(grades[graded], graded_weights))

    remaining_weight = 100 - graded_weight
    if remaining_weight <= 0:
        return DONE

    needed_score = float(target) * 100 - achieved_score
    if needed_score <= 0:
        return ACHIEVED

    required_average = needed_score / remaining_weight
    if required_average > 100:
        return UNREACHABLE
    return format_percent(required_average)


# ------------------------
# Classification & display
# ------------------------
def classify_degree(average: float) -> str:
    if average is None or np.isnan(average):
        return "Fail"

    if average >= 70:
        return "First (I)"
    elif average >= 60:
        return "Upper Second (II.1)"
    elif average >= 50:
        return "Lower Second (II.2)"
    elif average >= 40:
        return "Third (III)"
    else:
        return "Fail"


def module_source_label(module: dict) -> str:
    if has_moderated_score(module):
        return "(Moderated)"
    graded = module_average(module)["total_graded_weight"]
    return f"({graded:.0f}% weighted)"
