import calendar
from typing import Dict, List, Tuple

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

# weeks start on Sunday
_CALENDAR = calendar.Calendar(firstweekday=calendar.SUNDAY)


def events_by_date(years: List[dict]) -> Dict[str, List[dict]]:
    """
    Index every assessment that has a due date by that date string.
    Each entry is {"module_name": ..., "assessment": ...}, in record order.
    """
    events: Dict[str, List[dict]] = {}
    for year in years:
        for module in year.get("modules", []):
            for assessment in module.get("assessments", []):
                due = assessment.get("due_date")
                if due:
                    events.setdefault(due, []).append(
                        {"module_name": module.get("name", ""), "assessment": assessment}
                    )
    return events


def month_grid(year: int, month: int) -> List[List[int]]:
    # 0 marks a padding cell outside the month
    return _CALENDAR.monthdayscalendar(year, month)


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_title(year: int, month: int) -> str:
    return f"{calendar.month_name[month]} {year}"


def date_key(year: int, month: int, day: int) -> str:
    return f"{year:04d}-{month:02d}-{day:02d}"
