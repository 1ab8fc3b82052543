from typing import Callable, Dict

DEFAULT_THEME = "default"


def _default_colour(grade: float) -> str:
    if grade >= 70:
        return "green"
    if grade >= 60:
        return "orange"
    if grade >= 50:
        return "violet"
    return "red"


def _josh_feedback(grade: float) -> str:
    if grade >= 70:
        return "You're literally slaying! ✨"
    if grade >= 60:
        return "You're doing amazing, sweetie! 💅"
    if grade >= 50:
        return "Pop off, queen!"
    return "Main character energy loading... ⏳"


def _josh_colour(grade: float) -> str:
    if grade >= 70:
        return "rainbow"
    if grade >= 60:
        return "violet"
    if grade >= 50:
        return "blue"
    return "gray"


def _parent_feedback(grade: float) -> str:
    if grade >= 95:
        return "Acceptable."
    if grade >= 90:
        return "Why not 100? Did you forget how to study?"
    if grade >= 80:
        return "B stands for 'Beggar'."
    if grade >= 70:
        return "See your cousin? They got 98."
    return "Don't talk to me."


def _parent_colour(grade: float) -> str:
    if grade >= 95:
        return "green"
    if grade >= 90:
        return "orange"
    if grade >= 80:
        return "violet"
    return "red"


THEMES: Dict[str, Dict] = {
    "default": {
        "button": "Default",
        "title": "Grades Tracker",
        "subtitle": "Track your academic progress.",
        "overall_title": "Overall Degree Classification",
        "overall_label": "Calculated Degree Average",
        "year_avg_label": "Year Average",
        "module_score_label": "Module Score",
        "target1_label": "For a 1st (70%)",
        "target2_label": "For a 2:1 (60%)",
        "target1": 70,
        "target2": 60,
        "feedback": lambda grade: "",
        "colour": _default_colour,
    },
    "joshMode": {
        "button": "💅 Josh Mode",
        "title": "Slay Tracker ✨",
        "subtitle": "Manifesting that main character energy.",
        "overall_title": "Final Glow Up",
        "overall_label": "Current Slay Factor",
        "year_avg_label": "Annual Slayage",
        "module_score_label": "Serving",
        "target1_label": "To Secure the Slay (70%)",
        "target2_label": "Vibe Check (60%)",
        "target1": 70,
        "target2": 60,
        "feedback": _josh_feedback,
        "colour": _josh_colour,
    },
    "asianParent": {
        "button": "🩺 Asian Parent",
        "title": "Family Honor Report Card",
        "subtitle": "Are you a doctor yet?",
        "overall_title": "Current Disappointment Level",
        "overall_label": "Overall Family Status",
        "year_avg_label": "Annual Review",
        "module_score_label": "Performance",
        "target1_label": "For Doctor (95%)",
        "target2_label": "To Avoid Disgrace (90%)",
        "target1": 95,
        "target2": 90,
        "feedback": _parent_feedback,
        "colour": _parent_colour,
    },
}


def get_theme(key: str) -> Dict:
    return THEMES.get(key, THEMES[DEFAULT_THEME])


def coloured(theme: Dict, grade: float, text: str) -> str:
    # Streamlit markdown colour directive, e.g. ":green[72.50%]"
    colour: Callable[[float], str] = theme["colour"]
    return f":{colour(grade)}[{text}]"
