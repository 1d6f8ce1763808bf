"""
Display helpers for alarm lists
"""

from typing import Sequence

from .models import Alarm

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
NO_DAYS_LABEL = "No days selected"
DEFAULT_NAME = "Alarm"

BLACK = 0xFF000000
WHITE = 0xFFFFFFFF


def day_name(index: int) -> str:
    if 0 <= index < len(DAY_NAMES):
        return DAY_NAMES[index]
    return ""


def selected_days_label(days: Sequence[bool]) -> str:
    names = [day_name(i) for i, active in enumerate(days) if active]
    return ", ".join(names) if names else NO_DAYS_LABEL


def display_name(alarm: Alarm) -> str:
    return alarm.name or DEFAULT_NAME


def display_title(alarm: Alarm) -> str:
    """List entry title, e.g. ``Wake up - 7:05 - Monday, Friday``"""
    return f"{display_name(alarm)} - {alarm.time.format()} - {selected_days_label(alarm.days)}"


def _channels(argb: int):
    return (argb >> 24) & 0xFF, (argb >> 16) & 0xFF, (argb >> 8) & 0xFF, argb & 0xFF


def _linearize(component: int) -> float:
    c = component / 255.0
    if c <= 0.03928:
        return c / 12.92
    return ((c + 0.055) / 1.055) ** 2.4


def compute_luminance(argb: int) -> float:
    """Relative luminance of the color's RGB channels (alpha ignored)"""
    _, r, g, b = _channels(argb)
    return 0.2126 * _linearize(r) + 0.7152 * _linearize(g) + 0.0722 * _linearize(b)


def text_color_for(background: int) -> int:
    """Black text on light backgrounds, white on dark ones"""
    return BLACK if compute_luminance(background) > 0.5 else WHITE


def argb_to_css(argb: int) -> str:
    a, r, g, b = _channels(argb)
    return f"rgba({r}, {g}, {b}, {round(a / 255, 3)})"
