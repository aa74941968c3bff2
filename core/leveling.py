from datetime import date
from typing import Iterable, Optional

from core.config import settings
from core.game_data import ARCHETYPES, FREQUENCY_TYPES, LEVELS_PER_RANK, PHASES
from core.time_utils import is_weekday, parse_local_date, week_end, week_start


def streak_multiplier(streak: int) -> float:
    """
    XP multiplier for the global streak.

    Thresholds are checked highest first, so a 70-day streak gets the
    66-day multiplier only (not a product of all tiers).
    """
    if not isinstance(streak, int) or streak < 0:
        return 1.0
    for threshold in sorted(settings.STREAK_MULTIPLIERS, reverse=True):
        if streak >= threshold:
            return settings.STREAK_MULTIPLIERS[threshold]
    return 1.0


def level_from_xp(xp: int) -> int:
    if xp < 0:
        return 1
    return xp // settings.LEVEL_XP + 1


def level_progress(xp: int) -> dict:
    """XP progress inside the current level."""
    current = xp % settings.LEVEL_XP if xp > 0 else 0
    return {
        "current": current,
        "total": settings.LEVEL_XP,
        "percentage": current / settings.LEVEL_XP * 100,
    }


def rank_from_level(level: int, archetype: Optional[str]) -> Optional[str]:
    archetype_data = ARCHETYPES.get(archetype) if archetype else None
    if not archetype_data:
        return None
    if level < 1:
        level = 1
    ranks = archetype_data["ranks"]
    return ranks[min((level - 1) // LEVELS_PER_RANK, len(ranks) - 1)]


def phase_from_day_count(days: int) -> dict:
    if days <= 22:
        return PHASES["FRAGILE"]
    if days <= 44:
        return PHASES["BUILDING"]
    if days <= 66:
        return PHASES["LOCKED_IN"]
    return PHASES["FORGED"]


def is_scheduled_day(frequency: str, day: date) -> bool:
    """
    Whether a habit of this frequency must be handled on `day`.

    3x/4x-per-week habits are eligible every day; their weekly target is
    checked when the week closes, not here.
    """
    if frequency == "weekdays":
        return is_weekday(day)
    return True


def weekly_target(frequency: str) -> int:
    return FREQUENCY_TYPES.get(frequency, FREQUENCY_TYPES["daily"])["target_per_week"]


def week_completions(completed_dates: Iterable[str], day: date) -> int:
    """Completions inside the Monday-Sunday week containing `day`."""
    first = week_start(day)
    last = week_end(day)
    count = 0
    for value in completed_dates or []:
        parsed = parse_local_date(value)
        if parsed and first <= parsed <= last:
            count += 1
    return count


def is_week_successful(frequency: str, completed_dates: Iterable[str], day: date) -> bool:
    return week_completions(completed_dates, day) >= weekly_target(frequency)
