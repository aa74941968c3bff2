from typing import Dict, List, Sequence, Tuple

from core.game_data import ACHIEVEMENTS
from models.day_record import DayRecord


def perfect_run(day_history: Sequence[DayRecord]) -> int:
    """Consecutive perfect days counting back from the most recent record."""
    run = 0
    for record in sorted(day_history, key=lambda r: r.date, reverse=True):
        if not record.is_perfect:
            break
        run += 1
    return run


def evaluate_achievements(
    current: Dict[str, bool],
    longest_streak: int,
    total_days_completed: int,
    perfect_days_count: int,
    day_history: Sequence[DayRecord],
) -> Tuple[Dict[str, bool], List[str]]:
    """
    Merge newly earned achievements into `current`.

    Unlocks are monotonic: an achievement that is already True stays True
    whatever the stats say now. Returns (merged, newly_unlocked_ids).
    """
    stats = {
        "longest_streak": longest_streak,
        "total_days_completed": total_days_completed,
        "perfect_days_count": perfect_days_count,
        "perfect_run": perfect_run(day_history),
    }

    merged = dict(current)
    newly_unlocked = []
    for achievement_id, stat, threshold in ACHIEVEMENTS:
        if merged.get(achievement_id):
            continue
        if stats[stat] >= threshold:
            merged[achievement_id] = True
            newly_unlocked.append(achievement_id)
        else:
            merged.setdefault(achievement_id, False)
    return merged, newly_unlocked
