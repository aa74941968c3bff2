from core.achievements import evaluate_achievements, perfect_run
from models.day_record import DayRecord
from models.profile import empty_achievements


def record(day, perfect=True):
    return DayRecord(date=f"2024-03-{day:02d}", day_number=day, is_perfect=perfect)


def test_perfect_run_counts_back_from_latest():
    history = [record(1, False)] + [record(d) for d in range(2, 6)]
    assert perfect_run(history) == 4
    assert perfect_run(list(reversed(history))) == 4
    assert perfect_run(history + [record(6, False)]) == 0
    assert perfect_run([]) == 0


def test_thresholds_unlock():
    history = [record(d) for d in range(1, 8)]
    merged, new = evaluate_achievements(
        empty_achievements(),
        longest_streak=7,
        total_days_completed=7,
        perfect_days_count=7,
        day_history=history,
    )
    assert set(new) == {"first_blood", "week_warrior", "perfect_week"}
    assert merged["week_warrior"]
    assert not merged["two_weeks"]


def test_unlocks_are_monotonic():
    current = dict(empty_achievements(), week_warrior=True, perfect_week=True)
    merged, new = evaluate_achievements(
        current,
        longest_streak=0,
        total_days_completed=1,
        perfect_days_count=0,
        day_history=[record(1, False)],
    )
    assert merged["week_warrior"]
    assert merged["perfect_week"]
    assert new == ["first_blood"]


def test_missing_keys_are_filled():
    merged, new = evaluate_achievements({}, 0, 0, 0, [])
    assert new == []
    assert set(merged) == set(empty_achievements())
    assert not any(merged.values())
