from core.game_data import SIDE_QUESTS
from core.side_quests import daily_side_quests, date_seed


def test_date_seed():
    assert date_seed("2024-03-04") == 2031


def test_same_date_same_quests():
    first = daily_side_quests("2024-03-04")
    second = daily_side_quests("2024-03-04")
    assert [q.id for q in first] == [q.id for q in second]


def test_quest_selection_shape():
    quests = daily_side_quests("2024-03-04")
    catalog = {q["id"] for q in SIDE_QUESTS}
    assert len(quests) == 4
    assert len({q.id for q in quests}) == 4
    assert all(q.id in catalog for q in quests)
    assert len(daily_side_quests("2024-03-04", count=2)) == 2


def test_selection_varies_across_dates():
    picks = {tuple(q.id for q in daily_side_quests(f"2024-03-{day:02d}")) for day in range(1, 15)}
    assert len(picks) > 1
