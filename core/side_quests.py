import random
from typing import List

from core.config import settings
from core.game_data import SIDE_QUESTS
from models.side_quest import SideQuest


def date_seed(date_str: str) -> int:
    """Sum of the numeric parts of a YYYY-MM-DD string (2024-03-04 -> 2031)."""
    return sum(int(part) for part in date_str.split("-"))


def daily_side_quests(date_str: str, count: int = None) -> List[SideQuest]:
    """
    Side quests offered on `date_str`.

    The same date always yields the same quests.
    The shuffle is seeded from the date and is not meant to be unpredictable.
    """
    if count is None:
        count = settings.SIDE_QUESTS_PER_DAY
    catalog = [SideQuest(**quest) for quest in SIDE_QUESTS]
    random.Random(date_seed(date_str)).shuffle(catalog)
    return catalog[:count]
