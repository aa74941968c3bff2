# Static game catalog: archetypes, phases, frequencies, side quests, achievements.

ARCHETYPES = {
    "SPECTER": {
        "id": "SPECTER",
        "name": "Specter",
        "ranks": ["Shadow", "Phantom", "Specter", "Wraith", "Ghost"],
        "habit_term": "Missions",
    },
    "ASCENDANT": {
        "id": "ASCENDANT",
        "name": "Ascendant",
        "ranks": ["Novice", "Disciple", "Ascetic", "Sage", "Ascendant"],
        "habit_term": "Rituals",
    },
    "WRATH": {
        "id": "WRATH",
        "name": "Wrath",
        "ranks": ["Recruit", "Warrior", "Ravager", "Warlord", "Wrath"],
        "habit_term": "Battles",
    },
    "SOVEREIGN": {
        "id": "SOVEREIGN",
        "name": "Sovereign",
        "ranks": ["Peasant", "Knight", "Lord", "King", "Sovereign"],
        "habit_term": "Conquests",
    },
}

DIFFICULTIES = ["easy", "medium", "hard"]

LEVELS_PER_RANK = 5

# 66-day program
PHASES = {
    "FRAGILE": {"id": "FRAGILE", "name": "Fragile", "start_day": 1, "end_day": 22},
    "BUILDING": {"id": "BUILDING", "name": "Building", "start_day": 23, "end_day": 44},
    "LOCKED_IN": {"id": "LOCKED_IN", "name": "Locked In", "start_day": 45, "end_day": 66},
    "FORGED": {"id": "FORGED", "name": "Forged", "start_day": 67, "end_day": None},
}

FREQUENCY_TYPES = {
    "daily": {"id": "daily", "name": "Every Day", "target_per_week": 7},
    "weekdays": {"id": "weekdays", "name": "Weekdays Only", "target_per_week": 5},
    "3x_week": {"id": "3x_week", "name": "3x Per Week", "target_per_week": 3},
    "4x_week": {"id": "4x_week", "name": "4x Per Week", "target_per_week": 4},
}

SIDE_QUESTS = [
    # Mind
    {"id": "sq-1", "name": "Take 10 deep breaths", "xp": 5, "category": "mind"},
    {"id": "sq-2", "name": "Write 3 things you're grateful for", "xp": 8, "category": "mind"},
    {"id": "sq-3", "name": "No phone for 1 hour", "xp": 10, "category": "mind"},
    {"id": "sq-4", "name": "Listen to a podcast/audiobook", "xp": 8, "category": "mind"},
    {"id": "sq-5", "name": "Journal for 5 minutes", "xp": 8, "category": "mind"},
    # Body
    {"id": "sq-6", "name": "Do 10 squats right now", "xp": 5, "category": "body"},
    {"id": "sq-7", "name": "Drink a glass of water", "xp": 3, "category": "body"},
    {"id": "sq-8", "name": "Stretch for 5 minutes", "xp": 5, "category": "body"},
    {"id": "sq-9", "name": "Eat a piece of fruit", "xp": 5, "category": "body"},
    {"id": "sq-10", "name": "Go outside for 10 minutes", "xp": 8, "category": "body"},
    {"id": "sq-11", "name": "Take the stairs instead of elevator", "xp": 5, "category": "body"},
    {"id": "sq-12", "name": "Do 20 jumping jacks", "xp": 5, "category": "body"},
    # Social
    {"id": "sq-13", "name": "Text/call a friend or family", "xp": 8, "category": "social"},
    {"id": "sq-14", "name": "Compliment someone genuinely", "xp": 5, "category": "social"},
    {"id": "sq-15", "name": "Help someone with something", "xp": 10, "category": "social"},
    # Productivity
    {"id": "sq-16", "name": "Clean your desk/workspace", "xp": 8, "category": "productivity"},
    {"id": "sq-17", "name": "Make your bed", "xp": 3, "category": "productivity"},
    {"id": "sq-18", "name": "Plan tomorrow's top 3 tasks", "xp": 8, "category": "productivity"},
    {"id": "sq-19", "name": "Delete 10 unused apps/files", "xp": 5, "category": "productivity"},
    {"id": "sq-20", "name": "Learn one new word/fact", "xp": 5, "category": "productivity"},
    # Challenge
    {"id": "sq-21", "name": "Take a cold shower", "xp": 15, "category": "challenge"},
    {"id": "sq-22", "name": "No complaining for 3 hours", "xp": 10, "category": "challenge"},
    {"id": "sq-23", "name": "Sit in silence for 5 minutes", "xp": 8, "category": "mind"},
    {"id": "sq-24", "name": "Fix something you've been avoiding", "xp": 12, "category": "productivity"},
]

# Achievement table. Each entry: (id, stat, threshold).
# "perfect_run" is the count of consecutive perfect days ending at the latest record.
ACHIEVEMENTS = [
    ("first_blood", "total_days_completed", 1),
    ("week_warrior", "longest_streak", 7),
    ("two_weeks", "longest_streak", 14),
    ("monthly", "longest_streak", 30),
    ("locked_in", "longest_streak", 45),
    ("forged", "longest_streak", 66),
    ("centurion", "longest_streak", 100),
    ("perfect_week", "perfect_run", 7),
    ("perfect_month", "perfect_days_count", 30),
]

ACHIEVEMENT_IDS = [achievement_id for achievement_id, _, _ in ACHIEVEMENTS]
