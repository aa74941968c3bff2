import os
from typing import Optional
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    APP_NAME: str = "HabitQuest"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Remote sync (MongoDB)
    MONGO_URI: str = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    DB_NAME: str = os.getenv("DB_NAME", "habitquest")

    # The authenticated user this session belongs to (UUID)
    USER_ID: Optional[str] = os.getenv("USER_ID")

    # Frontend
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:8081")

    # Day boundaries follow this zone. Empty = device local time.
    TIMEZONE: str = os.getenv("TIMEZONE", "")

    # Local persistence
    SNAPSHOT_PATH: str = os.getenv("SNAPSHOT_PATH", "habitquest-storage.json")
    SYNC_QUEUE_PATH: str = os.getenv("SYNC_QUEUE_PATH", "habitquest-sync-queue.json")
    SNAPSHOT_VERSION: int = 2

    # Game Configuration
    LEVEL_XP: int = 100
    PERFECT_DAY_BONUS: int = 50
    RELAPSE_RECOVERY_XP: int = 5 # Reward for logging a relapse honestly
    RELAPSE_PENALTY_RATE: float = 0.5
    SIDE_QUESTS_PER_DAY: int = 4

    # Streak thresholds checked highest first
    STREAK_MULTIPLIERS: dict = {66: 2.0, 30: 1.5, 7: 1.3}

    # Sync behaviour
    SYNC_DEBOUNCE_MS: int = 300
    SYNC_MAX_RETRIES: int = 3

    # Scheduler
    ROLLOVER_CHECK_MINUTES: int = 1
    RETRY_REPLAY_MINUTES: int = 5

    # Pydantic Settings Config
    model_config = {"env_file": ".env", "extra": "ignore"}

settings = Settings()
