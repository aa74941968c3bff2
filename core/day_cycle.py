import logging
import math
from datetime import date, datetime
from typing import Any, Callable, List, NamedTuple, Optional

from core.achievements import evaluate_achievements, perfect_run
from core.config import settings
from core.game_data import ARCHETYPES
from core.leveling import (
    level_from_xp,
    level_progress,
    phase_from_day_count,
    rank_from_level,
    streak_multiplier,
    week_completions,
    weekly_target,
)
from core.outbox import SyncIntent, SyncOutbox
from core.side_quests import daily_side_quests
from core.time_utils import (
    days_between,
    format_ymd,
    get_current_time,
    next_local_midnight,
    parse_local_date,
    to_local,
)
from models.day_record import DayRecord, HabitSnapshot
from models.habit import Habit, HabitCreate
from models.profile import PlayerProfile
from models.results import (
    HabitResult,
    OpError,
    OpResult,
    RelapseResult,
    ResetResult,
    SideQuestResult,
    SubmitResult,
)
from models.side_quest import SideQuestView
from models.state import AppState

logger = logging.getLogger(__name__)


class Dispatched(NamedTuple):
    state: AppState
    result: Any


class DayCycle:
    """
    The day lifecycle state machine.

    The day is OPEN (habits mutable) until it is submitted, then LOCKED
    until the next calendar day's reset. Every command runs synchronously
    against the AppState it was given and, when it changed something,
    appends a sync intent to the outbox. Nothing here awaits I/O.

    Precondition failures are returned as results carrying an OpError,
    never raised.
    """

    def __init__(
        self,
        state: AppState,
        clock: Callable[[], datetime] = get_current_time,
        outbox: Optional[SyncOutbox] = None,
    ):
        self.state = state
        self.clock = clock
        self.outbox = outbox if outbox is not None else SyncOutbox()
        self._handlers = {
            "complete_habit": lambda a: self.complete_habit(a.habit_id),
            "uncomplete_habit": lambda a: self.uncomplete_habit(a.habit_id),
            "relapse_habit": lambda a: self.relapse_habit(a.habit_id),
            "submit_day": lambda a: self.submit_day(),
            "check_and_reset_day": lambda a: self.check_and_reset_day(),
            "complete_side_quest": lambda a: self.complete_side_quest(a.quest_id),
            "add_habit": lambda a: self.add_habit(a.habit),
            "remove_habit": lambda a: self.remove_habit(a.habit_id),
            "initialize_habits": self.initialize_habits,
            "set_archetype": lambda a: self.set_archetype(a.archetype),
            "mark_celebration_shown": lambda a: self.mark_celebration_shown(),
            "reset_game": lambda a: self.reset_game(),
        }

    # ========== PLUMBING ==========

    def dispatch(self, action) -> Dispatched:
        handler = self._handlers.get(action.type)
        if handler is None:
            raise ValueError(f"Unknown action: {action.type}")
        result = handler(action)
        return Dispatched(self.state, result)

    @property
    def profile(self) -> PlayerProfile:
        return self.state.profile

    def today(self) -> date:
        return to_local(self.clock()).date()

    def today_str(self) -> str:
        return format_ymd(self.today())

    def _multiplier(self) -> float:
        return streak_multiplier(self.profile.current_streak)

    def _set_xp(self, xp: int):
        self.profile.xp = max(0, xp)
        self.profile.level = level_from_xp(self.profile.xp)

    def _schedule_sync(self, immediate: bool = False):
        self.outbox.enqueue(
            SyncIntent(kind="profile", payload=self.state.profile_snapshot(), immediate=immediate)
        )

    def scheduled_habits(self) -> List[Habit]:
        today = self.today()
        return [habit for habit in self.state.habits if habit.is_scheduled(today)]

    def _all_scheduled_completed(self) -> bool:
        return all(habit.completed for habit in self.scheduled_habits())

    # ========== HABIT COMMANDS ==========

    def complete_habit(self, habit_id: str) -> HabitResult:
        if self.profile.is_locked:
            return HabitResult.fail(OpError.DAY_LOCKED, habit_id=habit_id)
        habit = self.state.find_habit(habit_id)
        if habit is None:
            return HabitResult.fail(OpError.NOT_FOUND, habit_id=habit_id)
        if habit.completed:
            return HabitResult.fail(OpError.ALREADY_COMPLETED, habit_id=habit_id)
        if habit.relapsed_today:
            return HabitResult.fail(OpError.RELAPSED_TODAY, habit_id=habit_id)

        was_perfect = self._all_scheduled_completed()
        multiplier = self._multiplier()
        earned = math.floor(habit.xp * multiplier)
        habit.mark_completed(self.today_str(), earned)

        bonus = 0
        if not was_perfect and self.profile.perfect_bonus_granted == 0 and self._all_scheduled_completed():
            bonus = math.floor(settings.PERFECT_DAY_BONUS * multiplier)
            self.profile.perfect_bonus_granted = bonus

        self._set_xp(self.profile.xp + earned + bonus)
        self._schedule_sync()
        return HabitResult(habit_id=habit_id, xp_change=earned + bonus, perfect_bonus=bonus)

    def _retract_completion(self, habit: Habit):
        """Undo today's completion of `habit`. Returns (refunded_xp, retracted_bonus)."""
        was_perfect = self._all_scheduled_completed()
        refunded = habit.unmark_completed(self.today_str())
        bonus = 0
        if was_perfect and not self._all_scheduled_completed():
            bonus = self.profile.perfect_bonus_granted
            self.profile.perfect_bonus_granted = 0
        return refunded, bonus

    def uncomplete_habit(self, habit_id: str) -> HabitResult:
        if self.profile.is_locked:
            return HabitResult.fail(OpError.DAY_LOCKED, habit_id=habit_id)
        habit = self.state.find_habit(habit_id)
        if habit is None:
            return HabitResult.fail(OpError.NOT_FOUND, habit_id=habit_id)
        if not habit.completed:
            return HabitResult.fail(OpError.NOT_COMPLETED, habit_id=habit_id)

        refunded, bonus = self._retract_completion(habit)
        self._set_xp(self.profile.xp - refunded - bonus)
        self._schedule_sync()
        return HabitResult(habit_id=habit_id, xp_change=-(refunded + bonus), perfect_bonus=bonus)

    def relapse_habit(self, habit_id: str) -> RelapseResult:
        """
        Log a relapse on a demon.

        Only this habit's streak resets. The global streak, day_started and
        current_day are left alone: one relapse does not restart the journey.
        """
        if self.profile.is_locked:
            return RelapseResult.fail(OpError.DAY_LOCKED, habit_id=habit_id)
        habit = self.state.find_habit(habit_id)
        if habit is None:
            return RelapseResult.fail(OpError.NOT_FOUND, habit_id=habit_id)
        if habit.type != "demon":
            return RelapseResult.fail(OpError.NOT_DEMON, habit_id=habit_id)
        if habit.relapsed_today:
            return RelapseResult.fail(OpError.ALREADY_RELAPSED, habit_id=habit_id)

        refunded = bonus = 0
        if habit.completed:
            refunded, bonus = self._retract_completion(habit)

        penalty = math.floor(habit.streak * habit.xp * settings.RELAPSE_PENALTY_RATE)
        recovery = settings.RELAPSE_RECOVERY_XP
        streak_lost = habit.relapse()

        self._set_xp(self.profile.xp - refunded - bonus - penalty + recovery)
        self._schedule_sync()
        logger.info("Relapse on %s: streak %s lost, -%s XP", habit.name, streak_lost, penalty)
        return RelapseResult(
            habit_id=habit_id,
            xp_lost=penalty,
            recovery_xp=recovery,
            streak_lost=streak_lost,
            total_relapses=habit.relapses,
            longest_streak=habit.longest_streak,
        )

    def add_habit(self, habit_in: HabitCreate) -> HabitResult:
        habit = habit_in.to_habit()
        if self.state.find_habit(habit.id):
            return HabitResult.fail(OpError.ALREADY_EXISTS, habit_id=habit.id)
        self.state.habits.append(habit)
        self._schedule_sync()
        return HabitResult(habit_id=habit.id)

    def remove_habit(self, habit_id: str) -> HabitResult:
        habit = self.state.find_habit(habit_id)
        if habit is None:
            return HabitResult.fail(OpError.NOT_FOUND, habit_id=habit_id)
        self.state.habits = [h for h in self.state.habits if h.id != habit_id]
        self._schedule_sync()
        return HabitResult(habit_id=habit_id)

    # ========== DAY COMMANDS ==========

    def submit_day(self) -> SubmitResult:
        """
        Submit and lock today.

        Every scheduled habit must be handled (completed, or a relapsed
        demon); otherwise nothing changes. The global streak goes up on every
        newly submitted date, relapses or not. Submitting a date that is
        already in the history replaces its record without touching any
        counter.
        """
        profile = self.profile
        if profile.day_started is None:
            return SubmitResult()

        scheduled = self.scheduled_habits()
        unhandled = [habit.id for habit in scheduled if not habit.is_handled()]
        if unhandled:
            return SubmitResult(unhandled_habits=unhandled)

        today = self.today_str()
        successful_count = sum(1 for habit in scheduled if habit.completed)
        total_count = len(scheduled)
        is_perfect_day = successful_count == total_count
        relapse_count = sum(1 for habit in scheduled if habit.relapsed_today)
        xp_earned = sum(habit.xp_earned_today for habit in self.state.habits) + profile.perfect_bonus_granted

        existing = next((i for i, record in enumerate(profile.day_history) if record.date == today), None)
        is_new_date = existing is None

        if is_new_date:
            profile.current_streak += 1
            profile.longest_streak = max(profile.longest_streak, profile.current_streak)
            day_number = profile.total_days_completed + 1
        else:
            day_number = profile.day_history[existing].day_number

        record = DayRecord(
            date=today,
            day_number=day_number,
            habits=[
                HabitSnapshot(
                    id=habit.id,
                    name=habit.name,
                    type=habit.type,
                    xp=habit.xp,
                    status="completed" if habit.completed else ("relapsed" if habit.relapsed_today else "missed"),
                    streak=habit.streak,
                )
                for habit in scheduled
            ],
            xp_earned=xp_earned,
            is_perfect=is_perfect_day,
            successful_count=successful_count,
            total_count=total_count,
            relapse_count=relapse_count,
        )

        history = list(profile.day_history)
        if is_new_date:
            history.append(record)
            profile.total_days_completed += 1
            if is_perfect_day:
                profile.perfect_days_count += 1
            profile.total_xp_earned += xp_earned
        else:
            history[existing] = record
        profile.day_history = history

        profile.achievements, newly_unlocked = evaluate_achievements(
            profile.achievements,
            longest_streak=profile.longest_streak,
            total_days_completed=profile.total_days_completed,
            perfect_days_count=profile.perfect_days_count,
            day_history=profile.day_history,
        )

        now = self.clock()
        profile.day_locked_at = now
        profile.last_submit_date = today
        profile.last_completed_date = now

        # Submission bypasses the debounce
        self._schedule_sync(immediate=True)
        self.outbox.enqueue(
            SyncIntent(kind="daily_log", date=today, payload=record.model_dump(mode="json"), immediate=True)
        )

        logger.info(
            "Day %s submitted: %s/%s, streak %s%s",
            today, successful_count, total_count, profile.current_streak,
            "" if is_new_date else " (resubmission)",
        )
        return SubmitResult(
            streak_updated=is_new_date,
            new_streak=profile.current_streak,
            day_locked=True,
            successful_count=successful_count,
            total_count=total_count,
            is_perfect_day=is_perfect_day,
            relapse_count=relapse_count,
            newly_unlocked_achievements=newly_unlocked,
            already_submitted=not is_new_date,
        )

    def check_and_reset_day(self) -> ResetResult:
        """
        Roll the state over to a new calendar day. Safe to call at any time.

        last_reset_date is the only marker of a completed reset. A submission
        dated today also counts as proof the day is current: the marker is
        repaired and nothing else changes.
        """
        profile = self.profile
        if profile.day_started is None:
            return ResetResult(current_day=profile.current_day)

        today = self.today()
        today_str = format_ymd(today)
        last_reset = parse_local_date(profile.last_reset_date)

        if last_reset is not None and today <= last_reset:
            return ResetResult(current_day=profile.current_day)
        if profile.last_submit_date == today_str:
            profile.last_reset_date = today_str
            return ResetResult(current_day=profile.current_day)

        for habit in self.state.habits:
            habit.close_day(today, last_reset)

        profile.current_day = max(1, days_between(profile.day_started, today) + 1)

        streak_broken = False
        if profile.last_completed_date is not None:
            streak_broken = days_between(profile.last_completed_date, today) > 1
        elif profile.current_day > 1:
            streak_broken = True
        if streak_broken and profile.current_streak > 0:
            logger.info("Streak of %s broken (last submission %s)", profile.current_streak, profile.last_submit_date)
            profile.current_streak = 0
        else:
            streak_broken = False

        self._roll_side_quests(today_str)
        profile.day_locked_at = None
        profile.perfect_bonus_granted = 0
        profile.last_reset_date = today_str

        self._schedule_sync()
        logger.info("Day reset for %s (journey day %s)", today_str, profile.current_day)
        return ResetResult(reset=True, streak_broken=streak_broken, current_day=profile.current_day)

    # ========== ONBOARDING & PROFILE ==========

    def initialize_habits(self, action) -> OpResult:
        """Install the onboarding habits and start the 66-day journey from now."""
        profile = self.profile
        now = self.clock()
        today_str = self.today_str()

        self.state.habits = [habit.to_habit() for habit in action.habits]
        if action.username is not None:
            profile.username = action.username
        if action.archetype is not None:
            profile.archetype = action.archetype
        if action.difficulty is not None:
            profile.difficulty = action.difficulty

        profile.day_started = now
        profile.current_day = 1
        profile.xp = 0
        profile.level = 1
        profile.current_streak = 0
        profile.longest_streak = 0
        profile.last_completed_date = None
        profile.day_locked_at = None
        profile.perfect_bonus_granted = 0
        profile.last_reset_date = today_str
        profile.onboarding_complete = True
        self._roll_side_quests(today_str)

        self._schedule_sync()
        logger.info("Journey started with %s habits", len(self.state.habits))
        return OpResult()

    def set_archetype(self, archetype: str) -> OpResult:
        self.profile.archetype = archetype
        self._schedule_sync()
        return OpResult()

    def mark_celebration_shown(self) -> OpResult:
        self.profile.last_celebration_date = self.today_str()
        return OpResult()

    def reset_game(self) -> OpResult:
        self.state.profile = PlayerProfile()
        self.state.habits = []
        logger.warning("Game state reset")
        return OpResult()

    # ========== SIDE QUESTS ==========

    def _roll_side_quests(self, today_str: str):
        self.profile.daily_side_quests = daily_side_quests(today_str)
        self.profile.completed_side_quests = []
        self.profile.side_quests_date = today_str

    def _refresh_side_quests(self):
        today_str = self.today_str()
        if self.profile.side_quests_date != today_str:
            self._roll_side_quests(today_str)

    def side_quests(self) -> List[SideQuestView]:
        self._refresh_side_quests()
        done = set(self.profile.completed_side_quests)
        return [
            SideQuestView(**quest.model_dump(), completed=quest.id in done)
            for quest in self.profile.daily_side_quests
        ]

    def complete_side_quest(self, quest_id: str) -> SideQuestResult:
        self._refresh_side_quests()
        profile = self.profile
        if quest_id in profile.completed_side_quests:
            return SideQuestResult.fail(OpError.ALREADY_COMPLETED)
        quest = next((q for q in profile.daily_side_quests if q.id == quest_id), None)
        if quest is None:
            return SideQuestResult.fail(OpError.NOT_FOUND)

        earned = math.floor(quest.xp * self._multiplier())
        profile.completed_side_quests = profile.completed_side_quests + [quest_id]
        self._set_xp(profile.xp + earned)
        self._schedule_sync()
        return SideQuestResult(xp_earned=earned, quest=quest)

    # ========== QUERIES ==========

    def is_today_submitted(self) -> bool:
        return self.profile.last_submit_date == self.today_str()

    def is_day_locked(self) -> bool:
        return self.profile.is_locked

    def was_celebration_shown_today(self) -> bool:
        return self.profile.last_celebration_date == self.today_str()

    def time_until_unlock(self) -> float:
        """Seconds until local midnight, or 0 when the day is open."""
        if not self.profile.is_locked:
            return 0
        now = self.clock()
        midnight = next_local_midnight(now)
        if now.tzinfo is None:
            remaining = (midnight - now).total_seconds()
        else:
            remaining = midnight.timestamp() - now.timestamp()
        return max(0, remaining)

    def is_habit_scheduled_today(self, habit_id: str) -> bool:
        habit = self.state.find_habit(habit_id)
        if habit is None:
            return True
        return habit.is_scheduled(self.today())

    def habit_week_progress(self, habit_id: str) -> Optional[dict]:
        habit = self.state.find_habit(habit_id)
        if habit is None:
            return None
        target = weekly_target(habit.frequency)
        current = week_completions(habit.completed_dates, self.today())
        return {
            "current": current,
            "target": target,
            "is_complete": current >= target,
            "frequency": habit.frequency,
        }

    def days_since_start(self) -> int:
        if self.profile.day_started is None:
            return 0
        return days_between(self.profile.day_started, self.today()) + 1

    def phase(self) -> dict:
        return phase_from_day_count(self.days_since_start())

    def rank(self) -> Optional[str]:
        return rank_from_level(self.profile.level, self.profile.archetype)

    def archetype_data(self) -> Optional[dict]:
        if not self.profile.archetype:
            return None
        return ARCHETYPES.get(self.profile.archetype)

    def level_progress(self) -> dict:
        return level_progress(self.profile.xp)

    def stats(self) -> dict:
        habits = self.state.habits
        demons = [h for h in habits if h.type == "demon"]
        return {
            "total_habits": len(habits),
            "demons_count": len(demons),
            "powers_count": len(habits) - len(demons),
            "completed_today": sum(1 for h in habits if h.completed),
            "total_relapses": self.total_relapses(),
            "average_streak": round(sum(h.streak for h in habits) / len(habits)) if habits else 0,
        }

    def total_relapses(self) -> int:
        return sum(habit.relapses for habit in self.state.habits)

    def history_by_date(self, date_str: str) -> Optional[DayRecord]:
        return next((r for r in self.profile.day_history if r.date == date_str), None)

    def filtered_history(self, filter_by: str = "all") -> List[DayRecord]:
        history = list(self.profile.day_history)
        if filter_by == "perfect":
            history = [r for r in history if r.is_perfect]
        elif filter_by == "relapses":
            history = [r for r in history if r.relapse_count > 0]
        return sorted(history, key=lambda r: r.date, reverse=True)

    def perfect_streak(self) -> int:
        return perfect_run(self.profile.day_history)
