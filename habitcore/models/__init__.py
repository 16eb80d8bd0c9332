from .habit import Habit
from .habit_log import HabitLog
from .challenge import Challenge, ChallengeHabit, ChallengeDay
from .milestone import Milestone

__all__ = [
    "Habit",
    "HabitLog",
    "Challenge",
    "ChallengeHabit",
    "ChallengeDay",
    "Milestone",
]
