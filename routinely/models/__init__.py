"""SQLAlchemy ORM models.

All models are imported here so that ``Base.metadata`` knows every table
before ``create_all`` runs.
"""

from routinely.models.achievement import Achievement, UserAchievement  # noqa: F401
from routinely.models.family import Family  # noqa: F401
from routinely.models.performance import RoutinePerformanceStat  # noqa: F401
from routinely.models.profile import Profile  # noqa: F401
from routinely.models.routine import ChildRoutine, Routine, RoutineTask  # noqa: F401
from routinely.models.session import RoutineSession, TaskCompletion  # noqa: F401

__all__ = [
    "Achievement",
    "ChildRoutine",
    "Family",
    "Profile",
    "Routine",
    "RoutinePerformanceStat",
    "RoutineSession",
    "RoutineTask",
    "TaskCompletion",
    "UserAchievement",
]
