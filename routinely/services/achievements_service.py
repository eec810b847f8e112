"""Child achievements collaborator (read side only)."""

import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from routinely.core.errors import DependencyUnavailable
from routinely.models.achievement import Achievement, UserAchievement
from routinely.schemas.summary import ChildAchievement, ChildAchievementList


async def list_child_achievements(
    db: AsyncSession,
    child_profile_id: uuid.UUID,
) -> ChildAchievementList:
    """List achievements unlocked by a child, most recently awarded first.

    Raises:
        DependencyUnavailable: If the storage read fails.
    """
    try:
        result = await db.execute(
            select(UserAchievement, Achievement)
            .join(Achievement, Achievement.id == UserAchievement.achievement_id)
            .where(UserAchievement.profile_id == child_profile_id)
            .order_by(UserAchievement.awarded_at.desc())
        )
        rows = result.all()
    except SQLAlchemyError as exc:
        raise DependencyUnavailable("child_achievements", exc) from exc

    return ChildAchievementList(
        data=[
            ChildAchievement(
                achievement_id=award.achievement_id,
                code=achievement.code,
                name=achievement.name,
                description=achievement.description,
                icon_url=achievement.icon_url,
                awarded_at=award.awarded_at,
                metadata=award.metadata_,
            )
            for award, achievement in rows
        ]
    )
