# backend/models/achievement.py
from datetime import datetime
from enum import Enum
from pydantic import BaseModel
from typing import Optional


class AchievementCategory(str, Enum):
    COLLECTION = "collection"
    SOCIAL = "social"
    TRADING = "trading"


class AchievementDefinition(BaseModel):
    type: str
    name: str
    description: str
    icon: str
    category: AchievementCategory
    points: int
    requirements: dict[str, float]


class UnlockedAchievement(BaseModel):
    achievement_type: str
    unlocked_at: Optional[datetime] = None
    definition: AchievementDefinition


class AchievementCheckResponse(BaseModel):
    unlocked: list[AchievementDefinition] = []
    revoked: list[AchievementDefinition] = []


class AchievementListResponse(BaseModel):
    achievements: list[UnlockedAchievement]
    total_points: int
