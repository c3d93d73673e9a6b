from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class Availability(BaseModel):
    weekdays: bool = True
    weekends: bool = False
    time_slots: list[str] = Field(default_factory=list)


class UserProfile(BaseModel):
    id: int
    email: str
    full_name: str
    role: str = "employee"
    office: str | None = None
    department: str | None = None
    position: str | None = None
    gallup_strengths: dict[str, float] | None = Field(
        default=None, description="Strength label -> Gallup score"
    )
    personality_type: str | None = None
    interests: list[str] | None = None
    availability: Availability | None = None


class Participation(BaseModel):
    id: int
    user_id: int
    activity_id: int
    status: str = "registered"


class Activity(BaseModel):
    id: int
    title: str
    description: str
    type: str = "ong_volunteering"
    status: str = "published"
    required_skills: list[str] = Field(default_factory=list)
    location: str | None = None
    is_virtual: bool = False
    sdg_goals: list[int] = Field(default_factory=list)
    duration: float | None = Field(default=None, description="Duration in hours")


class MatchingCriteria(BaseModel):
    strengths: list[str] = Field(default_factory=list)
    personality_type: str = ""
    interests: list[str] = Field(default_factory=list)
    availability: Availability = Field(default_factory=Availability)
    office: str = ""
    department: str = ""
    prior_activity_ids: set[int] = Field(default_factory=set)


class ActivityMatchScore(BaseModel):
    activity_id: int
    score: int = Field(..., ge=1, le=100)
    reasons: list[str] = Field(default_factory=list)
    activity: Activity


class MatchingData(BaseModel):
    user_id: int
    matching_score: dict[str, Any] = Field(default_factory=dict)
    preferences: dict[str, Any] = Field(default_factory=dict)
    recommendation_history: list[Any] = Field(default_factory=list)
    last_update: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ── API models ───────────────────────────────────────────────────────────


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class PreferencesUpdate(BaseModel):
    scores: dict[str, Any] = Field(default_factory=dict)
    history: list[Any] = Field(default_factory=list)
    preferences: dict[str, Any] = Field(default_factory=dict)


class RecommendationList(BaseModel):
    recommendations: list[ActivityMatchScore]
    total: int
