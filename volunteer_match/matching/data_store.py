from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

import pandas as pd

from .config import DEFAULT_MATCHING_CONFIG
from .models import Activity, MatchingData, Participation, UserProfile

logger = logging.getLogger(__name__)

_USERS_JSON = "users.json"
_ACTIVITIES_CSV = "activities.csv"
_PARTICIPATIONS_CSV = "participations.csv"


class ProfileStore(Protocol):
    def get_user_by_id(self, user_id: int) -> UserProfile | None: ...

    def get_participations_by_user_id(self, user_id: int) -> list[Participation]: ...

    def update_matching_data(self, user_id: int, data: dict[str, Any]) -> MatchingData: ...


class ActivityCatalog(Protocol):
    def get_activities_by_category(self, category: str) -> list[Activity]: ...


class InMemoryStore:
    """Profile store and activity catalog backed by plain dicts."""

    def __init__(
        self,
        users: list[UserProfile] | None = None,
        activities: list[Activity] | None = None,
        participations: list[Participation] | None = None,
    ):
        self._users = {u.id: u for u in users or []}
        self._activities = {a.id: a for a in activities or []}
        self._participations = list(participations or [])
        self._matching_data: dict[int, MatchingData] = {}

    # ── Profiles ─────────────────────────────────────────────────────────

    def get_user_by_id(self, user_id: int) -> UserProfile | None:
        return self._users.get(user_id)

    def get_user_by_email(self, email: str) -> UserProfile | None:
        email_lower = email.strip().lower()
        for user in self._users.values():
            if user.email.lower() == email_lower:
                return user
        return None

    def get_participations_by_user_id(self, user_id: int) -> list[Participation]:
        return [p for p in self._participations if p.user_id == user_id]

    def add_participation(self, user_id: int, activity_id: int) -> Participation:
        next_id = max((p.id for p in self._participations), default=0) + 1
        participation = Participation(id=next_id, user_id=user_id, activity_id=activity_id)
        self._participations.append(participation)
        return participation

    # ── Activities ───────────────────────────────────────────────────────

    def get_activity(self, activity_id: int) -> Activity | None:
        return self._activities.get(activity_id)

    def list_activities(self, category: str | None = None) -> list[Activity]:
        """Return published activities, optionally restricted to one category."""
        return [
            a for a in self._activities.values()
            if a.status == "published" and (category is None or a.type == category)
        ]

    def get_activities_by_category(self, category: str) -> list[Activity]:
        return self.list_activities(category)

    # ── Matching preferences ─────────────────────────────────────────────

    def update_matching_data(self, user_id: int, data: dict[str, Any]) -> MatchingData:
        record = MatchingData(user_id=user_id, **data)
        self._matching_data[user_id] = record
        return record

    def get_matching_data(self, user_id: int) -> MatchingData | None:
        return self._matching_data.get(user_id)


# ── Seed loading ─────────────────────────────────────────────────────────


def _split_list(value: Any) -> list[str]:
    if not isinstance(value, str):
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _none_if_missing(value: Any) -> Any:
    return None if pd.isna(value) else value


def _load_activities(path: Path) -> list[Activity]:
    df = pd.read_csv(path, dtype={"sdg_goals": str, "required_skills": str})

    # Pre-parse comma separated list columns
    df["required_skills"] = df["required_skills"].apply(_split_list)
    df["sdg_goals"] = df["sdg_goals"].apply(lambda s: [int(g) for g in _split_list(s)])
    df["is_virtual"] = df["is_virtual"].fillna(False).astype(bool)
    df["description"] = df["description"].fillna("")

    activities: list[Activity] = []
    for _, row in df.iterrows():
        activities.append(Activity(
            id=int(row["id"]),
            title=row["title"],
            description=row["description"],
            type=row["type"],
            status=row["status"],
            required_skills=row["required_skills"],
            location=_none_if_missing(row["location"]),
            is_virtual=bool(row["is_virtual"]),
            sdg_goals=row["sdg_goals"],
            duration=_none_if_missing(row["duration"]),
        ))
    return activities


def _load_participations(path: Path) -> list[Participation]:
    df = pd.read_csv(path)
    df["status"] = df["status"].fillna("registered")
    return [
        Participation(
            id=int(row["id"]),
            user_id=int(row["user_id"]),
            activity_id=int(row["activity_id"]),
            status=row["status"],
        )
        for _, row in df.iterrows()
    ]


def _load_users(path: Path) -> list[UserProfile]:
    records = json.loads(path.read_text(encoding="utf-8"))
    return [UserProfile(**record) for record in records]


def load_store(data_dir: Path = DEFAULT_MATCHING_CONFIG.data_dir) -> InMemoryStore:
    """Build an ``InMemoryStore`` from the seed files in ``data_dir``."""
    users = _load_users(data_dir / _USERS_JSON)
    activities = _load_activities(data_dir / _ACTIVITIES_CSV)
    participations = _load_participations(data_dir / _PARTICIPATIONS_CSV)
    logger.info(
        "Loaded %d users, %d activities, %d participations from %s",
        len(users), len(activities), len(participations), data_dir,
    )
    return InMemoryStore(users, activities, participations)


_store: InMemoryStore | None = None


def get_store() -> InMemoryStore:
    """Return the process-wide seeded store, loading it on first call."""
    global _store
    if _store is None:
        _store = load_store()
    return _store
