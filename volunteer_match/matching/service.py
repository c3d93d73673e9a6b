from __future__ import annotations

import logging
import time
from typing import Any, Protocol

from ..analytics.store import record_event
from .config import DEFAULT_MATCHING_CONFIG, MatchingConfig
from .data_store import ActivityCatalog, ProfileStore
from .errors import NotFoundError
from .models import (
    Activity,
    ActivityMatchScore,
    Availability,
    MatchingCriteria,
    MatchingData,
    Participation,
    UserProfile,
)
from .rule_scorer import GENERIC_REASON, RuleBasedScorer

logger = logging.getLogger(__name__)


class Scorer(Protocol):
    def score(
        self,
        criteria: MatchingCriteria,
        candidates: list[Activity],
    ) -> list[ActivityMatchScore]: ...


def build_criteria(
    profile: UserProfile,
    participations: list[Participation],
) -> MatchingCriteria:
    """Snapshot the profile fields used for scoring, with neutral defaults."""
    return MatchingCriteria(
        strengths=list(profile.gallup_strengths or {}),
        personality_type=profile.personality_type or "",
        interests=list(profile.interests or []),
        availability=profile.availability or Availability(),
        office=profile.office or "",
        department=profile.department or "",
        prior_activity_ids={p.activity_id for p in participations},
    )


class RecommendationService:
    """
    Produces the top volunteering matches for a user.

    The LLM scorer is tried first when one is configured; any failure
    switches to the rule-based scorer for the same request. Callers never
    see an exception from ``generate_recommendations``: the worst case is
    an empty list.
    """

    def __init__(
        self,
        profiles: ProfileStore,
        catalog: ActivityCatalog,
        primary: Scorer | None = None,
        fallback: Scorer | None = None,
        config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
    ):
        self.profiles = profiles
        self.catalog = catalog
        self.primary = primary
        self.fallback = fallback or RuleBasedScorer()
        self.config = config

    def generate_recommendations(self, user_id: int) -> list[ActivityMatchScore]:
        start_time = time.time()
        stats: dict[str, Any] = {
            "user_id": user_id,
            "strategy": "none",
            "llm_failed": False,
            "total_candidates": 0,
        }

        try:
            results = self._recommend(user_id, stats)
        except NotFoundError:
            logger.info("No profile for user %s; returning no recommendations", user_id)
            results = []
        except Exception:
            logger.exception("Recommendation pipeline failed for user %s", user_id)
            results = []

        self._record(stats, results, start_time)
        return results

    def _recommend(self, user_id: int, stats: dict[str, Any]) -> list[ActivityMatchScore]:
        profile = self.profiles.get_user_by_id(user_id)
        if profile is None:
            raise NotFoundError(f"User {user_id} not found")

        activities = self.catalog.get_activities_by_category(self.config.category)
        if not activities:
            logger.info("No published %s activities to score", self.config.category)
            return []

        participations = self.profiles.get_participations_by_user_id(user_id)
        criteria = build_criteria(profile, participations)

        candidates = [a for a in activities if a.id not in criteria.prior_activity_ids]
        stats["total_candidates"] = len(candidates)
        if not candidates:
            logger.info("User %s already joined every available activity", user_id)
            return []

        scores = self._score(criteria, candidates, stats)

        for match in scores:
            if not match.reasons:
                match.reasons = [GENERIC_REASON]

        # sorted() is stable, so equal scores keep the scorer's order
        ranked = sorted(scores, key=lambda m: m.score, reverse=True)
        return ranked[: self.config.max_results]

    def _score(
        self,
        criteria: MatchingCriteria,
        candidates: list[Activity],
        stats: dict[str, Any],
    ) -> list[ActivityMatchScore]:
        if self.primary is not None:
            try:
                scores = self.primary.score(criteria, candidates)
                stats["strategy"] = "llm"
                return scores
            except Exception:
                stats["llm_failed"] = True
                logger.warning("LLM scoring failed, falling back to rule-based scoring", exc_info=True)

        stats["strategy"] = "rules"
        return self.fallback.score(criteria, candidates)

    def _record(
        self,
        stats: dict[str, Any],
        results: list[ActivityMatchScore],
        start_time: float,
    ) -> None:
        elapsed_ms = round((time.time() - start_time) * 1000, 1)
        try:
            record_event("recommendation", {
                **stats,
                "results_returned": len(results),
                "activity_ids": [r.activity_id for r in results],
                "top_score": results[0].score if results else None,
                "response_time_ms": elapsed_ms,
            })
        except Exception:
            logger.warning("Could not record recommendation analytics", exc_info=True)

    def update_user_preferences(self, user_id: int, preferences: dict[str, Any]) -> MatchingData:
        """Store the user's matching preferences and recommendation history."""
        if self.profiles.get_user_by_id(user_id) is None:
            raise NotFoundError(f"User {user_id} not found")
        return self.profiles.update_matching_data(user_id, {
            "matching_score": preferences.get("scores") or {},
            "preferences": preferences,
            "recommendation_history": preferences.get("history") or [],
        })
