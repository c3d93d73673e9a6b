from __future__ import annotations

import json
import logging
import math
from typing import Any

from ..llm.groq_client import RankingBackend
from .errors import ScoringUnavailableError
from .models import Activity, ActivityMatchScore, MatchingCriteria
from .rule_scorer import clamp_score

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert system for matching corporate volunteers with "
    "suitable volunteering activities based on personality, strengths, "
    "skills and preferences. Always respond with valid JSON."
)

_RESPONSE_FORMAT = (
    '{"matches": [{"activityId": <number>, "score": <number>, '
    '"reasons": ["<reason1>", "<reason2>", "<reason3>"]}]}'
)


def _join(values: list[Any], empty: str = "None specified") -> str:
    return ", ".join(str(v) for v in values) if values else empty


def _format_duration(duration: float | None) -> str:
    if duration is None:
        return "Not specified"
    return f"{duration:g} hours"


def _format_activity(activity: Activity) -> str:
    lines = [
        f"Activity ID: {activity.id}",
        f"Title: {activity.title}",
        f"Description: {activity.description}",
        f"Skills Required: {_join(activity.required_skills)}",
        f"Location: {activity.location or 'Not specified'}",
        f"Virtual: {'yes' if activity.is_virtual else 'no'}",
        f"SDG Goals: {_join(activity.sdg_goals)}",
        f"Duration: {_format_duration(activity.duration)}",
    ]
    return "\n".join(lines)


def build_prompt(criteria: MatchingCriteria, candidates: list[Activity]) -> str:
    availability = criteria.availability
    lines = [
        "Analyze the user profile and score each volunteering activity "
        "based on compatibility.",
        "",
        "## User Profile",
        f"- Gallup Strengths: {_join(criteria.strengths)}",
        f"- Personality Type: {criteria.personality_type or 'Unknown'}",
        f"- Interests: {_join(criteria.interests)}",
        f"- Office: {criteria.office or 'Unknown'}",
        f"- Department: {criteria.department or 'Unknown'}",
        f"- Available on weekdays: {'yes' if availability.weekdays else 'no'}",
        f"- Available on weekends: {'yes' if availability.weekends else 'no'}",
        f"- Preferred time slots: {_join(availability.time_slots, 'Any')}",
        "",
        "## Activities to score",
        "\n---\n".join(_format_activity(a) for a in candidates),
        "",
        "For each activity, provide:",
        "1. A compatibility score from 1-100 (100 being a perfect match).",
        "2. 2-3 concrete reasons, grounded in the profile above, why the "
        "activity does or does not suit the user.",
        "3. Weigh personality alignment, skill and interest overlap, "
        "location or virtual-format compatibility, and time commitment.",
        "",
        "Respond with JSON in exactly this format:",
        _RESPONSE_FORMAT,
        "Only use activity IDs from the list above.",
    ]
    return "\n".join(lines)


def _to_int(value: Any) -> int | None:
    """Return ``value`` as an int only when it is integral; never truncate."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_matches(content: str) -> list[dict[str, Any]]:
    """
    Parse the model output into ``{"activity_id", "score", "reasons"}`` dicts.

    Raises ``ScoringUnavailableError`` when ``content`` is not JSON at all.
    Well-formed JSON without a usable ``matches`` list yields an empty list.
    """
    try:
        parsed = json.loads(content)
    except (TypeError, ValueError) as exc:
        raise ScoringUnavailableError("LLM response is not valid JSON") from exc

    if not isinstance(parsed, dict):
        return []
    matches = parsed.get("matches")
    if not isinstance(matches, list):
        return []

    results: list[dict[str, Any]] = []
    for item in matches:
        if not isinstance(item, dict):
            continue
        activity_id = _to_int(item.get("activityId", item.get("activity_id")))
        score = _to_float(item.get("score"))
        if activity_id is None or score is None:
            continue
        reasons = item.get("reasons") or []
        if not isinstance(reasons, list):
            reasons = []
        results.append({
            "activity_id": activity_id,
            "score": score,
            "reasons": [r for r in reasons if isinstance(r, str) and r.strip()],
        })
    return results


class LLMScorer:
    """Scores candidates with a single structured-output LLM call."""

    def __init__(self, backend: RankingBackend):
        self.backend = backend

    def score(
        self,
        criteria: MatchingCriteria,
        candidates: list[Activity],
    ) -> list[ActivityMatchScore]:
        prompt = build_prompt(criteria, candidates)
        try:
            content = self.backend.generate(SYSTEM_PROMPT, prompt)
        except Exception as exc:
            raise ScoringUnavailableError("LLM ranking backend call failed") from exc

        by_id = {activity.id: activity for activity in candidates}
        seen: set[int] = set()
        scores: list[ActivityMatchScore] = []
        for match in parse_matches(content):
            activity = by_id.get(match["activity_id"])
            if activity is None:
                logger.debug("Dropping LLM match for unknown activity %s", match["activity_id"])
                continue
            if activity.id in seen:
                continue
            seen.add(activity.id)
            scores.append(ActivityMatchScore(
                activity_id=activity.id,
                score=clamp_score(match["score"]),
                reasons=match["reasons"],
                activity=activity,
            ))
        return scores
