"""
Deterministic rule-based activity scoring.

Used whenever the LLM scorer is unavailable or fails. Every activity
starts at ``BASE_SCORE`` and collects the weight and reason of each rule
that applies. Rules are grouped: a group contributes at most one rule,
the first one whose predicate holds, so mutually exclusive bonuses
(virtual format vs. office location) are ordered alternatives within a
single group.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .models import Activity, ActivityMatchScore, MatchingCriteria

BASE_SCORE = 50
MIN_SCORE = 1
MAX_SCORE = 100
GENERIC_REASON = "General volunteer opportunity."
SHORT_DURATION_HOURS = 3


def clamp_score(value: float) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, int(round(value))))


@dataclass(frozen=True)
class ScoringRule:
    name: str
    weight: int
    reason: str
    applies: Callable[[MatchingCriteria, Activity], bool]


def _matches_interests(criteria: MatchingCriteria, activity: Activity) -> bool:
    if not criteria.interests or not activity.sdg_goals:
        return False
    description = activity.description.lower()
    return any(interest.lower() in description for interest in criteria.interests)


def _virtual_on_weekdays(criteria: MatchingCriteria, activity: Activity) -> bool:
    return activity.is_virtual and criteria.availability.weekdays


def _near_office(criteria: MatchingCriteria, activity: Activity) -> bool:
    # An empty office is a substring of every location
    return bool(activity.location) and criteria.office in activity.location


def _short_commitment(criteria: MatchingCriteria, activity: Activity) -> bool:
    return bool(activity.duration) and activity.duration <= SHORT_DURATION_HOURS


INTEREST_RULE = ScoringRule("interests", 20, "Matches your stated interests.", _matches_interests)
VIRTUAL_RULE = ScoringRule("virtual", 15, "Virtual format fits your schedule.", _virtual_on_weekdays)
LOCATION_RULE = ScoringRule("location", 25, "Located near your office.", _near_office)
DURATION_RULE = ScoringRule("duration", 10, "Short time commitment.", _short_commitment)

DEFAULT_RULE_GROUPS: tuple[tuple[ScoringRule, ...], ...] = (
    (INTEREST_RULE,),
    (VIRTUAL_RULE, LOCATION_RULE),
    (DURATION_RULE,),
)


class RuleBasedScorer:
    """Pure scorer: one result per candidate, no I/O."""

    def __init__(self, rule_groups: tuple[tuple[ScoringRule, ...], ...] = DEFAULT_RULE_GROUPS):
        self.rule_groups = rule_groups

    def score_activity(self, criteria: MatchingCriteria, activity: Activity) -> ActivityMatchScore:
        score = BASE_SCORE
        reasons: list[str] = []

        for group in self.rule_groups:
            for rule in group:
                if rule.applies(criteria, activity):
                    score += rule.weight
                    reasons.append(rule.reason)
                    break

        if not reasons:
            reasons.append(GENERIC_REASON)

        return ActivityMatchScore(
            activity_id=activity.id,
            score=clamp_score(score),
            reasons=reasons,
            activity=activity,
        )

    def score(
        self,
        criteria: MatchingCriteria,
        candidates: list[Activity],
    ) -> list[ActivityMatchScore]:
        return [self.score_activity(criteria, activity) for activity in candidates]
