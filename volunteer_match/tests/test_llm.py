import json
from unittest.mock import MagicMock, patch

import pytest

from volunteer_match.llm.config import LLMConfig
from volunteer_match.llm.groq_client import GroqBackend, build_backend
from volunteer_match.matching.errors import ScoringUnavailableError
from volunteer_match.matching.llm_scorer import (
    SYSTEM_PROMPT,
    LLMScorer,
    build_prompt,
    parse_matches,
)
from volunteer_match.matching.models import Activity, Availability, MatchingCriteria

SAMPLE_CANDIDATES = [
    Activity(
        id=1,
        title="Tutorías escolares virtuales",
        description="Apoyo en educación básica.",
        sdg_goals=[4, 10],
        required_skills=["Paciencia"],
        is_virtual=True,
        duration=2,
    ),
    Activity(
        id=2,
        title="Limpieza de playas",
        description="Jornada de medio ambiente.",
        location="Lima, Perú",
        duration=4,
    ),
    Activity(
        id=3,
        title="Campaña de salud",
        description="Brigadas de salud.",
        location="Cusco, Perú",
        duration=6,
    ),
]

SAMPLE_CRITERIA = MatchingCriteria(
    strengths=["Achiever", "Learner"],
    personality_type="Extrovertido estable",
    interests=["Educación"],
    availability=Availability(weekdays=True, weekends=False, time_slots=["evening"]),
    office="Lima",
    department="Finanzas",
)

ENABLED_CONFIG = LLMConfig(api_key="test-key", enabled=True)
DISABLED_CONFIG = LLMConfig(api_key="test-key", enabled=False)


def _mock_groq_response(content: str) -> MagicMock:
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


class FakeBackend:
    def __init__(self, content: str = "", error: Exception | None = None):
        self.content = content
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def generate(self, system_prompt: str, prompt: str) -> str:
        self.calls.append((system_prompt, prompt))
        if self.error is not None:
            raise self.error
        return self.content


def _matches(*entries) -> str:
    return json.dumps({"matches": list(entries)})


# ── Groq backend ─────────────────────────────────────────────────────────


@patch("volunteer_match.llm.groq_client.Groq")
def test_groq_backend_requests_json_at_low_temperature(mock_groq_cls):
    create = mock_groq_cls.return_value.chat.completions.create
    create.return_value = _mock_groq_response('{"matches": []}')

    content = GroqBackend(ENABLED_CONFIG).generate("system", "user prompt")

    assert content == '{"matches": []}'
    kwargs = create.call_args.kwargs
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["temperature"] == ENABLED_CONFIG.temperature
    assert kwargs["messages"][0] == {"role": "system", "content": "system"}
    assert kwargs["messages"][1] == {"role": "user", "content": "user prompt"}
    mock_groq_cls.assert_called_once_with(
        api_key="test-key",
        timeout=ENABLED_CONFIG.timeout,
        max_retries=ENABLED_CONFIG.max_retries,
    )


@patch("volunteer_match.llm.groq_client.Groq")
def test_groq_backend_propagates_api_errors(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.side_effect = Exception("API timeout")

    with pytest.raises(Exception, match="API timeout"):
        GroqBackend(ENABLED_CONFIG).generate("system", "prompt")


@patch("volunteer_match.llm.groq_client.Groq")
def test_groq_backend_missing_content_is_soft_empty(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(None)

    content = GroqBackend(ENABLED_CONFIG).generate("system", "prompt")

    assert parse_matches(content) == []


def test_build_backend_disabled():
    assert build_backend(DISABLED_CONFIG) is None


def test_build_backend_without_api_key():
    assert build_backend(LLMConfig(api_key="", enabled=True)) is None


@patch("volunteer_match.llm.groq_client.Groq")
def test_build_backend_enabled(mock_groq_cls):
    assert isinstance(build_backend(ENABLED_CONFIG), GroqBackend)


# ── Prompt ───────────────────────────────────────────────────────────────


def test_prompt_lists_profile_and_every_candidate():
    prompt = build_prompt(SAMPLE_CRITERIA, SAMPLE_CANDIDATES)

    assert "Gallup Strengths: Achiever, Learner" in prompt
    assert "Personality Type: Extrovertido estable" in prompt
    assert "Interests: Educación" in prompt
    assert "Office: Lima" in prompt
    assert "Preferred time slots: evening" in prompt
    for activity in SAMPLE_CANDIDATES:
        assert f"Activity ID: {activity.id}" in prompt
        assert f"Title: {activity.title}" in prompt
    assert "SDG Goals: 4, 10" in prompt
    assert "Duration: 2 hours" in prompt
    assert "Skills Required: None specified" in prompt
    assert '"matches"' in prompt


def test_prompt_tolerates_empty_profile():
    prompt = build_prompt(MatchingCriteria(), SAMPLE_CANDIDATES[:1])

    assert "Personality Type: Unknown" in prompt
    assert "Gallup Strengths: None specified" in prompt


# ── Parsing ──────────────────────────────────────────────────────────────


def test_parse_matches_raises_on_invalid_json():
    with pytest.raises(ScoringUnavailableError):
        parse_matches("not valid json{{{")


@pytest.mark.parametrize("content", [
    "{}",
    '{"matches": []}',
    '{"matches": "none"}',
    "[]",
    '"just a string"',
])
def test_parse_matches_soft_empty(content):
    assert parse_matches(content) == []


def test_parse_matches_skips_malformed_entries():
    content = _matches(
        {"activityId": 1, "score": 80, "reasons": ["Good fit"]},
        {"activityId": "two", "score": 70},
        {"activityId": 3, "score": "high"},
        "not an object",
        {"activityId": "3", "score": "65", "reasons": "not a list"},
        {"activityId": 3.7, "score": 90, "reasons": ["Truncated id"]},
        {"activityId": "3.7", "score": 90},
        {"activityId": 2.0, "score": 55, "reasons": ["Integral float"]},
    )

    assert parse_matches(content) == [
        {"activity_id": 1, "score": 80.0, "reasons": ["Good fit"]},
        {"activity_id": 3, "score": 65.0, "reasons": []},
        {"activity_id": 2, "score": 55.0, "reasons": ["Integral float"]},
    ]


# ── LLMScorer ────────────────────────────────────────────────────────────


def test_score_returns_matches_with_activities():
    backend = FakeBackend(_matches(
        {"activityId": 2, "score": 88, "reasons": ["Close to your office", "Fits your interests"]},
        {"activityId": 1, "score": 75, "reasons": ["Virtual"]},
    ))

    scores = LLMScorer(backend).score(SAMPLE_CRITERIA, SAMPLE_CANDIDATES)

    assert [s.activity_id for s in scores] == [2, 1]
    assert scores[0].score == 88
    assert scores[0].reasons == ["Close to your office", "Fits your interests"]
    assert scores[0].activity == SAMPLE_CANDIDATES[1]
    assert backend.calls[0][0] == SYSTEM_PROMPT


def test_score_clamps_out_of_range_scores():
    backend = FakeBackend(_matches(
        {"activityId": 1, "score": 150, "reasons": []},
        {"activityId": 2, "score": -20, "reasons": []},
        {"activityId": 3, "score": 0, "reasons": []},
    ))

    scores = LLMScorer(backend).score(SAMPLE_CRITERIA, SAMPLE_CANDIDATES)

    assert [s.score for s in scores] == [100, 1, 1]


def test_score_drops_non_integral_activity_ids():
    backend = FakeBackend(_matches({"activityId": 3.7, "score": 90, "reasons": ["Close"]}))

    assert LLMScorer(backend).score(SAMPLE_CRITERIA, SAMPLE_CANDIDATES) == []


def test_score_drops_unknown_activity_ids():
    backend = FakeBackend(_matches(
        {"activityId": 99, "score": 95, "reasons": ["Invented"]},
        {"activityId": 3, "score": 60, "reasons": ["Real"]},
    ))

    scores = LLMScorer(backend).score(SAMPLE_CRITERIA, SAMPLE_CANDIDATES)

    assert [s.activity_id for s in scores] == [3]
    assert all(s.activity is not None for s in scores)


def test_score_keeps_first_entry_for_duplicate_ids():
    backend = FakeBackend(_matches(
        {"activityId": 1, "score": 90, "reasons": ["First"]},
        {"activityId": 1, "score": 20, "reasons": ["Second"]},
    ))

    scores = LLMScorer(backend).score(SAMPLE_CRITERIA, SAMPLE_CANDIDATES)

    assert len(scores) == 1
    assert scores[0].reasons == ["First"]


def test_score_missing_reasons_default_to_empty():
    backend = FakeBackend(_matches({"activityId": 1, "score": 70}))

    scores = LLMScorer(backend).score(SAMPLE_CRITERIA, SAMPLE_CANDIDATES)

    assert scores[0].reasons == []


def test_score_missing_matches_is_soft_empty():
    backend = FakeBackend('{"result": "nothing"}')

    assert LLMScorer(backend).score(SAMPLE_CRITERIA, SAMPLE_CANDIDATES) == []


def test_score_raises_on_unparseable_payload():
    backend = FakeBackend("Sorry, I cannot help with that.")

    with pytest.raises(ScoringUnavailableError):
        LLMScorer(backend).score(SAMPLE_CRITERIA, SAMPLE_CANDIDATES)


def test_score_raises_on_backend_failure():
    backend = FakeBackend(error=TimeoutError("read timed out"))

    with pytest.raises(ScoringUnavailableError):
        LLMScorer(backend).score(SAMPLE_CRITERIA, SAMPLE_CANDIDATES)
    assert len(backend.calls) == 1
