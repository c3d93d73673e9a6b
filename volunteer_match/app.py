from __future__ import annotations

import os
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException, Request
from starlette.middleware.sessions import SessionMiddleware

from .analytics.aggregator import compute_analytics
from .analytics.store import get_events
from .auth.dependencies import require_admin, require_user
from .auth.users import authenticate
from .llm.groq_client import build_backend
from .matching.data_store import InMemoryStore, get_store
from .matching.errors import NotFoundError
from .matching.llm_scorer import LLMScorer
from .matching.models import (
    Activity,
    LoginRequest,
    Participation,
    PreferencesUpdate,
    RecommendationList,
)
from .matching.service import RecommendationService

app = FastAPI(title="Volunteer Matching API", version="1.0.0")
app.add_middleware(
    SessionMiddleware,
    secret_key=os.environ.get("SESSION_SECRET", "volunteer-match-secret-change-in-production"),
)


@lru_cache(maxsize=1)
def get_recommendation_service() -> RecommendationService:
    store = get_store()
    backend = build_backend()
    primary = LLMScorer(backend) if backend is not None else None
    return RecommendationService(store, store, primary=primary)


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# ── Auth endpoints ───────────────────────────────────────────────────────


@app.post("/auth/login")
def login(
    body: LoginRequest,
    request: Request,
    store: InMemoryStore = Depends(get_store),
) -> dict:
    user = authenticate(store, body.email, body.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    request.session["user"] = user
    return {"status": "ok", "user": user}


@app.post("/auth/logout")
def logout(request: Request) -> dict:
    request.session.clear()
    return {"status": "logged_out"}


@app.get("/auth/me")
def auth_me(user: dict = Depends(require_user)) -> dict:
    return user


# ── Recommendation endpoints ─────────────────────────────────────────────


@app.get("/recommendations", response_model=RecommendationList)
def recommendations(
    user: dict = Depends(require_user),
    service: RecommendationService = Depends(get_recommendation_service),
) -> RecommendationList:
    # Never an error status: an empty list is a normal outcome
    matches = service.generate_recommendations(user["user_id"])
    return RecommendationList(recommendations=matches, total=len(matches))


@app.put("/recommendations/preferences")
def update_preferences(
    body: PreferencesUpdate,
    user: dict = Depends(require_user),
    service: RecommendationService = Depends(get_recommendation_service),
) -> dict:
    try:
        record = service.update_user_preferences(user["user_id"], body.model_dump())
    except NotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    return {"status": "updated", "last_update": record.last_update.isoformat()}


# ── Activity endpoints ───────────────────────────────────────────────────


@app.get("/activities", response_model=list[Activity])
def activities(
    type: str | None = None,
    user: dict = Depends(require_user),
    store: InMemoryStore = Depends(get_store),
) -> list[Activity]:
    return store.list_activities(type)


@app.post("/activities/{activity_id}/participate", response_model=Participation)
def participate(
    activity_id: int,
    user: dict = Depends(require_user),
    store: InMemoryStore = Depends(get_store),
) -> Participation:
    activity = store.get_activity(activity_id)
    if activity is None or activity.status != "published":
        raise HTTPException(status_code=404, detail="Activity not found")
    existing = store.get_participations_by_user_id(user["user_id"])
    if any(p.activity_id == activity_id for p in existing):
        raise HTTPException(status_code=409, detail="Already registered for this activity")
    return store.add_participation(user["user_id"], activity_id)


# ── Admin endpoints ──────────────────────────────────────────────────────


@app.get("/analytics")
def analytics(user: dict = Depends(require_admin)) -> dict:
    return compute_analytics(get_events("recommendation"))
