from __future__ import annotations

from collections import Counter
from typing import Any

STRATEGIES = ("llm", "rules", "none")


def _rate(part: int, total: int) -> float:
    return round(part / total * 100, 1) if total else 0.0


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    requests = [e for e in events if e["type"] == "recommendation"]
    total = len(requests)

    # Average response time
    times = [r["response_time_ms"] for r in requests if "response_time_ms" in r]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    # Which scorer produced the answer
    strategy_counter: Counter[str] = Counter(r.get("strategy", "none") for r in requests)
    strategies = {s: strategy_counter.get(s, 0) for s in STRATEGIES}

    # Fallback rate counts only requests that actually reached a scorer
    scored = strategies["llm"] + strategies["rules"]

    llm_failures = sum(1 for r in requests if r.get("llm_failed"))

    empty = sum(1 for r in requests if not r.get("results_returned"))

    # Most recommended activities
    activity_counter: Counter[int] = Counter()
    for r in requests:
        for activity_id in r.get("activity_ids", []) or []:
            activity_counter[activity_id] += 1
    top_activities = [
        {"activity_id": a, "count": c} for a, c in activity_counter.most_common(10)
    ]

    top_scores = [r["top_score"] for r in requests if r.get("top_score") is not None]

    return {
        "total_requests": total,
        "avg_response_time_ms": avg_time,
        "strategies": strategies,
        "fallback_rate": _rate(strategies["rules"], scored),
        "llm_failures": llm_failures,
        "empty_result_rate": _rate(empty, total),
        "avg_top_score": round(sum(top_scores) / len(top_scores), 1) if top_scores else 0.0,
        "top_activities": top_activities,
    }
