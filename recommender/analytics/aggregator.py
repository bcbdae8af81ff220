from __future__ import annotations

from collections import Counter
from typing import Any


def _rate(part: int, total: int) -> float:
    return round(part / total * 100, 1) if total else 0.0


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    served = [e for e in events if e["type"] == "recommendation"]
    rejected = [e for e in events if e["type"] == "rejected"]
    total = len(served)

    times = [e["response_time_ms"] for e in served if "response_time_ms" in e]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    by_variant = Counter(e.get("variant", "unknown") for e in served)

    # Only requests that actually reached the semantic stage count towards
    # the fallback rate; an empty window never calls the gateway.
    attempted = [e for e in served if e.get("window_size", 0) > 0]
    fallbacks = [e for e in attempted if not e.get("reranked")]
    reason_counter: Counter[str] = Counter()
    for e in fallbacks:
        reason = e.get("fallback_reason") or "unknown"
        # "error: ConnectionError: ..." -> "error"
        reason_counter[reason.split(":", 1)[0]] += 1

    empty_results = sum(1 for e in served if e.get("results_returned", 0) == 0)

    return {
        "total_recommendations": total,
        "by_variant": dict(by_variant),
        "avg_response_time_ms": avg_time,
        "semantic_stage": {
            "attempted": len(attempted),
            "reranked": len(attempted) - len(fallbacks),
            "fallbacks": len(fallbacks),
            "fallback_rate": _rate(len(fallbacks), len(attempted)),
            "fallback_reasons": dict(reason_counter),
        },
        "empty_results": empty_results,
        "rejected": len(rejected),
    }
