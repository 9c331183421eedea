"""Dashboard metric aggregation.

Every function here is pure: it takes metric dicts shaped
``{metricType, timestamp, count, averageScore}`` and returns plain data.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from storage.models import utcnow

PERIODS = {"1d": 1, "7d": 7, "30d": 30}
DEFAULT_PERIOD = "7d"
LOW_SCORE_ALERT = 50.0
HIGH_SEVERITY_SCORE = 30.0
RECENT_LIMIT = 5


def _date(metric: Dict[str, Any]) -> str:
    return str(metric.get("timestamp", "")).split("T")[0]


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def strip_daily_prefix(metric_type: str) -> str:
    if metric_type.startswith("daily_"):
        return metric_type[len("daily_"):]
    return metric_type


def group_metrics_by_type(metrics: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """Group metric records by type, dropping the ``daily_`` prefix."""
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for metric in metrics:
        metric_type = strip_daily_prefix(str(metric.get("metricType", "unknown")))
        grouped.setdefault(metric_type, []).append(metric)
    return grouped


def aggregate_by_date(metrics: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Per calendar date: summed counts and the mean of average scores."""
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for metric in metrics:
        grouped.setdefault(_date(metric), []).append(metric)

    return [
        {
            "date": date,
            "count": sum(item.get("count") or 1 for item in items),
            "averageScore": _mean([item.get("averageScore") or 0 for item in items]),
            "details": items,
        }
        for date, items in grouped.items()
    ]


def summarize_metrics(grouped: Dict[str, List[Dict[str, Any]]]) -> Dict[str, Dict[str, Any]]:
    summary = {}
    for metric_type, items in grouped.items():
        summary[metric_type] = {
            "totalEvaluations": sum(item.get("count") or 0 for item in items),
            "averageScore": _mean([item.get("averageScore") or 0 for item in items]),
            "recentEvaluations": items[:RECENT_LIMIT],
        }
    return summary


def calculate_trends(metrics: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Date-sorted series of evaluation counts and mean scores."""
    daily: Dict[str, Dict[str, Any]] = {}
    for metric in metrics:
        bucket = daily.setdefault(_date(metric), {"count": 0, "scores": []})
        bucket["count"] += metric.get("count") or 1
        bucket["scores"].append(metric.get("averageScore") or 0)

    return [
        {
            "date": date,
            "evaluations": daily[date]["count"],
            "averageScore": _mean(daily[date]["scores"]),
        }
        for date in sorted(daily)
    ]


def generate_alerts(summary: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
    alerts = []
    for metric_type, data in summary.items():
        score = data["averageScore"]
        if data["totalEvaluations"] and score < LOW_SCORE_ALERT:
            alerts.append({
                "type": "warning",
                "category": metric_type,
                "message": f"Low average score ({score:.1f}) for {metric_type} evaluations",
                "severity": "high" if score < HIGH_SEVERITY_SCORE else "medium",
            })
        if data["totalEvaluations"] == 0:
            alerts.append({
                "type": "info",
                "category": metric_type,
                "message": f"No recent {metric_type} evaluations",
                "severity": "low",
            })
    return alerts


def period_start(period: str, now: Optional[datetime] = None) -> datetime:
    """Start of the dashboard window; unknown periods fall back to 7 days."""
    days = PERIODS.get(period, PERIODS[DEFAULT_PERIOD])
    return (now or utcnow()) - timedelta(days=days)


def in_period(metrics: List[Dict[str, Any]], period: str, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    start = period_start(period, now)
    selected = []
    for metric in metrics:
        try:
            timestamp = datetime.fromisoformat(str(metric.get("timestamp")))
        except ValueError:
            continue
        if timestamp.replace(tzinfo=None) >= start:
            selected.append(metric)
    return selected


def build_dashboard(
    metrics: List[Dict[str, Any]],
    period: str = DEFAULT_PERIOD,
    now: Optional[datetime] = None,
    known_types: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """Historical dashboard view over the records that fall inside ``period``.

    Every type in ``known_types`` (by default, every type seen in ``metrics``)
    gets a ``detailsByType`` entry; types with nothing inside the window show
    zero evaluations and raise a "no recent evaluations" alert.
    """
    if known_types is None:
        known_types = group_metrics_by_type(metrics)
    metrics = in_period(metrics, period, now)
    summary = summarize_metrics(group_metrics_by_type(metrics))
    for metric_type in known_types:
        summary.setdefault(strip_daily_prefix(metric_type), {
            "totalEvaluations": 0,
            "averageScore": 0.0,
            "recentEvaluations": [],
        })
    active = [s for s in summary.values() if s["totalEvaluations"]]
    return {
        "period": period,
        "summary": {
            "totalEvaluations": sum(s["totalEvaluations"] for s in active),
            "averageQuality": _mean([s["averageScore"] for s in active]),
            "evaluationTypes": len(active),
        },
        "detailsByType": summary,
        "trends": calculate_trends(metrics),
        "alerts": generate_alerts(summary),
    }
