# -*- coding: utf-8 -*-
"""Trends — per-day aggregation over the timeline."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import settings
from ..timeline.models import LoggedFoodItem, SymptomLog, TimelineEntry
from ..timeline.storage import list_entries, utc, utc_now
from .models import CaloriePoint, FodmapPoint, MacroPoint, SafetyPoint, SymptomFrequency, TrendsResponse

_RANGE_DAYS = {"7D": 7, "30D": 30, "90D": 90, "1Y": 365}


def range_bounds(range_: str, now: datetime) -> Tuple[Optional[datetime], datetime]:
    """(start, end) for a range; 1D covers the current UTC calendar day."""
    now = utc(now)
    if range_ == "1D":
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return day_start, day_start + timedelta(days=1) - timedelta(microseconds=1)
    if range_ == "ALL":
        return None, now
    return now - timedelta(days=_RANGE_DAYS[range_]), now


def clamp_to_retention(start: Optional[datetime], now: datetime, *, premium: bool) -> Tuple[Optional[datetime], bool]:
    if premium:
        return start, False
    floor = utc(now) - timedelta(days=settings.free_retention_days)
    if start is None or start < floor:
        return floor, True
    return start, False


def _day(ts: datetime) -> str:
    return utc(ts).date().isoformat()


def _by_day(items: Sequence[LoggedFoodItem]) -> Dict[str, List[LoggedFoodItem]]:
    grouped: Dict[str, List[LoggedFoodItem]] = {}
    for item in sorted(items, key=lambda i: utc(i.timestamp)):
        grouped.setdefault(_day(item.timestamp), []).append(item)
    return grouped


def aggregate(entries: Sequence[TimelineEntry]) -> Dict[str, list]:
    """Chart series for ``entries``; days without food entries are omitted."""
    eaten = [e for e in entries if isinstance(e, LoggedFoodItem)]
    foods = [e for e in eaten if e.entry_type == "food"]

    macros: List[MacroPoint] = []
    calories: List[CaloriePoint] = []
    for day, items in _by_day(eaten).items():
        macros.append(
            MacroPoint(
                date=day,
                protein=sum(i.protein or 0 for i in items),
                carbs=sum(i.carbs or 0 for i in items),
                fat=sum(i.fat or 0 for i in items),
            )
        )
        calories.append(CaloriePoint(date=day, calories=sum(i.calories or 0 for i in items)))

    safety: List[SafetyPoint] = []
    fodmap: List[FodmapPoint] = []
    for day, items in _by_day(foods).items():
        feedback = Counter(i.user_feedback for i in items)
        safety.append(
            SafetyPoint(date=day, safe=feedback["safe"], unsafe=feedback["unsafe"], not_marked=feedback[None])
        )
        risks = Counter(i.fodmap_data.overall_risk if i.fodmap_data else None for i in items)
        fodmap.append(
            FodmapPoint(date=day, green=risks["Green"], yellow=risks["Yellow"], red=risks["Red"], unrated=risks[None])
        )

    counts: Counter = Counter()
    for entry in entries:
        if isinstance(entry, SymptomLog):
            counts.update(s.name for s in entry.symptoms)
    symptom_frequency = [
        SymptomFrequency(name=name, value=value) for name, value in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    ]

    return {
        "macros": macros,
        "calories": calories,
        "safety": safety,
        "fodmap": fodmap,
        "symptom_frequency": symptom_frequency,
    }


def compute_trends(user: dict, range_: str, *, now: Optional[datetime] = None) -> TrendsResponse:
    now = utc(now or utc_now())
    start, end = range_bounds(range_, now)
    start, clamped = clamp_to_retention(start, now, premium=bool(user.get("premium")))
    entries = list_entries(user["id"], start=start, end=end)
    return TrendsResponse(range=range_, start=start, end=end, retention_clamped=clamped, **aggregate(entries))
