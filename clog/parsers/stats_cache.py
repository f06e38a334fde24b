"""Derive peak hours, model breakdown and streak from ``stats-cache.json``."""
from __future__ import annotations

import json
import logging
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from clog import config
from clog.date_utils import parse_date
from clog.model_identity import short_model_name
from clog.models import ModelBreakdown

logger = logging.getLogger("clog.stats")


class DailyActivity(BaseModel):
    date: str
    messageCount: int = 0
    sessionCount: int = 0
    toolCallCount: int = 0


class ModelUsageEntry(BaseModel):
    inputTokens: int = 0
    outputTokens: int = 0
    cacheReadInputTokens: int = 0
    cacheCreationInputTokens: int = 0
    webSearchRequests: Optional[int] = None
    costUSD: Optional[float] = None


class StatsCache(BaseModel):
    version: int = 0
    lastComputedDate: str = ""
    dailyActivity: list[DailyActivity] = Field(default_factory=list)
    modelUsage: dict[str, ModelUsageEntry] = Field(default_factory=dict)
    hourCounts: dict[str, int] = Field(default_factory=dict)
    totalSessions: int = 0
    totalMessages: int = 0
    firstSessionDate: Optional[str] = None


class CacheStats(BaseModel):
    modelBreakdown: dict[str, ModelBreakdown] = Field(default_factory=dict)
    peakHours: list[int] = Field(default_factory=list)
    currentStreak: int = 0


def read_stats_cache(path: Path | None = None) -> StatsCache | None:
    """Read the global stats cache; ``None`` when missing or malformed."""
    cache_path = path or config.STATS_CACHE_PATH
    if not cache_path.is_file():
        return None
    try:
        payload: Any = json.loads(cache_path.read_text(encoding="utf-8"))
        return StatsCache.model_validate(payload)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable stats cache %s: %s", cache_path, exc)
    except ValidationError as exc:
        logger.warning("Ignoring invalid stats cache %s: %d error(s)", cache_path, exc.error_count())
    return None


def peak_hours(cache: StatsCache, limit: int = 3) -> list[int]:
    """Busiest hours of the day; ties go to the earlier hour."""
    counts: list[tuple[int, int]] = []
    for raw_hour, count in cache.hourCounts.items():
        try:
            counts.append((int(raw_hour), count))
        except ValueError:
            continue
    counts.sort(key=lambda item: (-item[1], item[0]))
    return [hour for hour, _ in counts[:limit]]


def model_breakdown(cache: StatsCache) -> dict[str, ModelBreakdown]:
    breakdown: dict[str, ModelBreakdown] = {}
    for model, usage in cache.modelUsage.items():
        name = short_model_name(model)
        bucket = breakdown.setdefault(name, ModelBreakdown())
        bucket.inputTokens += usage.inputTokens
        bucket.outputTokens += usage.outputTokens
        bucket.cacheTokens += usage.cacheReadInputTokens + usage.cacheCreationInputTokens
    return breakdown


def _active_days(cache: StatsCache) -> list[date]:
    days: list[date] = []
    for activity in cache.dailyActivity:
        if activity.messageCount <= 0 and activity.sessionCount <= 0 and activity.toolCallCount <= 0:
            continue
        day = parse_date(activity.date)
        if day is not None:
            days.append(day)
    return sorted(days, reverse=True)


def current_streak(cache: StatsCache, today: date | None = None) -> int:
    """Consecutive active days ending today or yesterday.

    When there is no activity today, a streak may still start yesterday. That
    single-day allowance applies only to the first counted day; any later gap
    ends the streak. A most-recent active day before yesterday gives 0.
    """
    days = _active_days(cache)
    if not days:
        return 0

    today = today or date.today()
    yesterday = today - timedelta(days=1)
    if days[0] < yesterday:
        return 0

    streak = 0
    check_date = today
    for day in days:
        if day == check_date:
            streak += 1
            check_date = check_date - timedelta(days=1)
        elif day < check_date:
            if streak == 0 and day == yesterday:
                streak += 1
                check_date = yesterday - timedelta(days=1)
            else:
                break
    return streak


def derive_cache_stats(cache: StatsCache, today: date | None = None) -> CacheStats:
    return CacheStats(
        modelBreakdown=model_breakdown(cache),
        peakHours=peak_hours(cache),
        currentStreak=current_streak(cache, today),
    )
