"""Assemble the output payload handed to renderers and publishers."""
from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, Optional

from clog.date_utils import date_key, format_datetime_utc, parse_date
from clog.models import (
    ActivityDay,
    OutputData,
    Project,
    PublicOutputData,
    PublicProject,
    PublicSession,
    Summary,
    TokenUsage,
)
from clog.parsers.projects import parse_all_projects
from clog.parsers.stats_cache import derive_cache_stats, read_stats_cache
from clog.redaction import apply_redactions

logger = logging.getLogger("clog")


def build_summary(projects: list[Project]) -> Summary:
    return Summary(
        totalSessions=sum(project.totalSessions for project in projects),
        totalDurationMs=sum(project.totalDurationMs for project in projects),
        totalTokens=sum(project.totalTokens.total for project in projects),
        projectCount=len(projects),
    )


def build_activity(projects: list[Project]) -> dict[str, ActivityDay]:
    activity: dict[str, ActivityDay] = {}
    for project in projects:
        for session in project.sessions:
            day = activity.setdefault(date_key(session.timestamp), ActivityDay())
            day.sessions += 1 + session.subagentCount
            day.durationMs += session.totalDurationMs
    return dict(sorted(activity.items()))


def session_streak(projects: list[Project], today: Optional[date] = None) -> int:
    """Consecutive days with at least one session, ending today or yesterday."""
    days: set[date] = set()
    for project in projects:
        for session in project.sessions:
            day = parse_date(session.timestamp)
            if day is not None:
                days.add(day)
    if not days:
        return 0

    today = today or date.today()
    current = today if today in days else today - timedelta(days=1)
    streak = 0
    while current in days:
        streak += 1
        current -= timedelta(days=1)
    return streak


def generate_output_data(
    username: str = "",
    redacted_projects: Iterable[str] = (),
    *,
    projects_dir: Optional[Path] = None,
    stats_cache_path: Optional[Path] = None,
    now: Optional[datetime] = None,
) -> OutputData:
    now = now or datetime.now(timezone.utc)
    projects = apply_redactions(parse_all_projects(projects_dir), list(redacted_projects))

    data = OutputData(
        generatedAt=format_datetime_utc(now),
        username=username,
        summary=build_summary(projects),
        projects=projects,
        activity=build_activity(projects),
    )

    cache = read_stats_cache(stats_cache_path)
    if cache is not None:
        stats = derive_cache_stats(cache, now.date())
        data.modelBreakdown = stats.modelBreakdown
        data.peakHours = stats.peakHours
        data.currentStreak = stats.currentStreak
    else:
        logger.debug("No stats cache available; skipping model breakdown and streak")
    return data


def _aggregated_tool_usage(projects: list[Project]) -> dict[str, int] | None:
    tools: Counter[str] = Counter()
    for project in projects:
        for session in project.sessions:
            tools.update(session.toolUsage or {})
    return dict(tools) if tools else None


def _aggregated_token_usage(projects: list[Project]) -> TokenUsage | None:
    tokens = TokenUsage.sum(project.totalTokens for project in projects)
    return tokens if tokens.total > 0 else None


def to_public_output_data(data: OutputData) -> PublicOutputData:
    projects = [
        PublicProject(
            projectName=project.projectName,
            totalSessions=project.totalSessions,
            totalDurationMs=project.totalDurationMs,
            sessions=[
                PublicSession(
                    id=session.id,
                    title=session.title,
                    timestamp=session.timestamp,
                    totalDurationMs=session.totalDurationMs,
                )
                for session in project.sessions
            ],
        )
        for project in data.projects
    ]
    return PublicOutputData(
        generatedAt=data.generatedAt,
        username=data.username,
        summary=data.summary,
        projects=projects,
        activity=data.activity,
        tokenUsage=_aggregated_token_usage(data.projects),
        toolUsage=_aggregated_tool_usage(data.projects),
        modelBreakdown=data.modelBreakdown,
    )
