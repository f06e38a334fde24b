"""Read-only stats API for renderers and publishers."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Query

from clog.generator import generate_output_data, to_public_output_data
from clog.models import OutputData, Project, PublicOutputData
from clog.parsers.projects import parse_all_projects
from clog.redaction import apply_redactions
from clog.user_config import load_user_config

logger = logging.getLogger("clog.stats")

stats_router = APIRouter(prefix="/api/stats", tags=["stats"])


def _redaction_context(extra: Optional[list[str]]) -> tuple[str, list[str]]:
    user_config = load_user_config()
    username = user_config.username if user_config else ""
    redacted = list(user_config.redactedProjects) if user_config else []
    for entry in extra or []:
        if entry and entry not in redacted:
            redacted.append(entry)
    return username, redacted


@stats_router.get("", response_model=OutputData, response_model_exclude_none=True)
async def get_stats(redact: Optional[list[str]] = Query(default=None)):
    username, redacted = _redaction_context(redact)
    data = await asyncio.to_thread(generate_output_data, username, redacted)
    logger.info(
        "Generated stats: %d project(s), %d session(s)",
        data.summary.projectCount,
        data.summary.totalSessions,
    )
    return data


@stats_router.get("/public", response_model=PublicOutputData, response_model_exclude_none=True)
async def get_public_stats(redact: Optional[list[str]] = Query(default=None)):
    username, redacted = _redaction_context(redact)
    data = await asyncio.to_thread(generate_output_data, username, redacted)
    return to_public_output_data(data)


@stats_router.get("/projects", response_model=list[Project], response_model_exclude_none=True)
async def list_projects(redact: Optional[list[str]] = Query(default=None)):
    _, redacted = _redaction_context(redact)
    projects = await asyncio.to_thread(parse_all_projects)
    return apply_redactions(projects, redacted)
