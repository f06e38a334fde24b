"""Read the optional per-project ``sessions-index.json`` snapshot."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from clog import config

logger = logging.getLogger("clog.parsers")


class SessionIndexEntry(BaseModel):
    sessionId: str
    fullPath: str = ""
    fileMtime: Optional[float] = None
    firstPrompt: str = ""
    summary: str = ""
    messageCount: int = 0
    created: str = ""
    modified: str = ""
    gitBranch: str = ""
    projectPath: str = ""
    isSidechain: bool = False

    @field_validator("sessionId")
    @classmethod
    def _session_id_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("sessionId must not be empty")
        return value

    @field_validator("firstPrompt", "summary", "created", "modified", "gitBranch", "projectPath", "fullPath", mode="before")
    @classmethod
    def _none_as_empty(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("messageCount", mode="before")
    @classmethod
    def _none_as_zero(cls, value: object) -> object:
        return 0 if value is None else value


class SessionsIndex(BaseModel):
    version: int = 0
    entries: list[SessionIndexEntry] = Field(default_factory=list)


def read_sessions_index(project_dir: Path) -> SessionsIndex | None:
    """Read ``sessions-index.json`` from a project directory.

    Returns ``None`` when the file is absent, unreadable, or fails validation;
    callers then fall back to scanning the directory.
    """
    index_path = project_dir / config.INDEX_FILENAME
    if not index_path.is_file():
        return None

    try:
        payload = json.loads(index_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable sessions index %s: %s", index_path, exc)
        return None

    if not isinstance(payload, dict) or not isinstance(payload.get("entries"), list):
        logger.warning("Ignoring sessions index without an entries list: %s", index_path)
        return None

    try:
        return SessionsIndex.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Ignoring invalid sessions index %s: %d error(s)", index_path, exc.error_count())
        return None


def main_sessions(index: SessionsIndex) -> list[SessionIndexEntry]:
    """Non-sidechain entries: the user's own sessions, not subagents."""
    return [entry for entry in index.entries if not entry.isSidechain]


def sidechain_sessions(index: SessionsIndex) -> list[SessionIndexEntry]:
    return [entry for entry in index.entries if entry.isSidechain]


def build_session_map(index: SessionsIndex) -> dict[str, SessionIndexEntry]:
    return {entry.sessionId: entry for entry in index.entries}


def entry_transcript_path(entry: SessionIndexEntry, project_dir: Path) -> Path:
    if entry.fullPath:
        full_path = Path(entry.fullPath).expanduser()
        if full_path.is_file():
            return full_path
    # Stale or missing fullPath (moved or copied project): look beside the index.
    return project_dir / f"{entry.sessionId}{config.TRANSCRIPT_SUFFIX}"
