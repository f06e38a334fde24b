"""Assemble per-project statistics from index snapshots and transcript scans."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from clog import config
from clog.date_utils import timestamp_to_epoch_ms
from clog.models import Project, RawSession, Session, TokenUsage
from clog.parsers.index_reader import (
    SessionsIndex,
    entry_transcript_path,
    main_sessions,
    read_sessions_index,
)
from clog.parsers.sessions import aggregate_session, build_raw_session
from clog.parsers.transcript import read_parent_session_id

logger = logging.getLogger("clog.parsers")


def _log_skip(message: str, *args: object) -> None:
    if config.LOG_SKIPPED_FILES:
        logger.info(message, *args)
    else:
        logger.debug(message, *args)


def is_excluded_path(path: Optional[str]) -> bool:
    """Worktree checkouts and Claude's own directories are not projects."""
    if not path:
        return False
    return any(marker in path for marker in config.EXCLUDED_PATH_MARKERS)


def _is_transcript(path: Path) -> bool:
    return path.suffix == config.TRANSCRIPT_SUFFIX and path.is_file()


def _is_orphan_agent(path: Path) -> bool:
    return path.name.startswith(config.ORPHAN_AGENT_PREFIX)


def scan_transcripts(project_dir: Path) -> tuple[list[Path], list[Path]]:
    """Return (top-level session transcripts, orphan agent transcripts)."""
    try:
        items = sorted(project_dir.iterdir())
    except OSError as exc:
        logger.warning("Unable to list project directory %s: %s", project_dir, exc)
        return [], []
    transcripts = [item for item in items if _is_transcript(item)]
    sessions = [item for item in transcripts if not _is_orphan_agent(item)]
    agents = [item for item in transcripts if _is_orphan_agent(item)]
    return sessions, agents


def group_orphan_agents(agent_paths: list[Path]) -> dict[str, list[Path]]:
    grouped: dict[str, list[Path]] = {}
    for agent_path in agent_paths:
        parent_id = read_parent_session_id(agent_path)
        if not parent_id:
            _log_skip("Ignoring agent file without a parent session: %s", agent_path)
            continue
        grouped.setdefault(parent_id, []).append(agent_path)
    return grouped


def _session_sort_key(session: Session) -> tuple[int, str]:
    epoch = timestamp_to_epoch_ms(session.timestamp)
    return (-(epoch if epoch is not None else 0), session.id)


def _collect_indexed(
    project_dir: Path,
    index: SessionsIndex,
    session_paths: list[Path],
    orphans: dict[str, list[Path]],
) -> list[RawSession]:
    raw_sessions: list[RawSession] = []
    built_ids: set[str] = set()
    for entry in main_sessions(index):
        if entry.sessionId in built_ids:
            continue
        raw = build_raw_session(
            entry_transcript_path(entry, project_dir),
            entry.sessionId,
            orphans_by_parent=orphans,
            index_title=entry.summary,
            index_timestamp=entry.created,
            index_git_branch=entry.gitBranch or None,
            index_message_count=entry.messageCount,
        )
        if raw is None:
            _log_skip("Indexed session %s has no readable transcript", entry.sessionId)
            continue
        built_ids.add(entry.sessionId)
        raw_sessions.append(raw)

    # The index can lag behind the directory; pick up whatever it misses.
    for session_path in session_paths:
        if session_path.stem in built_ids:
            continue
        raw = build_raw_session(session_path, orphans_by_parent=orphans)
        if raw is None:
            _log_skip("Skipping unreadable session %s", session_path)
            continue
        raw_sessions.append(raw)
    return raw_sessions


def _collect_legacy(session_paths: list[Path], orphans: dict[str, list[Path]]) -> list[RawSession]:
    raw_sessions: list[RawSession] = []
    for session_path in session_paths:
        raw = build_raw_session(session_path, orphans_by_parent=orphans)
        if raw is None:
            _log_skip("Skipping unreadable session %s", session_path)
            continue
        raw_sessions.append(raw)
    return raw_sessions


def resolve_project_path(
    sessions: list[Session],
    project_dir: Path,
    index: Optional[SessionsIndex] = None,
) -> str:
    """Most recent session cwd, else the index's project path, else the dir name.

    ``sessions`` must already be sorted newest first.
    """
    for session in sessions:
        if session.cwd:
            return session.cwd
    if index is not None:
        for entry in main_sessions(index):
            if entry.projectPath:
                return entry.projectPath
    return project_dir.name


def build_project(project_path: str, sessions: list[Session]) -> Project:
    total_tokens = TokenUsage.sum(session.totalTokens for session in sessions)
    return Project(
        projectName=os.path.basename(project_path.rstrip("/")) or project_path,
        projectPath=project_path,
        totalSessions=sum(1 + session.subagentCount for session in sessions),
        totalDurationMs=sum(session.totalDurationMs for session in sessions),
        totalTokens=total_tokens,
        sessions=sessions,
    )


def parse_project(project_dir: Path) -> Project | None:
    """Parse one ``~/.claude/projects/<encoded-path>`` directory.

    Returns ``None`` when no reportable session remains.
    """
    session_paths, agent_paths = scan_transcripts(project_dir)
    orphans = group_orphan_agents(agent_paths)

    index = read_sessions_index(project_dir)
    if index is not None:
        raw_sessions = _collect_indexed(project_dir, index, session_paths, orphans)
    else:
        raw_sessions = _collect_legacy(session_paths, orphans)

    sessions = [
        aggregate_session(raw) for raw in raw_sessions if not is_excluded_path(raw.cwd)
    ]
    if not sessions:
        return None
    sessions.sort(key=_session_sort_key)

    project_path = resolve_project_path(sessions, project_dir, index)
    if is_excluded_path(project_path):
        # Only reachable when no remaining session has its own cwd, so every
        # session inherits the excluded project path.
        _log_skip("Skipping excluded project %s", project_dir)
        return None

    return build_project(project_path, sessions)


def _project_sort_key(project: Project) -> tuple[int, str, str]:
    return (-project.totalDurationMs, project.projectName, project.projectPath)


def parse_all_projects(projects_dir: Path | None = None) -> list[Project]:
    """Parse every project directory, most active project first."""
    root = projects_dir or config.PROJECTS_DIR
    if not root.is_dir():
        logger.info("No Claude Code projects directory at %s", root)
        return []

    projects: list[Project] = []
    for project_dir in sorted(root.iterdir()):
        if project_dir.name.startswith(".") or not project_dir.is_dir():
            continue
        project = parse_project(project_dir)
        if project is not None:
            projects.append(project)

    projects.sort(key=_project_sort_key)
    logger.info("Parsed %d project(s) from %s", len(projects), root)
    return projects
