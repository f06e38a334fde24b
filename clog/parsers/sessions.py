"""Combine a main transcript with its subagent transcripts into one session."""
from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from clog import config
from clog.date_utils import file_modified_iso, is_valid_timestamp
from clog.models import RawSession, Session, TokenUsage
from clog.parsers.transcript import TranscriptFacts, parse_transcript

logger = logging.getLogger("clog.parsers")

NO_TITLE = "(no title)"
TEAM_SESSION_TITLE = "Team session"

_COMMAND_NAME_PATTERN = re.compile(r"<command-name>\s*([^<\n]+?)\s*</command-name>", re.IGNORECASE)
_COMMAND_ARGS_PATTERN = re.compile(r"<command-args>\s*([\s\S]*?)\s*</command-args>", re.IGNORECASE)
_TEAM_SESSION_MARKERS = ("<teammate-message", "teammate_id=", '"team_name"', "TeamCreate")
_MAX_COMMAND_TITLE_LENGTH = 80


# ── Title resolution ────────────────────────────────────────────────

@dataclass
class TitleContext:
    facts: TranscriptFacts
    index_title: Optional[str] = None


def _title_from_summary(ctx: TitleContext) -> Optional[str]:
    return ctx.facts.summary


def _title_from_index(ctx: TitleContext) -> Optional[str]:
    return (ctx.index_title or "").strip() or None


def _title_from_command(ctx: TitleContext) -> Optional[str]:
    for text in ctx.facts.userTexts:
        match = _COMMAND_NAME_PATTERN.search(text)
        if not match:
            continue
        title = match.group(1).strip()
        args = _COMMAND_ARGS_PATTERN.search(text)
        if args and args.group(1).strip():
            title = f"{title} {' '.join(args.group(1).split())}"
        if len(title) > _MAX_COMMAND_TITLE_LENGTH:
            title = title[: _MAX_COMMAND_TITLE_LENGTH - 3].rstrip() + "..."
        return title
    return None


def _title_from_team_markers(ctx: TitleContext) -> Optional[str]:
    for text in ctx.facts.userTexts:
        if any(marker in text for marker in _TEAM_SESSION_MARKERS):
            return TEAM_SESSION_TITLE
    return None


def _no_title(ctx: TitleContext) -> Optional[str]:
    return NO_TITLE


# First match wins.
TITLE_STRATEGIES: tuple[Callable[[TitleContext], Optional[str]], ...] = (
    _title_from_summary,
    _title_from_index,
    _title_from_command,
    _title_from_team_markers,
    _no_title,
)


def resolve_title(facts: TranscriptFacts, index_title: Optional[str] = None) -> str:
    ctx = TitleContext(facts=facts, index_title=index_title)
    for strategy in TITLE_STRATEGIES:
        title = strategy(ctx)
        if title:
            return title
    return NO_TITLE


# ── Subagent discovery ──────────────────────────────────────────────

def subagents_dir_for(transcript_path: Path) -> Path:
    """``<dir>/<stem>.jsonl`` keeps its subagents in ``<dir>/<stem>/subagents/``."""
    return transcript_path.with_suffix("") / config.SUBAGENTS_DIRNAME


def nested_subagent_paths(transcript_path: Path) -> list[Path]:
    subagents_dir = subagents_dir_for(transcript_path)
    if not subagents_dir.is_dir():
        return []
    try:
        return sorted(
            path for path in subagents_dir.glob(f"*{config.TRANSCRIPT_SUFFIX}") if path.is_file()
        )
    except OSError as exc:
        logger.debug("Unable to list subagents in %s: %s", subagents_dir, exc)
        return []


def discover_subagents(
    transcript_path: Path,
    session_id: str,
    orphans_by_parent: Optional[dict[str, list[Path]]] = None,
) -> list[Path]:
    """Subagent transcripts of a top-level session, nested directory first."""
    paths = nested_subagent_paths(transcript_path)
    paths.extend((orphans_by_parent or {}).get(session_id, []))
    return paths


# ── Tree construction ──────────────────────────────────────────────

def _raw_from_facts(
    session_id: str,
    facts: TranscriptFacts,
    *,
    title: Optional[str],
    timestamp: str,
    git_branch: Optional[str] = None,
) -> RawSession:
    return RawSession(
        id=session_id,
        title=title,
        timestamp=timestamp,
        durationMs=facts.durationMs,
        gitBranch=git_branch or facts.gitBranch,
        model=facts.model,
        cwd=facts.cwd,
        messageCount=facts.messageCount,
        tokens=facts.tokens,
        toolUsage=dict(facts.toolUsage),
    )


def _session_timestamp(path: Path, facts: TranscriptFacts, preferred: Optional[str] = None) -> str:
    for candidate in (preferred, facts.firstUserTimestamp):
        if candidate and is_valid_timestamp(candidate):
            return candidate
    return file_modified_iso(path)


def build_raw_session(
    transcript_path: Path,
    session_id: Optional[str] = None,
    *,
    orphans_by_parent: Optional[dict[str, list[Path]]] = None,
    index_title: Optional[str] = None,
    index_timestamp: Optional[str] = None,
    index_git_branch: Optional[str] = None,
    index_message_count: Optional[int] = None,
) -> RawSession | None:
    """Parse a main transcript and every subagent transcript below it.

    Returns ``None`` when the main transcript is unreadable. Unreadable
    subagent files are skipped and do not count as subagents.
    """
    session_id = session_id or transcript_path.stem
    facts = parse_transcript(transcript_path)
    if facts is None:
        logger.debug("Skipping unreadable session %s", transcript_path)
        return None

    root = _raw_from_facts(
        session_id,
        facts,
        title=resolve_title(facts, index_title),
        timestamp=_session_timestamp(transcript_path, facts, index_timestamp),
        git_branch=index_git_branch,
    )
    if index_message_count:
        root.messageCount = index_message_count

    visited: set[Path] = {_resolved(transcript_path)}
    stack: list[tuple[RawSession, list[Path]]] = [
        (root, discover_subagents(transcript_path, session_id, orphans_by_parent))
    ]
    while stack:
        parent, child_paths = stack.pop()
        for child_path in child_paths:
            resolved = _resolved(child_path)
            if resolved in visited:
                continue
            visited.add(resolved)
            child_facts = parse_transcript(child_path)
            if child_facts is None:
                logger.debug("Skipping unreadable subagent %s", child_path)
                continue
            child = _raw_from_facts(
                child_path.stem,
                child_facts,
                title=child_facts.summary,
                timestamp=_session_timestamp(child_path, child_facts),
            )
            parent.children.append(child)
            stack.append((child, nested_subagent_paths(child_path)))
    return root


def _resolved(path: Path) -> Path:
    try:
        return path.resolve()
    except OSError:
        return path


# ── Aggregation ────────────────────────────────────────────────────

@dataclass
class _Totals:
    durationMs: int = 0
    tokens: TokenUsage = field(default_factory=TokenUsage)
    count: int = 0
    tools: Counter = field(default_factory=Counter)


def _descendant_totals(raw: RawSession) -> _Totals:
    totals = _Totals()
    pending = list(raw.children)
    while pending:
        node = pending.pop()
        totals.durationMs += node.durationMs
        totals.tokens = totals.tokens + node.tokens
        totals.count += 1
        totals.tools.update(node.toolUsage)
        pending.extend(node.children)
    return totals


def aggregate_session(raw: RawSession) -> Session:
    """Fold a session tree into one session with recursive totals."""
    descendants = _descendant_totals(raw)
    tools = Counter(raw.toolUsage)
    tools.update(descendants.tools)
    return Session(
        id=raw.id,
        title=raw.title,
        timestamp=raw.timestamp,
        durationMs=raw.durationMs,
        totalDurationMs=raw.durationMs + descendants.durationMs,
        gitBranch=raw.gitBranch,
        model=raw.model,
        tokens=raw.tokens,
        totalTokens=raw.tokens + descendants.tokens,
        subagentCount=descendants.count,
        toolUsage=dict(tools) if tools else None,
        messageCount=raw.messageCount or None,
        cwd=raw.cwd,
    )
