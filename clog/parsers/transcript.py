"""Decode Claude Code JSONL transcripts into typed records and per-file facts."""
from __future__ import annotations

import json
import logging
from collections import Counter
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from clog import config
from clog.date_utils import parse_timestamp
from clog.models import TokenUsage

logger = logging.getLogger("clog.parsers")


# ── Content blocks ──────────────────────────────────────────────────

class TextBlock(BaseModel):
    text: str = ""


class ToolUseBlock(BaseModel):
    name: str


class OtherBlock(BaseModel):
    type: str = ""


ContentBlock = Union[TextBlock, ToolUseBlock, OtherBlock]


def _decode_block(raw: Any) -> ContentBlock:
    if not isinstance(raw, dict):
        return OtherBlock()
    block_type = raw.get("type")
    if block_type == "text" and isinstance(raw.get("text"), str):
        return TextBlock(text=raw["text"])
    if block_type == "tool_use" and isinstance(raw.get("name"), str) and raw["name"]:
        return ToolUseBlock(name=raw["name"])
    return OtherBlock(type=str(block_type or ""))


# ── Transcript lines ────────────────────────────────────────────────

class _LineEnvelope(BaseModel):
    type: str = ""
    timestamp: Optional[str] = None
    cwd: Optional[str] = None
    gitBranch: Optional[str] = None
    sessionId: Optional[str] = None


class SummaryLine(_LineEnvelope):
    text: str = ""


class TurnDurationLine(_LineEnvelope):
    durationMs: int = 0


class MessageLine(_LineEnvelope):
    role: str = ""
    model: Optional[str] = None
    usage: Optional[TokenUsage] = None
    text: Optional[str] = None
    blocks: list[ContentBlock] = Field(default_factory=list)


class UnknownLine(_LineEnvelope):
    pass


TranscriptLine = Union[SummaryLine, TurnDurationLine, MessageLine, UnknownLine]


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def decode_line(entry: dict[str, Any]) -> TranscriptLine:
    """Classify one decoded JSON object into a transcript record."""
    envelope = {
        "type": entry.get("type") if isinstance(entry.get("type"), str) else "",
        "timestamp": _str_or_none(entry.get("timestamp")),
        "cwd": _str_or_none(entry.get("cwd")),
        "gitBranch": _str_or_none(entry.get("gitBranch")),
        "sessionId": _str_or_none(entry.get("sessionId")),
    }
    entry_type = envelope["type"]

    if entry_type == "summary":
        return SummaryLine(text=str(entry.get("summary") or "").strip(), **envelope)

    if entry_type == "system" and entry.get("subtype") == "turn_duration":
        duration = entry.get("durationMs")
        if isinstance(duration, (int, float)) and not isinstance(duration, bool) and duration > 0:
            return TurnDurationLine(durationMs=int(duration), **envelope)
        return TurnDurationLine(**envelope)

    message = entry.get("message")
    if isinstance(message, dict):
        role = message.get("role") if isinstance(message.get("role"), str) else ""
        raw_usage = message.get("usage")
        if raw_usage is None:
            raw_usage = entry.get("usage")
        content = message.get("content")
        text: Optional[str] = None
        blocks: list[ContentBlock] = []
        if isinstance(content, str):
            text = content
        elif isinstance(content, list):
            blocks = [_decode_block(block) for block in content]
        return MessageLine(
            role=role,
            model=_str_or_none(message.get("model")),
            usage=TokenUsage.from_usage(raw_usage) if isinstance(raw_usage, dict) else None,
            text=text,
            blocks=blocks,
            **envelope,
        )

    return UnknownLine(**envelope)


def message_text(line: MessageLine) -> str:
    if line.text is not None:
        return line.text
    return "\n".join(block.text for block in line.blocks if isinstance(block, TextBlock))


# ── File-level facts ────────────────────────────────────────────────

class TranscriptFacts(BaseModel):
    """Facts derived from one transcript file."""

    durationMs: int = 0
    turnDurationMs: int = 0
    model: Optional[str] = None
    cwd: Optional[str] = None
    gitBranch: Optional[str] = None
    firstUserTimestamp: Optional[str] = None
    summary: Optional[str] = None
    parentSessionId: Optional[str] = None
    messageCount: int = 0
    tokens: TokenUsage = Field(default_factory=TokenUsage)
    toolUsage: dict[str, int] = Field(default_factory=dict)
    userTexts: list[str] = Field(default_factory=list)


def read_transcript(path: Path) -> list[TranscriptLine] | None:
    """Decode every line of a transcript.

    Lines that are not JSON objects are dropped; the file may be mid-write,
    so undecodable bytes are replaced and only their line fails to parse.
    Returns ``None`` when the file cannot be read at all.
    """
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("Unable to read transcript %s: %s", path, exc)
        return None

    lines: list[TranscriptLine] = []
    dropped = 0
    for raw_line in content.splitlines():
        raw_line = raw_line.strip()
        if not raw_line:
            continue
        try:
            entry = json.loads(raw_line)
        except json.JSONDecodeError:
            dropped += 1
            continue
        if not isinstance(entry, dict):
            dropped += 1
            continue
        lines.append(decode_line(entry))

    if dropped:
        logger.debug("Dropped %d malformed line(s) in %s", dropped, path)
    return lines


def duration_ms(lines: list[TranscriptLine]) -> int:
    """Span between the earliest and latest valid timestamps, in milliseconds."""
    stamps = [ts for ts in (parse_timestamp(line.timestamp) for line in lines) if ts is not None]
    if len(stamps) < 2:
        return 0
    return (max(stamps) - min(stamps)) // timedelta(milliseconds=1)


def summarize_lines(lines: list[TranscriptLine]) -> TranscriptFacts:
    facts = TranscriptFacts(durationMs=duration_ms(lines))
    if lines:
        facts.parentSessionId = lines[0].sessionId

    tokens = TokenUsage.zero()
    tool_counter: Counter[str] = Counter()
    seen_assistant = False
    seen_user = False

    for line in lines:
        if isinstance(line, SummaryLine):
            if facts.summary is None and line.text:
                facts.summary = line.text
            continue
        if isinstance(line, TurnDurationLine):
            facts.turnDurationMs += line.durationMs
            continue
        if not isinstance(line, MessageLine):
            continue

        facts.messageCount += 1
        if line.role == "assistant":
            if not seen_assistant:
                seen_assistant = True
                facts.model = line.model
            if line.usage is not None:
                tokens = tokens + line.usage
            for block in line.blocks:
                if isinstance(block, ToolUseBlock):
                    tool_counter[block.name] += 1
        elif line.role == "user":
            if not seen_user:
                seen_user = True
                facts.cwd = line.cwd
            if facts.gitBranch is None and line.gitBranch:
                facts.gitBranch = line.gitBranch
            if facts.firstUserTimestamp is None and parse_timestamp(line.timestamp) is not None:
                facts.firstUserTimestamp = line.timestamp
            if len(facts.userTexts) < config.TITLE_SCAN_TURNS:
                text = message_text(line).strip()
                if text:
                    facts.userTexts.append(text)

    facts.tokens = tokens
    facts.toolUsage = dict(tool_counter)
    return facts


def parse_transcript(path: Path) -> TranscriptFacts | None:
    """Parse a transcript into facts; ``None`` when it is unreadable or empty."""
    lines = read_transcript(path)
    if not lines:
        return None
    return summarize_lines(lines)


def read_parent_session_id(path: Path) -> str | None:
    """Return the ``sessionId`` declared on the first line of an agent file."""
    try:
        with path.open("r", encoding="utf-8", errors="replace") as handle:
            first_line = handle.readline()
    except OSError:
        return None
    if not first_line.strip():
        return None
    try:
        entry = json.loads(first_line)
    except json.JSONDecodeError:
        return None
    if not isinstance(entry, dict):
        return None
    return _str_or_none(entry.get("sessionId"))
