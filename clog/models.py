"""Pydantic models for aggregated Claude Code usage statistics."""
from __future__ import annotations

from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field


def _coerce_count(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return max(int(value), 0)
    return 0


# ── Token accounting ───────────────────────────────────────────────

class TokenUsage(BaseModel):
    """Four non-negative token counters, summed pointwise.

    ``TokenUsage.zero()`` is the identity of ``+`` so usage from any number of
    transcripts can be folded in any order.
    """

    inputTokens: int = Field(default=0, ge=0)
    outputTokens: int = Field(default=0, ge=0)
    cacheReadTokens: int = Field(default=0, ge=0)
    cacheCreationTokens: int = Field(default=0, ge=0)

    @classmethod
    def zero(cls) -> TokenUsage:
        return cls()

    @classmethod
    def from_usage(cls, usage: Any) -> TokenUsage:
        """Build from a raw ``message.usage`` payload; bad fields count as 0."""
        if not isinstance(usage, dict):
            return cls()
        return cls(
            inputTokens=_coerce_count(usage.get("input_tokens")),
            outputTokens=_coerce_count(usage.get("output_tokens")),
            cacheReadTokens=_coerce_count(usage.get("cache_read_input_tokens")),
            cacheCreationTokens=_coerce_count(usage.get("cache_creation_input_tokens")),
        )

    @classmethod
    def sum(cls, items: Iterable[TokenUsage]) -> TokenUsage:
        total = cls.zero()
        for item in items:
            total = total + item
        return total

    def __add__(self, other: TokenUsage) -> TokenUsage:
        if not isinstance(other, TokenUsage):
            return NotImplemented
        return TokenUsage(
            inputTokens=self.inputTokens + other.inputTokens,
            outputTokens=self.outputTokens + other.outputTokens,
            cacheReadTokens=self.cacheReadTokens + other.cacheReadTokens,
            cacheCreationTokens=self.cacheCreationTokens + other.cacheCreationTokens,
        )

    @property
    def total(self) -> int:
        return self.inputTokens + self.outputTokens + self.cacheReadTokens + self.cacheCreationTokens


# ── Session-related models ──────────────────────────────────────────

class RawSession(BaseModel):
    """One transcript before aggregation, with its subagent subtree."""

    id: str
    title: Optional[str] = None
    timestamp: str = ""
    durationMs: int = 0
    gitBranch: Optional[str] = None
    model: Optional[str] = None
    cwd: Optional[str] = None
    messageCount: int = 0
    tokens: TokenUsage = Field(default_factory=TokenUsage)
    toolUsage: dict[str, int] = Field(default_factory=dict)
    children: list[RawSession] = Field(default_factory=list)


class Session(BaseModel):
    id: str
    title: Optional[str] = None
    timestamp: str
    durationMs: int = 0
    totalDurationMs: int = 0
    gitBranch: Optional[str] = None
    model: Optional[str] = None
    tokens: TokenUsage = Field(default_factory=TokenUsage)
    totalTokens: TokenUsage = Field(default_factory=TokenUsage)
    subagentCount: int = 0
    toolUsage: Optional[dict[str, int]] = None
    messageCount: Optional[int] = None
    # Only used to resolve the owning project's path.
    cwd: Optional[str] = Field(default=None, exclude=True)


class Project(BaseModel):
    projectName: str
    projectPath: str
    totalSessions: int = 0
    totalDurationMs: int = 0
    totalTokens: TokenUsage = Field(default_factory=TokenUsage)
    sessions: list[Session] = Field(default_factory=list)


# ── Output models ───────────────────────────────────────────────────

class Summary(BaseModel):
    totalSessions: int = 0
    totalDurationMs: int = 0
    totalTokens: int = 0
    projectCount: int = 0


class ActivityDay(BaseModel):
    sessions: int = 0
    durationMs: int = 0


class ModelBreakdown(BaseModel):
    inputTokens: int = 0
    outputTokens: int = 0
    cacheTokens: int = 0


class OutputData(BaseModel):
    generatedAt: str
    username: str = ""
    summary: Summary = Field(default_factory=Summary)
    projects: list[Project] = Field(default_factory=list)
    activity: dict[str, ActivityDay] = Field(default_factory=dict)
    modelBreakdown: Optional[dict[str, ModelBreakdown]] = None
    peakHours: Optional[list[int]] = None
    currentStreak: Optional[int] = None


class PublicSession(BaseModel):
    id: str
    title: Optional[str] = None
    timestamp: str
    totalDurationMs: int = 0


class PublicProject(BaseModel):
    projectName: str
    totalSessions: int = 0
    totalDurationMs: int = 0
    sessions: list[PublicSession] = Field(default_factory=list)


class PublicOutputData(BaseModel):
    generatedAt: str
    username: str = ""
    summary: Summary = Field(default_factory=Summary)
    projects: list[PublicProject] = Field(default_factory=list)
    activity: dict[str, ActivityDay] = Field(default_factory=dict)
    tokenUsage: Optional[TokenUsage] = None
    toolUsage: Optional[dict[str, int]] = None
    modelBreakdown: Optional[dict[str, ModelBreakdown]] = None
