"""clog configuration."""
import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.getenv(name)
    if value is None:
        return default
    items = tuple(part.strip() for part in value.split(",") if part.strip())
    return items or default


# Claude Code data directory (~/.claude unless overridden)
CLAUDE_DIR = Path(os.getenv("CLOG_CLAUDE_DIR", str(Path.home() / ".claude"))).expanduser()
PROJECTS_DIR = Path(os.getenv("CLOG_PROJECTS_DIR", str(CLAUDE_DIR / "projects"))).expanduser()
STATS_CACHE_PATH = Path(os.getenv("CLOG_STATS_CACHE_PATH", str(CLAUDE_DIR / "stats-cache.json"))).expanduser()
CONFIG_PATH = Path(os.getenv("CLOG_CONFIG_PATH", str(CLAUDE_DIR / "clog.json"))).expanduser()

# Transcript layout
TRANSCRIPT_SUFFIX = os.getenv("CLOG_TRANSCRIPT_SUFFIX", ".jsonl")
INDEX_FILENAME = "sessions-index.json"
ORPHAN_AGENT_PREFIX = "agent-"
SUBAGENTS_DIRNAME = "subagents"

# Sessions whose working directory contains one of these are not reported.
EXCLUDED_PATH_MARKERS = _env_list("CLOG_EXCLUDED_PATH_MARKERS", ("/worktrees/", "/.claude/"))

# Title heuristics only look at the first few user turns.
TITLE_SCAN_TURNS = _env_int("CLOG_TITLE_SCAN_TURNS", 5)

# Logging
LOG_LEVEL = os.getenv("CLOG_LOG_LEVEL", "INFO").upper()
LOG_SKIPPED_FILES = _env_bool("CLOG_LOG_SKIPPED_FILES", False)

# Server settings
HOST = os.getenv("CLOG_HOST", "127.0.0.1")
PORT = _env_int("CLOG_PORT", 8787)
