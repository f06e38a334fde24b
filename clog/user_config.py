"""Load the optional user config file (``~/.claude/clog.json``)."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from clog import config

logger = logging.getLogger("clog")


class UserConfig(BaseModel):
    username: str = ""
    repoName: str = ""
    repoPath: str = ""
    createdAt: str = ""
    redactedProjects: list[str] = Field(default_factory=list)

    @field_validator("redactedProjects", mode="before")
    @classmethod
    def _normalize_redactions(cls, value: object) -> list[str]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str) and item.strip()]


def load_user_config(path: Optional[Path] = None) -> UserConfig | None:
    config_path = path or config.CONFIG_PATH
    if not config_path.exists():
        return None

    try:
        content = config_path.read_text(encoding="utf-8")
        if not content.strip():
            return None
        return UserConfig.model_validate(json.loads(content))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load config file {config_path}: {e}")
    except ValidationError as e:
        logger.error(f"Invalid config file {config_path}: {e}")
    return None
