"""Mask identifying text for selected projects before publication."""
from __future__ import annotations

import os
from typing import Iterable

from clog.models import Project

REDACTED_PROJECT_NAME = "top secret"
REDACTED_SESSION_TITLE = "**********"


def normalize_redaction_path(value: str) -> str:
    return os.path.normpath(os.path.abspath(os.path.expanduser(value)))


def is_project_redacted(project: Project, specifiers: Iterable[str]) -> bool:
    """A project matches by absolute path, by basename, or by literal name."""
    raw = [spec for spec in specifiers if spec]
    if not raw:
        return False

    normalized = {normalize_redaction_path(spec) for spec in raw}
    basenames = {os.path.basename(spec) for spec in normalized}

    project_path = project.projectPath
    if os.path.isabs(project_path) and os.path.normpath(project_path) in normalized:
        return True
    if os.path.basename(project_path) in basenames:
        return True
    return project_path in raw or project.projectName in raw


def apply_redactions(projects: list[Project], specifiers: Iterable[str]) -> list[Project]:
    """Return copies of ``projects`` with matching names and titles masked.

    Durations, token counts and session counts are left as they are.
    """
    specs = [spec for spec in specifiers if spec]
    if not specs:
        return projects

    redacted: list[Project] = []
    for project in projects:
        if not is_project_redacted(project, specs):
            redacted.append(project)
            continue
        sessions = [
            session.model_copy(update={"title": REDACTED_SESSION_TITLE}, deep=True)
            for session in project.sessions
        ]
        redacted.append(
            project.model_copy(
                update={"projectName": REDACTED_PROJECT_NAME, "sessions": sessions},
                deep=True,
            )
        )
    return redacted
