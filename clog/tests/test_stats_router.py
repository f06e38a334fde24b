import json
import unittest
from pathlib import Path
from unittest.mock import patch

from clog.redaction import REDACTED_PROJECT_NAME, REDACTED_SESSION_TITLE
from clog.routers import stats as stats_router
from clog.tests.transcript_fixtures import summary_line, timed_pair, write_transcript
from clog.user_config import load_user_config


class StatsRouterTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        import tempfile

        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.root = Path(tmpdir.name)
        self.projects_dir = self.root / "projects"
        write_transcript(
            self.projects_dir / "-code-alpha" / "s1.jsonl",
            [summary_line("Alpha work")]
            + timed_pair("2026-02-16T10:00:00Z", "2026-02-16T10:01:00Z", cwd="/code/alpha", tools=["Edit"]),
        )
        write_transcript(
            self.projects_dir / "-code-hidden" / "s2.jsonl",
            [summary_line("Hidden work")]
            + timed_pair("2026-02-15T10:00:00Z", "2026-02-15T10:00:10Z", cwd="/code/hidden"),
        )
        self.config_path = self.root / "clog.json"
        self.config_path.write_text(
            json.dumps({"username": "dev", "redactedProjects": ["/code/hidden"]}),
            encoding="utf-8",
        )
        for target, value in (
            ("clog.config.PROJECTS_DIR", self.projects_dir),
            ("clog.config.STATS_CACHE_PATH", self.root / "missing-cache.json"),
            ("clog.config.CONFIG_PATH", self.config_path),
        ):
            patcher = patch(target, value)
            patcher.start()
            self.addCleanup(patcher.stop)

    async def test_get_stats_applies_configured_redactions(self) -> None:
        data = await stats_router.get_stats(redact=None)
        self.assertEqual(data.username, "dev")
        self.assertEqual([p.projectName for p in data.projects], ["alpha", REDACTED_PROJECT_NAME])
        self.assertEqual(data.projects[1].sessions[0].title, REDACTED_SESSION_TITLE)
        self.assertIsNone(data.currentStreak)

    async def test_request_redactions_are_added(self) -> None:
        data = await stats_router.get_stats(redact=["alpha"])
        self.assertEqual({p.projectName for p in data.projects}, {REDACTED_PROJECT_NAME})
        self.assertEqual(data.summary.totalDurationMs, 70_000)

    async def test_public_stats(self) -> None:
        public = await stats_router.get_public_stats(redact=None)
        self.assertEqual(public.toolUsage, {"Edit": 1})
        self.assertEqual(public.projects[0].sessions[0].title, "Alpha work")

    async def test_list_projects(self) -> None:
        projects = await stats_router.list_projects(redact=None)
        self.assertEqual([p.projectPath for p in projects], ["/code/alpha", "/code/hidden"])
        self.assertEqual(projects[1].projectName, REDACTED_PROJECT_NAME)


class HealthTests(unittest.IsolatedAsyncioTestCase):
    async def test_health_reports_projects_dir(self) -> None:
        from clog.main import health

        with patch("clog.config.PROJECTS_DIR", Path("/tmp/clog-projects")):
            payload = await health()
        self.assertEqual(payload, {"status": "ok", "projectsDir": "/tmp/clog-projects"})


class UserConfigTests(unittest.TestCase):
    def test_redacted_projects_are_normalized(self) -> None:
        import tempfile

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "clog.json"
            path.write_text(json.dumps({"username": "dev", "redactedProjects": "oops"}), encoding="utf-8")
            loaded = load_user_config(path)
            assert loaded is not None
            self.assertEqual(loaded.redactedProjects, [])

            path.write_text(json.dumps({"redactedProjects": ["/a", 3, " ", "b"]}), encoding="utf-8")
            loaded = load_user_config(path)
            assert loaded is not None
            self.assertEqual(loaded.redactedProjects, ["/a", "b"])

            path.write_text("{broken", encoding="utf-8")
            self.assertIsNone(load_user_config(path))
            self.assertIsNone(load_user_config(Path(tmpdir) / "missing.json"))


if __name__ == "__main__":
    unittest.main()
