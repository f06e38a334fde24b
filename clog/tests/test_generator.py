import json
import unittest
from datetime import date, datetime, timezone

from clog.generator import (
    build_activity,
    build_summary,
    generate_output_data,
    session_streak,
    to_public_output_data,
)
from clog.models import OutputData, Project, Session, TokenUsage
from clog.redaction import REDACTED_PROJECT_NAME
from clog.tests.transcript_fixtures import TempDirTestCase, timed_pair, write_transcript

NOW = datetime(2026, 2, 16, 12, 0, tzinfo=timezone.utc)


def _session(session_id: str, timestamp: str, duration: int, subagents: int = 0, tools=None) -> Session:
    return Session(
        id=session_id,
        timestamp=timestamp,
        durationMs=duration,
        totalDurationMs=duration,
        totalTokens=TokenUsage(inputTokens=duration),
        subagentCount=subagents,
        toolUsage=tools,
    )


def _output(projects: list[Project]) -> OutputData:
    return OutputData(
        generatedAt="2026-02-16T12:00:00.000Z",
        username="dev",
        summary=build_summary(projects),
        projects=projects,
        activity=build_activity(projects),
    )


class SummaryAndActivityTests(unittest.TestCase):
    def setUp(self) -> None:
        self.projects = [
            Project(
                projectName="alpha",
                projectPath="/code/alpha",
                totalSessions=3,
                totalDurationMs=300,
                totalTokens=TokenUsage(inputTokens=300, outputTokens=5),
                sessions=[
                    _session("a1", "2026-02-16T09:00:00Z", 200, subagents=1, tools={"Read": 2}),
                    _session("a2", "2026-02-15T09:00:00Z", 100, tools={"Read": 1, "Bash": 4}),
                ],
            ),
            Project(
                projectName="beta",
                projectPath="/code/beta",
                totalSessions=1,
                totalDurationMs=50,
                totalTokens=TokenUsage(cacheReadTokens=50),
                sessions=[_session("b1", "2026-02-16T20:00:00Z", 50)],
            ),
        ]

    def test_summary(self) -> None:
        summary = build_summary(self.projects)
        self.assertEqual(summary.totalSessions, 4)
        self.assertEqual(summary.totalDurationMs, 350)
        self.assertEqual(summary.totalTokens, 355)
        self.assertEqual(summary.projectCount, 2)

    def test_activity_by_date(self) -> None:
        activity = build_activity(self.projects)
        self.assertEqual(list(activity), ["2026-02-15", "2026-02-16"])
        self.assertEqual(activity["2026-02-16"].sessions, 3)
        self.assertEqual(activity["2026-02-16"].durationMs, 250)
        self.assertEqual(activity["2026-02-15"].sessions, 1)

    def test_session_streak(self) -> None:
        self.assertEqual(session_streak(self.projects, date(2026, 2, 16)), 2)
        self.assertEqual(session_streak(self.projects, date(2026, 2, 17)), 2)
        self.assertEqual(session_streak(self.projects, date(2026, 2, 18)), 0)
        self.assertEqual(session_streak([], date(2026, 2, 18)), 0)

    def test_public_view_aggregates_usage(self) -> None:
        public = to_public_output_data(_output(self.projects))
        self.assertEqual(public.toolUsage, {"Read": 3, "Bash": 4})
        self.assertEqual(public.tokenUsage, TokenUsage(inputTokens=300, outputTokens=5, cacheReadTokens=50))
        self.assertEqual([p.projectName for p in public.projects], ["alpha", "beta"])
        self.assertNotIn("projectPath", public.model_dump()["projects"][0])

    def test_public_view_omits_empty_usage(self) -> None:
        empty = [Project(projectName="x", projectPath="/x", sessions=[_session("s", "2026-02-16T00:00:00Z", 0)])]
        public = to_public_output_data(_output(empty))
        self.assertIsNone(public.toolUsage)
        self.assertIsNone(public.tokenUsage)
        self.assertNotIn("toolUsage", public.model_dump(exclude_none=True))


class GenerateOutputDataTests(TempDirTestCase):
    def setUp(self) -> None:
        self.root = self.make_dir()
        self.projects_dir = self.root / "projects"
        write_transcript(
            self.projects_dir / "-code-alpha" / "s1.jsonl",
            timed_pair("2026-02-16T10:00:00Z", "2026-02-16T10:01:00Z", cwd="/code/alpha", tools=["Read"]),
        )
        write_transcript(
            self.projects_dir / "-code-secret" / "s2.jsonl",
            timed_pair("2026-02-15T10:00:00Z", "2026-02-15T10:00:10Z", cwd="/code/secret"),
        )
        self.cache_path = self.root / "stats-cache.json"

    def test_without_cache_derived_values_are_absent(self) -> None:
        data = generate_output_data(
            "dev",
            ["/code/secret"],
            projects_dir=self.projects_dir,
            stats_cache_path=self.cache_path,
            now=NOW,
        )
        self.assertEqual(data.generatedAt, "2026-02-16T12:00:00.000Z")
        self.assertEqual([p.projectName for p in data.projects], ["alpha", REDACTED_PROJECT_NAME])
        self.assertEqual(data.summary.totalSessions, 2)
        self.assertEqual(data.summary.totalDurationMs, 70_000)
        dumped = data.model_dump(exclude_none=True)
        for key in ("modelBreakdown", "peakHours", "currentStreak"):
            self.assertNotIn(key, dumped)

    def test_with_cache_derived_values_are_present(self) -> None:
        self.cache_path.write_text(
            json.dumps(
                {
                    "dailyActivity": [{"date": "2026-02-16", "messageCount": 3}],
                    "modelUsage": {"claude-opus-4-5-20251101": {"inputTokens": 9}},
                    "hourCounts": {"10": 2},
                }
            ),
            encoding="utf-8",
        )
        data = generate_output_data(projects_dir=self.projects_dir, stats_cache_path=self.cache_path, now=NOW)
        self.assertEqual(data.currentStreak, 1)
        self.assertEqual(data.peakHours, [10])
        self.assertEqual(data.modelBreakdown["opus-4.5"].inputTokens, 9)

    def test_repeated_runs_produce_identical_projects(self) -> None:
        first = generate_output_data(projects_dir=self.projects_dir, stats_cache_path=self.cache_path, now=NOW)
        second = generate_output_data(projects_dir=self.projects_dir, stats_cache_path=self.cache_path, now=NOW)
        self.assertEqual(first.model_dump(), second.model_dump())


if __name__ == "__main__":
    unittest.main()
