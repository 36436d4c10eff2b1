"""Tests for team analytics."""

from datetime import datetime, timezone

from flowcraft.services import analytics
from flowcraft.services.models import Issue, IssueStatus, Sprint, SprintStatus


class TestCompletionRate:
    """Test completion rate and percentage formatting."""

    def test_rate_is_percentage(self):
        """Should return completed share as a percentage."""
        assert analytics.completion_rate(1, 4) == 25.0

    def test_rate_zero_when_nothing_to_complete(self):
        """Should return 0 for an empty total."""
        assert analytics.completion_rate(0, 0) == 0

    def test_format_percentage_one_decimal(self):
        assert analytics.format_percentage(1, 3) == "33.3"

    def test_format_percentage_empty_total(self):
        """Should render 0.0 instead of dividing by zero."""
        assert analytics.format_percentage(0, 0) == "0.0"


class TestSprintDuration:
    """Test sprint duration in days."""

    def test_whole_days(self):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        end = datetime(2024, 1, 14, tzinfo=timezone.utc)
        assert analytics.sprint_duration_days(start, end) == 13

    def test_partial_day_rounds_up(self):
        """A sprint of one hour still counts as a day."""
        start = datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)
        end = datetime(2024, 1, 1, 1, 0, tzinfo=timezone.utc)
        assert analytics.sprint_duration_days(start, end) == 1

    def test_accepts_backend_strings(self):
        assert analytics.sprint_duration_days(
            "2024-01-01T00:00:00.000+00:00", "2024-01-08T00:00:00.000+00:00"
        ) == 7

    def test_missing_dates(self):
        assert analytics.sprint_duration_days(None, None) == 0

    def test_same_start_and_end(self):
        start = datetime(2024, 3, 4, 9, 30, tzinfo=timezone.utc)
        assert analytics.sprint_duration_days(start, start) == 0


class TestUserNameMap:
    """Test member name lookup."""

    def test_prefers_name_then_email(self):
        memberships = [
            {"userId": "u1", "userName": "Alice", "userEmail": "alice@example.com"},
            {"userId": "u2", "userName": "", "userEmail": "bob@example.com"},
            {"userId": "u3"},
        ]
        result = analytics.build_user_name_map(memberships)
        assert result == {"u1": "Alice", "u2": "bob@example.com", "u3": "Unknown"}


class TestEngineerStats:
    """Test per-engineer aggregation."""

    def test_counts_per_engineer(self, sample_issues, sample_sprints):
        """Should aggregate tasks by assignee in first-seen order."""
        result = analytics.engineer_stats(
            sample_issues, sample_sprints, {"alice@example.com": "Alice"}
        )

        assert [e["userId"] for e in result] == ["alice@example.com", "bob@example.com"]

        alice, bob = result
        assert alice["name"] == "Alice"
        assert alice["totalTasks"] == 2
        assert alice["completedTasks"] == 1
        assert alice["inProgressTasks"] == 1
        assert alice["todoTasks"] == 0
        assert alice["completionRate"] == 50.0
        assert alice["priorityDistribution"]["P1"] == 1
        assert alice["priorityDistribution"]["P2"] == 1

        # No name known, falls back to the user id
        assert bob["name"] == "bob@example.com"
        assert bob["inProgressTasks"] == 1  # In Review counts as in progress
        assert bob["todoTasks"] == 1
        assert bob["completionRate"] == 0

    def test_skips_unassigned_issues(self, sample_issues, sample_sprints):
        result = analytics.engineer_stats(sample_issues, sample_sprints)
        assert sum(e["totalTasks"] for e in result) == 4

    def test_average_uses_worked_sprints(self, sample_issues, sample_sprints):
        """Only Active and Completed sprints count towards the average."""
        result = analytics.engineer_stats(sample_issues, sample_sprints)
        assert result[0]["avgTasksPerSprint"] == 1.0

    def test_average_without_worked_sprints(self):
        """Should divide by 1 when no sprint has started."""
        issues = [
            Issue(id="i1", assigned_user_id="u1", status=IssueStatus.TODO),
            Issue(id="i2", assigned_user_id="u1", status=IssueStatus.TODO),
        ]
        sprints = [Sprint(id="s1", status=SprintStatus.PLANNED)]

        result = analytics.engineer_stats(issues, sprints)

        assert result[0]["avgTasksPerSprint"] == 2


class TestSprintPerformance:
    """Test per-sprint aggregation."""

    def test_sprint_rows(self, sample_issues, sample_sprints):
        result = analytics.sprint_performance(sample_issues, sample_sprints)

        assert len(result) == 3
        assert result[0] == {
            "sprintId": "sprint-1",
            "sprintName": "Sprint 1",
            "status": "Completed",
            "totalTasks": 1,
            "completedTasks": 1,
            "completionRate": 100.0,
            "duration": 13,
        }
        assert result[1]["totalTasks"] == 2
        assert result[1]["completedTasks"] == 0
        assert result[2]["totalTasks"] == 0
        assert result[2]["completionRate"] == 0


class TestDistributions:
    """Test priority and status distributions."""

    def test_priority_distribution(self, sample_issues):
        result = {row["name"]: row for row in analytics.priority_distribution(sample_issues)}

        assert list(result) == ["P0", "P1", "P2", "P3", "P4", "P5"]
        assert result["P3"]["value"] == 2
        assert result["P3"]["percentage"] == "40.0"
        assert result["P5"]["value"] == 1
        assert result["P5"]["percentage"] == "20.0"
        assert result["P4"]["value"] == 0
        assert result["P4"]["percentage"] == "0.0"

    def test_priority_out_of_range_is_ignored(self):
        issues = [Issue(id="i1", priority=9)]
        result = analytics.priority_distribution(issues)
        assert sum(row["value"] for row in result) == 0

    def test_status_distribution(self, sample_issues):
        result = {row["name"]: row["value"] for row in analytics.status_distribution(sample_issues)}
        assert result == {"Todo": 1, "In Progress": 1, "In Review": 1, "Done": 2}

    def test_empty_distributions(self):
        """Should report zero percentages without failing."""
        for row in analytics.status_distribution([]):
            assert row["percentage"] == "0.0"


class TestTeamAnalytics:
    """Test the combined analytics payload."""

    def test_overview(self, sample_issues, sample_sprints):
        result = analytics.team_analytics(sample_issues, sample_sprints)

        assert result["overview"] == {
            "totalTasks": 5,
            "completedTasks": 2,
            "inProgressTasks": 2,
            "overallCompletionRate": 40.0,
            "overallCompletionRateDisplay": "40.0",
        }
        assert set(result) == {
            "overview", "engineers", "sprints", "priorityDistribution", "statusDistribution"
        }

    def test_empty_team(self):
        result = analytics.team_analytics([], [])

        assert result["overview"]["totalTasks"] == 0
        assert result["overview"]["overallCompletionRateDisplay"] == "0.0"
        assert result["engineers"] == []
        assert result["sprints"] == []

    def test_overall_rate_rounds_to_one_decimal(self):
        """Two of three Done reads as 66.7."""
        issues = [
            Issue(id="i1", status=IssueStatus.TODO),
            Issue(id="i2", status=IssueStatus.DONE),
            Issue(id="i3", status=IssueStatus.DONE),
        ]
        overview = analytics.team_analytics(issues, [])["overview"]

        assert overview["completedTasks"] == 2
        assert overview["overallCompletionRateDisplay"] == "66.7"
