"""
Tests for check-in and review compliance, including vacation exclusion.
"""
from datetime import date, datetime, timedelta

import pytest

from app.services.analytics import _ComplianceRecord, summarize_compliance

MARCH = {"from": "2025-03-01", "to": "2025-03-31"}

WEEKS = [date(2025, 3, 3), date(2025, 3, 10), date(2025, 3, 17), date(2025, 3, 24)]


def _due(week_of: date) -> datetime:
    return datetime.combine(week_of + timedelta(days=4), datetime.min.time()) + timedelta(hours=17)


class TestSummarizeCompliance:
    def test_empty(self):
        m = summarize_compliance([])
        assert m.total_count == 0
        assert m.on_time_percentage == 0.0
        assert m.average_days_early is None

    def test_on_time_during_vacation_still_counts(self):
        due = datetime(2025, 3, 7, 17)
        m = summarize_compliance([
            _ComplianceRecord(date(2025, 3, 3), True, True, due - timedelta(days=1), due),
        ])
        assert m.total_count == 0
        assert m.on_time_count == 1
        assert m.on_time_percentage == 0.0
        assert m.vacation_weeks == 1

    def test_missing_timestamps_are_ignored_for_averages(self):
        m = summarize_compliance([
            _ComplianceRecord(date(2025, 3, 3), False, False, None, None),
        ])
        assert m.total_count == 1
        assert m.average_days_late is None


class TestCheckinCompliance:
    def _seed(self, org):
        user = org.member_a1
        offsets = [(-1, True), (2, False), (1, False), (-3, True)]
        for week_of, (days, on_time) in zip(WEEKS, offsets):
            due = _due(week_of)
            org.checkin(
                user, week_of, 3,
                due_date=due,
                submitted_at=due + timedelta(days=days),
                submitted_on_time=on_time,
            )
        org.vacation(user, WEEKS[2])
        # incomplete check-ins never count
        org.checkin(org.member_a1, date(2025, 3, 31), 3, is_complete=False, submitted_on_time=True)

    def test_summary_excludes_vacation_weeks(self, client, org):
        self._seed(org)
        r = client.get(
            "/api/analytics/checkin-compliance",
            params=MARCH,
            headers=org.headers(org.member_a1),
        )
        assert r.status_code == 200
        body = r.json()
        assert len(body) == 1
        assert body[0]["period_start"] is None
        m = body[0]["metrics"]
        assert m["total_count"] == 3
        assert m["on_time_count"] == 2
        assert m["on_time_percentage"] == 66.67
        assert m["vacation_weeks"] == 1
        assert m["average_days_early"] == pytest.approx(2.0)
        assert m["average_days_late"] == pytest.approx(1.5)

    def test_bucketed_by_week(self, client, org):
        self._seed(org)
        r = client.get(
            "/api/analytics/checkin-compliance",
            params={**MARCH, "period": "week", "bucketed": "true"},
            headers=org.headers(org.member_a1),
        )
        body = r.json()
        assert [p["period_start"] for p in body] == [w.isoformat() for w in WEEKS]
        assert body[0]["metrics"]["on_time_percentage"] == 100.0
        assert body[1]["metrics"]["on_time_percentage"] == 0.0
        assert body[2]["metrics"]["total_count"] == 0
        assert body[2]["metrics"]["vacation_weeks"] == 1

    def test_team_scope_only_counts_members(self, client, org):
        self._seed(org)
        due = _due(WEEKS[0])
        org.checkin(org.member_b1, WEEKS[0], 3, due_date=due, submitted_at=due, submitted_on_time=True)
        r = client.get(
            "/api/analytics/checkin-compliance",
            params={**MARCH, "scope": "team", "id": org.beta.id},
            headers=org.headers(org.admin),
        )
        m = r.json()[0]["metrics"]
        assert m["total_count"] == 1
        assert m["on_time_percentage"] == 100.0

    def test_no_rows(self, client, org):
        r = client.get(
            "/api/analytics/checkin-compliance",
            params=MARCH,
            headers=org.headers(org.admin),
        )
        assert r.json() == [{
            "period_start": None,
            "metrics": {
                "total_count": 0,
                "on_time_count": 0,
                "on_time_percentage": 0.0,
                "average_days_early": None,
                "average_days_late": None,
                "vacation_weeks": 0,
            },
        }]


class TestReviewCompliance:
    def _review(self, org, author, reviewer, week_of, on_time, days=0):
        due = _due(week_of) + timedelta(days=2)
        org.checkin(
            author, week_of, 4,
            reviewed_by=reviewer.id,
            review_due_date=due,
            reviewed_at=due + timedelta(days=days),
            reviewed_on_time=on_time,
        )

    def test_team_scope_uses_team_leader(self, client, org):
        self._review(org, org.member_a1, org.manager_a, WEEKS[0], True, days=-1)
        self._review(org, org.member_a2, org.manager_a, WEEKS[0], False, days=3)
        self._review(org, org.member_a1, org.admin, WEEKS[1], False, days=1)
        # unreviewed
        org.checkin(org.member_a2, WEEKS[1], 4, reviewed_by=org.manager_a.id)

        r = client.get(
            "/api/analytics/review-compliance",
            params={**MARCH, "scope": "team", "id": org.alpha.id},
            headers=org.headers(org.admin),
        )
        m = r.json()[0]["metrics"]
        assert m["total_count"] == 2
        assert m["on_time_count"] == 1
        assert m["on_time_percentage"] == 50.0
        assert m["average_days_late"] == pytest.approx(3.0)

    def test_reviewer_vacation_excluded(self, client, org):
        self._review(org, org.member_a1, org.manager_a, WEEKS[0], True)
        self._review(org, org.member_a1, org.manager_a, WEEKS[1], False)
        org.vacation(org.manager_a, WEEKS[1])

        r = client.get(
            "/api/analytics/review-compliance",
            params={**MARCH, "scope": "user", "id": org.manager_a.id},
            headers=org.headers(org.manager_a),
        )
        m = r.json()[0]["metrics"]
        assert m["total_count"] == 1
        assert m["on_time_percentage"] == 100.0
        assert m["vacation_weeks"] == 1

    def test_author_vacation_does_not_affect_reviews(self, client, org):
        self._review(org, org.member_a1, org.manager_a, WEEKS[0], False)
        org.vacation(org.member_a1, WEEKS[0])

        r = client.get(
            "/api/analytics/review-compliance",
            params={**MARCH, "scope": "user", "id": org.manager_a.id},
            headers=org.headers(org.admin),
        )
        assert r.json()[0]["metrics"]["total_count"] == 1
