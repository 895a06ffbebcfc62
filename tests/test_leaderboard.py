"""
Tests for GET /api/analytics/leaderboard.
"""
from datetime import date, datetime

MARCH = {"from": "2025-03-01", "to": "2025-03-31"}


class TestLeaderboard:
    def _get(self, client, org, caller, **params):
        r = client.get(
            "/api/analytics/leaderboard",
            params={**MARCH, **params},
            headers=org.headers(caller),
        )
        assert r.status_code == 200, r.text
        return r.json()

    def test_organization_ranks_teams(self, client, org):
        org.shoutout(org.member_b1, org.member_a1, datetime(2025, 3, 4, 10))
        org.shoutout(org.member_b1, org.member_a2, datetime(2025, 3, 5, 10))
        org.shoutout(org.admin, org.member_a1, datetime(2025, 3, 6, 10))
        org.shoutout(org.member_a1, org.member_b1, datetime(2025, 3, 7, 10))

        body = self._get(client, org, org.admin)
        assert [(e["entity_name"], e["value"]) for e in body] == [("Alpha", 3), ("Beta", 1)]
        assert [e["rank"] for e in body] == [1, 2]
        assert body[0]["entity_id"] == org.alpha.id
        assert body[0]["display_value"] == "3"

    def test_given_metric(self, client, org):
        org.shoutout(org.member_b1, org.member_a1, datetime(2025, 3, 4, 10))
        org.shoutout(org.member_b1, org.member_a2, datetime(2025, 3, 5, 10))
        org.shoutout(org.member_a1, org.member_b1, datetime(2025, 3, 7, 10))

        body = self._get(client, org, org.admin, metric="shoutouts_given")
        assert [(e["entity_name"], e["value"]) for e in body] == [("Beta", 2), ("Alpha", 1)]

    def test_team_scope_ranks_members(self, client, org):
        org.shoutout(org.member_b1, org.member_a2, datetime(2025, 3, 4, 10))
        org.shoutout(org.manager_a, org.member_a2, datetime(2025, 3, 5, 10))
        org.shoutout(org.member_a2, org.member_a1, datetime(2025, 3, 6, 10))
        org.shoutout(org.member_a1, org.member_b1, datetime(2025, 3, 7, 10))

        body = self._get(client, org, org.manager_a)
        assert [(e["entity_id"], e["value"]) for e in body] == [
            (org.member_a2.id, 2),
            (org.member_a1.id, 1),
        ]
        assert body[0]["entity_name"] == "Abby Member"

    def test_ties_keep_entity_id_order(self, client, org):
        org.shoutout(org.member_b1, org.member_a1, datetime(2025, 3, 4, 10))
        org.shoutout(org.member_b1, org.member_a2, datetime(2025, 3, 5, 10))
        org.shoutout(org.member_b1, org.manager_a, datetime(2025, 3, 6, 10))

        body = self._get(client, org, org.admin, scope="team", id=org.alpha.id)
        ids = [e["entity_id"] for e in body]
        assert ids == sorted([org.member_a1.id, org.member_a2.id, org.manager_a.id])

    def test_limit(self, client, org):
        org.shoutout(org.member_b1, org.member_a1, datetime(2025, 3, 4, 10))
        org.shoutout(org.member_b1, org.member_a2, datetime(2025, 3, 5, 10))

        body = self._get(client, org, org.admin, scope="team", id=org.alpha.id, limit=1)
        assert len(body) == 1

    def test_limit_above_max_rejected(self, client, org):
        r = client.get(
            "/api/analytics/leaderboard",
            params={"limit": 1000},
            headers=org.headers(org.admin),
        )
        assert r.status_code == 422

    def test_user_scope_single_entry(self, client, org):
        org.shoutout(org.member_b1, org.member_a1, datetime(2025, 3, 4, 10))
        org.shoutout(org.member_b1, org.member_a2, datetime(2025, 3, 5, 10))

        body = self._get(client, org, org.member_a1)
        assert len(body) == 1
        assert body[0]["entity_id"] == org.member_a1.id

    def test_pulse_avg_display(self, client, org):
        org.checkin(org.member_a1, date(2025, 3, 3), 4, created_at=datetime(2025, 3, 3, 9))
        org.checkin(org.member_a1, date(2025, 3, 10), 5, created_at=datetime(2025, 3, 10, 9))
        org.checkin(org.member_b1, date(2025, 3, 3), 3, created_at=datetime(2025, 3, 3, 9))
        org.checkin(org.member_b1, date(2025, 3, 10), 1, created_at=datetime(2025, 3, 10, 9), is_complete=False)

        body = self._get(client, org, org.admin, metric="pulse_avg")
        assert [(e["entity_name"], e["display_value"]) for e in body] == [("Alpha", "4.5"), ("Beta", "3.0")]

    def test_empty(self, client, org):
        assert self._get(client, org, org.admin) == []
