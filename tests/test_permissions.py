"""
Tests for role-based scope resolution and server-side authorization.
"""
import pytest

from app.core.errors import EntityNotFoundError, MissingEntityIdError, ScopeForbiddenError
from app.models.enums import AnalyticsPeriod, AnalyticsScope, UserRole
from app.models.user import User
from app.services.filters import DEFAULT_FILTERS, FilterState
from app.services.permissions import (
    allowed_scopes,
    authorize_filters,
    can_view_scope,
    default_scope,
    initial_filters,
    resolve_filters,
)


def _caller(role, team_id="team-1", user_id="me"):
    return User(id=user_id, organization_id="org-1", name="Caller", role=role, team_id=team_id)


# ---------------------------------------------------------------------------
# Pure resolution
# ---------------------------------------------------------------------------

class TestScopeMatrix:
    def test_admin_sees_everything(self):
        admin = _caller(UserRole.admin)
        assert all(can_view_scope(admin, s) for s in AnalyticsScope)
        assert default_scope(admin) == AnalyticsScope.organization

    def test_manager(self):
        manager = _caller(UserRole.manager)
        assert allowed_scopes(manager) == (AnalyticsScope.team, AnalyticsScope.user)
        assert default_scope(manager) == AnalyticsScope.team

    def test_member(self):
        member = _caller(UserRole.member)
        assert allowed_scopes(member) == (AnalyticsScope.user,)
        assert default_scope(member) == AnalyticsScope.user

    def test_initial_filters(self):
        manager = _caller(UserRole.manager)
        f = initial_filters(manager, DEFAULT_FILTERS)
        assert f.scope == AnalyticsScope.team
        assert f.id == "team-1"


class TestResolveFilters:
    def test_member_downgraded_from_organization(self):
        member = _caller(UserRole.member)
        f = resolve_filters(member, FilterState(scope=AnalyticsScope.organization, period=AnalyticsPeriod.week))
        assert f.scope == AnalyticsScope.user
        assert f.id == "me"
        assert f.period == AnalyticsPeriod.week

    def test_member_cannot_read_someone_else(self):
        member = _caller(UserRole.member)
        f = resolve_filters(member, FilterState(scope=AnalyticsScope.user, id="someone-else"))
        assert f.id == "me"

    def test_manager_downgraded_from_organization(self):
        manager = _caller(UserRole.manager)
        f = resolve_filters(manager, FilterState(scope=AnalyticsScope.organization))
        assert f.scope == AnalyticsScope.team
        assert f.id == "team-1"

    def test_manager_pinned_to_own_team(self):
        manager = _caller(UserRole.manager)
        f = resolve_filters(manager, FilterState(scope=AnalyticsScope.team, id="team-2"))
        assert f.id == "team-1"

    def test_manager_without_team_gets_no_id(self):
        manager = _caller(UserRole.manager, team_id=None)
        f = resolve_filters(manager, FilterState(scope=AnalyticsScope.team, id="team-2"))
        assert f.id is None
        assert not f.is_queryable

    def test_manager_user_scope_id_kept(self):
        manager = _caller(UserRole.manager)
        f = resolve_filters(manager, FilterState(scope=AnalyticsScope.user, id="u-7"))
        assert f == FilterState(scope=AnalyticsScope.user, id="u-7")

    def test_admin_unchanged(self):
        admin = _caller(UserRole.admin)
        requested = FilterState(scope=AnalyticsScope.team, id="any-team")
        assert resolve_filters(admin, requested) == requested

    def test_admin_organization_scope_drops_id(self):
        admin = _caller(UserRole.admin)
        f = resolve_filters(admin, FilterState(scope=AnalyticsScope.organization, id="x"))
        assert f == FilterState(scope=AnalyticsScope.organization)

    def test_idempotent(self):
        for role in UserRole:
            caller = _caller(role)
            for scope in AnalyticsScope:
                once = resolve_filters(caller, FilterState(scope=scope, id="x"))
                assert resolve_filters(caller, once) == once


# ---------------------------------------------------------------------------
# Server-side authorization
# ---------------------------------------------------------------------------

class TestAuthorizeFilters:
    def test_organization_scope_drops_id(self, db, org):
        f = authorize_filters(db, org.admin, FilterState(scope=AnalyticsScope.organization, id="x"))
        assert f.id is None

    def test_team_scope_requires_id(self, db, org):
        with pytest.raises(MissingEntityIdError):
            authorize_filters(db, org.admin, FilterState(scope=AnalyticsScope.team))

    def test_unknown_team(self, db, org):
        with pytest.raises(EntityNotFoundError) as exc:
            authorize_filters(db, org.admin, FilterState(scope=AnalyticsScope.team, id="nope"))
        assert exc.value.details["kind"] == "team"

    def test_team_from_other_organization(self, db, org, other_org):
        with pytest.raises(EntityNotFoundError):
            authorize_filters(db, org.admin, FilterState(scope=AnalyticsScope.team, id=other_org.alpha.id))

    def test_manager_reads_own_member(self, db, org):
        f = authorize_filters(db, org.manager_a, FilterState(scope=AnalyticsScope.user, id=org.member_a1.id))
        assert f.id == org.member_a1.id

    def test_manager_reads_self(self, db, org):
        f = authorize_filters(db, org.manager_a, FilterState(scope=AnalyticsScope.user, id=org.manager_a.id))
        assert f.id == org.manager_a.id

    def test_manager_blocked_outside_team(self, db, org):
        with pytest.raises(ScopeForbiddenError) as exc:
            authorize_filters(db, org.manager_a, FilterState(scope=AnalyticsScope.user, id=org.member_b1.id))
        assert exc.value.http_status == 403

    def test_member_request_resolved_to_self(self, db, org):
        f = authorize_filters(db, org.member_a1, FilterState(scope=AnalyticsScope.user, id=org.member_b1.id))
        assert f.id == org.member_a1.id
