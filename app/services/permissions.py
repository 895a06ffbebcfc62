"""
Role-based read scope for analytics.

Two layers:

resolve_filters()    pure, fail-open. An out-of-bounds request is clamped to
                     the caller's widest legal scope instead of rejected.
                     Dashboards call it on every filter change.
authorize_filters()  server-side and authoritative. Runs after resolution
                     and raises when the resolved filters still point at
                     something the caller may not read.

Role matrix
-----------
admin    organization | team (any) | user (any)
manager  team (own team only)      | user (members of own team)
member   user (self only)
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import EntityNotFoundError, MissingEntityIdError, ScopeForbiddenError
from app.models.enums import AnalyticsScope, UserRole
from app.models.team import Team
from app.models.user import User
from app.services.filters import FilterState

logger = logging.getLogger(__name__)

_VISIBLE_SCOPES: dict[UserRole, tuple[AnalyticsScope, ...]] = {
    UserRole.admin: (AnalyticsScope.organization, AnalyticsScope.team, AnalyticsScope.user),
    UserRole.manager: (AnalyticsScope.team, AnalyticsScope.user),
    UserRole.member: (AnalyticsScope.user,),
}


def _role(caller: User) -> Optional[UserRole]:
    try:
        return UserRole(caller.role)
    except ValueError:
        return None


def allowed_scopes(caller: User) -> tuple[AnalyticsScope, ...]:
    role = _role(caller)
    return _VISIBLE_SCOPES.get(role, ()) if role else ()


def can_view_scope(caller: User, scope: AnalyticsScope) -> bool:
    return scope in allowed_scopes(caller)


def default_scope(caller: User) -> AnalyticsScope:
    role = _role(caller)
    if role == UserRole.admin:
        return AnalyticsScope.organization
    if role == UserRole.manager:
        return AnalyticsScope.team
    return AnalyticsScope.user


def entity_id_for(caller: User, scope: AnalyticsScope) -> Optional[str]:
    if scope == AnalyticsScope.team:
        return caller.team_id or None
    if scope == AnalyticsScope.user:
        return caller.id
    return None


def initial_filters(caller: User, base: FilterState) -> FilterState:
    """Filters a fresh dashboard opens with for this caller."""
    scope = default_scope(caller)
    return replace(base, scope=scope, id=entity_id_for(caller, scope))


def resolve_filters(caller: User, requested: FilterState) -> FilterState:
    filters = requested

    if not can_view_scope(caller, filters.scope):
        scope = default_scope(caller)
        logger.info(
            "Downgraded analytics scope for user %s: %s -> %s",
            caller.id, filters.scope.value, scope.value,
        )
        filters = replace(filters, scope=scope, id=entity_id_for(caller, scope))

    role = _role(caller)
    if role == UserRole.member and filters.scope == AnalyticsScope.user:
        filters = replace(filters, id=caller.id)
    elif role == UserRole.manager and filters.scope == AnalyticsScope.team:
        filters = replace(filters, id=caller.team_id or None)
    elif filters.scope == AnalyticsScope.organization and filters.id:
        filters = replace(filters, id=None)

    return filters


def authorize_filters(db: Session, caller: User, filters: FilterState) -> FilterState:
    """
    Resolve, then verify the result against the database.

    Raises MissingEntityIdError, EntityNotFoundError or ScopeForbiddenError.
    Returns the resolved filters on success.
    """
    filters = resolve_filters(caller, filters)
    if filters.scope == AnalyticsScope.organization:
        return filters

    if not filters.id:
        raise MissingEntityIdError(filters.scope.value)

    if filters.scope == AnalyticsScope.team:
        team = (
            db.query(Team)
            .filter(Team.id == filters.id, Team.organization_id == caller.organization_id)
            .first()
        )
        if team is None:
            raise EntityNotFoundError("team", filters.id)
        return filters

    target = (
        db.query(User)
        .filter(User.id == filters.id, User.organization_id == caller.organization_id)
        .first()
    )
    if target is None:
        raise EntityNotFoundError("user", filters.id)

    if _role(caller) == UserRole.manager and target.id != caller.id:
        if not caller.team_id or target.team_id != caller.team_id:
            logger.warning(
                "Manager %s denied user analytics for %s outside their team",
                caller.id, target.id,
            )
            raise ScopeForbiddenError(
                filters.scope.value, filters.id, "user is not a member of your team"
            )
    return filters
