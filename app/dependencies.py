"""
Request-scoped dependencies shared by the analytics routers.

The caller is identified by the `X-User-Id` header; an upstream gateway is
expected to have authenticated them already.
"""
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from app.core.errors import AdminRequiredError, NotAuthenticatedError
from app.db.base import get_db
from app.models.enums import UserRole
from app.models.user import User
from app.services.cache import AnalyticsCache


def get_current_user(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> User:
    if not x_user_id:
        raise NotAuthenticatedError()
    user = (
        db.query(User)
        .filter(User.id == x_user_id, User.is_active.is_(True))
        .first()
    )
    if user is None:
        raise NotAuthenticatedError("Unknown or inactive user.")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.admin:
        raise AdminRequiredError()
    return user


def get_analytics_cache(request: Request) -> AnalyticsCache:
    return request.app.state.analytics_cache
