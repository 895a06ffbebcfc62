"""AsyncAnalyticsClient — asynchronous dashboard client for the analytics API.

Usage::

    import asyncio
    from app.client import AsyncAnalyticsClient, DashboardLoader
    from app.services.filters import parse_query_string

    async def main():
        async with AsyncAnalyticsClient("http://localhost:8000", user_id="...") as c:
            loader = DashboardLoader(c)
            snapshot = await loader.load(parse_query_string("scope=team&id=..."))
            print(snapshot.widgets["overview"].data)

    asyncio.run(main())

Widgets load concurrently and fail independently. Nothing is retried
automatically; a TransientError is the caller's cue to offer a retry.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, Optional

import httpx

from app.models.enums import LeaderboardMetric
from app.services.filters import FilterState, to_request_params

logger = logging.getLogger(__name__)

WIDGETS = (
    "overview",
    "pulse",
    "shoutouts",
    "leaderboard",
    "checkin_compliance",
    "review_compliance",
)


# ── Errors ───────────────────────────────────────────────────

class AnalyticsClientError(Exception):
    """Base exception for analytics API failures."""

    def __init__(
        self,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        detail: Any = None,
    ) -> None:
        self.status_code = status_code
        self.message = message
        self.code = code
        self.detail = detail
        super().__init__(f"[{status_code}] {message}")


class AuthorizationError(AnalyticsClientError):
    """401/403 — not signed in, or the scope is not readable by this caller."""


class RequestError(AnalyticsClientError):
    """Other 4xx — bad filters, unknown entity."""


class TransientError(AnalyticsClientError):
    """5xx, timeouts and network failures. Safe to retry by hand."""


# ── Results ──────────────────────────────────────────────────

@dataclass
class WidgetResult:
    name: str
    status: str  # "ok" | "error" | "disabled"
    data: Any = None
    error: Optional[AnalyticsClientError] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


@dataclass
class DashboardSnapshot:
    filters: FilterState
    generation: int
    widgets: Dict[str, WidgetResult] = field(default_factory=dict)


# ── Client ───────────────────────────────────────────────────

class AsyncAnalyticsClient:
    """One method per analytics endpoint, plus `load_dashboard` for all of them."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        user_id: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._user_id = user_id
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "AsyncAnalyticsClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Internal helpers ─────────────────────────────────────

    def _headers(self) -> Dict[str, str]:
        return {"X-User-Id": self._user_id} if self._user_id else {}

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.status_code < 400:
            return
        try:
            body = resp.json()
        except ValueError:
            body = resp.text

        code = None
        if isinstance(body, dict):
            code = body.get("code")
            message = body.get("message") or str(body)
        else:
            message = str(body) or resp.reason_phrase

        if resp.status_code in (401, 403):
            raise AuthorizationError(resp.status_code, message, code, body)
        if resp.status_code >= 500:
            raise TransientError(resp.status_code, message, code, body)
        raise RequestError(resp.status_code, message, code, body)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = await self._client.request(method, path, headers=self._headers(), **kwargs)
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            raise TransientError(0, f"{method} {path} failed: {e}") from e
        self._raise_for_status(resp)
        try:
            return resp.json()
        except ValueError as e:
            raise TransientError(resp.status_code, f"Malformed response from {path}") from e

    async def _get(self, path: str, params: Dict[str, Any]) -> Any:
        return await self._request("GET", path, params=params)

    # ── Endpoints ────────────────────────────────────────────

    async def resolve_filters(self, filters: FilterState) -> Any:
        return await self._get("/api/analytics/filters", to_request_params(filters))

    async def overview(self, filters: FilterState) -> Any:
        return await self._get("/api/analytics/overview", to_request_params(filters))

    async def pulse(self, filters: FilterState) -> Any:
        return await self._get("/api/analytics/pulse", to_request_params(filters))

    async def shoutouts(self, filters: FilterState) -> Any:
        params = to_request_params(filters)
        params["direction"] = filters.direction.value
        params["visibility"] = filters.visibility.value
        return await self._get("/api/analytics/shoutouts", params)

    async def leaderboard(
        self,
        filters: FilterState,
        metric: LeaderboardMetric = LeaderboardMetric.shoutouts_received,
        limit: Optional[int] = None,
    ) -> Any:
        params: Dict[str, Any] = to_request_params(filters)
        params["metric"] = metric.value
        if limit is not None:
            params["limit"] = limit
        return await self._get("/api/analytics/leaderboard", params)

    async def checkin_compliance(self, filters: FilterState, bucketed: bool = False) -> Any:
        params: Dict[str, Any] = to_request_params(filters)
        params["bucketed"] = str(bucketed).lower()
        return await self._get("/api/analytics/checkin-compliance", params)

    async def review_compliance(self, filters: FilterState, bucketed: bool = False) -> Any:
        params: Dict[str, Any] = to_request_params(filters)
        params["bucketed"] = str(bucketed).lower()
        return await self._get("/api/analytics/review-compliance", params)

    async def backfill(self, start: str, end: str) -> Any:
        return await self._request(
            "POST", "/api/analytics/aggregates/backfill", json={"from": start, "to": end}
        )

    async def sweep(self) -> Any:
        return await self._request("POST", "/api/analytics/aggregates/sweep")

    # ── Dashboard ────────────────────────────────────────────

    async def _widget(self, name: str, call: Awaitable[Any]) -> WidgetResult:
        try:
            return WidgetResult(name=name, status="ok", data=await call)
        except AnalyticsClientError as e:
            logger.warning("Widget %s failed: %s", name, e)
            return WidgetResult(name=name, status="error", error=e)

    async def load_dashboard(
        self,
        filters: FilterState,
        metric: LeaderboardMetric = LeaderboardMetric.shoutouts_received,
    ) -> Dict[str, WidgetResult]:
        """
        Fetch every widget concurrently. A failing widget carries its own
        error and never blocks the others. Team or user scope without an
        id sends nothing and marks every widget disabled.
        """
        if not filters.is_queryable:
            return {name: WidgetResult(name=name, status="disabled") for name in WIDGETS}

        calls = {
            "overview": self.overview(filters),
            "pulse": self.pulse(filters),
            "shoutouts": self.shoutouts(filters),
            "leaderboard": self.leaderboard(filters, metric),
            "checkin_compliance": self.checkin_compliance(filters),
            "review_compliance": self.review_compliance(filters),
        }
        results = await asyncio.gather(*(self._widget(n, c) for n, c in calls.items()))
        return {r.name: r for r in results}


class DashboardLoader:
    """
    Latest-wins loading for one dashboard view.

    `snapshot` keeps the last completed load visible while a newer one runs.
    Starting a load cancels the one in flight; a superseded load returns
    None and never replaces `snapshot`.
    """

    def __init__(
        self,
        client: AsyncAnalyticsClient,
        metric: LeaderboardMetric = LeaderboardMetric.shoutouts_received,
    ) -> None:
        self._client = client
        self._metric = metric
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self.snapshot: Optional[DashboardSnapshot] = None

    @property
    def is_loading(self) -> bool:
        return self._task is not None and not self._task.done()

    async def load(self, filters: FilterState) -> Optional[DashboardSnapshot]:
        self._generation += 1
        generation = self._generation

        if self._task is not None and not self._task.done():
            self._task.cancel()

        task = asyncio.ensure_future(self._client.load_dashboard(filters, self._metric))
        self._task = task
        try:
            widgets = await task
        except asyncio.CancelledError:
            if task.cancelled() and generation != self._generation:
                logger.debug("Dashboard load %d superseded", generation)
                return None
            raise

        if generation != self._generation:
            return None
        self.snapshot = DashboardSnapshot(filters=filters, generation=generation, widgets=widgets)
        return self.snapshot
