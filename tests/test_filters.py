"""
Tests for FilterState transitions and its query-string form.
"""
from datetime import date

from app.models.enums import (
    AnalyticsPeriod,
    AnalyticsScope,
    ShoutoutDirection,
    ShoutoutVisibility,
)
from app.services.filters import (
    DEFAULT_FILTERS,
    FilterState,
    default_date_range,
    effective_range,
    parse_query_string,
    to_query_string,
    to_request_params,
    with_period,
    with_range,
    with_scope,
)

REF = date(2025, 6, 30)


class TestQueryString:
    def test_defaults_serialize_to_empty(self):
        assert to_query_string(DEFAULT_FILTERS) == ""
        assert parse_query_string("") == DEFAULT_FILTERS

    def test_only_period_changed(self):
        assert to_query_string(with_period(DEFAULT_FILTERS, AnalyticsPeriod.week)) == "period=week"

    def test_fixed_field_order(self):
        f = FilterState(
            scope=AnalyticsScope.team,
            id="t1",
            period=AnalyticsPeriod.week,
            from_date=date(2025, 1, 1),
            to_date=date(2025, 3, 31),
            direction=ShoutoutDirection.given,
            visibility=ShoutoutVisibility.private,
        )
        assert to_query_string(f) == (
            "scope=team&id=t1&period=week&from=2025-01-01&to=2025-03-31"
            "&direction=given&visibility=private"
        )

    def test_round_trip(self):
        f = FilterState(scope=AnalyticsScope.user, id="u 1", from_date=date(2025, 2, 1))
        assert parse_query_string(to_query_string(f)) == f

    def test_leading_question_mark_and_mapping(self):
        assert parse_query_string("?scope=team&id=t9").id == "t9"
        assert parse_query_string({"period": "year"}).period == AnalyticsPeriod.year

    def test_organization_scope_never_carries_id(self):
        f = FilterState(scope=AnalyticsScope.organization, id="x")
        assert to_query_string(f) == ""
        assert parse_query_string("id=x").id is None
        assert "id" not in to_request_params(f, REF)

    def test_invalid_values_fall_back(self):
        f = parse_query_string("scope=galaxy&period=fortnight&from=yesterday&direction=sideways")
        assert f.scope == DEFAULT_FILTERS.scope
        assert f.period == DEFAULT_FILTERS.period
        assert f.from_date is None
        assert f.direction == ShoutoutDirection.all


class TestTransitions:
    def test_period_change_drops_explicit_range(self):
        f = with_range(DEFAULT_FILTERS, date(2025, 1, 1), date(2025, 1, 31))
        f = with_period(f, AnalyticsPeriod.week)
        assert f.from_date is None and f.to_date is None
        assert effective_range(f, REF) == (date(2025, 4, 7), REF)

    def test_scope_change_clears_id(self):
        f = FilterState(scope=AnalyticsScope.team, id="t1")
        f = with_scope(f, AnalyticsScope.user)
        assert f.scope == AnalyticsScope.user
        assert f.id is None
        assert not f.is_queryable

    def test_queryable(self):
        assert DEFAULT_FILTERS.is_queryable
        assert FilterState(scope=AnalyticsScope.team, id="t1").is_queryable
        assert not FilterState(scope=AnalyticsScope.team).is_queryable


class TestDateRanges:
    def test_default_lookbacks(self):
        assert default_date_range(AnalyticsPeriod.day, REF) == (date(2025, 5, 31), REF)
        assert default_date_range(AnalyticsPeriod.week, REF) == (date(2025, 4, 7), REF)
        assert default_date_range(AnalyticsPeriod.month, REF) == (date(2024, 6, 30), REF)
        assert default_date_range(AnalyticsPeriod.quarter, REF) == (date(2023, 6, 30), REF)
        assert default_date_range(AnalyticsPeriod.year, REF) == (date(2020, 6, 30), REF)

    def test_explicit_bounds_win(self):
        f = FilterState(from_date=date(2025, 1, 1))
        assert effective_range(f, REF) == (date(2025, 1, 1), REF)

    def test_request_params_always_explicit(self):
        params = to_request_params(FilterState(scope=AnalyticsScope.team, id="t1"), REF)
        assert params == {
            "scope": "team",
            "period": "month",
            "from": "2024-06-30",
            "to": "2025-06-30",
            "id": "t1",
        }

    def test_request_params_without_id(self):
        assert "id" not in to_request_params(DEFAULT_FILTERS, REF)
