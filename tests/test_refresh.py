"""Tests for navigation, aggregation passes and periodic refresh."""

import asyncio
from datetime import date

import httpx
import pytest

from conftest import FIXED_NOW, at, make_event
from fixtures.generate_events import raw_timed_event
from models.events import Column, DisplaySettings, ViewMode
from services.auth import SESSION_EXPIRED_MESSAGE, AuthState
from services.refresh import RefreshScheduler

DAY = date(2026, 3, 2)


@pytest.fixture
async def client(calendar_api):
    async with calendar_api.client() as client:
        yield client


@pytest.fixture
def scheduler(two_columns, signed_in_auth, client):
    return RefreshScheduler(two_columns, signed_in_auth, client=client, today=DAY)


@pytest.fixture
def gated_aggregate(monkeypatch):
    """Replace aggregate with one that waits until the test releases each call."""
    calls = []

    async def fake_aggregate(columns_config, token, date_range, previous=None, **kwargs):
        gate = asyncio.Event()
        calls.append(gate)
        await gate.wait()
        label = date_range.start.date().isoformat()
        return [
            Column(name=c.name, events=(make_event(date_range.start, date_range.start, label),))
            for c in columns_config
        ]

    monkeypatch.setattr("services.refresh.aggregate", fake_aggregate)
    return calls


class TestPasses:
    async def test_publishes_columns(self, scheduler, calendar_api):
        calendar_api.responses = {
            "tom@example.com": [raw_timed_event("t1", at(9), at(10))],
            "sam@example.com": [raw_timed_event("s1", at(10), at(11))],
        }

        assert await scheduler.run_pass() is True

        assert [c.name for c in scheduler.columns] == ["Tom", "Sam"]
        assert [e.id for e in scheduler.columns[0].events] == ["t1"]
        assert [e.id for e in scheduler.columns[1].events] == ["s1"]
        assert not any(c.is_loading for c in scheduler.columns)

    async def test_initial_columns_are_empty_placeholders(self, scheduler):
        assert [(c.name, c.events, c.error) for c in scheduler.columns] == [
            ("Tom", (), None),
            ("Sam", (), None),
        ]

    async def test_no_pass_when_signed_out(self, two_columns, auth, client, calendar_api):
        scheduler = RefreshScheduler(two_columns, auth, client=client, today=DAY)

        assert await scheduler.run_pass() is False
        assert calendar_api.requests == []

    async def test_rejected_token_keeps_previous_columns(self, scheduler, calendar_api):
        calendar_api.responses = {
            "tom@example.com": [raw_timed_event("t1", at(9), at(10))],
            "sam@example.com": [raw_timed_event("s1", at(10), at(11))],
        }
        await scheduler.run_pass()

        calendar_api.responses["sam@example.com"] = 401
        calendar_api.responses["tom@example.com"] = [raw_timed_event("t2", at(13), at(14))]

        assert await scheduler.run_pass() is False

        assert [e.id for e in scheduler.columns[0].events] == ["t1"]
        assert [e.id for e in scheduler.columns[1].events] == ["s1"]
        assert not any(c.is_loading for c in scheduler.columns)
        assert scheduler.auth.state is AuthState.SIGNED_OUT
        assert scheduler.auth.error == SESSION_EXPIRED_MESSAGE
        assert scheduler.auth.store.get_token() is None

    async def test_failed_column_keeps_last_good_events(self, scheduler, calendar_api):
        calendar_api.responses = {"tom@example.com": [raw_timed_event("t1", at(9), at(10))]}
        await scheduler.run_pass()

        calendar_api.responses = {"tom@example.com": 500, "tom.work@example.com": 500}
        assert await scheduler.run_pass() is True

        tom = scheduler.columns[0]
        assert [e.id for e in tom.events] == ["t1"]
        assert tom.error == "Failed to fetch calendar: Internal Server Error"

    async def test_loading_flags_during_pass(self, scheduler, gated_aggregate):
        task = asyncio.create_task(scheduler.run_pass())
        await asyncio.sleep(0)

        assert all(c.is_loading for c in scheduler.columns)
        assert not scheduler.is_refreshing

        gated_aggregate[0].set()
        await task
        assert not any(c.is_loading for c in scheduler.columns)

    async def test_silent_pass_does_not_blank_columns(self, scheduler, gated_aggregate):
        task = asyncio.create_task(scheduler.run_pass(silent=True))
        await asyncio.sleep(0)

        assert not any(c.is_loading for c in scheduler.columns)
        assert scheduler.is_refreshing

        gated_aggregate[0].set()
        await task
        assert not scheduler.is_refreshing

    async def test_stale_pass_is_discarded(self, scheduler, gated_aggregate):
        older = asyncio.create_task(scheduler.run_pass())
        await asyncio.sleep(0)
        scheduler.anchor = date(2026, 3, 3)
        newer = asyncio.create_task(scheduler.run_pass())
        await asyncio.sleep(0)

        gated_aggregate[1].set()
        assert await newer is True
        gated_aggregate[0].set()
        assert await older is False

        assert scheduler.columns[0].events[0].id == "2026-03-03"

    async def test_malformed_response_does_not_stick_loading(self, scheduler, calendar_api):
        calendar_api.responses = {
            "tom@example.com": [raw_timed_event("t1", at(9), at(10))],
            "sam@example.com": httpx.Response(200, json=[{"unexpected": "list body"}]),
        }

        assert await scheduler.run_pass() is True

        assert not any(c.is_loading for c in scheduler.columns)
        assert [e.id for e in scheduler.columns[0].events] == ["t1"]
        assert scheduler.columns[1].error == "Failed to fetch calendar: invalid response"

    @pytest.mark.parametrize("silent", [False, True])
    async def test_crashed_pass_clears_loading_flags(self, scheduler, monkeypatch, silent):
        async def broken_aggregate(*args, **kwargs):
            raise RuntimeError("bug")

        monkeypatch.setattr("services.refresh.aggregate", broken_aggregate)

        with pytest.raises(RuntimeError):
            await scheduler.run_pass(silent=silent)

        assert not any(c.is_loading for c in scheduler.columns)
        assert not scheduler.is_refreshing

    async def test_rejection_of_replaced_token_keeps_new_session(self, two_columns, auth, token_store):
        release = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.headers["Authorization"] == "Bearer old":
                await release.wait()
                return httpx.Response(401, json={"error": {"code": 401}})
            return httpx.Response(200, json={"items": []})

        token_store.save_token("old", 3600, FIXED_NOW)
        auth.resume()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            scheduler = RefreshScheduler(two_columns, auth, client=client, today=DAY)

            old_pass = asyncio.create_task(scheduler.run_pass())
            await asyncio.sleep(0)
            token_store.save_token("new", 3600, FIXED_NOW)

            assert await scheduler.run_pass() is True
            release.set()
            assert await old_pass is False

        assert auth.is_signed_in
        assert auth.store.get_token() == "new"
        assert not any(c.is_loading for c in scheduler.columns)


class TestNavigation:
    async def test_view_change_triggers_pass(self, scheduler, calendar_api):
        assert scheduler.set_view_mode("week") is True
        await scheduler.stop()

        assert scheduler.view_mode is ViewMode.WEEK
        assert calendar_api.requests
        assert calendar_api.requests[0].url.params["timeMin"] == "2026-02-28T00:00:00Z"

    async def test_anchor_inside_same_range_does_not_refetch(self, scheduler, calendar_api):
        scheduler.set_view_mode(ViewMode.WEEK)
        await scheduler.stop()
        fetched = len(calendar_api.requests)

        assert scheduler.set_anchor(date(2026, 3, 5)) is False
        await scheduler.stop()

        assert len(calendar_api.requests) == fetched
        assert scheduler.anchor == date(2026, 3, 5)

    async def test_previous_and_next(self, scheduler):
        scheduler.go_next()
        assert scheduler.anchor == date(2026, 3, 3)

        scheduler.set_view_mode(ViewMode.MONTH)
        scheduler.go_previous()
        assert scheduler.anchor == date(2026, 2, 3)
        await scheduler.stop()

    async def test_today(self, scheduler):
        scheduler.go_next()
        scheduler.go_today(date(2026, 4, 1))
        await scheduler.stop()

        assert scheduler.anchor == date(2026, 4, 1)

    def test_request_pass_without_event_loop(self, two_columns, signed_in_auth, calendar_api):
        scheduler = RefreshScheduler(
            two_columns, signed_in_auth, client=calendar_api.client(), today=DAY
        )
        assert scheduler.request_pass() is None

    async def test_defaults_from_display_settings(self, two_columns, signed_in_auth, client):
        display = DisplaySettings(default_view=ViewMode.MONTH, show_tentative=False)
        scheduler = RefreshScheduler(
            two_columns, signed_in_auth, client=client, display=display, today=DAY
        )

        assert scheduler.view_mode is ViewMode.MONTH
        assert scheduler.show_tentative is False
        assert scheduler.date_range.start.date() == date(2026, 3, 1)


class TestTentative:
    async def test_toggle_filters_visible_columns(self, scheduler, calendar_api):
        calendar_api.responses = {
            "tom@example.com": [
                raw_timed_event("firm", at(9), at(10)),
                raw_timed_event("maybe", at(11), at(12), summary="Maybe gym"),
            ],
        }
        await scheduler.run_pass()

        assert [e.id for e in scheduler.visible_columns()[0].events] == ["firm", "maybe"]

        assert scheduler.toggle_tentative() is False
        assert [e.id for e in scheduler.visible_columns()[0].events] == ["firm"]
        assert len(scheduler.columns[0].events) == 2

        assert scheduler.toggle_tentative() is True
        assert len(scheduler.visible_columns()[0].events) == 2


class TestPeriodic:
    async def test_runs_silent_passes(self, two_columns, signed_in_auth, client, calendar_api):
        scheduler = RefreshScheduler(
            two_columns, signed_in_auth, client=client, today=DAY, interval=0.01
        )

        scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()

        assert calendar_api.requests
        assert not any(c.is_loading for c in scheduler.columns)

    async def test_skips_when_signed_out(self, two_columns, auth, client, calendar_api):
        scheduler = RefreshScheduler(two_columns, auth, client=client, today=DAY, interval=0.01)

        scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert calendar_api.requests == []
