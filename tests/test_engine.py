"""
End-to-end tests for the scan coordinator against local servers.
"""

import asyncio

import pytest
from aiohttp import web

from pathhawk.scanner.core.classifier import FilterConfig
from pathhawk.scanner.core.engine import (
    ConfigurationError,
    ScanConfig,
    ScanCoordinator,
    ScanStateError,
)
from pathhawk.scanner.core.progress import ScanState
from pathhawk.scanner.core.template import TargetTemplate


async def test_reports_found_paths(serve, scan_config):
    outcomes = []
    async with serve({"/admin": (200, "admin"), "/login": (302, "", {"Location": "/auth"})}) as app:
        coordinator = ScanCoordinator(
            app.base_url,
            ["admin", "login", "nothing"],
            config=scan_config(),
            outcome_callback=outcomes.append,
        )
        summary = await coordinator.run()

    assert coordinator.state is ScanState.DONE
    assert summary.processed == 3
    assert summary.interesting == 2
    assert summary.errors == 0
    assert len(outcomes) == 3

    found = {o.url: o for o in outcomes if o.is_interesting}
    assert set(found) == {app.base_url + "admin", app.base_url + "login"}
    assert found[app.base_url + "login"].redirect == "/auth"


async def test_recursion_stops_at_budget(serve, scan_config):
    async with serve({"/admin": 200, "/admin/admin": 200}) as app:
        summary = await ScanCoordinator(
            app.base_url, ["admin"], config=scan_config(max_depth=1),
        ).run()

    assert app.paths() == ["/admin", "/admin/admin"]
    assert summary.dispatched == 2


async def test_no_recursion_without_budget(serve, scan_config):
    async with serve({"/admin": 200}) as app:
        summary = await ScanCoordinator(
            app.base_url, ["admin"], config=scan_config(max_depth=0),
        ).run()

    assert app.paths() == ["/admin"]
    assert summary.dispatched == 1


async def test_recursion_follows_directory_redirect(serve, scan_config):
    async with serve({"/docs": (301, "", {"Location": "/docs/"}), "/docs/docs": 200}) as app:
        outcomes = []
        await ScanCoordinator(
            app.base_url, ["docs"], config=scan_config(max_depth=1),
            outcome_callback=outcomes.append,
        ).run()

    assert app.paths() == ["/docs", "/docs/docs"]
    assert [o.depth for o in outcomes] == [0, 1]


async def test_suppressed_results_are_not_expanded(serve, scan_config):
    async with serve({"/admin": 403}) as app:
        filters = FilterConfig(exclude_status={403})
        await ScanCoordinator(
            app.base_url, ["admin"], config=scan_config(max_depth=3, filters=filters),
        ).run()

    assert app.paths() == ["/admin"]


async def test_non_path_templates_do_not_recurse(serve, scan_config):
    async with serve({}, default=200) as app:
        template = TargetTemplate(app.base_url + "search?q=FUZZ")
        summary = await ScanCoordinator(
            template, ["a", "b"], config=scan_config(max_depth=2),
        ).run()

    assert summary.dispatched == 2
    assert sorted(r["path_qs"] for r in app.requests) == ["/search?q=a", "/search?q=b"]


async def test_work_is_bounded_by_words_and_depth(serve, scan_config):
    async with serve({}, default=200) as app:
        summary = await ScanCoordinator(
            app.base_url, ["a", "b"], config=scan_config(max_depth=2),
        ).run()

    # 2 + 2*2 + 2*2*2
    assert summary.dispatched == 14
    assert summary.processed == 14
    assert len(set(app.paths())) == 14
    assert max(p.count("/") for p in app.paths()) == 3


async def test_in_flight_never_exceeds_concurrency(serve, scan_config):
    live = {"now": 0, "peak": 0}

    async def tracked(request):
        live["now"] += 1
        live["peak"] = max(live["peak"], live["now"])
        await asyncio.sleep(0.05)
        live["now"] -= 1
        return web.Response(text="ok")

    words = [f"w{i}" for i in range(25)]
    routes = {f"/{w}": tracked for w in words}

    async with serve(routes) as app:
        summary = await ScanCoordinator(
            app.base_url, words, config=scan_config(concurrency=3),
        ).run()

    assert summary.processed == 25
    assert summary.peak_in_flight <= 3
    assert live["peak"] <= 3
    assert live["peak"] >= 2


async def test_overlapping_templates_are_deduplicated(serve, scan_config):
    async with serve({"/x": 200}) as app:
        summary = await ScanCoordinator(
            [app.base_url, app.base_url + "FUZZ"], ["x", "x"], config=scan_config(),
        ).run()

    assert app.paths() == ["/x"]
    assert summary.dispatched == 1
    assert summary.duplicates == 3


async def test_total_failure_still_finishes(closed_port, scan_config):
    outcomes = []
    coordinator = ScanCoordinator(
        f"http://127.0.0.1:{closed_port}/",
        ["a", "b", "c"],
        config=scan_config(max_depth=2),
        outcome_callback=outcomes.append,
    )

    summary = await coordinator.run()

    assert coordinator.state is ScanState.DONE
    assert summary.processed == 3
    assert summary.errors == 3
    assert summary.interesting == 0
    assert all(o.error_kind == "connection" for o in outcomes)


async def test_coordinator_runs_once(serve, scan_config):
    async with serve({}) as app:
        coordinator = ScanCoordinator(app.base_url, ["a"], config=scan_config())
        await coordinator.run()

        with pytest.raises(ScanStateError):
            await coordinator.run()


async def test_stream_yields_every_outcome(serve, scan_config):
    async with serve({"/a": 200}) as app:
        coordinator = ScanCoordinator(app.base_url, ["a", "b"], config=scan_config())
        urls = [outcome.url async for outcome in coordinator.stream()]

    assert sorted(urls) == [app.base_url + "a", app.base_url + "b"]
    assert coordinator.summary.processed == 2


async def test_async_outcome_callback(serve, scan_config):
    seen = []

    async def sink(outcome):
        await asyncio.sleep(0)
        seen.append(outcome.status)

    async with serve({"/a": 200}) as app:
        await ScanCoordinator(
            app.base_url, ["a", "b"], config=scan_config(), outcome_callback=sink,
        ).run()

    assert sorted(seen) == [200, 404]


async def test_progress_reaches_done(serve, scan_config):
    snapshots = []
    async with serve({}) as app:
        await ScanCoordinator(
            app.base_url, ["a", "b"], config=scan_config(),
            progress_callback=snapshots.append,
        ).run()

    assert snapshots[-1]["state"] == "done"
    assert snapshots[-1]["completed"] == 2
    assert snapshots[-1]["total"] == 2
    assert snapshots[-1]["progress"] == 100.0


async def test_body_fuzzing(serve, scan_config):
    async def login(request):
        data = await request.post()
        status = 200 if data.get("password") == "hunter2" else 401
        return web.Response(status=status)

    async with serve({"/login": login}) as app:
        template = TargetTemplate(
            app.base_url + "login",
            method="POST",
            headers=["Content-Type: application/x-www-form-urlencoded"],
            body="user=admin&password=FUZZ",
        )
        outcomes = []
        await ScanCoordinator(
            template, ["guess", "hunter2"],
            config=scan_config(filters=FilterConfig(include_status={200})),
            outcome_callback=outcomes.append,
        ).run()

    hits = [o for o in outcomes if o.is_interesting]
    assert len(outcomes) == 2
    assert len(hits) == 1
    assert app.paths("POST") == ["/login", "/login"]


@pytest.mark.parametrize("overrides", [
    {"concurrency": 0},
    {"timeout": 0},
    {"delay": -1},
    {"max_depth": -1},
])
def test_invalid_config_rejected(overrides):
    with pytest.raises(ConfigurationError):
        ScanConfig(**overrides)


def test_invalid_words_rejected():
    with pytest.raises(ConfigurationError):
        ScanCoordinator("http://example.com/", ["ok", ""])


def test_no_templates_rejected():
    with pytest.raises(ConfigurationError):
        ScanCoordinator([], ["a"])


async def test_words_with_query_or_fragment_do_not_recurse(serve, scan_config):
    async with serve({}, default=200) as app:
        coordinator = ScanCoordinator(
            app.base_url, ["a?b", "a#b", "ok"], config=scan_config(max_depth=1),
        )
        summary = await coordinator.run()

    assert coordinator.state is ScanState.DONE
    # only "ok" is expanded: 3 seeds + 3 targets under /ok/
    assert summary.dispatched == 6
    assert summary.processed == 6


async def test_failing_outcome_callback_does_not_stop_the_scan(serve, scan_config):
    offered = []

    def sink(outcome):
        offered.append(outcome.url)
        if len(offered) == 1:
            raise RuntimeError("display closed")

    async with serve({}, default=200) as app:
        coordinator = ScanCoordinator(
            app.base_url, ["a", "b", "c"], config=scan_config(), outcome_callback=sink,
        )
        summary = await coordinator.run()

    assert coordinator.state is ScanState.DONE
    assert summary.processed == 3
    assert len(offered) == 3
    assert coordinator.requester._session is None


async def test_progress_counts_words_for_every_template(serve, scan_config):
    snapshots = []
    async with serve({}) as app:
        await ScanCoordinator(
            [app.base_url, app.base_url + "api/FUZZ"], ["a", "b"], config=scan_config(),
            progress_callback=snapshots.append,
        ).run()

    assert snapshots[-1]["total_words"] == 4
    assert snapshots[-1]["total"] == 4
