"""Tests for the Query Engine — resolving, retrieving, checking, reporting."""

import threading
from typing import Dict, FrozenSet, List, Optional, Tuple

import pytest

from embassy_checker.errors import (
    Cancelled,
    EntityNotFound,
    ExecutionInProgress,
    InvalidConfiguration,
)
from embassy_checker.models.query import QueryConfiguration, QueryConfigurationBuilder
from embassy_checker.models.region import (
    AttributeGroup,
    Embassy,
    EmbassyStatus,
    NotFound,
    RegionalMessage,
    RegionRecord,
)
from embassy_checker.progress.notifier import (
    RecordingObserver,
    RegionRetrieved,
    RetrievalStarted,
)
from embassy_checker.query.engine import QueryEngine

NOW = 1_700_000_000
DAY = 86400


class FakeNationStates:
    """Canned regions; anything unknown is NotFound. Records every call."""

    def __init__(self, regions: Dict[str, RegionRecord]):
        self.regions = regions
        self.calls: List[Tuple[str, FrozenSet[AttributeGroup]]] = []

    def __call__(self, name, groups):
        self.calls.append((name, frozenset(groups)))
        return self.regions.get(name, NotFound(name=name))


def _make_world() -> Dict[str, RegionRecord]:
    return {
        "the western isles": RegionRecord(
            name="the western isles",
            embassies=[
                Embassy(region="Osiris", status=EmbassyStatus.ESTABLISHED),
                Embassy(region="Closing Down", status=EmbassyStatus.CLOSING),
                Embassy(region="Ghost Town", status=EmbassyStatus.PENDING),
                Embassy(region="Denied", status=EmbassyStatus.DENIED),
                Embassy(region="Lazarus", status=EmbassyStatus.ESTABLISHED),
            ],
        ),
        "Osiris": RegionRecord(
            name="Osiris",
            messages=[RegionalMessage(timestamp=NOW - 2 * DAY)],
            founded=NOW - 3000 * DAY,
            tags=["Fascist"],
        ),
        # "Ghost Town" ceased to exist after the embassy list was fetched
        "Lazarus": RegionRecord(
            name="Lazarus",
            messages=[],
            founded=NOW - 10 * DAY,
            tags=["Raider", "Fascist"],
        ),
    }


def _make_engine(regions=None, clock=lambda: NOW) -> Tuple[QueryEngine, FakeNationStates]:
    fetch = FakeNationStates(regions if regions is not None else _make_world())
    return QueryEngine(fetch, clock=clock), fetch


def _full_config() -> QueryConfiguration:
    return (
        QueryConfigurationBuilder("the western isles")
        .rmb_activity(30)
        .minimum_age(90)
        .region_tags(["Raider", "Mercenary"])
        .build()
    )


class TestQueryEngine:
    def test_full_report(self):
        engine, _ = _make_engine()
        report = engine.execute(_full_config())
        assert report == (
            "-------Regions without new RMB messages during the last 30 days-------\n"
            "Total regions found: 1.\n"
            "Region: Lazarus; Last RMB msg: Never.\n"
            "\n"
            "-------Regions that were founded less than 90 days ago-------\n"
            "Total regions found: 1.\n"
            "Region: Lazarus; Founded: 10 days ago.\n"
            "\n"
            "-------Regions with one or more of the tags: Raider, Mercenary-------\n"
            "Total regions found: 1.\n"
            "Region: Lazarus; Tags: Raider.\n"
            "\n"
        )

    def test_only_relevant_embassies_are_fetched(self):
        engine, fetch = _make_engine()
        engine.execute(_full_config())
        assert [name for name, _ in fetch.calls] == [
            "the western isles", "Osiris", "Ghost Town", "Lazarus",
        ]

    def test_requested_attribute_groups(self):
        engine, fetch = _make_engine()
        engine.execute(QueryConfigurationBuilder("the western isles").rmb_activity(30).build())

        root_groups = fetch.calls[0][1]
        assert root_groups == frozenset({
            AttributeGroup.IDENTITY, AttributeGroup.RELATIONSHIPS,
        })
        for _, groups in fetch.calls[1:]:
            assert groups == frozenset({
                AttributeGroup.IDENTITY, AttributeGroup.RECENT_MESSAGES,
            })

    def test_result_counts(self):
        engine, _ = _make_engine()
        result = engine.run(_full_config())
        assert result.embassies_checked == 3
        assert result.regions_retrieved == 2
        assert [s.total for s in result.sections] == [1, 1, 1]

    def test_deterministic_under_fixed_clock(self):
        engine, _ = _make_engine()
        first = engine.execute(_full_config())
        second = engine.execute(_full_config())
        assert first == second

    def test_now_captured_once_per_run(self):
        ticks = iter([NOW, NOW + 365 * DAY])
        engine, _ = _make_engine(clock=lambda: next(ticks))
        report = engine.execute(_full_config())
        assert "Founded: 10 days ago." in report

    def test_no_embassies(self):
        engine, fetch = _make_engine({"lonely": RegionRecord(name="lonely")})
        report = engine.execute(QueryConfigurationBuilder("lonely").rmb_activity(1).build())
        assert "Total regions found: 0." in report
        assert len(fetch.calls) == 1


class TestQueryEngineErrors:
    def test_no_checks_enabled_performs_no_fetches(self):
        engine, fetch = _make_engine()
        with pytest.raises(InvalidConfiguration):
            engine.execute(QueryConfigurationBuilder("the western isles").build())
        assert fetch.calls == []

    def test_non_positive_threshold(self):
        engine, fetch = _make_engine()
        for days in (0, -1):
            with pytest.raises(InvalidConfiguration):
                engine.execute(
                    QueryConfigurationBuilder("the western isles").rmb_activity(days).build()
                )
        assert fetch.calls == []

    def test_empty_region_name(self):
        engine, fetch = _make_engine()
        with pytest.raises(InvalidConfiguration):
            engine.execute(QueryConfigurationBuilder("").rmb_activity(30).build())
        assert fetch.calls == []

    def test_root_not_found_fires_no_progress(self):
        engine, _ = _make_engine({})
        observer = RecordingObserver()
        engine.register(observer)

        with pytest.raises(EntityNotFound) as exc_info:
            engine.execute(QueryConfigurationBuilder("nowhere").rmb_activity(30).build())

        assert exc_info.value.name == "nowhere"
        assert "nowhere" in str(exc_info.value)
        assert observer.events == []

    def test_engine_usable_after_error(self):
        engine, _ = _make_engine()
        with pytest.raises(EntityNotFound):
            engine.execute(QueryConfigurationBuilder("nowhere").rmb_activity(30).build())
        assert engine.execute(_full_config())

    def test_cancelled_between_fetches(self):
        cancel = threading.Event()
        regions = _make_world()
        fetch = FakeNationStates(regions)

        def cancelling_fetch(name, groups):
            result = fetch(name, groups)
            if name == "Osiris":
                cancel.set()
            return result

        engine = QueryEngine(cancelling_fetch, clock=lambda: NOW)
        observer = RecordingObserver()
        engine.register(observer)

        with pytest.raises(Cancelled):
            engine.execute(_full_config(), cancel_token=cancel)

        assert [name for name, _ in fetch.calls] == ["the western isles", "Osiris"]
        assert observer.events == [
            RetrievalStarted(total=3),
            RegionRetrieved(region="Osiris", position=0, retrieved=True),
        ]

    def test_concurrent_execution_rejected(self):
        entered = threading.Event()
        release = threading.Event()
        fetch = FakeNationStates(_make_world())

        def blocking_fetch(name, groups):
            entered.set()
            release.wait(timeout=5)
            return fetch(name, groups)

        engine = QueryEngine(blocking_fetch, clock=lambda: NOW)
        results: List[Optional[str]] = []
        worker = threading.Thread(target=lambda: results.append(engine.execute(_full_config())))
        worker.start()
        try:
            assert entered.wait(timeout=5)
            with pytest.raises(ExecutionInProgress):
                engine.execute(_full_config())
        finally:
            release.set()
            worker.join(timeout=5)

        assert len(results) == 1
        assert "Region: Lazarus" in results[0]


class TestQueryEngineProgress:
    def test_progress_order_with_missing_regions(self):
        engine, _ = _make_engine()
        observer = RecordingObserver()
        engine.register(observer)

        engine.execute(_full_config())

        assert observer.events == [
            RetrievalStarted(total=3),
            RegionRetrieved(region="Osiris", position=0, retrieved=True),
            RegionRetrieved(region="Ghost Town", position=1, retrieved=False),
            RegionRetrieved(region="Lazarus", position=2, retrieved=True),
        ]

    def test_progress_interleaved_with_fetches(self):
        log: List[str] = []
        fetch = FakeNationStates(_make_world())

        def logging_fetch(name, groups):
            log.append(f"fetch:{name}")
            return fetch(name, groups)

        class LoggingObserver:
            def on_retrieval_started(self, event):
                log.append(f"started:{event.total}")

            def on_region_retrieved(self, event):
                log.append(f"retrieved:{event.position}")

        engine = QueryEngine(logging_fetch, clock=lambda: NOW)
        engine.register(LoggingObserver())
        engine.execute(_full_config())

        assert log == [
            "fetch:the western isles",
            "started:3",
            "fetch:Osiris",
            "retrieved:0",
            "fetch:Ghost Town",
            "retrieved:1",
            "fetch:Lazarus",
            "retrieved:2",
        ]

    def test_failing_observer_does_not_break_query(self):
        class BrokenObserver:
            def on_retrieval_started(self, event):
                raise RuntimeError("widget disposed")

            def on_region_retrieved(self, event):
                raise RuntimeError("widget disposed")

        engine, _ = _make_engine()
        recorder = RecordingObserver()
        engine.register(BrokenObserver())
        engine.register(recorder)

        report = engine.execute(_full_config())

        assert "Region: Lazarus" in report
        assert len(recorder.events) == 4
