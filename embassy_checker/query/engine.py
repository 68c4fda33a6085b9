"""
Query Engine — runs an embassy check and produces the report.

States:
  VALIDATE → RESOLVE EMBASSIES → RETRIEVE (one region at a time) → CHECK → RENDER

Behavioral Contract:
- Validates the configuration before any fetch (InvalidConfiguration)
- Fetches the root region with only its embassies; a missing root aborts (EntityNotFound)
- Only established and pending embassies are inspected, in listed order
- Embassy regions are fetched sequentially, with only the attribute groups
  the enabled checks need; a region that no longer exists is skipped
- Progress is reported after every fetch, whether the region was found or not
- "Now" is captured once per query so every check compares against the same instant
- One query at a time per engine; a concurrent call is rejected (ExecutionInProgress)
"""

import threading
import time
from typing import Callable, List, Optional

import structlog

from embassy_checker.checks.evaluators import run_checks
from embassy_checker.checks.report import render_report
from embassy_checker.errors import Cancelled, EntityNotFound, ExecutionInProgress
from embassy_checker.models.query import QueryConfiguration
from embassy_checker.models.region import (
    AttributeGroup,
    FetchFunction,
    NotFound,
    RegionRecord,
)
from embassy_checker.models.report import QueryResult
from embassy_checker.progress.notifier import ProgressNotifier, ProgressObserver

log = structlog.get_logger()

ROOT_ATTRIBUTE_GROUPS = frozenset({AttributeGroup.IDENTITY, AttributeGroup.RELATIONSHIPS})


class QueryEngine:
    """
    Executes QueryConfigurations against a fetch function.

    The fetch function is called as ``fetch(name, attribute_groups)`` and
    returns a RegionRecord, or NotFound if the region does not exist.
    """

    def __init__(
        self,
        fetch: FetchFunction,
        notifier: Optional[ProgressNotifier] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.fetch = fetch
        self.notifier = notifier or ProgressNotifier()
        self.clock = clock
        self._running = threading.Lock()

    def register(self, observer: ProgressObserver) -> "QueryEngine":
        """Register a progress observer."""
        self.notifier.register(observer)
        return self

    def execute(
        self,
        config: QueryConfiguration,
        cancel_token: Optional[threading.Event] = None,
    ) -> str:
        """Run the query and return the report text."""
        return self.run(config, cancel_token).report

    def run(
        self,
        config: QueryConfiguration,
        cancel_token: Optional[threading.Event] = None,
    ) -> QueryResult:
        """Run the query and return the structured result."""
        config.validate_checks()

        if not self._running.acquire(blocking=False):
            raise ExecutionInProgress(
                f"A query is already running on this engine; "
                f"cannot start a query for {config.region_name}."
            )
        try:
            return self._run(config, cancel_token)
        finally:
            self._running.release()

    def _run(
        self,
        config: QueryConfiguration,
        cancel_token: Optional[threading.Event],
    ) -> QueryResult:
        now = self.clock()
        log.info(
            "query_started",
            region=config.region_name,
            checks=[c.value for c in config.enabled_checks],
        )

        embassy_regions = self._resolve_embassies(config.region_name)
        regions = self._retrieve_regions(
            embassy_regions, config, cancel_token
        )

        sections = run_checks(regions, config, now)
        report = render_report(sections)

        log.info(
            "query_completed",
            region=config.region_name,
            embassies=len(embassy_regions),
            retrieved=len(regions),
        )
        return QueryResult(
            region_name=config.region_name,
            embassies_checked=len(embassy_regions),
            regions_retrieved=len(regions),
            sections=sections,
            report=report,
        )

    def _resolve_embassies(self, region_name: str) -> List[str]:
        """Fetch the root region and list its relevant embassy regions."""
        root = self.fetch(region_name, ROOT_ATTRIBUTE_GROUPS)
        if isinstance(root, NotFound):
            raise EntityNotFound(region_name)

        embassy_regions = root.relevant_embassies()
        log.info(
            "embassies_resolved",
            region=region_name,
            total=len(root.embassies),
            relevant=len(embassy_regions),
        )
        return embassy_regions

    def _retrieve_regions(
        self,
        embassy_regions: List[str],
        config: QueryConfiguration,
        cancel_token: Optional[threading.Event],
    ) -> List[RegionRecord]:
        """Fetch every embassy region in order, reporting progress after each."""
        groups = config.required_attribute_groups()
        regions: List[RegionRecord] = []

        self.notifier.retrieval_started(len(embassy_regions))

        for position, name in enumerate(embassy_regions):
            if cancel_token is not None and cancel_token.is_set():
                log.info("query_cancelled", region=config.region_name, position=position)
                raise Cancelled(
                    f"Query for {config.region_name} cancelled after "
                    f"{position} of {len(embassy_regions)} regions."
                )

            result = self.fetch(name, groups)
            retrieved = not isinstance(result, NotFound)
            if retrieved:
                regions.append(result)
            else:
                # Ceased to exist since the embassy list was fetched
                log.debug("region_missing", region=name, position=position)

            self.notifier.region_retrieved(name, position, retrieved)

        return regions
