"""
Progress Notifier — tells observers how far a query has come.

Behavioral Contract:
- retrieval_started is delivered once per query, before any embassy region is fetched
- region_retrieved is delivered once per embassy region, positions 0..N-1 in order
- Delivery is synchronous, on the thread running the query
- An observer that raises is logged and skipped; it never breaks the query
"""

from typing import Dict, List, Protocol, Union

import structlog
from pydantic import BaseModel, ConfigDict

log = structlog.get_logger()


class RetrievalStarted(BaseModel):
    """Retrieval of the embassy regions has begun."""

    model_config = ConfigDict(frozen=True)

    total: int                              # Number of regions to retrieve


class RegionRetrieved(BaseModel):
    """One embassy region was fetched, successfully or not."""

    model_config = ConfigDict(frozen=True)

    region: str
    position: int                           # 0-based position in the query
    retrieved: bool                         # False if the region no longer exists


ProgressEvent = Union[RetrievalStarted, RegionRetrieved]


class ProgressObserver(Protocol):
    """Protocol for anything that wants to follow a query's progress."""

    def on_retrieval_started(self, event: RetrievalStarted) -> None: ...

    def on_region_retrieved(self, event: RegionRetrieved) -> None: ...


class ProgressNotifier:
    """Holds the registered observers and delivers events to them."""

    def __init__(self):
        self._observers: Dict[int, ProgressObserver] = {}

    def register(self, observer: ProgressObserver) -> None:
        """Register an observer. Registering it again has no effect."""
        self._observers.setdefault(id(observer), observer)

    def unregister(self, observer: ProgressObserver) -> None:
        self._observers.pop(id(observer), None)

    @property
    def observers(self) -> List[ProgressObserver]:
        return list(self._observers.values())

    def retrieval_started(self, total: int) -> None:
        event = RetrievalStarted(total=total)
        for observer in self.observers:
            try:
                observer.on_retrieval_started(event)
            except Exception:
                log.exception("progress_observer_failed", notification="retrieval_started")

    def region_retrieved(self, region: str, position: int, retrieved: bool) -> None:
        event = RegionRetrieved(region=region, position=position, retrieved=retrieved)
        for observer in self.observers:
            try:
                observer.on_region_retrieved(event)
            except Exception:
                log.exception(
                    "progress_observer_failed",
                    notification="region_retrieved",
                    region=region,
                )


class RecordingObserver:
    """Observer that keeps every event it receives, in order."""

    def __init__(self):
        self.events: List[ProgressEvent] = []

    def on_retrieval_started(self, event: RetrievalStarted) -> None:
        self.events.append(event)

    def on_region_retrieved(self, event: RegionRetrieved) -> None:
        self.events.append(event)
