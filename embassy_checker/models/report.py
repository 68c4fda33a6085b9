"""Report — structured output of the checks, rendered to text last."""

from typing import List, Union

from pydantic import BaseModel, ConfigDict, computed_field

from embassy_checker.models.metrics import (
    RegionFounded,
    RegionLastMessage,
    RegionWithTags,
)
from embassy_checker.models.query import CheckKind

Metric = Union[RegionLastMessage, RegionFounded, RegionWithTags]


class ReportSection(BaseModel):
    """The result of one check: a title and its sorted entries."""

    model_config = ConfigDict(frozen=True)

    check: CheckKind
    title: str
    entries: List[Metric]

    @computed_field
    @property
    def total(self) -> int:
        return len(self.entries)


class QueryResult(BaseModel):
    """Outcome of a complete query execution."""

    model_config = ConfigDict(frozen=True)

    region_name: str
    embassies_checked: int
    regions_retrieved: int
    sections: List[ReportSection]
    report: str
