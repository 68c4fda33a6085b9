"""Embassy checker data models."""

from embassy_checker.models.metrics import (
    IdleAge,
    IdleKind,
    RegionFounded,
    RegionLastMessage,
    RegionWithTags,
)
from embassy_checker.models.query import (
    CheckKind,
    QueryConfiguration,
    QueryConfigurationBuilder,
)
from embassy_checker.models.region import (
    RELEVANT_EMBASSY_STATUSES,
    AttributeGroup,
    Embassy,
    EmbassyStatus,
    Happening,
    NotFound,
    RegionalMessage,
    RegionRecord,
)
from embassy_checker.models.report import QueryResult, ReportSection

__all__ = [
    "AttributeGroup",
    "CheckKind",
    "Embassy",
    "EmbassyStatus",
    "Happening",
    "IdleAge",
    "IdleKind",
    "NotFound",
    "QueryConfiguration",
    "QueryConfigurationBuilder",
    "QueryResult",
    "RELEVANT_EMBASSY_STATUSES",
    "RegionFounded",
    "RegionLastMessage",
    "RegionRecord",
    "RegionWithTags",
    "RegionalMessage",
    "ReportSection",
]
