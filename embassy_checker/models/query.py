"""Query Configuration — which checks to run against which region's embassies."""

from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from embassy_checker.errors import InvalidConfiguration
from embassy_checker.models.region import AttributeGroup, tag_key


class CheckKind(str, Enum):
    """The available checks, in report order."""
    RMB_ACTIVITY = "rmb_activity"
    REGION_FOUNDED = "region_founded"
    REGION_TAGS = "region_tags"


CHECK_ATTRIBUTE_GROUPS = {
    CheckKind.RMB_ACTIVITY: AttributeGroup.RECENT_MESSAGES,
    CheckKind.REGION_FOUNDED: AttributeGroup.CREATION_HISTORY,
    CheckKind.REGION_TAGS: AttributeGroup.CATEGORY_TAGS,
}


class QueryConfiguration(BaseModel):
    """
    Immutable description of one embassy check run.

    A check is enabled when its parameter is set. Parameters are not
    validated on construction; call ``validate_checks`` (the engine does so
    before any I/O) to raise ``InvalidConfiguration``.
    """

    model_config = ConfigDict(frozen=True)

    region_name: str
    max_days_since_last_message: Optional[int] = None
    min_days_since_founded: Optional[int] = None
    tags_to_check: Optional[Tuple[str, ...]] = None

    @property
    def enabled_checks(self) -> List[CheckKind]:
        enabled = []
        if self.max_days_since_last_message is not None:
            enabled.append(CheckKind.RMB_ACTIVITY)
        if self.min_days_since_founded is not None:
            enabled.append(CheckKind.REGION_FOUNDED)
        if self.tags_to_check is not None:
            enabled.append(CheckKind.REGION_TAGS)
        return enabled

    def required_attribute_groups(self) -> FrozenSet[AttributeGroup]:
        """Attribute groups to request for each embassy region."""
        groups = {AttributeGroup.IDENTITY}
        groups.update(CHECK_ATTRIBUTE_GROUPS[c] for c in self.enabled_checks)
        return frozenset(groups)

    def validate_checks(self) -> None:
        if not self.region_name or not self.region_name.strip():
            raise InvalidConfiguration("No region name supplied!")
        if not self.enabled_checks:
            raise InvalidConfiguration("None of the checks is selected!")
        if (
            self.max_days_since_last_message is not None
            and self.max_days_since_last_message <= 0
        ):
            raise InvalidConfiguration(
                "The maximum days of no RMB posts must be greater than 0!"
            )
        if self.min_days_since_founded is not None and self.min_days_since_founded <= 0:
            raise InvalidConfiguration(
                "The minimum age of region in days must be greater than 0!"
            )
        if self.tags_to_check is not None:
            if len(self.tags_to_check) == 0:
                raise InvalidConfiguration("At least one tag must be supplied!")
            if any(not tag_key(tag) for tag in self.tags_to_check):
                raise InvalidConfiguration("Tags may not be blank!")


class QueryConfigurationBuilder:
    """Builds a QueryConfiguration one check at a time."""

    def __init__(self, region_name: str):
        self._region_name = region_name
        self._max_days_since_last_message: Optional[int] = None
        self._min_days_since_founded: Optional[int] = None
        self._tags_to_check: Optional[Tuple[str, ...]] = None

    def rmb_activity(self, days: int) -> "QueryConfigurationBuilder":
        """Report regions without a new message board post in ``days`` days."""
        self._max_days_since_last_message = days
        return self

    def minimum_age(self, days: int) -> "QueryConfigurationBuilder":
        """Report regions founded less than ``days`` days ago."""
        self._min_days_since_founded = days
        return self

    def region_tags(self, tags: Iterable[str]) -> "QueryConfigurationBuilder":
        """
        Report regions carrying one or more of ``tags``. Tags match
        regardless of case; the first spelling given is the one reported.
        """
        unique: List[str] = []
        seen = set()
        for tag in tags:
            if tag_key(tag) not in seen:
                seen.add(tag_key(tag))
                unique.append(tag.strip())
        self._tags_to_check = tuple(unique)
        return self

    def build(self) -> QueryConfiguration:
        return QueryConfiguration(
            region_name=self._region_name,
            max_days_since_last_message=self._max_days_since_last_message,
            min_days_since_founded=self._min_days_since_founded,
            tags_to_check=self._tags_to_check,
        )
