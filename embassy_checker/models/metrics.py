"""Metrics — per-region results of a single check, used for filtering and sorting."""

from enum import Enum
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict

SECONDS_PER_DAY = 86400


def whole_days(seconds: float) -> int:
    """Convert a duration in seconds to whole days, truncating."""
    return int(seconds / SECONDS_PER_DAY)


class IdleKind(str, Enum):
    NEVER = "never"     # No message was ever posted
    DAYS = "days"


class IdleAge(BaseModel):
    """Age of a region's latest message: either ``Never`` or ``Days(n)``."""

    model_config = ConfigDict(frozen=True)

    kind: IdleKind
    days: int = 0

    @classmethod
    def never(cls) -> "IdleAge":
        return cls(kind=IdleKind.NEVER)

    @classmethod
    def of_days(cls, days: int) -> "IdleAge":
        return cls(kind=IdleKind.DAYS, days=days)

    @property
    def is_never(self) -> bool:
        return self.kind == IdleKind.NEVER

    def at_least(self, days: int) -> bool:
        return self.is_never or self.days >= days

    def sort_key(self) -> Tuple[int, int]:
        # Never first, then the longest silence first
        return (0, 0) if self.is_never else (1, -self.days)

    def __str__(self) -> str:
        return "Never." if self.is_never else f"{self.days} days ago."


class RegionLastMessage(BaseModel):
    """A region with the time since the last post on its message board."""

    model_config = ConfigDict(frozen=True)

    region: str
    idle: IdleAge

    def sort_key(self) -> tuple:
        return self.idle.sort_key() + (self.region,)

    def __str__(self) -> str:
        return f"Region: {self.region}; Last RMB msg: {self.idle}"


class RegionFounded(BaseModel):
    """A region with the number of days since it was founded."""

    model_config = ConfigDict(frozen=True)

    region: str
    days: int

    def sort_key(self) -> tuple:
        return (self.days, self.region)

    def __str__(self) -> str:
        return f"Region: {self.region}; Founded: {self.days} days ago."


class RegionWithTags(BaseModel):
    """A region with the checked-for tags it carries."""

    model_config = ConfigDict(frozen=True)

    region: str
    tags: List[str]

    def sort_key(self) -> tuple:
        return (self.region,)

    def __str__(self) -> str:
        return f"Region: {self.region}; Tags: {', '.join(self.tags)}."
