"""Region Record — what the data source returns for a single region."""

from enum import Enum
from typing import Callable, FrozenSet, List, Optional, Union

from pydantic import BaseModel, ConfigDict

FOUNDING_HAPPENING_MARKER = "Region founded by "


def tag_key(tag: str) -> str:
    """Canonical form a tag is matched on: "raider", "Raider " and "RAIDER" are equal."""
    return tag.strip().casefold()


class AttributeGroup(str, Enum):
    """Named bundles of fields the data source can be asked for."""
    IDENTITY = "identity"
    RELATIONSHIPS = "relationships"
    RECENT_MESSAGES = "recent_messages"
    CREATION_HISTORY = "creation_history"
    CATEGORY_TAGS = "category_tags"


class EmbassyStatus(str, Enum):
    ESTABLISHED = "established"
    PENDING = "pending"         # Under construction
    INVITED = "invited"
    REQUESTED = "requested"
    CLOSING = "closing"
    REJECTED = "rejected"
    DENIED = "denied"


RELEVANT_EMBASSY_STATUSES = frozenset({
    EmbassyStatus.ESTABLISHED,
    EmbassyStatus.PENDING,
})


class Embassy(BaseModel):
    """A link from one region to another."""

    model_config = ConfigDict(frozen=True)

    region: str
    status: EmbassyStatus = EmbassyStatus.ESTABLISHED

    @property
    def relevant(self) -> bool:
        return self.status in RELEVANT_EMBASSY_STATUSES


class RegionalMessage(BaseModel):
    """A post on a region's message board."""

    model_config = ConfigDict(frozen=True)

    timestamp: int                          # Epoch seconds
    author: Optional[str] = None
    text: str = ""


class Happening(BaseModel):
    """An entry in a region's history."""

    model_config = ConfigDict(frozen=True)

    timestamp: int                          # Epoch seconds
    text: str


class RegionRecord(BaseModel):
    """
    A region as fetched from the data source. Only the fields belonging to
    the requested attribute groups are populated; the rest keep their
    empty defaults.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    embassies: List[Embassy] = []
    messages: List[RegionalMessage] = []
    founded: int = 0                        # Epoch seconds, 0 = antiquity / unknown
    history: List[Happening] = []
    tags: List[str] = []

    @property
    def last_message_at(self) -> Optional[int]:
        """Timestamp of the most recent message board post, if any."""
        if not self.messages:
            return None
        return max(m.timestamp for m in self.messages)

    @property
    def founded_at(self) -> Optional[int]:
        """
        When the region was founded. Falls back to the founding happening
        in the region's history when no founding timestamp is known.
        """
        if self.founded > 0:
            return self.founded
        for happening in self.history:
            if FOUNDING_HAPPENING_MARKER in happening.text:
                return happening.timestamp
        return None

    def relevant_embassies(self) -> List[str]:
        """Names of embassy regions worth inspecting, in listed order."""
        return [e.region for e in self.embassies if e.relevant]


class NotFound(BaseModel):
    """Explicit result for a region that does not (or no longer) exist."""

    model_config = ConfigDict(frozen=True)

    name: str


FetchResult = Union[RegionRecord, NotFound]
FetchFunction = Callable[[str, FrozenSet[AttributeGroup]], FetchResult]
