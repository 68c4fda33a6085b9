"""
NationStates Client — fetches regions from the NationStates API.

Behavioral Contract:
- Requests only the shards belonging to the requested attribute groups
- Identifies itself with the configured User-Agent, as the API requires
- Never exceeds max_requests per window_seconds (sliding window)
- Returns NotFound for a region that does not exist (HTTP 404)
- Raises FetchError for any other failure; does not retry
"""

import os
import time
import xml.etree.ElementTree as ET
from collections import deque
from typing import Callable, Deque, FrozenSet, Iterable, List, Optional

import httpx
import structlog
from pydantic import BaseModel

from embassy_checker.errors import FetchError
from embassy_checker.models.region import (
    AttributeGroup,
    Embassy,
    EmbassyStatus,
    FetchResult,
    Happening,
    NotFound,
    RegionalMessage,
    RegionRecord,
)

log = structlog.get_logger()

DEFAULT_API_URL = "https://www.nationstates.net/cgi-bin/api.cgi"
DEFAULT_USER_AGENT = (
    "Embassy Checker (https://github.com/Agadar/NationStates-EmbassyChecker)"
)

GROUP_SHARDS = {
    AttributeGroup.IDENTITY: ("name",),
    AttributeGroup.RELATIONSHIPS: ("embassies",),
    AttributeGroup.RECENT_MESSAGES: ("messages",),
    AttributeGroup.CREATION_HISTORY: ("foundedtime", "history"),
    AttributeGroup.CATEGORY_TAGS: ("tags",),
}


class ClientConfig(BaseModel):
    """Configuration for the NationStates client."""

    base_url: str = DEFAULT_API_URL
    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: float = 10.0
    max_requests: int = 50                  # API limit: 50 requests ...
    window_seconds: float = 30.0            # ... per 30 seconds

    @classmethod
    def from_env(cls) -> "ClientConfig":
        return cls(
            base_url=os.getenv("NS_API_URL", DEFAULT_API_URL),
            user_agent=os.getenv("NS_USER_AGENT", DEFAULT_USER_AGENT),
        )


class RateLimiter:
    """Sliding-window limiter: at most max_requests in any window_seconds."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._sent: Deque[float] = deque()

    def acquire(self) -> None:
        """Block until another request may be sent, then record it."""
        now = self._clock()
        while self._sent and now - self._sent[0] >= self.window_seconds:
            self._sent.popleft()

        if len(self._sent) >= self.max_requests:
            wait = self.window_seconds - (now - self._sent[0])
            log.info("rate_limit_wait", seconds=round(wait, 3))
            self._sleep(wait)
            self._sent.popleft()
            now = self._clock()

        self._sent.append(now)


def normalize_region_name(name: str) -> str:
    """The API's canonical form: lower case, underscores for spaces."""
    return name.strip().lower().replace(" ", "_")


def shards_for(groups: Iterable[AttributeGroup]) -> List[str]:
    shards = set()
    for group in groups:
        shards.update(GROUP_SHARDS[group])
    return sorted(shards)


def _int(element: Optional[ET.Element], default: int = 0) -> int:
    if element is None or not (element.text or "").strip():
        return default
    return int(element.text.strip())


def parse_region_xml(payload: bytes) -> RegionRecord:
    """Parse a <REGION> document returned by the API."""
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as e:
        raise FetchError(f"Malformed region XML: {e}") from e

    if root.tag != "REGION":
        raise FetchError(f"Expected a REGION document, got {root.tag}")

    try:
        name = root.findtext("NAME") or root.get("id", "")

        embassies = []
        for element in root.findall("EMBASSIES/EMBASSY"):
            status_name = element.get("type")
            try:
                status = (
                    EmbassyStatus(status_name) if status_name
                    else EmbassyStatus.ESTABLISHED
                )
            except ValueError:
                log.warning("unknown_embassy_status", region=name, status=status_name)
                continue
            embassies.append(Embassy(region=(element.text or "").strip(), status=status))

        messages = [
            RegionalMessage(
                timestamp=_int(post.find("TIMESTAMP")),
                author=post.findtext("NATION"),
                text=post.findtext("MESSAGE") or "",
            )
            for post in root.findall("MESSAGES/POST")
        ]

        history = [
            Happening(
                timestamp=_int(event.find("TIMESTAMP")),
                text=event.findtext("TEXT") or "",
            )
            for event in root.findall("HISTORY/EVENT")
        ]

        tags = [
            (tag.text or "").strip()
            for tag in root.findall("TAGS/TAG")
            if (tag.text or "").strip()
        ]

        return RegionRecord(
            name=name,
            embassies=embassies,
            messages=messages,
            founded=_int(root.find("FOUNDEDTIME")),
            history=history,
            tags=tags,
        )
    except ValueError as e:
        raise FetchError(f"Malformed region XML: {e}") from e


class NationStatesClient:
    """
    Fetches regions over HTTP. Instances are callable, so they can be
    handed to a QueryEngine directly as its fetch function.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.config = config or ClientConfig()
        self.rate_limiter = rate_limiter or RateLimiter(
            self.config.max_requests, self.config.window_seconds
        )
        self._http = httpx.Client(
            transport=transport,
            timeout=self.config.timeout_seconds,
            headers={"User-Agent": self.config.user_agent},
        )

    def __call__(
        self, name: str, groups: FrozenSet[AttributeGroup]
    ) -> FetchResult:
        return self.fetch_region(name, groups)

    def fetch_region(
        self, name: str, groups: Iterable[AttributeGroup]
    ) -> FetchResult:
        """Fetch one region with the shards for the given attribute groups."""
        params = {
            "region": normalize_region_name(name),
            "q": " ".join(shards_for(groups)),
        }

        self.rate_limiter.acquire()
        log.debug("region_requested", region=params["region"], shards=params["q"])
        try:
            response = self._http.get(self.config.base_url, params=params)
        except httpx.HTTPError as e:
            raise FetchError(f"Request for region {name} failed: {e}") from e

        if response.status_code == 404:
            return NotFound(name=name)
        if response.status_code >= 400:
            raise FetchError(
                f"Request for region {name} failed with HTTP {response.status_code}"
            )

        return parse_region_xml(response.content)

    @property
    def is_closed(self) -> bool:
        return self._http.is_closed

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "NationStatesClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
