"""
Checks — the heuristics run over the retrieved embassy regions.

Each check is a pure function of the retrieved regions, its parameter and
the single "now" captured at the start of the query. It returns a
ReportSection whose entries are already filtered and sorted.

  RMB activity:   regions whose last message board post is at least N days
                  old, or that never had one. Longest silence first.
  Region founded: regions founded less than N days ago. Newest first.
  Region tags:    regions carrying any of the given tags. By name.
"""

from typing import Callable, Dict, List, Sequence

from embassy_checker.models.metrics import (
    IdleAge,
    RegionFounded,
    RegionLastMessage,
    RegionWithTags,
    whole_days,
)
from embassy_checker.models.query import CheckKind, QueryConfiguration
from embassy_checker.models.region import RegionRecord, tag_key
from embassy_checker.models.report import ReportSection


def check_rmb_activity(
    regions: Sequence[RegionRecord], max_days: int, now: float
) -> ReportSection:
    """Find regions without new message board posts during the last ``max_days`` days."""
    found: List[RegionLastMessage] = []

    for region in regions:
        last_message_at = region.last_message_at
        if last_message_at is None:
            idle = IdleAge.never()
        else:
            idle = IdleAge.of_days(whole_days(now - last_message_at))

        if idle.at_least(max_days):
            found.append(RegionLastMessage(region=region.name, idle=idle))

    found.sort(key=lambda m: m.sort_key())
    return ReportSection(
        check=CheckKind.RMB_ACTIVITY,
        title=f"Regions without new RMB messages during the last {max_days} days",
        entries=found,
    )


def check_region_founded(
    regions: Sequence[RegionRecord], min_days: int, now: float
) -> ReportSection:
    """Find regions that were founded less than ``min_days`` days ago."""
    found: List[RegionFounded] = []

    for region in regions:
        founded_at = region.founded_at
        if founded_at is None:
            continue
        days = whole_days(now - founded_at)
        if days < min_days:
            found.append(RegionFounded(region=region.name, days=days))

    found.sort(key=lambda m: m.sort_key())
    return ReportSection(
        check=CheckKind.REGION_FOUNDED,
        title=f"Regions that were founded less than {min_days} days ago",
        entries=found,
    )


def check_region_tags(
    regions: Sequence[RegionRecord], tags: Sequence[str]
) -> ReportSection:
    """Find regions that carry one or more of ``tags``."""
    found: List[RegionWithTags] = []

    for region in regions:
        if not region.tags:
            continue
        carried = {tag_key(tag) for tag in region.tags}
        # Keep the order in which the tags were asked for
        matched = [tag for tag in tags if tag_key(tag) in carried]
        if matched:
            found.append(RegionWithTags(region=region.name, tags=matched))

    found.sort(key=lambda m: m.sort_key())
    return ReportSection(
        check=CheckKind.REGION_TAGS,
        title=f"Regions with one or more of the tags: {', '.join(tags)}",
        entries=found,
    )


Check = Callable[[Sequence[RegionRecord], QueryConfiguration, float], ReportSection]

# Report order
CHECKS: Dict[CheckKind, Check] = {
    CheckKind.RMB_ACTIVITY: lambda regions, config, now: check_rmb_activity(
        regions, config.max_days_since_last_message, now
    ),
    CheckKind.REGION_FOUNDED: lambda regions, config, now: check_region_founded(
        regions, config.min_days_since_founded, now
    ),
    CheckKind.REGION_TAGS: lambda regions, config, now: check_region_tags(
        regions, config.tags_to_check
    ),
}


def run_checks(
    regions: Sequence[RegionRecord], config: QueryConfiguration, now: float
) -> List[ReportSection]:
    """Run every enabled check, in report order."""
    enabled = set(config.enabled_checks)
    return [
        check(regions, config, now)
        for kind, check in CHECKS.items()
        if kind in enabled
    ]
