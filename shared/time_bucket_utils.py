"""
Click time-bucketing for the analytics chart.

Reduces raw click timestamps to an ordered series of TimeBuckets under a
user-selected Granularity. The bucket label is both the grouping key and the
only thing that carries chronological order into the sort step, so every
granularity defines its label builder and the pattern that parses the label
back in one GranularityConfig.

Label shapes (US short date, unpadded month/day/hour):
- MINUTE: ``9:05``             (clicks all on one day)
          ``10/19/2026 9:05``  (clicks spanning several days)
- HOUR:   ``10/19/2026 9:00``
- DAY:    ``10/19/2026``
"""

from collections import Counter
from datetime import datetime, tzinfo
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from errors import BucketLabelError
from schemas.models.analytics import TimeBucket
from shared.datetime_utils import to_display_zone


class Granularity(Enum):
    """Temporal resolution used to group clicks into chart buckets"""

    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"


def _short_date(dt: datetime) -> str:
    return f"{dt.month}/{dt.day}/{dt.year}"


class GranularityConfig:
    """Label builder and matching parse pattern for one granularity"""

    def __init__(
        self,
        granularity: Granularity,
        label: Callable[[datetime], str],
        parse_format: str,
        display_name: str,
    ):
        self.granularity = granularity
        self.label = label
        self.parse_format = parse_format
        self.display_name = display_name


BUCKET_CONFIGS = {
    Granularity.MINUTE: GranularityConfig(
        granularity=Granularity.MINUTE,
        label=lambda dt: f"{dt.hour}:{dt.minute:02d}",
        parse_format="%H:%M",
        display_name="Minutes",
    ),
    Granularity.HOUR: GranularityConfig(
        granularity=Granularity.HOUR,
        label=lambda dt: f"{_short_date(dt)} {dt.hour}:00",
        parse_format="%m/%d/%Y %H:%M",
        display_name="Hours",
    ),
    Granularity.DAY: GranularityConfig(
        granularity=Granularity.DAY,
        label=_short_date,
        parse_format="%m/%d/%Y",
        display_name="Days",
    ),
}

# Minute buckets for clicks spread over more than one day; without the date,
# 9:05 on Monday and 9:05 on Tuesday would share a bucket
DATED_MINUTE_CONFIG = GranularityConfig(
    granularity=Granularity.MINUTE,
    label=lambda dt: f"{_short_date(dt)} {dt.hour}:{dt.minute:02d}",
    parse_format="%m/%d/%Y %H:%M",
    display_name="Minutes",
)


def get_granularity_config(
    granularity: Granularity, dated: bool = False
) -> GranularityConfig:
    """Get the label configuration for a given granularity"""
    if dated and granularity == Granularity.MINUTE:
        return DATED_MINUTE_CONFIG
    return BUCKET_CONFIGS[granularity]


def spans_several_days(local_timestamps: Sequence[datetime]) -> bool:
    return len({dt.date() for dt in local_timestamps}) > 1


def bucket_label(
    timestamp: datetime,
    granularity: Granularity,
    tz: Optional[tzinfo] = None,
    dated: bool = False,
) -> str:
    """
    Compute the bucket label of a single click.

    Args:
        timestamp: When the click happened (naive values are treated as UTC)
        granularity: Active granularity
        tz: Display zone; None means the viewer's local zone
        dated: Prefix minute labels with the date

    Returns:
        The label; two clicks share a bucket iff their labels are equal
    """
    local = to_display_zone(timestamp, tz)
    return get_granularity_config(granularity, dated).label(local)


def _parse(label: str, config: GranularityConfig) -> datetime:
    try:
        return datetime.strptime(label, config.parse_format)
    except ValueError as e:
        raise BucketLabelError(
            f"Bucket label {label!r} does not parse as {config.parse_format!r}",
            details={"granularity": config.granularity.value},
        ) from e


def parse_bucket_label(
    label: str, granularity: Granularity, dated: bool = False
) -> datetime:
    """
    Parse a bucket label back into a (naive) point in time for ordering.

    Raises:
        BucketLabelError: If the label does not match its granularity's
            parse pattern.
    """
    return _parse(label, get_granularity_config(granularity, dated))


def aggregate_clicks(
    timestamps: Iterable[datetime],
    granularity: Granularity,
    tz: Optional[tzinfo] = None,
) -> List[TimeBucket]:
    """
    Group click timestamps into chronologically ordered buckets.

    The output is sorted by the parsed value of each label, not by the label
    text, so ``10:00`` follows ``9:59``. Counts always add up to the number
    of input timestamps. Empty input yields an empty list.

    Args:
        timestamps: Click instants in any order
        granularity: Bucket size
        tz: Display zone; None means the viewer's local zone

    Returns:
        List of TimeBuckets, one per distinct label
    """
    local = [to_display_zone(ts, tz) for ts in timestamps]
    config = get_granularity_config(granularity, dated=spans_several_days(local))

    counts = Counter(config.label(dt) for dt in local)
    ordered = sorted(counts.items(), key=lambda item: _parse(item[0], config))
    return [TimeBucket(label=label, count=count) for label, count in ordered]


def to_chart_points(buckets: Iterable[TimeBucket]) -> List[Tuple[str, int]]:
    """Flatten buckets into the (label, value) points a chart renderer plots"""
    return [(bucket.label, bucket.count) for bucket in buckets]
