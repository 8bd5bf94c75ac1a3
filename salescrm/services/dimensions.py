"""
Dimension key and label resolution for the Sales CRM reporting backend.

Maps a customer record to the grouping key for one of the seven report
dimensions, and a grouping key to its display label.

Keys are tagged: a GroupKey is either known (carries the resolved value) or
unknown (the record has no resolvable value for the dimension). Label
formatting branches on the tag, never on string prefixes, so a real value can
never be mistaken for the unknown bucket.

Canonical key strings:
- channel / country / team: the raw value
- agent: the owning user's id
- day: YYYY-MM-DD
- week: YYYY-MM-DD of the Monday starting the week
- month: YYYY-MM
- unknown, date dimensions: "unknown-<dimension>" (e.g. unknown-day)
- unknown, other dimensions: "" (the empty string)

No resolved key can equal an unknown key: resolved date keys are ISO strings
of digits and hyphens, and resolved values of the other dimensions are never
empty.

The date formats are chosen so lexicographic order equals chronological order.

Labels differ from keys for agent (name, then nickname, then id) and the three
date dimensions (Chinese calendar formatting used by the reports UI).
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Mapping, Optional

from salescrm.models.enums import Dimension
from salescrm.models.schemas import CustomerRecord, User


logger = logging.getLogger(__name__)


_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


UNKNOWN_LABELS = {
    Dimension.CHANNEL: "未知渠道",
    Dimension.AGENT: "未知业务员",
    Dimension.TEAM: "未知团队",
    Dimension.COUNTRY: "未知国家",
    Dimension.DAY: "未知日期",
    Dimension.WEEK: "未知周",
    Dimension.MONTH: "未知月",
}


# =============================================================================
# Group Key
# =============================================================================


@dataclass(frozen=True)
class GroupKey:
    """
    Tagged grouping key.

    Attributes:
        dimension: The dimension this key belongs to.
        value: Resolved canonical value, or None for the unknown bucket.
    """
    dimension: Dimension
    value: Optional[str] = None

    @classmethod
    def known(cls, dimension: Dimension, value: str) -> "GroupKey":
        return cls(dimension=dimension, value=value)

    @classmethod
    def unknown(cls, dimension: Dimension) -> "GroupKey":
        return cls(dimension=dimension)

    @property
    def is_unknown(self) -> bool:
        return self.value is None

    @property
    def canonical(self) -> str:
        """String form exposed as GroupedResult.dimension."""
        if self.value is None:
            if self.dimension.is_temporal:
                return f"unknown-{self.dimension.value}"
            return ""
        return self.value


# =============================================================================
# Date Parsing
# =============================================================================


def parse_record_date(raw: Optional[str]) -> Optional[date]:
    """
    Parse a stored record date.

    Accepts an extended ISO calendar date, optionally followed by a time part
    ("2026-03-05", "2026-03-05 10:00:00" or "2026-03-05T10:00:00Z"). The whole
    string must parse; trailing text and the basic "20260305" form are
    rejected on every interpreter version. Returns None for absent or
    unparseable values instead of raising.
    """
    if not raw:
        return None
    text = raw.strip()
    try:
        if not _ISO_DATE.match(text):
            raise ValueError(text)
        if len(text) == 10:
            return date.fromisoformat(text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text).date()
    except ValueError:
        logger.warning(f"Unparseable customer date {raw!r}; using unknown bucket")
        return None


def _temporal_value(day: date, dimension: Dimension) -> str:
    if dimension is Dimension.DAY:
        return day.isoformat()
    if dimension is Dimension.WEEK:
        return (day - timedelta(days=day.weekday())).isoformat()
    return f"{day.year:04d}-{day.month:02d}"


# =============================================================================
# Key Resolution
# =============================================================================


def group_key(
    record: CustomerRecord,
    dimension: Dimension,
    users: Optional[Mapping[str, User]] = None
) -> GroupKey:
    """
    Resolve the grouping key of a record for a dimension.

    Args:
        record: The customer record.
        dimension: Grouping dimension.
        users: User directory keyed by id. Needed for team; for agent it lets
            owners that no longer exist fall into the unknown bucket.

    Returns:
        GroupKey, unknown when the record has no resolvable value.
    """
    if dimension is Dimension.CHANNEL:
        return _raw_key(dimension, record.channel)
    if dimension is Dimension.COUNTRY:
        return _raw_key(dimension, record.country)

    if dimension is Dimension.AGENT:
        owner = record.createdBy
        if not owner:
            return GroupKey.unknown(dimension)
        if users is not None and owner not in users:
            return GroupKey.unknown(dimension)
        return GroupKey.known(dimension, owner)

    if dimension is Dimension.TEAM:
        user = users.get(record.createdBy) if users is not None and record.createdBy else None
        return _raw_key(dimension, user.team if user is not None else None)

    day = parse_record_date(record.date)
    if day is None:
        return GroupKey.unknown(dimension)
    return GroupKey.known(dimension, _temporal_value(day, dimension))


def _raw_key(dimension: Dimension, value: Optional[str]) -> GroupKey:
    if value:
        return GroupKey.known(dimension, value)
    return GroupKey.unknown(dimension)


# =============================================================================
# Label Resolution
# =============================================================================


def agent_display_name(user: User) -> str:
    """Name with nickname in parentheses, falling back to nickname, then id."""
    if user.name and user.nickname:
        return f"{user.name}({user.nickname})"
    return user.name or user.nickname or user.id


def group_label(key: GroupKey, users: Optional[Mapping[str, User]] = None) -> str:
    """
    Render a grouping key for display.

    A pure function of the key and the directory, so every record that maps to
    a key gets the same label.
    """
    if key.is_unknown:
        return UNKNOWN_LABELS[key.dimension]

    value = key.value
    dimension = key.dimension

    if dimension is Dimension.AGENT:
        user = users.get(value) if users is not None else None
        return agent_display_name(user) if user is not None else value

    if dimension.is_temporal:
        if dimension is Dimension.MONTH:
            year, month = value.split("-")
            return f"{int(year)}年{int(month)}月"
        day = date.fromisoformat(value)
        label = f"{day.month}月{day.day}日"
        return f"{label}周" if dimension is Dimension.WEEK else label

    return value
