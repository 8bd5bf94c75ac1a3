"""
Metric extraction service for the Sales CRM reporting backend.

Derives a customer record's contribution to the fifteen funnel/engagement
counters from its tags, and folds contributions into MetricVectors.

The tag policy lives in TAG_RULES, a declarative table mapping each counter to
the predicate that sets it. Predicates come in three shapes:

- any_of: the record carries at least one of the listed labels
- contains: some label on the record contains one of the listed substrings
  (跟票1 .. 跟票4 all count as follow-stock)
- all_of: every listed rule holds (first deposit = opened account AND deposit)

Both the canonical English labels and the stored Chinese labels are listed.

Key Functions:
- extract_metrics: record → partial counter dict, total always 1
- fold_metrics: element-wise sum of partial dicts into a MetricVector
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Tuple

from salescrm.models.enums import MetricKey
from salescrm.models.schemas import CustomerRecord, MetricVector


# =============================================================================
# Tag Predicates
# =============================================================================


@dataclass(frozen=True)
class TagRule:
    """
    Predicate over a record's set of tag labels.

    Attributes:
        any_of: Labels of which at least one must be present.
        contains: Substrings of which at least one must occur in some label.
        all_of: Rules that must all hold. When set, any_of/contains are ignored.
    """
    any_of: FrozenSet[str] = frozenset()
    contains: Tuple[str, ...] = ()
    all_of: Tuple["TagRule", ...] = ()

    def matches(self, labels: FrozenSet[str]) -> bool:
        if self.all_of:
            return all(rule.matches(labels) for rule in self.all_of)
        if self.any_of & labels:
            return True
        return any(needle in label for label in labels for needle in self.contains)


def has_tag(*labels: str) -> TagRule:
    return TagRule(any_of=frozenset(labels))


def tag_contains(*needles: str) -> TagRule:
    return TagRule(contains=needles)


def all_of(*rules: TagRule) -> TagRule:
    return TagRule(all_of=rules)


OPENED_ACCOUNT = has_tag("opened-account", "开户")
DEPOSIT = has_tag("deposit", "入金")


# Counter → predicate. `total` is not listed; it is always 1 per record.
TAG_RULES: Dict[MetricKey, TagRule] = {
    MetricKey.READ_NO_REPLY: has_tag("read-no-reply", "已读不回"),
    MetricKey.NO_READ_NO_REPLY: has_tag("no-read-no-reply", "不读不回"),
    MetricKey.JOINED_GROUP: has_tag("joined-group", "进群"),
    MetricKey.ANSWERED_CALL: has_tag("answered-call", "接电话"),
    MetricKey.INVESTOR: has_tag("investor", "股民"),
    MetricKey.BEGINNER: has_tag("beginner", "小白"),
    MetricKey.FOLLOW_STOCK: tag_contains("follow-stock", "跟票"),
    MetricKey.HOT_CHAT: has_tag("hot-chat", "热聊"),
    MetricKey.REPLIED_TODAY: has_tag("replied-today", "当日回复"),
    MetricKey.STOCK_TRACKING: tag_contains("stock-tracking", "持股"),
    MetricKey.SINCERE: has_tag("sincere", "走心"),
    MetricKey.OPENED_ACCOUNT: OPENED_ACCOUNT,
    MetricKey.FIRST_DEPOSIT: all_of(OPENED_ACCOUNT, DEPOSIT),
    MetricKey.ADDED_FUNDS: DEPOSIT,
}


# =============================================================================
# Extraction and Folding
# =============================================================================


def extract_metrics(record: CustomerRecord) -> Dict[str, int]:
    """
    Compute a single record's contribution to the counters.

    Always sets `total` to 1. Every other counter is set to 1 when its rule
    in TAG_RULES holds and left out otherwise. Duplicate tags count once.

    Args:
        record: The customer record.

    Returns:
        Partial counter mapping keyed by MetricKey value.

    Example:
        >>> record = CustomerRecord(id="c1", tags=[{"label": "开户"}, {"label": "入金"}])
        >>> sorted(extract_metrics(record).items())
        [('addedFunds', 1), ('firstDeposit', 1), ('openedAccount', 1), ('total', 1)]
    """
    labels = frozenset(tag.label for tag in record.tags if tag.label)
    contribution = {MetricKey.TOTAL.value: 1}
    if not labels:
        return contribution

    for key, rule in TAG_RULES.items():
        if rule.matches(labels):
            contribution[key.value] = 1
    return contribution


def fold_metrics(contributions: Iterable[Dict[str, int]]) -> MetricVector:
    """
    Sum partial counter mappings element-wise into a MetricVector.

    Missing keys count as zero. An empty iterable yields the zero vector.
    """
    sums = {key.value: 0 for key in MetricKey}
    for contribution in contributions:
        for key, value in contribution.items():
            sums[key] += value
    return MetricVector(**sums)
