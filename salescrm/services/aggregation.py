"""
Aggregation service for the Sales CRM reporting backend.

Groups a snapshot of customer records along one dimension, folds each group's
per-record metric contributions into a MetricVector, orders the groups, and
computes the grand total.

Ordering:
- day / week / month: ascending canonical key (chronological)
- every other dimension: descending total, ties keep first-seen order
- the unknown bucket always comes after every resolved group

Conservation:
- totals are folded independently over every record, and must equal the
  element-wise sum of the group metrics; totals.total == number of records

Idempotency:
- the same snapshot produces the same groups, order, and labels
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from salescrm.models.enums import Dimension
from salescrm.models.schemas import (
    AnalysisMeta,
    AnalysisResult,
    CustomerRecord,
    GroupedResult,
    User,
)
from salescrm.services.dimensions import GroupKey, group_key, group_label
from salescrm.services.metrics import extract_metrics, fold_metrics


logger = logging.getLogger(__name__)


def index_users(users: Optional[Iterable[User]]) -> Optional[Dict[str, User]]:
    """Key a directory snapshot by user id."""
    if users is None:
        return None
    return {user.id: user for user in users}


def _sort_groups(groups: List[GroupedResult], dimension: Dimension) -> List[GroupedResult]:
    # sorted() is stable, so ties keep first-seen order.
    if dimension.is_temporal:
        return sorted(groups, key=lambda g: (g.isUnknown, g.dimension))
    return sorted(groups, key=lambda g: (g.isUnknown, -g.metrics.total))


def aggregate(
    records: Sequence[CustomerRecord],
    dimension: Dimension,
    users: Optional[Iterable[User]] = None,
    date_start: Optional[str] = None,
    date_end: Optional[str] = None,
) -> AnalysisResult:
    """
    Aggregate records along a dimension.

    Args:
        records: Caller-visible, already filtered record snapshot.
        dimension: Grouping dimension.
        users: User directory snapshot; required for team, used for agent labels.
        date_start: Date bound recorded in the result metadata.
        date_end: Date bound recorded in the result metadata.

    Returns:
        AnalysisResult with one GroupedResult per distinct key. An empty
        snapshot yields no groups and zero totals.

    Example:
        >>> result = aggregate(records, Dimension.CHANNEL)
        >>> [g.dimension for g in result.results]
        ['ads', 'referral']
    """
    directory = index_users(users)

    contributions: Dict[GroupKey, List[Dict[str, int]]] = {}
    for record in records:
        key = group_key(record, dimension, directory)
        contributions.setdefault(key, []).append(extract_metrics(record))

    groups = [
        GroupedResult(
            dimension=key.canonical,
            dimensionLabel=group_label(key, directory),
            isUnknown=key.is_unknown,
            metrics=fold_metrics(items),
        )
        for key, items in contributions.items()
    ]

    totals = fold_metrics(extract_metrics(record) for record in records)

    for group in groups:
        if group.isUnknown:
            logger.warning(
                f"{group.metrics.total} records have no resolvable {dimension.value}; "
                f"grouped under {group.dimensionLabel}"
            )

    logger.info(
        f"Aggregated {len(records)} records into {len(groups)} groups by {dimension.value}"
    )

    return AnalysisResult(
        meta=AnalysisMeta(
            groupBy=dimension,
            totalRecords=len(records),
            dateStart=date_start,
            dateEnd=date_end,
        ),
        results=_sort_groups(groups, dimension),
        totals=totals,
    )
