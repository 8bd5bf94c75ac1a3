"""
Report assembly service for the Sales CRM reporting backend.

Builds the report shapes exposed to the UI from a caller-scoped snapshot:

- analysis: one aggregation along a chosen dimension (dashboard report builder)
- summary bundle: date × channel lead-count matrix plus per-channel,
  per-agent, per-day and per-team aggregations (static reports page)
- overview: headline counters and filter drop-down options

Filters are applied to the caller-visible records before any aggregation and
can only narrow the set. Every table shares the same metric extraction and
fold, so the fifteen counters cannot diverge between tables.

Key Functions:
- apply_filters: narrow a record snapshot by channel, owner, team, date range
- build_date_channel_matrix: dense lead-count matrix
- assemble_summary_bundle / assemble_overview: pure assembly over a snapshot
- build_analysis / build_summary_bundle / build_overview: load snapshot + assemble
"""

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from asyncpg import Connection

from salescrm.core.config import Settings
from salescrm.models.enums import Dimension, Role
from salescrm.models.schemas import (
    AgentOption,
    AnalysisResult,
    Caller,
    CustomerRecord,
    DateChannelRow,
    FilterOptions,
    ReportFilters,
    ReportOverview,
    SummaryBundle,
    SummaryMeta,
    User,
)
from salescrm.services.aggregation import aggregate
from salescrm.services.dimensions import GroupKey, group_key, group_label, parse_record_date
from salescrm.services.metrics import extract_metrics, fold_metrics
from salescrm.services.repository import load_snapshot
from salescrm.services.visibility import VisibilityScope


logger = logging.getLogger(__name__)


# =============================================================================
# Filtering
# =============================================================================


def _active(value: Optional[str], all_value: str) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value or value == all_value:
        return None
    return value


def apply_filters(
    records: Iterable[CustomerRecord],
    filters: ReportFilters,
    users: Iterable[User],
    all_value: str = "全部",
) -> List[CustomerRecord]:
    """
    Narrow a record snapshot by the report filters.

    - channel / createdBy: exact match
    - team: the owner exists in the directory and belongs to the team
    - dateStart / dateEnd: inclusive bounds on the record's day; records with
      no parseable date are dropped whenever a bound is given

    Filters equal to `all_value` (or blank) are ignored.

    Raises:
        ValueError: If a date bound is not an ISO calendar date.
    """
    channel = _active(filters.channel, all_value)
    owner = _active(filters.createdBy, all_value)
    team = _active(filters.team, all_value)
    start_raw = _active(filters.dateStart, all_value)
    end_raw = _active(filters.dateEnd, all_value)
    start = date.fromisoformat(start_raw) if start_raw else None
    end = date.fromisoformat(end_raw) if end_raw else None

    team_members = None
    if team is not None:
        team_members = {u.id for u in users if u.team == team}

    kept = []
    for record in records:
        if channel is not None and record.channel != channel:
            continue
        if owner is not None and record.createdBy != owner:
            continue
        if team_members is not None and record.createdBy not in team_members:
            continue
        if start is not None or end is not None:
            day = parse_record_date(record.date)
            if day is None:
                continue
            if start is not None and day < start:
                continue
            if end is not None and day > end:
                continue
        kept.append(record)
    return kept


# =============================================================================
# Date × Channel Matrix
# =============================================================================


def _ordered_keys(keys: Iterable[GroupKey], descending: bool = False) -> List[GroupKey]:
    known = sorted((k for k in keys if not k.is_unknown), key=lambda k: k.value, reverse=descending)
    unknown = [k for k in keys if k.is_unknown]
    return known + unknown


def build_date_channel_matrix(
    records: Sequence[CustomerRecord]
) -> List[DateChannelRow]:
    """
    Count records per (day, channel).

    Rows are days, newest first; columns are every channel seen in the
    records, ascending. Unknown day and unknown channel come last. Every row
    carries every column (zero-filled) and a row total.
    """
    counts: Dict[GroupKey, Dict[GroupKey, int]] = {}
    channel_keys = set()
    for record in records:
        day = group_key(record, Dimension.DAY)
        channel = group_key(record, Dimension.CHANNEL)
        channel_keys.add(channel)
        row = counts.setdefault(day, {})
        row[channel] = row.get(channel, 0) + 1

    columns = _ordered_keys(list(channel_keys))
    rows = []
    for day in _ordered_keys(list(counts), descending=True):
        cells = {col.canonical: counts[day].get(col, 0) for col in columns}
        rows.append(DateChannelRow(
            date=day.canonical,
            dateLabel=group_label(day),
            channels=cells,
            total=sum(cells.values()),
        ))
    return rows


# =============================================================================
# Pure Assembly
# =============================================================================


def assemble_summary_bundle(
    records: Sequence[CustomerRecord],
    users: Sequence[User],
    filters: Optional[ReportFilters] = None,
) -> SummaryBundle:
    """
    Build the summary bundle from already filtered, caller-visible records.

    Args:
        records: Filtered caller-visible records.
        users: Directory snapshot (for agent labels and team resolution).
        filters: Filters that produced `records`; only the date bounds are
            echoed into each table's metadata.
    """
    date_start = filters.dateStart if filters else None
    date_end = filters.dateEnd if filters else None

    def summarize(dimension: Dimension) -> AnalysisResult:
        return aggregate(records, dimension, users, date_start=date_start, date_end=date_end)

    matrix = build_date_channel_matrix(records)
    channel_summary = summarize(Dimension.CHANNEL)
    agent_summary = summarize(Dimension.AGENT)
    date_summary = summarize(Dimension.DAY)
    team_summary = summarize(Dimension.TEAM)

    channels = list(matrix[0].channels) if matrix else []
    teams = sorted(g.dimension for g in team_summary.results if not g.isUnknown)
    teams.extend(g.dimension for g in team_summary.results if g.isUnknown)

    return SummaryBundle(
        dateChannelMatrix=matrix,
        channelSummary=channel_summary,
        agentSummary=agent_summary,
        dateSummary=date_summary,
        teamSummary=team_summary,
        meta=SummaryMeta(
            channels=channels,
            channelLabels={g.dimension: g.dimensionLabel for g in channel_summary.results},
            dates=[row.date for row in matrix],
            teams=teams,
            recordCount=len(records),
        ),
    )


AGENT_ROLES = (Role.AGENT, Role.MANAGER)


def assemble_overview(
    records: Sequence[CustomerRecord],
    users: Sequence[User],
    scope: VisibilityScope,
) -> ReportOverview:
    """
    Headline counters over filtered records plus filter drop-down options.

    Agent and team options are limited to users inside the caller's scope so
    the drop-downs never reveal people the caller cannot report on.
    """
    in_scope = [u for u in users if scope.unrestricted or u.id in scope.owner_ids]

    agents = [
        AgentOption(id=u.id, name=u.name, nickname=u.nickname)
        for u in in_scope
        if u.roleEnum in AGENT_ROLES
    ]

    return ReportOverview(
        stats=fold_metrics(extract_metrics(record) for record in records),
        filterOptions=FilterOptions(
            channels=sorted({r.channel for r in records if r.channel}),
            teams=sorted({u.team for u in in_scope if u.team}),
            agents=agents,
        ),
    )


# =============================================================================
# Request Entry Points
# =============================================================================


async def build_analysis(
    conn: Connection,
    caller: Caller,
    dimension: Dimension,
    filters: ReportFilters,
    settings: Settings,
) -> AnalysisResult:
    """Aggregate the caller-visible, filtered records along one dimension."""
    snapshot = await load_snapshot(conn, caller, settings.snapshot_timeout_seconds)
    records = apply_filters(snapshot.records, filters, snapshot.users, settings.filter_all_value)
    return aggregate(
        records,
        dimension,
        snapshot.users,
        date_start=filters.dateStart,
        date_end=filters.dateEnd,
    )


async def build_summary_bundle(
    conn: Connection,
    caller: Caller,
    filters: ReportFilters,
    settings: Settings,
) -> SummaryBundle:
    """Build the five-table summary bundle for the caller."""
    snapshot = await load_snapshot(conn, caller, settings.snapshot_timeout_seconds)
    records = apply_filters(snapshot.records, filters, snapshot.users, settings.filter_all_value)
    bundle = assemble_summary_bundle(records, snapshot.users, filters)
    logger.info(
        f"Summary bundle for {caller.id}: {len(records)} records, "
        f"{len(bundle.dateChannelMatrix)} dates, {len(bundle.meta.channels)} channels"
    )
    return bundle


async def build_overview(
    conn: Connection,
    caller: Caller,
    filters: ReportFilters,
    settings: Settings,
) -> ReportOverview:
    """Headline counters and filter options for the caller."""
    snapshot = await load_snapshot(conn, caller, settings.snapshot_timeout_seconds)
    records = apply_filters(snapshot.records, filters, snapshot.users, settings.filter_all_value)
    return assemble_overview(records, snapshot.users, snapshot.scope)
