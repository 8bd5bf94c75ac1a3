"""
Backend Services Module

Business logic for the reporting engine. Every service except the repository
is a pure function of its inputs; concurrent requests share no mutable state.

Services:
- metrics: tag-derived metric extraction and folding
- visibility: role-scoped record visibility and hierarchy validation
- dimensions: grouping key and label resolution
- aggregation: group, fold, sort, total
- reports: filters, summary bundle, overview
- repository: asyncpg reads of users and customers
"""

# =============================================================================
# Metric Extraction
# =============================================================================

from salescrm.services.metrics import (
    TAG_RULES,
    TagRule,
    extract_metrics,
    fold_metrics,
)

# =============================================================================
# Visibility
# =============================================================================

from salescrm.services.visibility import (
    VisibilityScope,
    resolve_visibility,
    filter_visible,
    visible_records,
    validate_supervisor_assignment,
    HierarchyError,
    HierarchyCycleError,
    UnknownUserError,
)

# =============================================================================
# Dimensions and Aggregation
# =============================================================================

from salescrm.services.dimensions import (
    GroupKey,
    group_key,
    group_label,
    parse_record_date,
)

from salescrm.services.aggregation import (
    aggregate,
    index_users,
)

# =============================================================================
# Reports and Data Access
# =============================================================================

from salescrm.services.repository import (
    Snapshot,
    SnapshotTimeoutError,
    fetch_users,
    fetch_customers,
    load_snapshot,
    update_user_supervisor,
)

from salescrm.services.reports import (
    apply_filters,
    build_date_channel_matrix,
    assemble_summary_bundle,
    assemble_overview,
    build_analysis,
    build_summary_bundle,
    build_overview,
)


__all__ = [
    # Metrics
    'TAG_RULES',
    'TagRule',
    'extract_metrics',
    'fold_metrics',
    # Visibility
    'VisibilityScope',
    'resolve_visibility',
    'filter_visible',
    'visible_records',
    'validate_supervisor_assignment',
    'HierarchyError',
    'HierarchyCycleError',
    'UnknownUserError',
    # Dimensions
    'GroupKey',
    'group_key',
    'group_label',
    'parse_record_date',
    # Aggregation
    'aggregate',
    'index_users',
    # Data access
    'Snapshot',
    'SnapshotTimeoutError',
    'fetch_users',
    'fetch_customers',
    'load_snapshot',
    'update_user_supervisor',
    # Reports
    'apply_filters',
    'build_date_channel_matrix',
    'assemble_summary_bundle',
    'assemble_overview',
    'build_analysis',
    'build_summary_bundle',
    'build_overview',
]
