"""
Package initialization file for backend models.

Re-exports all Pydantic schemas and enumerations so other modules can import
them from salescrm.models directly.

Usage:
    from salescrm.models import (
        Role,
        Dimension,
        CustomerRecord,
        AnalysisResult,
    )
"""

# =============================================================================
# Enums
# =============================================================================

from salescrm.models.enums import (
    Role,
    Dimension,
    MetricKey,
    TagCategory,
)


# =============================================================================
# Schemas
# =============================================================================

from salescrm.models.schemas import (
    # Directory and records
    User,
    Tag,
    CustomerRecord,
    Caller,
    # Aggregation
    MetricVector,
    GroupedResult,
    AnalysisMeta,
    AnalysisResult,
    # Reports
    ReportFilters,
    DateChannelRow,
    SummaryMeta,
    SummaryBundle,
    AgentOption,
    FilterOptions,
    ReportOverview,
    CustomerListResponse,
    SupervisorUpdate,
)


__all__ = [
    # Enums
    'Role',
    'Dimension',
    'MetricKey',
    'TagCategory',
    # Directory and records
    'User',
    'Tag',
    'CustomerRecord',
    'Caller',
    # Aggregation
    'MetricVector',
    'GroupedResult',
    'AnalysisMeta',
    'AnalysisResult',
    # Reports
    'ReportFilters',
    'DateChannelRow',
    'SummaryMeta',
    'SummaryBundle',
    'AgentOption',
    'FilterOptions',
    'ReportOverview',
    'CustomerListResponse',
    'SupervisorUpdate',
]
