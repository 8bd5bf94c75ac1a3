"""
Pydantic request/response models for the Sales CRM reporting backend.

This module provides type-safe data validation and serialization for the
records the reporting engine reads (users, customer records, tags) and the
report shapes it exposes (analysis results, summary bundle, overview).

Field names are camelCase to match the JSON contract of the reports UI.

All models use Pydantic v2 syntax.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from salescrm.models.enums import Dimension, Role, TagCategory


logger = logging.getLogger(__name__)


# =============================================================================
# Directory and Record Models
# =============================================================================


class User(BaseModel):
    """
    A member of the sales organization.

    `supervisorId` links each non-root user to exactly one immediate
    supervisor; the links are expected to form a forest. `role` keeps the
    stored label as-is; use `roleEnum` for dispatch.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "u-17",
                "name": "王伟",
                "nickname": "Wade",
                "role": "经理",
                "team": "A组",
                "supervisorId": "u-3",
            }
        }
    )

    id: str = Field(..., min_length=1, description="Stable user identifier")
    name: Optional[str] = Field(default=None, description="Real name")
    nickname: Optional[str] = Field(default=None, description="Display nickname")
    role: Optional[str] = Field(default=None, description="Stored role label")
    team: Optional[str] = Field(default=None, description="Free-text team label")
    supervisorId: Optional[str] = Field(
        default=None,
        description="Immediate supervisor's user id"
    )

    @property
    def roleEnum(self) -> Optional[Role]:
        return Role.parse(self.role)


class Tag(BaseModel):
    """
    A label attached to a customer record.

    Stored tags use the key `type` for the category; both `type` and
    `category` are accepted on input.
    """
    model_config = ConfigDict(populate_by_name=True)

    label: str = Field(..., description="Tag label, e.g. 开户 or opened-account")
    category: Optional[TagCategory] = Field(
        default=None,
        validation_alias=AliasChoices("category", "type"),
        description="Tag category (status, learning, conversion)"
    )

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, value: Any) -> Optional[TagCategory]:
        """Stored categories are free text; anything unrecognized becomes None."""
        if value is None or isinstance(value, TagCategory):
            return value
        try:
            return TagCategory(str(value).strip().lower())
        except ValueError:
            logger.warning(f"Unrecognized tag category {value!r}; ignoring it")
            return None


class CustomerRecord(BaseModel):
    """
    A sales lead owned by the agent who created it.

    `date` is kept as the raw stored string; it is parsed only when a
    date-derived dimension or a date filter needs it.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "c-1001",
                "name": "李女士",
                "createdBy": "u-42",
                "channel": "ads",
                "country": "CN",
                "date": "2026-03-05",
                "tags": [{"label": "开户", "type": "conversion"}],
                "lastReplyAt": "2026-03-06T09:12:00Z",
                "conversationCount": 4,
                "replyCount": 2,
            }
        }
    )

    id: str = Field(..., description="Customer identifier")
    name: Optional[str] = Field(default=None, description="Customer name")
    createdBy: Optional[str] = Field(
        default=None,
        description="Owning user id; absent for legacy records"
    )
    channel: Optional[str] = Field(default=None, description="Acquisition channel")
    country: Optional[str] = Field(default=None, description="Current country")
    date: Optional[str] = Field(default=None, description="ISO calendar date")
    tags: List[Tag] = Field(default_factory=list, description="Tags, duplicates allowed")
    lastReplyAt: Optional[str] = Field(default=None, description="Last customer reply")
    conversationCount: int = Field(default=0, ge=0, description="Messages sent to the lead")
    replyCount: int = Field(default=0, ge=0, description="Messages received from the lead")


class Caller(BaseModel):
    """
    Authenticated identity of the request, taken from the verified session.

    `role` is None when the session carries a label that is not part of the
    organization's role set.
    """
    id: str = Field(..., min_length=1)
    role: Optional[Role] = Field(default=None)


# =============================================================================
# Aggregation Models
# =============================================================================


class MetricVector(BaseModel):
    """
    Fifteen additive counters for a group of customer records.

    `total` counts records. Every other counter counts records for which the
    corresponding tag predicate holds, so each is bounded by `total`.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "total": 2, "readNoReply": 0, "noReadNoReply": 0,
                "joinedGroup": 1, "answeredCall": 0, "investor": 1,
                "beginner": 0, "followStock": 0, "hotChat": 0,
                "repliedToday": 0, "stockTracking": 0, "sincere": 0,
                "openedAccount": 1, "firstDeposit": 0, "addedFunds": 0,
            }
        }
    )

    total: int = Field(default=0, ge=0, description="Records in the group (进线)")
    readNoReply: int = Field(default=0, ge=0, description="已读不回")
    noReadNoReply: int = Field(default=0, ge=0, description="不读不回")
    joinedGroup: int = Field(default=0, ge=0, description="进群")
    answeredCall: int = Field(default=0, ge=0, description="接电话")
    investor: int = Field(default=0, ge=0, description="股民")
    beginner: int = Field(default=0, ge=0, description="小白")
    followStock: int = Field(default=0, ge=0, description="跟票")
    hotChat: int = Field(default=0, ge=0, description="热聊")
    repliedToday: int = Field(default=0, ge=0, description="当日回复")
    stockTracking: int = Field(default=0, ge=0, description="持股跟踪")
    sincere: int = Field(default=0, ge=0, description="走心")
    openedAccount: int = Field(default=0, ge=0, description="开户")
    firstDeposit: int = Field(default=0, ge=0, description="首冲 (开户 and 入金)")
    addedFunds: int = Field(default=0, ge=0, description="加金 (入金)")


class GroupedResult(BaseModel):
    """One row of an aggregation: a dimension value and its counters."""
    dimension: str = Field(..., description="Canonical grouping key")
    dimensionLabel: str = Field(..., description="Human-readable label")
    isUnknown: bool = Field(
        default=False,
        description="True for the bucket holding records with no resolvable value"
    )
    metrics: MetricVector = Field(default_factory=MetricVector)


class AnalysisMeta(BaseModel):
    """Metadata describing an aggregation."""
    groupBy: Dimension = Field(..., description="Grouping dimension")
    totalRecords: int = Field(..., ge=0, description="Records folded into the result")
    dateStart: Optional[str] = Field(default=None, description="Applied lower date bound")
    dateEnd: Optional[str] = Field(default=None, description="Applied upper date bound")


class AnalysisResult(BaseModel):
    """
    Output of the aggregator for a single dimension.

    `totals` equals the element-wise sum of every `results[i].metrics`, and
    `totals.total == meta.totalRecords`.
    """
    meta: AnalysisMeta
    results: List[GroupedResult] = Field(default_factory=list)
    totals: MetricVector = Field(default_factory=MetricVector)


# =============================================================================
# Report Models
# =============================================================================


class ReportFilters(BaseModel):
    """
    Narrowing filters applied to the caller-visible record set.

    Filters never widen visibility. A value equal to the UI's "all" sentinel
    is treated as absent.
    """
    channel: Optional[str] = Field(default=None, description="Exact channel")
    createdBy: Optional[str] = Field(default=None, description="Owning user id")
    team: Optional[str] = Field(default=None, description="Owner's team label")
    dateStart: Optional[str] = Field(default=None, description="Inclusive ISO lower bound")
    dateEnd: Optional[str] = Field(default=None, description="Inclusive ISO upper bound")


class DateChannelRow(BaseModel):
    """One row of the date × channel lead-count matrix."""
    date: str = Field(..., description="Canonical day key")
    dateLabel: str = Field(..., description="Human-readable day")
    channels: Dict[str, int] = Field(
        default_factory=dict,
        description="Record count per channel column, zero-filled"
    )
    total: int = Field(default=0, ge=0, description="Row total")


class SummaryMeta(BaseModel):
    """Distinct values observed in the filtered set, used to size UI tables."""
    channels: List[str] = Field(default_factory=list)
    channelLabels: Dict[str, str] = Field(
        default_factory=dict,
        description="Display label per matrix channel column"
    )
    dates: List[str] = Field(default_factory=list)
    teams: List[str] = Field(default_factory=list)
    recordCount: int = Field(default=0, ge=0)


class SummaryBundle(BaseModel):
    """The fixed multi-table bundle rendered by the static reports page."""
    dateChannelMatrix: List[DateChannelRow] = Field(default_factory=list)
    channelSummary: AnalysisResult
    agentSummary: AnalysisResult
    dateSummary: AnalysisResult
    teamSummary: AnalysisResult
    meta: SummaryMeta = Field(default_factory=SummaryMeta)


class AgentOption(BaseModel):
    """An entry in the agent filter drop-down."""
    id: str
    name: Optional[str] = None
    nickname: Optional[str] = None


class FilterOptions(BaseModel):
    """Values the reports UI offers in its filter drop-downs."""
    channels: List[str] = Field(default_factory=list)
    teams: List[str] = Field(default_factory=list)
    agents: List[AgentOption] = Field(default_factory=list)


class ReportOverview(BaseModel):
    """Headline counters for the caller-visible filtered set plus filter options."""
    stats: MetricVector = Field(default_factory=MetricVector)
    filterOptions: FilterOptions = Field(default_factory=FilterOptions)


class CustomerListResponse(BaseModel):
    """Caller-visible customer records."""
    customers: List[CustomerRecord] = Field(default_factory=list)
    count: int = Field(default=0, ge=0)


class SupervisorUpdate(BaseModel):
    """Request body for reassigning a user's immediate supervisor."""
    supervisorId: Optional[str] = Field(
        default=None,
        description="New supervisor's user id; null makes the user a root"
    )
