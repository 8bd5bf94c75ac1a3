"""
FastAPI router module for role-scoped sales reports.

Implements:
- GET /reports/analysis: single-dimension breakdown for the report builder
- GET /reports/summary-tables: five-table bundle for the static reports page
- GET /reports/overview: headline counters and filter options

Every endpoint authenticates the caller from the session token first, then
reads a snapshot of the directory and the caller-visible records, applies the
query filters, and aggregates in memory.
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from salescrm.core.dependencies import CallerDep, DBSessionDep, SettingsDep
from salescrm.models.enums import Dimension
from salescrm.models.schemas import (
    AnalysisResult,
    ReportFilters,
    ReportOverview,
    SummaryBundle,
)
from salescrm.services.reports import build_analysis, build_overview, build_summary_bundle
from salescrm.services.repository import SnapshotTimeoutError


logger = logging.getLogger(__name__)


router = APIRouter(prefix="/reports")


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _timeout(e: SnapshotTimeoutError) -> HTTPException:
    logger.warning(f"Report snapshot timed out: {e}")
    return HTTPException(status_code=504, detail="Timed out reading report data")


# =============================================================================
# Endpoint Implementations
# =============================================================================


@router.get("/analysis", response_model=AnalysisResult)
async def get_analysis(
    caller: CallerDep,
    db: DBSessionDep,
    settings: SettingsDep,
    groupBy: Dimension = Query(..., description="Grouping dimension"),
    channel: Optional[str] = Query(default=None, description="Filter by channel"),
    createdBy: Optional[str] = Query(default=None, description="Filter by owning user id"),
    team: Optional[str] = Query(default=None, description="Filter by owner's team"),
    dateStart: Optional[date] = Query(default=None, description="Inclusive lower date bound"),
    dateEnd: Optional[date] = Query(default=None, description="Inclusive upper date bound"),
) -> AnalysisResult:
    """
    Group the caller-visible customers along one dimension.

    `createdBy` only narrows the caller's visible set; it never identifies
    the caller.

    Returns:
        AnalysisResult with groups, totals, and metadata.

    Raises:
        HTTPException 401: Unauthenticated.
        HTTPException 422: Unknown groupBy or malformed dates.
        HTTPException 504: Snapshot read timed out.
    """
    filters = ReportFilters(
        channel=channel,
        createdBy=createdBy,
        team=team,
        dateStart=_iso(dateStart),
        dateEnd=_iso(dateEnd),
    )
    try:
        return await build_analysis(db, caller, groupBy, filters, settings)
    except SnapshotTimeoutError as e:
        raise _timeout(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error building {groupBy.value} analysis for {caller.id}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to build analysis: {str(e)}"
        )


@router.get("/summary-tables", response_model=SummaryBundle)
async def get_summary_tables(
    caller: CallerDep,
    db: DBSessionDep,
    settings: SettingsDep,
    dateStart: Optional[date] = Query(default=None, description="Inclusive lower date bound"),
    dateEnd: Optional[date] = Query(default=None, description="Inclusive upper date bound"),
) -> SummaryBundle:
    """
    Build the fixed summary bundle: date × channel matrix plus channel,
    agent, date and team tables.

    Raises:
        HTTPException 401: Unauthenticated.
        HTTPException 422: Malformed dates.
        HTTPException 504: Snapshot read timed out.
    """
    filters = ReportFilters(dateStart=_iso(dateStart), dateEnd=_iso(dateEnd))
    try:
        return await build_summary_bundle(db, caller, filters, settings)
    except SnapshotTimeoutError as e:
        raise _timeout(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error building summary tables for {caller.id}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to build summary tables: {str(e)}"
        )


@router.get("/overview", response_model=ReportOverview)
async def get_overview(
    caller: CallerDep,
    db: DBSessionDep,
    settings: SettingsDep,
    channel: Optional[str] = Query(default=None, description="Filter by channel"),
    createdBy: Optional[str] = Query(default=None, description="Filter by owning user id"),
    team: Optional[str] = Query(default=None, description="Filter by owner's team"),
    dateStart: Optional[date] = Query(default=None, description="Inclusive lower date bound"),
    dateEnd: Optional[date] = Query(default=None, description="Inclusive upper date bound"),
) -> ReportOverview:
    """
    Headline counters for the caller-visible filtered customers, plus the
    channel, team and agent options for the filter drop-downs.
    """
    filters = ReportFilters(
        channel=channel,
        createdBy=createdBy,
        team=team,
        dateStart=_iso(dateStart),
        dateEnd=_iso(dateEnd),
    )
    try:
        return await build_overview(db, caller, filters, settings)
    except SnapshotTimeoutError as e:
        raise _timeout(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error building report overview for {caller.id}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to build report overview: {str(e)}"
        )
