"""
FastAPI router for the caller-visible customer list.

GET /customers returns the customer records the caller may see, optionally
narrowed by the same filters the reports accept.
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from salescrm.core.dependencies import CallerDep, DBSessionDep, SettingsDep
from salescrm.models.schemas import CustomerListResponse, ReportFilters
from salescrm.services.reports import apply_filters
from salescrm.services.repository import SnapshotTimeoutError, load_snapshot


logger = logging.getLogger(__name__)


router = APIRouter(prefix="/customers")


@router.get("", response_model=CustomerListResponse)
async def list_customers(
    caller: CallerDep,
    db: DBSessionDep,
    settings: SettingsDep,
    channel: Optional[str] = Query(default=None),
    createdBy: Optional[str] = Query(default=None),
    team: Optional[str] = Query(default=None),
    dateStart: Optional[date] = Query(default=None),
    dateEnd: Optional[date] = Query(default=None),
) -> CustomerListResponse:
    """
    List customers visible to the caller, newest first.

    Raises:
        HTTPException 401: Unauthenticated.
        HTTPException 504: Snapshot read timed out.
    """
    filters = ReportFilters(
        channel=channel,
        createdBy=createdBy,
        team=team,
        dateStart=dateStart.isoformat() if dateStart else None,
        dateEnd=dateEnd.isoformat() if dateEnd else None,
    )
    try:
        snapshot = await load_snapshot(db, caller, settings.snapshot_timeout_seconds)
        customers = apply_filters(
            snapshot.records, filters, snapshot.users, settings.filter_all_value
        )
        customers.sort(key=lambda c: c.date or "", reverse=True)
        return CustomerListResponse(customers=customers, count=len(customers))
    except SnapshotTimeoutError as e:
        logger.warning(f"Customer snapshot timed out: {e}")
        raise HTTPException(status_code=504, detail="Timed out reading customers")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error listing customers for {caller.id}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to list customers: {str(e)}"
        )
