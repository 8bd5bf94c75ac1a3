"""
FastAPI router for user directory maintenance.

PATCH /users/{user_id}/supervisor reassigns a user's immediate supervisor.
Only supervisors may call it, and the reassignment is rejected when it would
turn the reporting hierarchy into anything other than a forest.
"""

import logging

from fastapi import APIRouter, HTTPException, Path, status

from salescrm.core.dependencies import CallerDep, DBSessionDep
from salescrm.models.enums import Role
from salescrm.models.schemas import SupervisorUpdate, User
from salescrm.services.repository import update_user_supervisor
from salescrm.services.visibility import HierarchyCycleError, UnknownUserError


logger = logging.getLogger(__name__)


router = APIRouter(prefix="/users")


@router.patch("/{user_id}/supervisor", response_model=User)
async def set_supervisor(
    caller: CallerDep,
    db: DBSessionDep,
    body: SupervisorUpdate,
    user_id: str = Path(..., min_length=1, description="User to reassign"),
) -> User:
    """
    Set or clear a user's supervisor.

    Raises:
        HTTPException 401: Unauthenticated.
        HTTPException 403: Caller is not a supervisor.
        HTTPException 404: User or proposed supervisor does not exist.
        HTTPException 409: The new link would create a cycle.
    """
    if caller.role != Role.SUPERVISOR:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only supervisors can change reporting lines",
        )

    try:
        return await update_user_supervisor(db, user_id, body.supervisorId)
    except UnknownUserError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except HierarchyCycleError as e:
        logger.warning(f"Rejected supervisor change for {user_id}: {e}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error updating supervisor of {user_id}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to update supervisor: {str(e)}"
        )
