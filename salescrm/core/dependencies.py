"""
FastAPI dependency injection module for the Sales CRM reporting backend.

Provides reusable FastAPI dependencies for database sessions, configuration
access, and caller authentication.

Key Dependencies Provided:
- get_db_session: Async generator yielding database connections from the pool
- get_settings_dependency: Returns the cached Settings singleton
- get_current_caller: Verifies the bearer session token and returns the Caller
- SettingsDep / DBSessionDep / CallerDep: Annotated aliases for endpoints

The caller identity comes only from the verified session token. Request
parameters never substitute for it.

Usage Examples:
    @router.get("/reports/analysis")
    async def analysis(
        db: DBSessionDep,
        settings: SettingsDep,
        caller: CallerDep,
    ) -> AnalysisResult:
        ...

Testing:
    app.dependency_overrides[get_db_session] = lambda: mock_conn
    app.dependency_overrides[get_settings_dependency] = lambda: test_settings
"""

from typing import Annotated, AsyncGenerator, Optional

from asyncpg import Connection
from fastapi import Depends, Header, HTTPException, status

from salescrm.core.config import Settings, get_settings
from salescrm.core.database import get_db_pool
from salescrm.core.security import decode_session_token
from salescrm.models.schemas import Caller


# =============================================================================
# Database Session Dependency
# =============================================================================

async def get_db_session() -> AsyncGenerator[Connection, None]:
    """
    Yield an async database connection from the pool.

    The connection is released back to the pool when the endpoint completes,
    whether or not it raised.

    Yields:
        asyncpg.Connection: An active database connection from the pool.
    """
    pool = await get_db_pool()
    async with pool.acquire() as connection:
        yield connection


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so tests can override it through
    app.dependency_overrides.
    """
    return get_settings()


SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

DBSessionDep = Annotated[Connection, Depends(get_db_session)]


# =============================================================================
# Authentication Dependency
# =============================================================================

async def get_current_caller(
    settings: SettingsDep,
    authorization: Optional[str] = Header(None),
) -> Caller:
    """
    Authenticate the request from its `Authorization: Bearer <token>` header.

    Runs before any endpoint body, so unauthenticated requests are rejected
    before visibility resolution or any database read.

    Raises:
        HTTPException(401): Missing header, wrong scheme, or invalid/expired token.
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
        )

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header",
        )
    if scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication scheme",
        )

    caller = decode_session_token(token, settings)
    if caller is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
        )
    return caller


CallerDep = Annotated[Caller, Depends(get_current_caller)]
