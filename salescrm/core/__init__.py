"""
Core infrastructure package for the FastAPI backend.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL connectivity via asyncpg
- Session token verification
- FastAPI dependency injection utilities

Re-exports key components so other modules can write:

    from salescrm.core import get_settings, CallerDep, DBSessionDep
"""

from salescrm.core.config import Settings, get_settings

from salescrm.core.database import init_db, close_db, get_db_pool

from salescrm.core.security import create_session_token, decode_session_token

from salescrm.core.dependencies import (
    get_db_session,
    get_settings_dependency,
    get_current_caller,
    SettingsDep,
    DBSessionDep,
    CallerDep,
)


__all__ = [
    # Configuration management
    'Settings',
    'get_settings',
    # Database pool lifecycle
    'init_db',
    'close_db',
    'get_db_pool',
    # Session tokens
    'create_session_token',
    'decode_session_token',
    # FastAPI dependency injection
    'get_db_session',
    'get_settings_dependency',
    'get_current_caller',
    'SettingsDep',
    'DBSessionDep',
    'CallerDep',
]
